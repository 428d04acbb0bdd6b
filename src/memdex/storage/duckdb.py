"""
DuckDB storage backend for index persistence.

The working set lives in an in-memory DuckDB database. The backing file is a
DuckDB database holding a full snapshot of the ``documents`` table, written
atomically on ``save()``.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import duckdb

from .base import (
    VECTOR_DTYPE,
    DocumentRecord,
    EmbeddingRow,
    StoreState,
    vector_to_blob,
)

logger = logging.getLogger(__name__)

_COLUMNS: tuple[str, ...] = (
    "id",
    "category",
    "filename",
    "title",
    "content",
    "relative_path",
    "updated_at",
    "embedding",
    "embedding_dims",
)

# Columns added after the first released schema, with their DDL types.
_EMBEDDING_COLUMNS: dict[str, str] = {
    "embedding": "BLOB",
    "embedding_dims": "INTEGER DEFAULT 0",
}

_CREATE_DOCUMENTS_SQL = """
    CREATE TABLE IF NOT EXISTS documents (
        id BIGINT PRIMARY KEY,
        category VARCHAR NOT NULL,
        filename VARCHAR NOT NULL,
        title VARCHAR NOT NULL,
        content VARCHAR NOT NULL,
        relative_path VARCHAR NOT NULL,
        updated_at VARCHAR NOT NULL,
        embedding BLOB,
        embedding_dims INTEGER NOT NULL DEFAULT 0,
        UNIQUE(category, filename)
    );
"""

_INSERT_SQL = f"""
    INSERT INTO documents ({", ".join(_COLUMNS)})
    VALUES ({", ".join(["?"] * len(_COLUMNS))})
"""


def _query_terms(query: str) -> list[str]:
    cleaned = re.sub(r"['\"]", "", query)
    return [term for term in cleaned.split() if term]


class DuckDBStorage:
    """DuckDB-backed persistence for indexed notes and their embeddings."""

    def __init__(self, db_path: str) -> None:
        self.db_path = str(Path(db_path).expanduser().resolve())
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = duckdb.connect(":memory:")
        self._state = StoreState.CLEAN
        self._closed = False
        self._fts_available = False
        self._fts_stale = True
        self._next_id = 1
        self.initialize()
        self._load_snapshot()

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def fts_available(self) -> bool:
        return self._fts_available

    def initialize(self) -> None:
        self._conn.execute(_CREATE_DOCUMENTS_SQL)
        self._fts_available = self._load_fts_extension()

    def _load_fts_extension(self) -> bool:
        try:
            self._conn.execute("LOAD fts")
            return True
        except duckdb.Error:
            pass
        try:
            self._conn.execute("INSTALL fts")
            self._conn.execute("LOAD fts")
        except duckdb.Error as exc:
            logger.warning(
                "DuckDB fts extension unavailable, keyword search uses substring scoring: %s",
                exc,
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Snapshot load / save
    # ------------------------------------------------------------------

    def _load_snapshot(self) -> None:
        path = Path(self.db_path)
        if not path.exists():
            return
        try:
            rows = self._read_snapshot(path)
            cleaned = [self._normalize_row(row) for row in rows]
            if cleaned:
                self._conn.executemany(_INSERT_SQL, cleaned)
                self._next_id = max(int(row[0]) for row in cleaned) + 1
        except (duckdb.Error, OSError, TypeError, ValueError) as exc:
            logger.warning("Discarding unreadable index file %s: %s", path, exc)
            self._conn.execute("DELETE FROM documents")
            self._next_id = 1
            return
        logger.debug("Loaded %d documents from %s", len(cleaned), path)

    @staticmethod
    def _read_snapshot(path: Path) -> list[tuple[Any, ...]]:
        snapshot = duckdb.connect(str(path))
        try:
            columns = {
                str(row[0])
                for row in snapshot.execute(
                    """
                    SELECT column_name
                    FROM information_schema.columns
                    WHERE table_name = 'documents'
                    """
                ).fetchall()
            }
            if not columns:
                return []

            missing = [name for name in _EMBEDDING_COLUMNS if name not in columns]
            if missing:
                try:
                    for name in missing:
                        snapshot.execute(
                            f"ALTER TABLE documents ADD COLUMN {name} {_EMBEDDING_COLUMNS[name]}"
                        )
                except duckdb.Error as exc:
                    logger.warning(
                        "Could not migrate index file %s, starting empty: %s", path, exc
                    )
                    return []
                logger.info("Migrated index file %s: added %s", path, ", ".join(missing))

            return snapshot.execute(
                f"SELECT {', '.join(_COLUMNS)} FROM documents ORDER BY id"
            ).fetchall()
        finally:
            snapshot.close()

    @staticmethod
    def _normalize_row(row: tuple[Any, ...]) -> tuple[Any, ...]:
        embedding = row[7]
        dims = int(row[8] or 0)
        if embedding is None or dims <= 0 or len(embedding) != dims * VECTOR_DTYPE.itemsize:
            embedding, dims = None, 0
        else:
            embedding = bytes(embedding)
        return (*row[:7], embedding, dims)

    def save(self) -> None:
        """Write the full store to ``db_path`` atomically."""
        tmp_path = f"{self.db_path}.tmp"
        try:
            for stale in (tmp_path, f"{tmp_path}.wal"):
                if os.path.exists(stale):
                    os.remove(stale)
            rows = self._conn.execute(
                f"SELECT {', '.join(_COLUMNS)} FROM documents ORDER BY id"
            ).fetchall()
            snapshot = duckdb.connect(tmp_path)
            try:
                snapshot.execute(_CREATE_DOCUMENTS_SQL)
                if rows:
                    snapshot.executemany(_INSERT_SQL, rows)
                snapshot.execute("CHECKPOINT")
            finally:
                snapshot.close()
            os.replace(tmp_path, self.db_path)
        except (duckdb.Error, OSError) as exc:
            logger.error("Failed to save index to %s: %s", self.db_path, exc)
            raise
        self._state = StoreState.CLEAN
        logger.debug("Saved %d documents to %s", len(rows), self.db_path)

    def close(self) -> None:
        """Save pending changes, then close the underlying DuckDB connection."""
        if self._closed:
            return
        try:
            if self._state is StoreState.DIRTY:
                self.save()
        finally:
            self._conn.close()
            self._closed = True

    # ------------------------------------------------------------------
    # Document table
    # ------------------------------------------------------------------

    def _mark_dirty(self, *, lexical: bool = True) -> None:
        self._state = StoreState.DIRTY
        if lexical:
            self._fts_stale = True

    def get_updated_at_map(self) -> dict[tuple[str, str], str]:
        rows = self._conn.execute(
            "SELECT category, filename, updated_at FROM documents"
        ).fetchall()
        return {(str(row[0]), str(row[1])): str(row[2]) for row in rows}

    def insert_document(self, document: DocumentRecord) -> None:
        # Delete-then-insert so a replaced note never keeps a stale embedding.
        self._conn.execute(
            "DELETE FROM documents WHERE category = ? AND filename = ?",
            [document.category, document.filename],
        )
        self._conn.execute(
            _INSERT_SQL,
            [
                self._next_id,
                document.category,
                document.filename,
                document.title,
                document.content,
                document.relative_path,
                document.updated_at,
                None,
                0,
            ],
        )
        self._next_id += 1
        self._mark_dirty()

    def delete_document(self, category: str, filename: str) -> bool:
        row = self._conn.execute(
            "DELETE FROM documents WHERE category = ? AND filename = ?",
            [category, filename],
        ).fetchone()
        removed = int(row[0]) if row else 0
        if removed:
            self._mark_dirty()
        return removed > 0

    def delete_missing(self, active_keys: set[tuple[str, str]]) -> int:
        stale_keys = sorted(set(self.get_updated_at_map()) - active_keys)
        for category, filename in stale_keys:
            self._conn.execute(
                "DELETE FROM documents WHERE category = ? AND filename = ?",
                [category, filename],
            )
        if stale_keys:
            self._mark_dirty()
        return len(stale_keys)

    def count_documents(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) FROM documents").fetchone()
        return int(row[0]) if row else 0

    def get_document(self, category: str, filename: str) -> dict[str, Any] | None:
        row = self._conn.execute(
            """
            SELECT category, filename, title, content, relative_path,
                   updated_at, embedding, embedding_dims
            FROM documents
            WHERE category = ? AND filename = ?
            LIMIT 1
            """,
            [category, filename],
        ).fetchone()
        if row is None:
            return None
        return {
            "category": str(row[0]),
            "filename": str(row[1]),
            "title": str(row[2]),
            "content": str(row[3]),
            "relative_path": str(row[4]),
            "updated_at": str(row[5]),
            "embedding": bytes(row[6]) if row[6] is not None else None,
            "embedding_dims": int(row[7]),
        }

    # ------------------------------------------------------------------
    # Embeddings
    # ------------------------------------------------------------------

    def list_missing_embeddings(self) -> list[dict[str, Any]]:
        rows = self._conn.execute(
            """
            SELECT category, filename, title, content
            FROM documents
            WHERE embedding IS NULL
            ORDER BY id
            """
        ).fetchall()
        return [
            {
                "category": str(row[0]),
                "filename": str(row[1]),
                "title": str(row[2]),
                "content": str(row[3]),
            }
            for row in rows
        ]

    def store_embeddings(
        self, embeddings: list[tuple[tuple[str, str], list[float]]]
    ) -> int:
        written = 0
        for (category, filename), vector in embeddings:
            blob = vector_to_blob(vector)
            dims = len(blob) // VECTOR_DTYPE.itemsize
            if dims == 0:
                continue
            self._conn.execute(
                """
                UPDATE documents
                SET embedding = ?, embedding_dims = ?
                WHERE category = ? AND filename = ?
                """,
                [blob, dims, category, filename],
            )
            written += 1
        if written:
            self._mark_dirty(lexical=False)
        return written

    def load_embeddings(self) -> list[EmbeddingRow]:
        rows = self._conn.execute(
            """
            SELECT category, filename, embedding, embedding_dims
            FROM documents
            WHERE embedding IS NOT NULL AND embedding_dims > 0
            ORDER BY id
            """
        ).fetchall()
        return [
            EmbeddingRow(
                category=str(row[0]),
                filename=str(row[1]),
                embedding=bytes(row[2]),
                embedding_dims=int(row[3]),
            )
            for row in rows
        ]

    def has_embeddings(self) -> bool:
        row = self._conn.execute(
            "SELECT COUNT(*) FROM documents WHERE embedding IS NOT NULL"
        ).fetchone()
        return bool(row and row[0])

    # ------------------------------------------------------------------
    # Keyword search
    # ------------------------------------------------------------------

    def search_keyword(
        self,
        query: str,
        *,
        category: str | None = None,
        limit: int = 10,
    ) -> list[dict[str, Any]]:
        terms = _query_terms(query)
        if not terms or self.count_documents() == 0:
            return []

        if self._fts_available:
            try:
                return self._search_bm25(terms, category=category, limit=limit)
            except duckdb.Error as exc:
                logger.warning(
                    "BM25 search failed, falling back to substring scoring: %s", exc
                )
        return self._search_substring(terms, category=category, limit=limit)

    def _ensure_fts_index(self) -> None:
        if not self._fts_stale:
            return
        self._conn.execute(
            """
            PRAGMA create_fts_index(
                'documents', 'id', 'title', 'content', 'category',
                stemmer = 'porter', stopwords = 'english',
                strip_accents = 1, lower = 1, overwrite = 1
            )
            """
        )
        self._fts_stale = False

    def _search_bm25(
        self,
        terms: list[str],
        *,
        category: str | None,
        limit: int,
    ) -> list[dict[str, Any]]:
        self._ensure_fts_index()
        rows = self._run_bm25(terms, category=category, limit=limit, conjunctive=True)
        if not rows and len(terms) > 1:
            rows = self._run_bm25(terms, category=category, limit=limit, conjunctive=False)
        return rows

    def _run_bm25(
        self,
        terms: list[str],
        *,
        category: str | None,
        limit: int,
        conjunctive: bool,
    ) -> list[dict[str, Any]]:
        # match_bm25 is a macro; the query goes in as a literal. Quotes were
        # already stripped by _query_terms.
        query_literal = " ".join(terms).replace("'", "''")
        sql = f"""
            SELECT category, filename, title, content, relative_path, score
            FROM (
                SELECT
                    category, filename, title, content, relative_path,
                    fts_main_documents.match_bm25(
                        id, '{query_literal}', conjunctive := {1 if conjunctive else 0}
                    ) AS score
                FROM documents
            ) ranked
            WHERE score IS NOT NULL
        """
        params: list[Any] = []
        if category:
            sql += " AND category = ?"
            params.append(category)
        sql += " ORDER BY score DESC, category ASC, filename ASC LIMIT ?"
        params.append(limit)
        return self._rows_to_hits(self._conn.execute(sql, params).fetchall())

    def _search_substring(
        self,
        terms: list[str],
        *,
        category: str | None,
        limit: int,
    ) -> list[dict[str, Any]]:
        lowered = list(dict.fromkeys(term.lower() for term in terms))
        term_expr = (
            "(CASE WHEN strpos(lower(title), ?) > 0 THEN 3 ELSE 0 END"
            " + CASE WHEN strpos(lower(category), ?) > 0 THEN 2 ELSE 0 END"
            " + CASE WHEN strpos(lower(content), ?) > 0 THEN 1 ELSE 0 END)"
        )
        score_expr = " + ".join([term_expr] * len(lowered))
        params: list[Any] = []
        for term in lowered:
            params.extend([term, term, term])

        sql = f"""
            SELECT * FROM (
                SELECT
                    category, filename, title, content, relative_path,
                    ({score_expr}) AS score
                FROM documents
        """
        if category:
            sql += " WHERE category = ?"
            params.append(category)
        sql += """
            ) ranked
            WHERE score > 0
            ORDER BY score DESC, category ASC, filename ASC
            LIMIT ?
        """
        params.append(limit)
        return self._rows_to_hits(self._conn.execute(sql, params).fetchall())

    @staticmethod
    def _rows_to_hits(rows: list[tuple[Any, ...]]) -> list[dict[str, Any]]:
        return [
            {
                "category": str(row[0]),
                "filename": str(row[1]),
                "title": str(row[2]),
                "content": str(row[3]),
                "relative_path": str(row[4]),
                "score": float(row[5]),
            }
            for row in rows
        ]
