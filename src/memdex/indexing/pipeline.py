"""
Indexing pipeline orchestration.

Reconciles the stored index with the current set of notes and backfills
missing embeddings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from ..embeddings import Embedder
from ..search.semantic import EmbeddingCache
from ..storage import DocumentRecord, StorageBackend, StoreState

logger = logging.getLogger(__name__)

EMBEDDING_BATCH_SIZE = 20
_MAX_EMBED_CHARS = 8000


@dataclass(frozen=True)
class IndexingResult:
    """Summary output for a rebuild."""

    indexed_documents: int
    unchanged_documents: int
    deleted_documents: int
    active_documents: int
    embeddings_written: int = 0


def embedding_text(title: str, content: str) -> str:
    return f"{title}\n\n{content}"[:_MAX_EMBED_CHARS]


class IndexingPipeline:
    """Build and update the note index from a document source."""

    def __init__(
        self,
        storage: StorageBackend,
        embedding_provider: Embedder | None = None,
        cache: EmbeddingCache | None = None,
        batch_size: int = EMBEDDING_BATCH_SIZE,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        self.storage = storage
        self.embedding_provider = embedding_provider
        self.cache = cache or EmbeddingCache(storage)
        self.batch_size = batch_size

    def rebuild(self, documents: Iterable[DocumentRecord]) -> IndexingResult:
        """
        Reconcile the store with *documents*.

        New or modified notes (by second-precision ``updated_at``) are
        replaced, unchanged notes are skipped, and stored notes missing from
        *documents* are deleted. Calling this twice with the same input writes
        nothing the second time.
        """
        stored = self.storage.get_updated_at_map()

        indexed = 0
        unchanged = 0
        active_keys: set[tuple[str, str]] = set()
        for document in documents:
            active_keys.add(document.key)
            if stored.get(document.key) == document.updated_at:
                unchanged += 1
                continue
            self.storage.insert_document(document)
            indexed += 1

        deleted = self.storage.delete_missing(active_keys)
        embeddings_written = self.embed_missing()
        self.cache.invalidate()

        if self.storage.state is StoreState.DIRTY or not self._snapshot_exists():
            self.storage.save()

        result = IndexingResult(
            indexed_documents=indexed,
            unchanged_documents=unchanged,
            deleted_documents=deleted,
            active_documents=self.storage.count_documents(),
            embeddings_written=embeddings_written,
        )
        logger.info(
            "Rebuilt index: %d indexed, %d unchanged, %d deleted, %d embedded",
            indexed,
            unchanged,
            deleted,
            embeddings_written,
        )
        return result

    def index_document(self, document: DocumentRecord) -> int:
        """Replace a single note and embed it. Returns embeddings written."""
        self.storage.insert_document(document)
        written = self.embed_missing()
        self.cache.invalidate()
        return written

    def remove_document(self, category: str, filename: str) -> bool:
        removed = self.storage.delete_document(category, filename)
        self.cache.invalidate()
        return removed

    def embed_missing(self) -> int:
        """Embed every stored note without a vector, batch by batch.

        A failing batch is logged and skipped; its notes stay keyword-only
        until the next attempt.
        """
        if self.embedding_provider is None:
            return 0

        pending = self.storage.list_missing_embeddings()
        if not pending:
            return 0

        written = 0
        for start in range(0, len(pending), self.batch_size):
            batch = pending[start : start + self.batch_size]
            texts = [embedding_text(row["title"], row["content"]) for row in batch]
            try:
                vectors = self.embedding_provider.embed(texts)
            except Exception as exc:  # provider failures are per batch
                logger.warning(
                    "Embedding batch %d-%d failed: %s",
                    start,
                    start + len(batch),
                    exc,
                )
                continue
            if len(vectors) != len(batch):
                logger.warning(
                    "Embedding batch %d-%d returned %d vectors for %d texts; skipped",
                    start,
                    start + len(batch),
                    len(vectors),
                    len(batch),
                )
                continue
            written += self.storage.store_embeddings(
                [
                    ((row["category"], row["filename"]), vector)
                    for row, vector in zip(batch, vectors)
                ]
            )
        return written

    def _snapshot_exists(self) -> bool:
        db_path = getattr(self.storage, "db_path", None)
        if db_path is None:
            return True
        return Path(db_path).exists()
