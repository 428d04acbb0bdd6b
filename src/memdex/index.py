"""
Search index facade.

Opens a persisted note index, keeps it in step with a document source, and
answers hybrid keyword/semantic queries.

Example usage:
    >>> from memdex import SearchIndex, list_entries
    >>> with SearchIndex(".context/.search.duckdb") as index:
    ...     index.rebuild(list_entries(".context"))
    ...     hits = index.search("token refresh", limit=5)
"""

from __future__ import annotations

from typing import Iterable

from .embeddings import Embedder
from .indexing import IndexingPipeline, IndexingResult
from .search import DEFAULT_ALPHA, EmbeddingCache, IndexedQueryEngine, SearchHit
from .storage import DocumentRecord, DuckDBStorage, StoreState


class SearchIndex:
    """A single-writer hybrid search index bound to one file."""

    def __init__(
        self,
        db_path: str,
        *,
        embedding_provider: Embedder | None = None,
        alpha: float = DEFAULT_ALPHA,
        storage: DuckDBStorage | None = None,
    ) -> None:
        self.storage = storage or DuckDBStorage(db_path)
        self.embedding_provider = embedding_provider
        self.cache = EmbeddingCache(self.storage)
        self.pipeline = IndexingPipeline(
            self.storage,
            embedding_provider=embedding_provider,
            cache=self.cache,
        )
        self.engine = IndexedQueryEngine(
            self.storage,
            embedding_provider,
            alpha=alpha,
            cache=self.cache,
        )

    def __enter__(self) -> SearchIndex:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def state(self) -> StoreState:
        return self.storage.state

    @property
    def alpha(self) -> float:
        return self.engine.alpha

    def rebuild(self, documents: Iterable[DocumentRecord]) -> IndexingResult:
        return self.pipeline.rebuild(documents)

    def search(
        self,
        query: str,
        category: str | None = None,
        limit: int = 10,
    ) -> list[SearchHit]:
        return self.engine.search(query, category=category, limit=limit)

    def index_entry(self, document: DocumentRecord) -> None:
        self.pipeline.index_document(document)

    def remove_entry(self, category: str, filename: str) -> bool:
        return self.pipeline.remove_document(category, filename)

    def count_documents(self) -> int:
        return self.storage.count_documents()

    def has_embeddings(self) -> bool:
        return self.storage.has_embeddings()

    def save(self) -> None:
        self.storage.save()

    def close(self) -> None:
        self.storage.close()
