"""
memdex - local hybrid search over markdown notes.

This package keeps a persisted DuckDB index of short markdown notes in step
with a notes directory and answers queries by combining BM25 keyword
ranking with embedding similarity from Google GenAI.

Example usage:
    >>> from memdex import SearchIndex, list_entries
    >>> with SearchIndex(".context/.search.duckdb") as index:
    ...     index.rebuild(list_entries(".context"))
    ...     for hit in index.search("why Postgres", limit=3):
    ...         print(hit.category, hit.filename, hit.score)
"""

from .embeddings import Embedder, EmbeddingProvider, create_embedding_provider
from .fs import list_entries
from .index import SearchIndex
from .indexing import IndexingPipeline, IndexingResult
from .search import IndexedQueryEngine, SearchHit, cosine_similarity, hybrid_merge
from .storage import DocumentRecord, DuckDBStorage, StoreState

__all__ = [
    # Index
    "SearchIndex",
    "IndexingPipeline",
    "IndexingResult",
    # Search
    "IndexedQueryEngine",
    "SearchHit",
    "cosine_similarity",
    "hybrid_merge",
    # Storage
    "DocumentRecord",
    "DuckDBStorage",
    "StoreState",
    # Sources
    "Embedder",
    "EmbeddingProvider",
    "create_embedding_provider",
    "list_entries",
]
