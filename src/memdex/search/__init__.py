"""Search helpers for indexed notes."""

from .query import IndexedQueryEngine, SearchHit, validate_alpha
from .ranker import (
    DEFAULT_ALPHA,
    RankedDocument,
    hybrid_merge,
    min_max_normalize,
    rank_documents,
)
from .semantic import (
    CachedEmbedding,
    EmbeddingCache,
    SemanticSearchEngine,
    cosine_similarity,
)
from .snippet import extract_snippet

__all__ = [
    "IndexedQueryEngine",
    "SearchHit",
    "validate_alpha",
    "DEFAULT_ALPHA",
    "RankedDocument",
    "hybrid_merge",
    "min_max_normalize",
    "rank_documents",
    "CachedEmbedding",
    "EmbeddingCache",
    "SemanticSearchEngine",
    "cosine_similarity",
    "extract_snippet",
]
