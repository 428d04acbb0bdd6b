"""
Hybrid query engine over an indexed note store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..embeddings import Embedder
from ..storage import StorageBackend
from .ranker import DEFAULT_ALPHA, hybrid_merge
from .semantic import EmbeddingCache, SemanticSearchEngine
from .snippet import extract_snippet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchHit:
    """Ranked note hit from hybrid retrieval."""

    category: str
    filename: str
    title: str
    snippet: str
    score: float
    relative_path: str
    keyword_score: float | None = None
    semantic_score: float | None = None
    matched_by: str = "keyword"


def validate_alpha(alpha: float) -> float:
    if not 0.0 <= alpha <= 1.0:
        raise ValueError(f"hybrid alpha must be within [0, 1], got {alpha!r}")
    return float(alpha)


class IndexedQueryEngine:
    """Keyword + semantic retrieval merged into one ranked list."""

    def __init__(
        self,
        storage: StorageBackend,
        embedding_provider: Embedder | None = None,
        *,
        alpha: float = DEFAULT_ALPHA,
        cache: EmbeddingCache | None = None,
    ) -> None:
        self.storage = storage
        self.alpha = validate_alpha(alpha)
        self.cache = cache or EmbeddingCache(storage)
        self.semantic: SemanticSearchEngine | None = None
        if embedding_provider is not None:
            self.semantic = SemanticSearchEngine(
                storage, embedding_provider, cache=self.cache
            )

    def search(
        self,
        query: str,
        *,
        category: str | None = None,
        limit: int = 10,
    ) -> list[SearchHit]:
        if not query or not query.strip():
            return []

        normalized_limit = max(limit, 1)
        candidate_limit = normalized_limit * 2

        keyword_rows = self.storage.search_keyword(
            query, category=category, limit=candidate_limit
        )
        semantic_rows = self._semantic_query(
            query, category=category, limit=candidate_limit
        )

        ranked = hybrid_merge(
            keyword_rows,
            semantic_rows,
            alpha=self.alpha,
            limit=normalized_limit,
        )
        return [
            SearchHit(
                category=doc.category,
                filename=doc.filename,
                title=doc.title,
                snippet=extract_snippet(doc.content, query),
                score=doc.combined_score,
                relative_path=doc.relative_path,
                keyword_score=doc.keyword_score,
                semantic_score=doc.semantic_score,
                matched_by=doc.matched_by,
            )
            for doc in ranked
        ]

    def _semantic_query(
        self,
        query: str,
        *,
        category: str | None,
        limit: int,
    ) -> list[dict[str, Any]]:
        if self.semantic is None:
            return []
        try:
            return self.semantic.search(query, category=category, limit=limit)
        except Exception as exc:  # provider errors must not break keyword search
            logger.warning("Semantic search failed, using keyword results only: %s", exc)
            return []
