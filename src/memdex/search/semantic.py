"""
Vector-based semantic search engine.

Embeds a query and ranks cached note embeddings by cosine similarity.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

import numpy as np

from ..embeddings import Embedder
from ..storage import StorageBackend, blob_to_vector

logger = logging.getLogger(__name__)


def cosine_similarity(a: Any, b: Any) -> float:
    """
    Cosine similarity in [-1, 1].

    Returns 0.0 for vectors of different length, empty vectors, zero-norm
    vectors, and non-finite results.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape or va.size == 0:
        return 0.0

    denominator = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denominator == 0.0 or not math.isfinite(denominator):
        return 0.0

    result = float(np.dot(va, vb)) / denominator
    if not math.isfinite(result):
        return 0.0
    return max(-1.0, min(1.0, result))


@dataclass(frozen=True)
class CachedEmbedding:
    category: str
    filename: str
    vector: np.ndarray


class EmbeddingCache:
    """
    In-process materialization of every stored embedding.

    Loaded on first use and reused until ``invalidate()``. Deserializing
    vector blobs out of the store is the dominant cost of a semantic query on
    small corpora.
    """

    def __init__(self, storage: StorageBackend) -> None:
        self.storage = storage
        self._entries: list[CachedEmbedding] | None = None

    @property
    def is_loaded(self) -> bool:
        return self._entries is not None

    def invalidate(self) -> None:
        self._entries = None

    def entries(self) -> list[CachedEmbedding]:
        if self._entries is None:
            self._entries = [
                CachedEmbedding(
                    category=row.category,
                    filename=row.filename,
                    vector=blob_to_vector(row.embedding),
                )
                for row in self.storage.load_embeddings()
            ]
            logger.debug("Loaded %d embeddings into cache", len(self._entries))
        return self._entries


class SemanticSearchEngine:
    """Embed a query and search cached note embeddings."""

    def __init__(
        self,
        storage: StorageBackend,
        embedding_provider: Embedder,
        cache: EmbeddingCache | None = None,
    ) -> None:
        self.storage = storage
        self.embedding_provider = embedding_provider
        self.cache = cache or EmbeddingCache(storage)

    def search(
        self,
        query: str,
        *,
        category: str | None = None,
        limit: int = 10,
    ) -> list[dict[str, Any]]:
        """Return ranked notes using vector cosine similarity."""
        query_vector = np.asarray(
            self.embedding_provider.embed_query(query), dtype=np.float32
        )
        return self.rank(query_vector, category=category, limit=limit)

    def rank(
        self,
        query_vector: np.ndarray,
        *,
        category: str | None = None,
        limit: int = 10,
    ) -> list[dict[str, Any]]:
        scored: list[tuple[float, CachedEmbedding]] = []
        for entry in self.cache.entries():
            if category and entry.category != category:
                continue
            # Vectors from a different provider or model are skipped.
            if entry.vector.shape != query_vector.shape:
                continue
            scored.append((cosine_similarity(query_vector, entry.vector), entry))

        scored.sort(key=lambda item: (-item[0], item[1].category, item[1].filename))

        results: list[dict[str, Any]] = []
        for score, entry in scored[: max(limit, 0)]:
            document = self.storage.get_document(entry.category, entry.filename)
            if document is None:
                continue
            results.append(
                {
                    "category": document["category"],
                    "filename": document["filename"],
                    "title": document["title"],
                    "content": document["content"],
                    "relative_path": document["relative_path"],
                    "score": score,
                }
            )
        return results
