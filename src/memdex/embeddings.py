"""
Embedding provider for vector-based semantic search.

Wraps the Google GenAI embedding API for batch and single-query embedding
with configurable model and dimensions. The index engine only depends on the
``Embedder`` protocol, so any object with the same shape can be supplied.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Protocol

from google.genai import Client as GenAIClient

logger = logging.getLogger(__name__)

_DEFAULT_MODEL = "gemini-embedding-001"
_DEFAULT_DIM = 768
_DEFAULT_BATCH_SIZE = 20
_API_KEY_ENV_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY", "GOOGLE_GENERATIVE_AI_API_KEY")


class Embedder(Protocol):
    """What the index needs from an embedding backend."""

    @property
    def dimensions(self) -> int:
        """Length of every vector this embedder returns."""

    def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed documents, one vector per text."""

    def embed_query(self, query: str) -> list[float]:
        """Embed a search query."""


def resolve_api_key(api_key: str | None = None) -> str | None:
    if api_key:
        return api_key
    for name in _API_KEY_ENV_VARS:
        value = os.getenv(name)
        if value:
            return value
    return None


class EmbeddingProvider:
    """Generate text embeddings via Google GenAI."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        dim: int | None = None,
        batch_size: int | None = None,
        client: Any | None = None,
    ) -> None:
        self.model = model or os.getenv("MEMDEX_EMBEDDING_MODEL", _DEFAULT_MODEL)
        self.dim = dim or int(os.getenv("MEMDEX_EMBEDDING_DIM", str(_DEFAULT_DIM)))
        self.batch_size = batch_size or int(
            os.getenv("MEMDEX_EMBEDDING_BATCH_SIZE", str(_DEFAULT_BATCH_SIZE))
        )

        if client is not None:
            self._client = client
        else:
            resolved_key = resolve_api_key(api_key)
            if resolved_key is None:
                raise ValueError(
                    "GOOGLE_API_KEY not found. "
                    "Provide api_key or set GEMINI_API_KEY / GOOGLE_API_KEY."
                )
            self._client = GenAIClient(api_key=resolved_key)

    @property
    def dimensions(self) -> int:
        return self.dim

    def embed(self, texts: list[str]) -> list[list[float]]:
        return self.embed_texts(texts)

    def embed_texts(
        self,
        texts: list[str],
        *,
        task_type: str = "RETRIEVAL_DOCUMENT",
    ) -> list[list[float]]:
        """Embed a list of texts in batches.

        Returns a list of embedding vectors in the same order as *texts*.
        """
        all_embeddings: list[list[float]] = []
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start : start + self.batch_size]
            result = self._client.models.embed_content(
                model=self.model,
                contents=batch,
                config={
                    "task_type": task_type,
                    "output_dimensionality": self.dim,
                },
            )
            for emb in result.embeddings:
                all_embeddings.append(list(emb.values))
        return all_embeddings

    def embed_query(self, query: str) -> list[float]:
        """Embed a single query text for retrieval."""
        result = self._client.models.embed_content(
            model=self.model,
            contents=[query],
            config={
                "task_type": "RETRIEVAL_QUERY",
                "output_dimensionality": self.dim,
            },
        )
        return list(result.embeddings[0].values)


def create_embedding_provider(
    *,
    api_key: str | None = None,
    model: str | None = None,
    dim: int | None = None,
) -> EmbeddingProvider | None:
    """
    Build an ``EmbeddingProvider`` if an API key is available.

    Returns None otherwise, which leaves the index in keyword-only mode.
    """
    resolved_key = resolve_api_key(api_key)
    if resolved_key is None:
        logger.info("No embedding API key configured; semantic search disabled")
        return None
    return EmbeddingProvider(api_key=resolved_key, model=model, dim=dim)
