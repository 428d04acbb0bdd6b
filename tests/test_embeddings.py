"""Tests for the embedding provider."""

from __future__ import annotations

import os

import pytest

from memdex.embeddings import EmbeddingProvider, create_embedding_provider

from .conftest import FakeGenAIClient


# ---------------------------------------------------------------------------
# Unit tests (mock-based, no API key needed)
# ---------------------------------------------------------------------------


def test_embed_returns_one_vector_per_text() -> None:
    client = FakeGenAIClient()
    provider = EmbeddingProvider(client=client, dim=4, batch_size=50)

    embeddings = provider.embed(["hello", "world"])

    assert len(embeddings) == 2
    assert len(embeddings[0]) == 4
    assert provider.dimensions == 4


def test_embed_uses_document_task_type() -> None:
    client = FakeGenAIClient()
    provider = EmbeddingProvider(client=client, dim=4)

    provider.embed(["test"])

    call = client.models.calls[0]
    assert call["config"]["task_type"] == "RETRIEVAL_DOCUMENT"


def test_embed_query_uses_query_task_type() -> None:
    client = FakeGenAIClient()
    provider = EmbeddingProvider(client=client, dim=4)

    result = provider.embed_query("search query")

    assert len(result) == 4
    call = client.models.calls[0]
    assert call["config"]["task_type"] == "RETRIEVAL_QUERY"


def test_embed_texts_batching() -> None:
    client = FakeGenAIClient()
    provider = EmbeddingProvider(client=client, dim=4, batch_size=3)

    texts = [f"text_{i}" for i in range(7)]
    embeddings = provider.embed_texts(texts)

    assert len(embeddings) == 7
    # 7 texts with batch_size=3 → 3 API calls (3+3+1)
    assert [len(call["contents"]) for call in client.models.calls] == [3, 3, 1]


def test_env_overrides(monkeypatch) -> None:
    client = FakeGenAIClient()
    monkeypatch.setenv("MEMDEX_EMBEDDING_MODEL", "custom-model-001")
    monkeypatch.setenv("MEMDEX_EMBEDDING_DIM", "256")
    monkeypatch.setenv("MEMDEX_EMBEDDING_BATCH_SIZE", "10")

    provider = EmbeddingProvider(client=client)

    assert provider.model == "custom-model-001"
    assert provider.dim == 256
    assert provider.batch_size == 10

    provider.embed(["test"])
    call = client.models.calls[0]
    assert call["model"] == "custom-model-001"
    assert call["config"]["output_dimensionality"] == 256


def test_missing_api_key_raises(monkeypatch) -> None:
    for name in ("GEMINI_API_KEY", "GOOGLE_API_KEY", "GOOGLE_GENERATIVE_AI_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    with pytest.raises(ValueError, match="GOOGLE_API_KEY"):
        EmbeddingProvider(api_key=None, client=None)


def test_create_embedding_provider_without_key_returns_none(monkeypatch) -> None:
    for name in ("GEMINI_API_KEY", "GOOGLE_API_KEY", "GOOGLE_GENERATIVE_AI_API_KEY"):
        monkeypatch.delenv(name, raising=False)

    assert create_embedding_provider() is None


# ---------------------------------------------------------------------------
# Real API integration test (skipped unless GOOGLE_API_KEY is set)
# ---------------------------------------------------------------------------


@pytest.mark.skipif(
    not os.getenv("GOOGLE_API_KEY"),
    reason="GOOGLE_API_KEY not set, skipping real embedding test",
)
def test_real_embedding_api() -> None:
    provider = EmbeddingProvider(dim=128)

    embeddings = provider.embed(["JWT token refresh.", "Chose Postgres over MySQL."])

    assert len(embeddings) == 2
    assert len(embeddings[0]) == 128
    assert all(isinstance(v, float) for v in embeddings[0])

    query_emb = provider.embed_query("token refresh")
    assert len(query_emb) == 128
