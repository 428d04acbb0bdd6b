"""
Storage interfaces and data models for index persistence.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol

import numpy as np

# Embeddings are stored as little-endian float32 blobs.
VECTOR_DTYPE = np.dtype("<f4")


@dataclass(frozen=True)
class DocumentRecord:
    """A markdown note as seen by the indexer."""

    category: str
    filename: str
    title: str
    content: str
    relative_path: str
    last_modified: datetime

    @property
    def key(self) -> tuple[str, str]:
        return (self.category, self.filename)

    @property
    def updated_at(self) -> str:
        return format_updated_at(self.last_modified)


@dataclass(frozen=True)
class EmbeddingRow:
    """A stored (identity, vector bytes) pair."""

    category: str
    filename: str
    embedding: bytes
    embedding_dims: int


class StoreState(Enum):
    """Whether the in-memory store has mutations not yet written to disk."""

    CLEAN = "clean"
    DIRTY = "dirty"


def format_updated_at(value: datetime) -> str:
    """
    Normalize a modification time to a second-precision UTC ISO string.

    Filesystems report sub-second mtimes with differing granularity, so
    comparing at finer resolution causes spurious reindexing.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).replace(microsecond=0).isoformat()


def vector_to_blob(vector: list[float] | np.ndarray) -> bytes:
    return np.asarray(vector, dtype=VECTOR_DTYPE).tobytes()


def blob_to_vector(blob: bytes) -> np.ndarray:
    return np.frombuffer(blob, dtype=VECTOR_DTYPE)


class StorageBackend(Protocol):
    """Protocol for persistence operations used by indexing and search."""

    @property
    def state(self) -> StoreState:
        """Current dirty/clean state."""

    def get_updated_at_map(self) -> dict[tuple[str, str], str]:
        """Return the stored (category, filename) -> updated_at map."""

    def insert_document(self, document: DocumentRecord) -> None:
        """Replace any row for the document's key with a fresh, unembedded row."""

    def delete_document(self, category: str, filename: str) -> bool:
        """Delete a row by key. Return True if a row was removed."""

    def delete_missing(self, active_keys: set[tuple[str, str]]) -> int:
        """Delete rows whose key is not in *active_keys*. Return count removed."""

    def count_documents(self) -> int:
        """Count stored rows."""

    def get_document(self, category: str, filename: str) -> dict[str, Any] | None:
        """Get a stored row by key."""

    def list_missing_embeddings(self) -> list[dict[str, Any]]:
        """Return rows that have no embedding yet."""

    def store_embeddings(
        self, embeddings: list[tuple[tuple[str, str], list[float]]]
    ) -> int:
        """Bulk-store (key, vector) pairs. Return count written."""

    def load_embeddings(self) -> list[EmbeddingRow]:
        """Return every stored embedding."""

    def has_embeddings(self) -> bool:
        """Return True if any row has an embedding."""

    def search_keyword(
        self,
        query: str,
        *,
        category: str | None = None,
        limit: int = 10,
    ) -> list[dict[str, Any]]:
        """Search rows lexically and return ranked matches."""

    def save(self) -> None:
        """Write the full store to its backing file."""

    def close(self) -> None:
        """Save if dirty, then release the connection."""
