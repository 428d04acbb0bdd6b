"""Storage backends for memdex indexing."""

from .base import (
    VECTOR_DTYPE,
    DocumentRecord,
    EmbeddingRow,
    StorageBackend,
    StoreState,
    blob_to_vector,
    format_updated_at,
    vector_to_blob,
)
from .duckdb import DuckDBStorage

__all__ = [
    "DocumentRecord",
    "EmbeddingRow",
    "StorageBackend",
    "StoreState",
    "format_updated_at",
    "VECTOR_DTYPE",
    "blob_to_vector",
    "vector_to_blob",
    "DuckDBStorage",
]
