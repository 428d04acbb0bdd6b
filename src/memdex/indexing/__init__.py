"""Indexing components for memdex."""

from .pipeline import (
    EMBEDDING_BATCH_SIZE,
    IndexingPipeline,
    IndexingResult,
    embedding_text,
)

__all__ = [
    "EMBEDDING_BATCH_SIZE",
    "IndexingPipeline",
    "IndexingResult",
    "embedding_text",
]
