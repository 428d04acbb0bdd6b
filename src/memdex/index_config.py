"""
Configuration helpers for local index storage and search.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field

from .fs import DEFAULT_CONTEXT_DIR
from .search.ranker import DEFAULT_ALPHA

INDEX_FILENAME = ".search.duckdb"
ENV_DB_PATH = "MEMDEX_DB_PATH"
ENV_HYBRID_ALPHA = "MEMDEX_HYBRID_ALPHA"
ENV_CONTEXT_DIR = "MEMDEX_CONTEXT_DIR"


class SearchSettings(BaseModel):
    """Validated search options shared by the CLI and the HTTP API."""

    hybrid_alpha: float = Field(default=DEFAULT_ALPHA, ge=0.0, le=1.0)
    limit: int = Field(default=10, ge=1)


def resolve_context_dir(override_path: str | None = None) -> str:
    raw_path = override_path or os.getenv(ENV_CONTEXT_DIR) or DEFAULT_CONTEXT_DIR
    return str(Path(raw_path).expanduser().resolve())


def resolve_db_path(
    override_path: str | None = None,
    *,
    context_dir: str | None = None,
) -> str:
    """
    Resolve the index file path from CLI override, env var, or default.

    Precedence:
    1) explicit override_path
    2) MEMDEX_DB_PATH
    3) <context_dir>/.search.duckdb
    """
    raw_path = (
        override_path
        or os.getenv(ENV_DB_PATH)
        or str(Path(resolve_context_dir(context_dir)) / INDEX_FILENAME)
    )
    resolved = Path(raw_path).expanduser().resolve()
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return str(resolved)


def resolve_search_settings(
    alpha: float | None = None,
    limit: int = 10,
) -> SearchSettings:
    """
    Build validated search options.

    The keyword weight comes from *alpha*, then MEMDEX_HYBRID_ALPHA, then 0.5.
    Raises ``pydantic.ValidationError`` when alpha is outside [0, 1] or
    *limit* is below 1.
    """
    if alpha is not None:
        value: float | str = alpha
    else:
        value = os.getenv(ENV_HYBRID_ALPHA, str(DEFAULT_ALPHA))
    return SearchSettings(hybrid_alpha=value, limit=limit)
