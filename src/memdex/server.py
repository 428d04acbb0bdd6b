"""
FastAPI server exposing the note index over HTTP.

Indexing and search are blocking; they run in worker threads, serialized
per index file.
"""

import asyncio
import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .embeddings import EmbeddingProvider
from .fs import list_entries
from .index import SearchIndex
from .index_config import SearchSettings, resolve_db_path

logger = logging.getLogger(__name__)

app = FastAPI(title="memdex", description="Hybrid search over markdown notes")

_index_locks: dict[str, asyncio.Lock] = {}


def _get_index_lock(db_path: str) -> asyncio.Lock:
    """Return a per-index-file asyncio lock, creating one if needed."""
    if db_path not in _index_locks:
        _index_locks[db_path] = asyncio.Lock()
    return _index_locks[db_path]


class IndexRequest(BaseModel):
    """Request model for index build/refresh."""

    context_dir: str = ".context"
    db_path: str | None = None
    with_embeddings: bool = False


class SearchRequest(SearchSettings):
    """Request model for search queries. Inherits validated alpha and limit."""

    context_dir: str = ".context"
    query: str
    category: str | None = None
    db_path: str | None = None
    with_embeddings: bool = False


def _embedding_provider(enabled: bool) -> EmbeddingProvider | None:
    if not enabled:
        return None
    try:
        return EmbeddingProvider()
    except ValueError as exc:
        logger.warning("Embeddings disabled: %s", exc)
        return None


def _run_index(context_dir: str, db_path: str, with_embeddings: bool) -> dict:
    provider = _embedding_provider(with_embeddings)
    with SearchIndex(db_path, embedding_provider=provider) as search_index:
        result = search_index.rebuild(list_entries(context_dir))
    return {
        "db_path": db_path,
        "context_dir": context_dir,
        "indexed_documents": result.indexed_documents,
        "unchanged_documents": result.unchanged_documents,
        "deleted_documents": result.deleted_documents,
        "active_documents": result.active_documents,
        "embeddings_written": result.embeddings_written,
    }


def _run_search(request: SearchRequest, context_dir: str, db_path: str) -> dict:
    provider = _embedding_provider(request.with_embeddings)
    with SearchIndex(
        db_path, embedding_provider=provider, alpha=request.hybrid_alpha
    ) as search_index:
        search_index.rebuild(list_entries(context_dir))
        hits = search_index.search(
            request.query, category=request.category, limit=request.limit
        )
    return {
        "query": request.query,
        "hits": [
            {
                "category": hit.category,
                "filename": hit.filename,
                "title": hit.title,
                "snippet": hit.snippet,
                "score": hit.score,
                "relative_path": hit.relative_path,
                "keyword_score": hit.keyword_score,
                "semantic_score": hit.semantic_score,
                "matched_by": hit.matched_by,
            }
            for hit in hits
        ],
    }


def _resolve_dir(raw: str) -> Path | None:
    path = Path(raw).resolve()
    if not path.exists() or not path.is_dir():
        return None
    return path


@app.get("/api/index/status")
async def index_status(context_dir: str = ".context", db_path: str | None = None):
    """Report whether an index exists and what it holds."""
    folder = _resolve_dir(context_dir)
    if folder is None:
        return {"indexed": False}
    resolved_db_path = resolve_db_path(db_path, context_dir=str(folder))
    if not Path(resolved_db_path).exists():
        return {"indexed": False}

    def _status() -> dict:
        with SearchIndex(resolved_db_path) as search_index:
            return {
                "indexed": True,
                "db_path": resolved_db_path,
                "document_count": search_index.count_documents(),
                "has_embeddings": search_index.has_embeddings(),
            }

    async with _get_index_lock(resolved_db_path):
        return await asyncio.to_thread(_status)


@app.post("/api/index")
async def build_index(request: IndexRequest):
    """Build or refresh the index for a notes directory."""
    folder = _resolve_dir(request.context_dir)
    if folder is None:
        return JSONResponse(
            {"error": f"Invalid notes directory: {request.context_dir}"}, status_code=400
        )
    try:
        resolved_db_path = resolve_db_path(request.db_path, context_dir=str(folder))
        async with _get_index_lock(resolved_db_path):
            return await asyncio.to_thread(
                _run_index, str(folder), resolved_db_path, request.with_embeddings
            )
    except PermissionError:
        return JSONResponse({"error": "Permission denied"}, status_code=403)
    except OSError as exc:
        return JSONResponse({"error": str(exc)}, status_code=500)


@app.post("/api/search")
async def search_index(request: SearchRequest):
    """Search a notes directory and return ranked hits."""
    folder = _resolve_dir(request.context_dir)
    if folder is None:
        return JSONResponse(
            {"error": f"Invalid notes directory: {request.context_dir}"}, status_code=400
        )
    try:
        resolved_db_path = resolve_db_path(request.db_path, context_dir=str(folder))
        async with _get_index_lock(resolved_db_path):
            return await asyncio.to_thread(
                _run_search, request, str(folder), resolved_db_path
            )
    except PermissionError:
        return JSONResponse({"error": "Permission denied"}, status_code=403)
    except OSError as exc:
        return JSONResponse({"error": str(exc)}, status_code=500)
