from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from memdex.storage import DocumentRecord

BASE_TIME = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_doc(
    category: str,
    filename: str,
    content: str,
    *,
    title: str | None = None,
    offset_seconds: float = 0.0,
) -> DocumentRecord:
    return DocumentRecord(
        category=category,
        filename=filename,
        title=title or filename.removesuffix(".md").replace("-", " "),
        content=content,
        relative_path=f".context/{category}/{filename}",
        last_modified=BASE_TIME + timedelta(seconds=offset_seconds),
    )


@pytest.fixture()
def scenario_docs() -> list[DocumentRecord]:
    return [
        make_doc("facts", "auth.md", "# Auth\n\nJWT token refresh", title="Auth"),
        make_doc(
            "decisions", "db.md", "# Database\n\nchose Postgres over MySQL", title="Database"
        ),
        make_doc(
            "regressions",
            "login.md",
            "# Login\n\nlogin crash on token refresh",
            title="Login",
        ),
    ]


class FakeEmbedder:
    """
    Deterministic embedder keyed on marker words.

    The first marker found in the lowercased text picks the vector; texts
    without a marker get *default*.
    """

    def __init__(
        self,
        vectors: dict[str, list[float]],
        *,
        default: list[float] | None = None,
        dimensions: int = 3,
    ) -> None:
        self.vectors = vectors
        self.default = default or [0.0] * (dimensions - 1) + [1.0]
        self._dimensions = dimensions
        self.embed_calls: list[list[str]] = []
        self.query_calls: list[str] = []

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def _vector_for(self, text: str) -> list[float]:
        lower = text.lower()
        for marker, vector in self.vectors.items():
            if marker in lower:
                return list(vector)
        return list(self.default)

    def embed(self, texts: list[str]) -> list[list[float]]:
        self.embed_calls.append(list(texts))
        return [self._vector_for(text) for text in texts]

    def embed_query(self, query: str) -> list[float]:
        self.query_calls.append(query)
        return self._vector_for(query)


@dataclass
class _FakeEmbedding:
    values: list[float]


@dataclass
class _FakeEmbedResult:
    embeddings: list[_FakeEmbedding]


class FakeGenAIModels:
    """Records calls and returns deterministic embeddings."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    def embed_content(
        self, *, model: str, contents: list[str], config: dict
    ) -> _FakeEmbedResult:
        self.calls.append({"model": model, "contents": contents, "config": config})
        dim = config.get("output_dimensionality", 768)
        return _FakeEmbedResult(
            embeddings=[
                _FakeEmbedding(values=[float(i)] * dim) for i in range(len(contents))
            ]
        )


class FakeGenAIClient:
    def __init__(self) -> None:
        self.models = FakeGenAIModels()


def write_note(context_dir: Path, category: str, filename: str, content: str) -> Path:
    directory = context_dir / category
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture()
def notes_dir(tmp_path: Path) -> Path:
    context_dir = tmp_path / ".context"
    write_note(context_dir, "facts", "auth.md", "# Auth\n\nJWT token refresh\n")
    write_note(context_dir, "decisions", "db.md", "# Database\n\nchose Postgres over MySQL\n")
    write_note(
        context_dir, "regressions", "login.md", "# Login\n\nlogin crash on token refresh\n"
    )
    return context_dir
