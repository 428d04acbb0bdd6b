"""
Ranking helpers for merging keyword and semantic result sets.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

DEFAULT_ALPHA = 0.5
_EPSILON = 1e-9


@dataclass(frozen=True)
class RankedDocument:
    """Merged retrieval candidate for a note."""

    category: str
    filename: str
    title: str
    content: str
    relative_path: str
    combined_score: float
    keyword_score: float | None = None
    semantic_score: float | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.category, self.filename)

    @property
    def matched_by(self) -> str:
        if self.keyword_score is not None and self.semantic_score is not None:
            return "keyword+semantic"
        if self.semantic_score is not None:
            return "semantic"
        return "keyword"


def min_max_normalize(scores: list[float]) -> list[float]:
    """Scale *scores* into [0, 1]. An all-equal list maps to zeros."""
    if not scores:
        return []
    low = min(scores)
    spread = max(scores) - low
    if spread == 0:
        spread = _EPSILON
    return [(score - low) / spread for score in scores]


def rank_documents(
    documents: list[RankedDocument], *, limit: int
) -> list[RankedDocument]:
    """Sort merged retrieval results and apply limit."""
    ordered = sorted(
        documents,
        key=lambda doc: (-doc.combined_score, doc.category, doc.filename),
    )
    return ordered[: max(limit, 0)]


def _from_row(row: dict[str, Any], **scores: float | None) -> RankedDocument:
    return RankedDocument(
        category=str(row["category"]),
        filename=str(row["filename"]),
        title=str(row["title"]),
        content=str(row.get("content", "")),
        relative_path=str(row.get("relative_path", "")),
        **scores,
    )


def hybrid_merge(
    keyword_rows: list[dict[str, Any]],
    semantic_rows: list[dict[str, Any]],
    *,
    alpha: float = DEFAULT_ALPHA,
    limit: int = 10,
) -> list[RankedDocument]:
    """
    Merge keyword and semantic hits into one list scored in [0, 1].

    Each list is min-max normalized on its own, then combined per note as
    ``alpha * keyword + (1 - alpha) * semantic``; a note missing from one list
    gets 0 for that side. When either list is empty the other is returned as
    is, with its raw scores.
    """
    if not semantic_rows:
        return rank_documents(
            [
                _from_row(
                    row,
                    combined_score=float(row["score"]),
                    keyword_score=float(row["score"]),
                )
                for row in keyword_rows
            ],
            limit=limit,
        )
    if not keyword_rows:
        return rank_documents(
            [
                _from_row(
                    row,
                    combined_score=float(row["score"]),
                    semantic_score=float(row["score"]),
                )
                for row in semantic_rows
            ],
            limit=limit,
        )

    keyword_norm = min_max_normalize([float(row["score"]) for row in keyword_rows])
    semantic_norm = min_max_normalize([float(row["score"]) for row in semantic_rows])

    merged: dict[tuple[str, str], dict[str, Any]] = {}
    for row, normalized in zip(keyword_rows, keyword_norm):
        key = (str(row["category"]), str(row["filename"]))
        entry = merged.setdefault(
            key, {"row": row, "kw": 0.0, "sem": 0.0, "kw_raw": None, "sem_raw": None}
        )
        entry["kw"] = max(entry["kw"], normalized)
        entry["kw_raw"] = float(row["score"])
    for row, normalized in zip(semantic_rows, semantic_norm):
        key = (str(row["category"]), str(row["filename"]))
        entry = merged.setdefault(
            key, {"row": row, "kw": 0.0, "sem": 0.0, "kw_raw": None, "sem_raw": None}
        )
        entry["sem"] = max(entry["sem"], normalized)
        entry["sem_raw"] = float(row["score"])

    documents: list[RankedDocument] = []
    for entry in merged.values():
        combined = alpha * entry["kw"] + (1 - alpha) * entry["sem"]
        documents.append(
            _from_row(
                entry["row"],
                combined_score=min(1.0, max(0.0, combined)),
                keyword_score=entry["kw_raw"],
                semantic_score=entry["sem_raw"],
            )
        )
    return rank_documents(documents, limit=limit)
