"""
Snippet extraction for search hits.
"""

from __future__ import annotations

_LINES_BEFORE = 2
_LINES_AFTER = 5
DEFAULT_SNIPPET_LENGTH = 500


def extract_snippet(
    content: str, query: str, max_length: int = DEFAULT_SNIPPET_LENGTH
) -> str:
    """
    Return the region of *content* around the line matching most query terms.

    Lines are scored by how many distinct query terms they contain
    (case-insensitive). The best line is returned with two lines of context
    before and five after. Content with no matching line is returned from the
    start. Either way the result is cut to *max_length* characters.
    """
    terms = list(dict.fromkeys(term for term in query.lower().split() if term))
    lines = content.split("\n")

    best_index = -1
    best_count = 0
    for index, line in enumerate(lines):
        lower = line.lower()
        count = sum(1 for term in terms if term in lower)
        if count > best_count:
            best_index = index
            best_count = count

    if best_index < 0:
        return content[:max_length]

    start = max(0, best_index - _LINES_BEFORE)
    end = min(len(lines), best_index + _LINES_AFTER + 1)
    return "\n".join(lines[start:end])[:max_length]
