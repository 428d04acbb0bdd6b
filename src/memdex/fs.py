"""
Markdown note source.

Notes live under ``<context_dir>/<category>/<filename>.md``; a top-level
``index.md`` is exposed under the ``root`` category.
"""

from __future__ import annotations

import os
import re
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

from .storage import DocumentRecord

DEFAULT_CONTEXT_DIR = ".context"
ROOT_CATEGORY = "root"
NOTE_EXTENSION = ".md"

_TITLE_RE = re.compile(r"^#\s+(.+)$", flags=re.MULTILINE)


def extract_title(content: str, filename: str) -> str:
    match = _TITLE_RE.search(content)
    if match:
        return match.group(1).strip()
    stem = filename[: -len(NOTE_EXTENSION)] if filename.endswith(NOTE_EXTENSION) else filename
    return stem.replace("-", " ")


def read_entry(file_path: Path, *, category: str, root: Path) -> DocumentRecord:
    content = file_path.read_text(encoding="utf-8")
    stat = file_path.stat()
    return DocumentRecord(
        category=category,
        filename=file_path.name,
        title=extract_title(content, file_path.name),
        content=content,
        relative_path=os.path.relpath(file_path, root),
        last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
    )


def _is_note(path: Path) -> bool:
    return path.is_file() and path.suffix == NOTE_EXTENSION and not path.name.startswith(".")


def list_entries(
    context_dir: str,
    category: str | None = None,
    *,
    root: str | None = None,
) -> list[DocumentRecord]:
    """
    Enumerate notes under *context_dir*.

    With *category* only that sub-directory is scanned and ``index.md`` is
    left out. ``relative_path`` is computed against *root*, which defaults to
    the parent of *context_dir*.
    """
    base = Path(context_dir).resolve()
    if not base.is_dir():
        return []
    root_path = Path(root).resolve() if root else base.parent

    if category:
        category_dirs = [base / category]
    else:
        category_dirs = sorted(
            child
            for child in base.iterdir()
            if child.is_dir() and not child.name.startswith(".")
        )

    entries: list[DocumentRecord] = []
    for directory in category_dirs:
        if not directory.is_dir():
            continue
        for file_path in sorted(directory.iterdir()):
            if _is_note(file_path):
                entries.append(
                    read_entry(file_path, category=directory.name, root=root_path)
                )

    index_path = base / "index.md"
    if category is None and index_path.is_file():
        entry = read_entry(index_path, category=ROOT_CATEGORY, root=root_path)
        entries.append(replace(entry, title="Index"))
    return entries
