"""Tests for the markdown note source."""

from pathlib import Path

from memdex.fs import ROOT_CATEGORY, extract_title, list_entries

from .conftest import write_note


def test_list_entries_reads_categories(notes_dir: Path) -> None:
    entries = list_entries(str(notes_dir))

    assert [(entry.category, entry.filename) for entry in entries] == [
        ("decisions", "db.md"),
        ("facts", "auth.md"),
        ("regressions", "login.md"),
    ]
    auth = entries[1]
    assert auth.title == "Auth"
    assert "JWT token refresh" in auth.content
    assert auth.relative_path == str(Path(".context") / "facts" / "auth.md")
    assert auth.last_modified.tzinfo is not None


def test_list_entries_includes_root_index(notes_dir: Path) -> None:
    (notes_dir / "index.md").write_text("# Project memory\n\nSee facts.\n", encoding="utf-8")

    entries = list_entries(str(notes_dir))

    root = entries[-1]
    assert root.category == ROOT_CATEGORY
    assert root.filename == "index.md"
    assert root.title == "Index"


def test_list_entries_skips_hidden_and_non_markdown(notes_dir: Path) -> None:
    write_note(notes_dir, "facts", ".draft.md", "# Draft\n")
    write_note(notes_dir, "facts", "diagram.png", "not a note")
    write_note(notes_dir, ".trash", "old.md", "# Old\n")
    (notes_dir / ".search.duckdb").write_bytes(b"")

    entries = list_entries(str(notes_dir))

    assert {entry.filename for entry in entries} == {"auth.md", "db.md", "login.md"}


def test_list_entries_category_filter(notes_dir: Path) -> None:
    (notes_dir / "index.md").write_text("# Index\n", encoding="utf-8")

    entries = list_entries(str(notes_dir), category="facts")

    assert [entry.filename for entry in entries] == ["auth.md"]
    assert list_entries(str(notes_dir), category="missing") == []


def test_list_entries_missing_directory(tmp_path: Path) -> None:
    assert list_entries(str(tmp_path / "nope")) == []


def test_extract_title_falls_back_to_filename() -> None:
    assert extract_title("# Token refresh\n\nbody", "auth.md") == "Token refresh"
    assert extract_title("no heading here", "login-crash.md") == "login crash"
    assert extract_title("## Sub heading only", "notes.md") == "notes"
