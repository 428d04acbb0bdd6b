"""CLI tests for the index, search and status commands."""

from pathlib import Path

import memdex.main as main_module
from typer.testing import CliRunner

from .conftest import FakeEmbedder


class _StubProvider(FakeEmbedder):
    def __init__(self) -> None:
        super().__init__(
            {
                "jwt": [1.0, 0.0, 0.0],
                "login": [0.9, 0.1, 0.0],
                "token": [1.0, 0.0, 0.0],
                "postgres": [0.0, 0.0, 1.0],
            }
        )


def test_index_command_builds_index(notes_dir: Path, tmp_path: Path) -> None:
    db_path = tmp_path / "index.duckdb"
    runner = CliRunner()

    result = runner.invoke(
        main_module.app,
        ["index", "--dir", str(notes_dir), "--db-path", str(db_path)],
    )

    assert result.exit_code == 0, result.output
    assert "Index Complete" in result.output
    assert db_path.exists()


def test_index_command_uses_default_db_path(notes_dir: Path, monkeypatch) -> None:
    monkeypatch.delenv("MEMDEX_DB_PATH", raising=False)
    runner = CliRunner()

    result = runner.invoke(main_module.app, ["index", "--dir", str(notes_dir)])

    assert result.exit_code == 0, result.output
    assert (notes_dir / ".search.duckdb").exists()


def test_search_command_prints_hits(notes_dir: Path, tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(
        main_module.app,
        [
            "search",
            "why Postgres",
            "--dir",
            str(notes_dir),
            "--db-path",
            str(tmp_path / "index.duckdb"),
            "--explain",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "db.md" in result.output
    assert "keyword" in result.output


def test_search_command_without_hits(notes_dir: Path, tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(
        main_module.app,
        [
            "search",
            "zzzznonexistent",
            "--dir",
            str(notes_dir),
            "--db-path",
            str(tmp_path / "index.duckdb"),
        ],
    )

    assert result.exit_code == 0, result.output
    assert "No results." in result.output


def test_search_command_rejects_invalid_alpha(notes_dir: Path, tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(
        main_module.app,
        [
            "search",
            "token",
            "--dir",
            str(notes_dir),
            "--db-path",
            str(tmp_path / "index.duckdb"),
            "--alpha",
            "1.5",
        ],
    )

    assert result.exit_code == 2


def test_missing_notes_directory_exits_nonzero(tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(main_module.app, ["index", "--dir", str(tmp_path / "nope")])

    assert result.exit_code == 1


def test_with_embeddings_uses_provider(notes_dir: Path, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(main_module, "EmbeddingProvider", _StubProvider)
    db_path = str(tmp_path / "index.duckdb")
    runner = CliRunner()

    index_result = runner.invoke(
        main_module.app,
        ["index", "--dir", str(notes_dir), "--db-path", db_path, "--with-embeddings"],
    )
    search_result = runner.invoke(
        main_module.app,
        [
            "search",
            "token refresh",
            "--dir",
            str(notes_dir),
            "--db-path",
            db_path,
            "--with-embeddings",
            "--explain",
        ],
    )

    assert index_result.exit_code == 0, index_result.output
    assert "Embeddings Written" in index_result.output
    assert search_result.exit_code == 0, search_result.output
    assert "keyword+semantic" in search_result.output


def test_with_embeddings_without_key_falls_back(
    notes_dir: Path, tmp_path: Path, monkeypatch
) -> None:
    for name in ("GEMINI_API_KEY", "GOOGLE_API_KEY", "GOOGLE_GENERATIVE_AI_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    runner = CliRunner()

    result = runner.invoke(
        main_module.app,
        [
            "search",
            "why Postgres",
            "--dir",
            str(notes_dir),
            "--db-path",
            str(tmp_path / "index.duckdb"),
            "--with-embeddings",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Embeddings disabled" in result.output
    assert "db.md" in result.output


def test_status_command(notes_dir: Path, tmp_path: Path) -> None:
    db_path = str(tmp_path / "index.duckdb")
    runner = CliRunner()

    before = runner.invoke(
        main_module.app, ["status", "--dir", str(notes_dir), "--db-path", db_path]
    )
    runner.invoke(main_module.app, ["index", "--dir", str(notes_dir), "--db-path", db_path])
    after = runner.invoke(
        main_module.app, ["status", "--dir", str(notes_dir), "--db-path", db_path]
    )

    assert before.exit_code == 0
    assert "No index" in before.output
    assert after.exit_code == 0
    assert "Index Status" in after.output
    assert "3" in after.output


def test_search_command_rejects_invalid_limit(notes_dir: Path, tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(
        main_module.app,
        [
            "search",
            "token",
            "--dir",
            str(notes_dir),
            "--db-path",
            str(tmp_path / "index.duckdb"),
            "--limit",
            "0",
        ],
    )

    assert result.exit_code == 2
    assert "Invalid search options" in result.output


def test_search_command_reads_alpha_from_env(
    notes_dir: Path, tmp_path: Path, monkeypatch
) -> None:
    monkeypatch.setenv("MEMDEX_HYBRID_ALPHA", "2.0")
    runner = CliRunner()

    result = runner.invoke(
        main_module.app,
        [
            "search",
            "token",
            "--dir",
            str(notes_dir),
            "--db-path",
            str(tmp_path / "index.duckdb"),
        ],
    )

    assert result.exit_code == 2
