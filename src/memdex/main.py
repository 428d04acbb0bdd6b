from pathlib import Path
from typing import Annotated

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from typer import Argument, Exit, Option, Typer

from .embeddings import EmbeddingProvider
from .fs import list_entries
from .index import SearchIndex
from .index_config import resolve_context_dir, resolve_db_path, resolve_search_settings
from .logging_config import configure_logging

app = Typer(help="Hybrid keyword and semantic search over markdown notes.")

ContextDirOption = Annotated[
    str | None,
    Option("--dir", "-d", help="Notes directory (defaults to MEMDEX_CONTEXT_DIR or .context)."),
]
DbPathOption = Annotated[
    str | None,
    Option("--db-path", help="Index file path (defaults to MEMDEX_DB_PATH or <dir>/.search.duckdb)."),
]
EmbeddingsOption = Annotated[
    bool,
    Option("--with-embeddings", help="Compute and use embeddings via Google GenAI."),
]
VerboseOption = Annotated[bool, Option("--verbose", "-v", help="Enable debug logging.")]


def _require_context_dir(console: Console, context_dir: str | None) -> str:
    resolved = resolve_context_dir(context_dir)
    if not Path(resolved).is_dir():
        console.print(f"[bold red]No notes directory found at {resolved}[/]")
        raise Exit(code=1)
    return resolved


def _embedding_provider(console: Console, enabled: bool) -> EmbeddingProvider | None:
    if not enabled:
        return None
    try:
        return EmbeddingProvider()
    except ValueError as exc:
        console.print(f"[yellow]Embeddings disabled: {exc}[/]")
        return None


@app.command()
def index(
    context_dir: ContextDirOption = None,
    db_path: DbPathOption = None,
    with_embeddings: EmbeddingsOption = False,
    verbose: VerboseOption = False,
) -> None:
    """Build or refresh the index for a notes directory."""
    configure_logging(verbose)
    console = Console()
    resolved_dir = _require_context_dir(console, context_dir)
    resolved_db = resolve_db_path(db_path, context_dir=resolved_dir)
    provider = _embedding_provider(console, with_embeddings)

    with SearchIndex(resolved_db, embedding_provider=provider) as search_index:
        result = search_index.rebuild(list_entries(resolved_dir))

    table = Table(show_header=False, box=None)
    table.add_row("Index File", resolved_db)
    table.add_row("Indexed", str(result.indexed_documents))
    table.add_row("Unchanged", str(result.unchanged_documents))
    table.add_row("Deleted", str(result.deleted_documents))
    table.add_row("Active Documents", str(result.active_documents))
    table.add_row("Embeddings Written", str(result.embeddings_written))
    console.print(
        Panel(table, title="Index Complete", title_align="left", border_style="bold green")
    )


@app.command()
def search(
    query: Annotated[str, Argument(help="Search query.")],
    context_dir: ContextDirOption = None,
    db_path: DbPathOption = None,
    category: Annotated[
        str | None, Option("--category", "-c", help="Restrict results to one category.")
    ] = None,
    limit: Annotated[int, Option("--limit", "-n", help="Maximum results.")] = 10,
    alpha: Annotated[
        float | None,
        Option("--alpha", help="Keyword weight in [0, 1] for hybrid ranking."),
    ] = None,
    explain: Annotated[
        bool, Option("--explain", help="Show keyword and semantic score components.")
    ] = False,
    with_embeddings: EmbeddingsOption = False,
    verbose: VerboseOption = False,
) -> None:
    """Search notes by keyword and, when embeddings are enabled, by meaning."""
    configure_logging(verbose)
    console = Console()
    resolved_dir = _require_context_dir(console, context_dir)
    resolved_db = resolve_db_path(db_path, context_dir=resolved_dir)
    try:
        settings = resolve_search_settings(alpha, limit)
    except ValueError as exc:
        console.print(f"[bold red]Invalid search options: {exc}[/]")
        raise Exit(code=2) from exc
    provider = _embedding_provider(console, with_embeddings)

    with SearchIndex(
        resolved_db, embedding_provider=provider, alpha=settings.hybrid_alpha
    ) as search_index:
        search_index.rebuild(list_entries(resolved_dir))
        hits = search_index.search(query, category=category, limit=settings.limit)

    if not hits:
        console.print("[dim]No results.[/]")
        return

    for rank, hit in enumerate(hits, start=1):
        title = f"{rank}. {hit.title}  [dim]{hit.category}/{hit.filename}[/]"
        subtitle = f"score {hit.score:.3f}"
        if explain:
            keyword = "-" if hit.keyword_score is None else f"{hit.keyword_score:.3f}"
            semantic = "-" if hit.semantic_score is None else f"{hit.semantic_score:.3f}"
            subtitle += f" | keyword {keyword} | semantic {semantic} | {hit.matched_by}"
        console.print(
            Panel(
                hit.snippet,
                title=title,
                title_align="left",
                subtitle=subtitle,
                subtitle_align="right",
                border_style="bold cyan",
            )
        )


@app.command()
def status(
    context_dir: ContextDirOption = None,
    db_path: DbPathOption = None,
) -> None:
    """Show what the index file currently holds."""
    console = Console()
    resolved_dir = resolve_context_dir(context_dir)
    resolved_db = resolve_db_path(db_path, context_dir=resolved_dir)
    if not Path(resolved_db).exists():
        console.print(f"[yellow]No index at {resolved_db}. Run `memdex index` first.[/]")
        return

    with SearchIndex(resolved_db) as search_index:
        documents = search_index.count_documents()
        has_embeddings = search_index.has_embeddings()

    table = Table(show_header=False, box=None)
    table.add_row("Index File", resolved_db)
    table.add_row("Documents", str(documents))
    table.add_row("Embeddings", "yes" if has_embeddings else "no")
    console.print(Panel(table, title="Index Status", title_align="left", border_style="bold blue"))
