"""CLI interface for memoria.

Thin adapter over the store, index, learner and recorder. The corpus root
comes from --root, MEMORIA_ROOT or ./.memoria (see memoria.config).

Quick start:
    memoria info                           # Where the corpus is, what's in it
    memoria list decisions                 # Newest decisions first
    memoria index rebuild                  # Rebuild every dated-kind index
    memoria learn --analyze-reviews        # Rule candidates from reviews (JSON)
    memoria record --session-id ID < hook.json   # PostToolUse hook entry point
    memoria resume                         # Latest session + pending tasks (JSON)
"""

import json
import logging
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from memoria import __version__
from memoria.config import MemoriaSettings, get_settings
from memoria.continuity import build_continue_context
from memoria.index import IndexManager
from memoria.learning import learn_patterns
from memoria.recorder import InteractionRecorder, ToolUseEvent
from memoria.rules import DEFAULT_CATALOG, RuleCatalog
from memoria.store import DocumentStore, sort_documents

app = typer.Typer(
    name="memoria",
    help="Flat-file memory for coding-agent sessions, decisions and rules",
    no_args_is_help=True,
)

index_app = typer.Typer(help="Build and inspect derived indexes")
app.add_typer(index_app, name="index")

rules_app = typer.Typer(help="Manage rule catalogs")
app.add_typer(rules_app, name="rules")

console = Console()
err_console = Console(stderr=True)

_state: dict[str, MemoriaSettings] = {}


def _settings() -> MemoriaSettings:
    if "settings" not in _state:
        _state["settings"] = get_settings()
    return _state["settings"]


def _store() -> DocumentStore:
    settings = _settings()
    return DocumentStore(settings.root, dated_kinds=settings.dated_kinds)


def _index_manager() -> IndexManager:
    return IndexManager(_store(), rebuild_empty=_settings().rebuild_empty_index)


def _emit_json(data: object) -> None:
    typer.echo(json.dumps(data, ensure_ascii=False))


@app.callback()
def main(
    root: Path = typer.Option(None, "--root", "-r", help="Corpus root (default: ./.memoria)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Memoria: sessions, decisions, rules and learned patterns as JSON files."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )
    _state["settings"] = get_settings(root)


@app.command()
def version() -> None:
    """Show the installed version."""
    console.print(f"memoria {__version__}")


@app.command()
def info() -> None:
    """Show the corpus root and document counts per kind."""
    settings = _settings()
    store = _store()

    console.print(f"[bold]Root:[/bold] {settings.root}")
    if not settings.root.exists():
        console.print("[yellow]Corpus directory does not exist yet[/yellow]")
        return

    table = Table(title="Documents")
    table.add_column("Kind", style="cyan")
    table.add_column("Layout")
    table.add_column("Count", justify="right")
    for path in sorted(p for p in settings.root.iterdir() if p.is_dir() and not p.name.startswith(".")):
        kind = path.name
        layout = "dated" if store.is_dated(kind) else "flat"
        table.add_row(kind, layout, str(len(store.list(kind))))
    console.print(table)


@app.command("list")
def list_documents(
    kind: str = typer.Argument(..., help="Document kind, e.g. sessions"),
    limit: int = typer.Option(20, "--limit", "-n", help="Max rows"),
) -> None:
    """List documents of a kind, newest first."""
    try:
        documents = sort_documents(_store().list(kind))
    except ValueError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"{kind} ({len(documents)})")
    table.add_column("ID", style="cyan")
    table.add_column("Created")
    table.add_column("Title")
    for doc in documents[:limit]:
        table.add_row(str(doc.get("id", "")), str(doc.get("createdAt", "")), str(doc.get("title", "")))
    console.print(table)


@app.command()
def show(
    kind: str = typer.Argument(..., help="Document kind"),
    doc_id: str = typer.Argument(..., help="Document id"),
) -> None:
    """Print one document as JSON."""
    try:
        document = _store().read(kind, doc_id)
    except ValueError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    if document is None:
        err_console.print(f"[red]{kind}/{doc_id} not found[/red]")
        raise typer.Exit(1)
    _emit_json(document)


@app.command()
def delete(
    kind: str = typer.Argument(..., help="Document kind"),
    doc_id: str = typer.Argument(..., help="Document id"),
) -> None:
    """Delete one document."""
    try:
        deleted = _store().delete(kind, doc_id)
    except ValueError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    if not deleted:
        err_console.print(f"[red]{kind}/{doc_id} not found[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Deleted {kind}/{doc_id}[/green]")


# ─── Index Commands ─────────────────────────────────────────────

@index_app.command("rebuild")
def index_rebuild(
    kind: str = typer.Argument(None, help="Kind to rebuild (default: every dated kind)"),
) -> None:
    """Rebuild and persist indexes."""
    manager = _index_manager()
    try:
        if kind:
            indexes = {kind: manager.rebuild_index(kind)}
        else:
            indexes = manager.rebuild_all_indexes()
    except ValueError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    for name, index in indexes.items():
        console.print(f"[green]✓[/green] {name}: {len(index.items)} items")


@index_app.command("status")
def index_status() -> None:
    """Show each persisted index's age and whether it is stale."""
    settings = _settings()
    manager = _index_manager()

    table = Table(title="Indexes")
    table.add_column("Kind", style="cyan")
    table.add_column("Items", justify="right")
    table.add_column("Updated")
    table.add_column("Stale")
    for kind in sorted(settings.dated_kinds):
        index = manager.read_index(kind)
        stale = manager.is_stale(index, settings.index_max_age_seconds)
        table.add_row(
            kind,
            str(len(index.items)),
            index.updatedAt or "-",
            "[yellow]yes[/yellow]" if stale else "[green]no[/green]",
        )
    console.print(table)


# ─── Learning & Recording ───────────────────────────────────────

@app.command()
def learn(
    analyze_commits: bool = typer.Option(False, "--analyze-commits", help="Mine fix: commits"),
    analyze_reviews: bool = typer.Option(False, "--analyze-reviews", help="Mine review findings"),
    analyze_co_changes: bool = typer.Option(False, "--analyze-co-changes", help="Mine co-changed files"),
) -> None:
    """Run pattern learning and print the patterns as JSON."""
    settings = _settings()
    try:
        patterns = learn_patterns(
            _store(),
            analyze_commits=analyze_commits,
            analyze_reviews=analyze_reviews,
            analyze_co_changes=analyze_co_changes,
            min_occurrences=settings.review_min_occurrences,
        )
    except Exception as e:
        _emit_json({"success": False, "error": str(e)})
        raise typer.Exit(1)
    _emit_json({"success": True, "patterns": [p.to_dict() for p in patterns]})


@app.command()
def record(
    session_id: str = typer.Option(None, "--session-id", help="Session to append to"),
    session_path: Path = typer.Option(None, "--session-path", help="Session file to append to"),
) -> None:
    """Record a tool-use hook payload read from stdin.

    Always exits 0 so a failing recorder never blocks the agent.
    """
    if not session_id and session_path is None:
        _emit_json({"success": False, "error": "Missing --session-id or --session-path"})
        return

    try:
        data = json.loads(sys.stdin.read() or "{}")
        event = ToolUseEvent(
            session_id=session_id,
            session_path=session_path,
            tool_name=data.get("tool_name", ""),
            tool_input=data.get("tool_input") or {},
            tool_result=data.get("tool_result") or {},
        )
        InteractionRecorder(_store()).record_tool_use(event)
    except Exception as e:
        logging.getLogger(__name__).debug("record failed", exc_info=True)
        _emit_json({"success": False, "error": str(e)})
        return
    _emit_json({"success": True})


@app.command()
def resume(
    tasks: Path = typer.Option(None, "--tasks", "-t", help="Markdown task list (default: docs/plans/tasks.md)"),
) -> None:
    """Print the context for continuing the latest session as JSON."""
    try:
        context = build_continue_context(_store(), tasks)
    except (OSError, ValueError) as e:
        _emit_json({"success": False, "error": str(e)})
        raise typer.Exit(1)
    _emit_json({"success": True, "context": context.to_dict()})


# ─── Rules Commands ─────────────────────────────────────────────

@rules_app.command("list")
def rules_list(
    catalog: str = typer.Argument(DEFAULT_CATALOG, help="Rule catalog id"),
) -> None:
    """Show the rules in a catalog."""
    document = RuleCatalog(_store(), catalog).get_rules()
    if document is None:
        console.print(f"[yellow]No rule catalog '{catalog}'[/yellow]")
        return

    table = Table(title=f"Rules: {catalog}")
    table.add_column("ID", style="cyan")
    table.add_column("Category")
    table.add_column("Severity")
    table.add_column("Rule")
    for item in document.rules:
        table.add_row(item.id or "-", item.category, item.severity or "-", item.rule)
    console.print(table)


@rules_app.command("add")
def rules_add(
    category: str = typer.Argument(..., help="Rule category"),
    rule: str = typer.Argument(..., help="Rule text"),
    severity: str = typer.Option(None, "--severity", "-s", help="error|warning|info"),
    catalog: str = typer.Option(DEFAULT_CATALOG, "--catalog", "-c", help="Rule catalog id"),
) -> None:
    """Add a rule to a catalog."""
    fields = {"severity": severity} if severity else {}
    try:
        document = RuleCatalog(_store(), catalog).add_rule(category, rule, **fields)
    except ValueError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Added {document.rules[-1].id}[/green] to {catalog}")


if __name__ == "__main__":
    app()
