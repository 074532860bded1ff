"""
Defines the operator command-line interface for the storage layer using Typer.
"""

import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from insight_store import __version__
from insight_store.core.store_manager import StoreManager
from insight_store.models.config import StoreConfig
from insight_store.models.records import LifecycleState, Outcome, utc_now
from insight_store.services.export import export_vault_csv
from insight_store.storage.config_manager import ConfigManager
from insight_store.storage.substrate import SqliteSubstrate
from insight_store.utils.structured_logger import create_event_logger

from .formatters import (
    print_artifact_table,
    print_config,
    print_issue_table,
    print_maintenance_report,
    print_query_table,
    print_system_log,
    print_usage_panel,
)

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=False,
        )
    ],
)
log = logging.getLogger("insight_store")

app = typer.Typer(
    name="insight-store",
    help="Inspect and maintain the dashboard's local vault, query history and caches.",
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)
vault_app = typer.Typer(help="Manage saved vault items and the trash.")
queries_app = typer.Typer(help="Inspect the query popularity tracker.")
cache_app = typer.Typer(help="Manage the expiring caches.")
issues_app = typer.Typer(help="Track problems reported by dashboard users.")
app.add_typer(vault_app, name="vault")
app.add_typer(queries_app, name="queries")
app.add_typer(cache_app, name="cache")
app.add_typer(issues_app, name="issues")

OPERATOR = "cli"

_OUTCOME_MESSAGES = {
    Outcome.CAPACITY_EXCEEDED: "The vault is full. Move items to the trash first.",
    Outcome.NOT_FOUND: "No item with id '{id}' in the expected state.",
    Outcome.WRITE_FAILED: "Storage rejected the write. The profile may be out of space.",
}


def get_profile_dir() -> Path:
    if override := os.getenv("INSIGHT_STORE_HOME"):
        return Path(override).expanduser()
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "insight-store"


def get_config_file() -> Path:
    return get_profile_dir() / "config.ini"


def load_config() -> StoreConfig:
    """Loads the profile config, falling back to defaults when none was written."""
    config_file = get_config_file()
    if not config_file.is_file():
        return StoreConfig(profile_dir=str(config_file.parent))
    return ConfigManager(config_file).load_config()


def open_store(ctx: typer.Context | None = None) -> StoreManager:
    """
    Opens the profile's store. With a command context, the audit log is tagged with
    the command and closed when the command finishes.
    """
    config = load_config()
    profile_dir = get_profile_dir()
    audit = bool(ctx and ctx.obj and ctx.obj.get("audit"))
    base, events = create_event_logger(log_dir=profile_dir / "logs", enable_json=audit)
    base.set_session_context(profile=str(profile_dir))
    if ctx is not None:
        base.set_session_context(command=ctx.command_path)
        ctx.call_on_close(base.close)
    substrate = SqliteSubstrate(profile_dir / "store.sqlite", quota_bytes=config.quota_bytes)
    return StoreManager(config, substrate, events=events)


def _finish(store: StoreManager, outcome: Outcome, action: str, artifact_id: str, done: str):
    """Prints the outcome of a vault mutation and records it in the system log."""
    store.system_log.add(
        OPERATOR, f"{action} {artifact_id}", "Success" if outcome.ok else outcome.value
    )
    if outcome.ok:
        console.print(f"[green]✓ {done}[/green]")
        return
    console.print(f"[red]✗ {_OUTCOME_MESSAGES[outcome].format(id=artifact_id)}[/red]")
    raise typer.Exit(code=1)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
    audit: bool = typer.Option(
        False, "--audit", help="Write vault events to a JSONL audit log."
    ),
):
    """Insight Store CLI"""
    if version:
        console.print(f"[bold]insight-store[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    elif verbose == 0:
        log_level = "WARNING"
    logging.getLogger("insight_store").setLevel(log_level)
    ctx.obj = {"audit": audit}

    if show_config:
        config = load_config()
        print_config(get_config_file(), config.model_dump(include=config.get_ini_keys()))
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration file."
    ),
):
    """Write a default configuration file for this profile."""
    config_file = get_config_file()
    if config_file.exists() and not force:
        console.print(
            f"[yellow]Configuration already exists at '{config_file}'. "
            "Use --force to overwrite it.[/yellow]"
        )
        raise typer.Exit(code=1)
    ConfigManager(config_file).save_new_config()
    console.print(f"[bold green]✓ Configuration saved to '{config_file}'[/bold green]")


@app.command()
def status(ctx: typer.Context):
    """Show vault usage against the capacity cap."""
    store = open_store(ctx)
    store.run_maintenance()
    print_usage_panel(store.vault.usage())


@app.command()
def logs(ctx: typer.Context):
    """Show the system log."""
    print_system_log(open_store(ctx).system_log.entries())


@vault_app.command("list")
def vault_list(
    ctx: typer.Context,
    trash: bool = typer.Option(False, "--trash", help="List the trash instead."),
    kind: str = typer.Option("all", "--kind", "-k", help="Only show one kind."),
    query: str = typer.Option("", "--query", "-q", help="Filter titles by text."),
):
    """List saved items, newest first."""
    store = open_store(ctx)
    scope = LifecycleState.TRASHED if trash else LifecycleState.ACTIVE
    try:
        items = store.vault.list(scope, query=query or None, kind=kind)
    except ValueError as e:
        raise typer.BadParameter(f"Unknown kind '{kind}'.", param_hint="--kind") from e
    print_artifact_table(items, utc_now(), trash=trash)


@vault_app.command("trash")
def vault_trash(ctx: typer.Context, artifact_id: str = typer.Argument(..., metavar="ID")):
    """Move an item to the trash."""
    store = open_store(ctx)
    outcome = store.vault.soft_delete(artifact_id)
    _finish(store, outcome, "Trashed", artifact_id, f"Moved '{artifact_id}' to the trash.")


@vault_app.command("restore")
def vault_restore(ctx: typer.Context, artifact_id: str = typer.Argument(..., metavar="ID")):
    """Restore an item from the trash."""
    store = open_store(ctx)
    outcome = store.vault.restore(artifact_id)
    _finish(store, outcome, "Restored", artifact_id, f"Restored '{artifact_id}'.")


@vault_app.command("delete")
def vault_delete(
    ctx: typer.Context,
    artifact_id: str = typer.Argument(..., metavar="ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Don't ask for confirmation."),
):
    """Permanently delete an item from the trash."""
    if not yes and not typer.confirm(f"Permanently delete '{artifact_id}'?"):
        raise typer.Abort()
    store = open_store(ctx)
    outcome = store.vault.permanently_delete(artifact_id)
    _finish(store, outcome, "Deleted", artifact_id, f"Deleted '{artifact_id}' permanently.")


@vault_app.command("clear")
def vault_clear(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Don't ask for confirmation."),
):
    """Move every saved item to the trash."""
    if not yes and not typer.confirm("Move every saved item to the trash?"):
        raise typer.Abort()
    store = open_store(ctx)
    moved = store.vault.usage().active
    outcome = store.vault.clear_vault()
    _finish(store, outcome, "Cleared", "vault", f"Moved {moved} item(s) to the trash.")


@vault_app.command("purge")
def vault_purge(ctx: typer.Context):
    """Prune old queries and purge expired vault items now."""
    store = open_store(ctx)
    report = store.run_maintenance()
    if report.changed:
        store.system_log.add(
            OPERATOR, f"Purged {report.artifacts_purged} item(s)", "Success"
        )
    print_maintenance_report(report)


@vault_app.command("export")
def vault_export(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="Destination CSV file."),  # noqa: B008
):
    """Export saved items to a CSV file."""
    store = open_store(ctx)
    try:
        rows = export_vault_csv(store.vault, path)
    except OSError as e:
        console.print(f"[red]✗ Could not write '{path}': {e}[/red]")
        raise typer.Exit(code=1) from e
    store.system_log.add(OPERATOR, f"Exported {rows} item(s)", "Success")
    console.print(f"[green]✓ Exported {rows} item(s) to '{path}'.[/green]")


@queries_app.command("top")
def queries_top(
    ctx: typer.Context,
    limit: int = typer.Argument(5, min=1, help="How many queries to show."),
):
    """Show the most popular queries."""
    store = open_store(ctx)
    store.queries.prune()
    print_query_table(store.queries.top(limit), utc_now())


@queries_app.command("prune")
def queries_prune(ctx: typer.Context):
    """Drop stale and surplus queries."""
    removed = open_store(ctx).queries.prune()
    console.print(f"[green]✓ Removed {removed} query record(s).[/green]")


@cache_app.command("clear")
def cache_clear(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Cache to clear: api, velocity or system."),
):
    """Remove every entry from one cache."""
    store = open_store(ctx)
    cache = store.caches.get(name)
    if cache is None:
        choices = ", ".join(store.caches)
        raise typer.BadParameter(f"Unknown cache '{name}'. Choose from: {choices}.")
    console.print(f"[cyan]Clearing the {name} cache...[/cyan]")
    removed = cache.clear()
    if name != "system":
        store.system_log.add(OPERATOR, f"Cleared {name} cache", "Success")
    console.print(f"[green]✓ Cache cleared successfully ({removed} entries removed).[/green]")


@issues_app.command("list")
def issues_list(ctx: typer.Context):
    """Show reported issues, newest first."""
    print_issue_table(open_store(ctx).issues.issues())


@issues_app.command("report")
def issues_report(
    ctx: typer.Context,
    message: str = typer.Argument(..., help="What went wrong."),
    user: str = typer.Option(OPERATOR, "--user", "-u", help="Who is reporting it."),
):
    """File a new issue."""
    issue = open_store(ctx).issues.report(user, message)
    if issue is None:
        console.print(f"[red]✗ {_OUTCOME_MESSAGES[Outcome.WRITE_FAILED]}[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]✓ Filed issue #{issue.id}.[/green]")


@issues_app.command("resolve")
def issues_resolve(
    ctx: typer.Context,
    issue_id: int = typer.Argument(..., metavar="ID"),
):
    """Mark an issue as resolved."""
    outcome = open_store(ctx).issues.resolve(issue_id)
    if outcome is Outcome.NOT_FOUND:
        console.print(f"[red]✗ No issue #{issue_id}.[/red]")
        raise typer.Exit(code=1)
    if not outcome.ok:
        console.print(f"[red]✗ {_OUTCOME_MESSAGES[outcome]}[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]✓ Issue #{issue_id} resolved.[/green]")
