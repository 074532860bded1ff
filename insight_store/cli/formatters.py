"""
Functions for formatting and displaying storage data in the console using Rich.
"""

from datetime import datetime
from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from insight_store.models.records import (
    Artifact,
    IssueStatus,
    QueryRecord,
    ReportedIssue,
    SystemLogEntry,
)
from insight_store.models.stats import MaintenanceReport, VaultUsage
from insight_store.utils.formatting import format_age, format_timestamp, truncate


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ConfigurationError": [
            "• Check the values in your config.ini.",
            "• warning_threshold must be lower than max_capacity.",
            "• Run `insight-store init --force` to write a fresh default config.",
        ],
        "StorageWriteError": [
            "• The storage quota for this profile may be exhausted.",
            "• Empty the trash or clear a cache to free space.",
        ],
        "StorageReadCorruption": [
            "• A stored collection could not be read and has been reset.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration."""
    console = Console()
    content = ""
    for key, value in config_data.items():
        if key == "quota_bytes" and value is None:
            value = "unlimited"
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_usage_panel(usage: VaultUsage):
    """Displays how full the vault is, highlighting the warning threshold."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column()

    if usage.is_full:
        color = "red"
    elif usage.is_near_capacity:
        color = "yellow"
    else:
        color = "green"

    table.add_row(
        "Active:",
        f"[{color}]{usage.active}[/{color}] / {usage.max_capacity} "
        f"({usage.percent_used}%)",
    )
    table.add_row("In Trash:", str(usage.trashed))
    table.add_row("Remaining:", str(usage.remaining))
    table.add_row("Warning At:", str(usage.warning_threshold))

    if usage.is_full:
        title = "[bold red]✗ Vault Full[/bold red]"
    elif usage.is_near_capacity:
        title = "[bold yellow]⚠ Vault Nearly Full[/bold yellow]"
    else:
        title = "[bold green]✓ Vault[/bold green]"

    console.print(Panel(table, title=title, border_style=color, expand=False))


def print_artifact_table(items: list[Artifact], now: datetime, trash: bool = False):
    """Displays vault items, newest first."""
    console = Console()
    if not items:
        console.print("[dim]The trash is empty.[/dim]" if trash else "[dim]No saved items.[/dim]")
        return

    table = Table(title="Trash" if trash else "Vault", box=box.ROUNDED)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Kind", style="magenta")
    table.add_column("Title", style="cyan")
    table.add_column("Metrics")
    table.add_column("Trashed" if trash else "Saved", justify="right", style="green")

    for item in items:
        stamp = item.trashed_at if trash and item.trashed_at else item.created_at
        table.add_row(
            item.id,
            item.kind.value,
            truncate(item.title),
            f"{item.metric_primary} · {item.metric_secondary}".strip(" ·"),
            f"{format_age(now - stamp)} ago",
        )
    console.print(table)


def print_query_table(records: list[QueryRecord], now: datetime):
    """Displays the most popular dashboard queries."""
    console = Console()
    if not records:
        console.print("[dim]No queries recorded yet.[/dim]")
        return

    table = Table(title="Popular Queries")
    table.add_column("Rank", style="dim")
    table.add_column("Query", style="cyan")
    table.add_column("Mode", style="magenta")
    table.add_column("Hits", justify="right", style="green")
    table.add_column("Last Used", justify="right")
    for i, record in enumerate(records, 1):
        table.add_row(
            str(i),
            record.query,
            record.mode.value,
            str(record.hit_count),
            f"{format_age(now - record.last_accessed)} ago",
        )
    console.print(table)


def print_system_log(entries: list[SystemLogEntry]):
    """Displays the system log, newest first."""
    console = Console()
    table = Table(title="System Log", box=box.SIMPLE)
    table.add_column("Time", style="dim", no_wrap=True)
    table.add_column("User", style="cyan")
    table.add_column("Action")
    table.add_column("Status")
    for entry in entries:
        status_style = "green" if entry.status == "Success" else "red"
        table.add_row(
            format_timestamp(entry.time),
            entry.user,
            entry.action,
            f"[{status_style}]{entry.status}[/{status_style}]",
        )
    console.print(table)


def print_issue_table(issues: list[ReportedIssue]):
    console = Console()
    table = Table(title="Reported Issues", box=box.SIMPLE)
    table.add_column("#", justify="right", style="dim", no_wrap=True)
    table.add_column("Time", style="dim", no_wrap=True)
    table.add_column("User", style="cyan")
    table.add_column("Message")
    table.add_column("Status", no_wrap=True)
    for issue in issues:
        status_style = "green" if issue.status is IssueStatus.RESOLVED else "yellow"
        table.add_row(
            str(issue.id),
            format_timestamp(issue.time),
            issue.user,
            truncate(issue.message, 60),
            f"[{status_style}]{issue.status.value}[/{status_style}]",
        )
    console.print(table)


def print_maintenance_report(report: MaintenanceReport):
    console = Console()
    if not report.changed:
        console.print("[dim]Nothing to prune or purge.[/dim]")
        return
    console.print(
        f"[green]✓ Pruned {report.queries_pruned} queries and purged "
        f"{report.artifacts_purged} vault items.[/green]"
    )
