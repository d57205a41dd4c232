"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Iterable

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from apk_downloader.lists import ParseDiagnostic
from apk_downloader.models.config import AppConfig
from apk_downloader.models.results import BatchReport
from apk_downloader.storage.sink import PayloadSink
from apk_downloader.utils.formatting import format_duration, format_size, pluralize


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ConfigurationError": [
            "• Check the command-line options and the configuration file.",
            "• Run `apk-downloader validate` to see the effective settings.",
        ],
        "SourceAuthError": [
            "• The source refused the request; it may be blocking automated clients.",
            "• Try a different `--download-source`.",
        ],
        "SourceNetworkError": [
            "• A network connection issue occurred.",
            "• The source might be temporarily unavailable.",
            "• Reduce `--parallel` if you are being rate-limited.",
        ],
        "TimeoutError": [
            "• A request timed out, which may indicate network throttling.",
            "• Raise `--timeout` or reduce `--parallel`.",
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


def print_config(config_path: Path, config: AppConfig):
    """Displays the effective configuration."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    location = str(config_path) if config_path.is_file() else "[dim]defaults[/dim]"
    table.add_row("Config File:", location)
    table.add_row("Download Source:", config.download_source.value)
    table.add_row("Parallel Fetches:", str(config.parallel))
    table.add_row(
        "Per-Item Timeout:",
        f"{config.per_item_timeout:g}s" if config.per_item_timeout else "none",
    )
    table.add_row("Cancel Grace Period:", f"{config.grace_period:g}s")
    table.add_row("Max Attempts:", str(config.max_attempts))
    table.add_row("Requests/Second:", f"{config.requests_per_second:g}")
    table.add_row("User Agent:", f"[dim]{config.user_agent}[/dim]")

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def print_diagnostics(diagnostics: Iterable[ParseDiagnostic], limit: int = 10):
    """Lists input rows that were skipped while reading the app list."""
    diagnostics = list(diagnostics)
    if not diagnostics:
        return
    console = Console(stderr=True)
    console.print(
        f"[yellow]⚠ Skipped {pluralize(len(diagnostics), 'input row')}:[/yellow]"
    )
    for diagnostic in diagnostics[:limit]:
        console.print(f"  [dim]{diagnostic}[/dim]")
    if len(diagnostics) > limit:
        console.print(f"  [dim]... and {len(diagnostics) - limit} more[/dim]")


def print_failures_table(report: BatchReport):
    """Lists every failed app ID with its error kind."""
    if not report.failed:
        return
    console = Console()
    table = Table(title="Failed Downloads", box=box.SIMPLE_HEAD)
    table.add_column("App ID", style="cyan")
    table.add_column("Kind", style="red")
    table.add_column("Message", style="dim", overflow="fold")
    for identifier, kind in report.failed:
        table.add_row(identifier, kind.value, escape(report.messages.get(identifier, "")))
    console.print(table)


def print_summary_panel(
    report: BatchReport, sink: PayloadSink | None = None, source: str = ""
):
    """Displays the final summary of the download run."""
    console = Console()

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=20)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row("Total:", str(report.total))
    stats_table.add_row(
        "✓ Downloaded:", f"[bold green]{len(report.succeeded)}[/bold green]"
    )
    if sink is not None:
        if sink.skipped:
            stats_table.add_row(
                "○ Already Present:", f"[yellow]{len(sink.skipped)}[/yellow]"
            )
        if sink.errors:
            stats_table.add_row(
                "✗ Not Saved:", f"[bold red]{len(sink.errors)}[/bold red]"
            )

    if report.failed:
        by_kind = ", ".join(
            f"{count} {kind.value}" for kind, count in report.counts_by_kind().items()
        )
        stats_table.add_row(
            "✗ Failed:", f"[bold red]{len(report.failed)}[/bold red] [dim]({by_kind})[/dim]"
        )

    stats_table.add_row("", "")
    stats_table.add_row("Total Size:", f"[cyan]{format_size(report.bytes_downloaded)}[/cyan]")
    stats_table.add_row("Time Elapsed:", f"[blue]{format_duration(report.duration_s)}[/blue]")
    stats_table.add_row("Peak Parallel:", f"[green]{report.peak_in_flight}[/green]")
    if report.succeeded and report.duration_s > 0:
        per_minute = len(report.succeeded) / report.duration_s * 60
        stats_table.add_row("Throughput:", f"[cyan]{per_minute:.1f} apps/min[/cyan]")

    all_good = report.ok and (sink is None or sink.ok)
    title = "📦 [bold]Download Complete![/bold]"
    if source:
        title = f"📦 [bold]Download Complete[/bold] [dim]({source})[/dim]"

    console.print()
    console.print(
        Panel(
            stats_table,
            title=title,
            border_style="green" if all_good else "yellow",
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
    print_failures_table(report)
    console.print()

