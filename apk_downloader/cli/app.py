"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import signal
from enum import Enum
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from apk_downloader import __version__
from apk_downloader.core import CancelSignal, DownloadOrchestrator
from apk_downloader.exceptions import ConfigurationError
from apk_downloader.lists import (
    ParsedList,
    fetch_android_rank_list,
    load_csv_list,
    single_item,
)
from apk_downloader.models.config import SourceSelector
from apk_downloader.models.results import BatchReport, FetchResult
from apk_downloader.sources import create_driver
from apk_downloader.storage import (
    ConfigManager,
    PayloadSink,
    write_failed_list,
    write_report,
)

from .formatters import (
    print_config,
    print_diagnostics,
    print_summary_panel,
)
from .progress_manager import ProgressManager

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
            markup=True,
        )
    ],
)
log = logging.getLogger("apk_downloader")

app = typer.Typer(
    name="apk-downloader",
    help=(
        "Downloads APKs from various sources, for a single app or a whole list."
        " Use 'apk-downloader <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


class ListSource(str, Enum):
    ANDROID_RANK = "androidrank"
    CSV = "csv"


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "apk-downloader"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


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
):
    """APK Downloader CLI"""
    if version:
        console.print(
            f"[bold]apk-downloader[/bold] version [cyan]{__version__}[/cyan]"
        )
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("apk_downloader").setLevel(log_level)

    if show_config:
        try:
            config = ConfigManager(CONFIG_FILE).load_config()
        except ConfigurationError as e:
            console.print(f"[red]✗ {escape(str(e))}[/red]")
            raise typer.Exit(code=1) from e
        print_config(CONFIG_FILE, config)
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration file."
    ),
):
    """Write a configuration file with the default settings."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    try:
        ConfigManager(CONFIG_FILE).save_new_config()
    except ConfigurationError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e
    console.print(f"[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")


@app.command()
def validate():
    """Validate the current configuration."""
    try:
        config = ConfigManager(CONFIG_FILE).load_config()
    except ConfigurationError as e:
        console.print(f"[red]✗ Configuration is invalid: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e
    print_config(CONFIG_FILE, config)


async def _load_items(
    app_name: str | None,
    list_source: ListSource | None,
    csv_path: Path | None,
    field: int,
) -> ParsedList:
    if app_name:
        return single_item(app_name)
    if list_source == ListSource.ANDROID_RANK:
        return await fetch_android_rank_list()
    return load_csv_list(csv_path, field=field)


def _install_signal_handlers(
    cancel_signal: CancelSignal, main_task: asyncio.Task
) -> list[signal.Signals]:
    """
    First interrupt stops the run gracefully; a second one aborts it.
    """
    loop = asyncio.get_running_loop()

    def _on_signal(sig: signal.Signals):
        if not cancel_signal.is_set():
            console.print(
                "\n[yellow]⚠️  Stopping... (press Ctrl+C again to abort)[/yellow]"
            )
            cancel_signal.cancel(f"received {sig.name}")
        else:
            main_task.cancel()

    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _on_signal, sig)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # Windows event loops have no signal handler support
            pass
    return installed


@app.command(name="download")
def download_command(
    output: Path = typer.Argument(  # noqa: B008
        ..., help="An existing directory to store the downloaded APKs in."
    ),
    app_name: str | None = typer.Option(
        None, "-a", "--app-name", help="Provide the ID of a single app directly."
    ),
    list_source: ListSource | None = typer.Option(
        None,
        "-l",
        "--list-source",
        case_sensitive=False,
        help="Source of the apps list.",
    ),
    csv_path: Path | None = typer.Option(
        None,
        "-c",
        "--csv",
        help="CSV file to use (required if list source is csv).",
    ),
    field: int = typer.Option(
        1, "-f", "--field", help="CSV field containing app IDs (1-based)."
    ),
    download_source: SourceSelector | None = typer.Option(
        None,
        "-d",
        "--download-source",
        case_sensitive=False,
        help="Where to download the APKs from (default apkpure).",
    ),
    parallel: int | None = typer.Option(
        None,
        "-r",
        "--parallel",
        help="The number of parallel APK fetches to run at a time (default 4).",
    ),
    timeout: float | None = typer.Option(
        None,
        "-t",
        "--timeout",
        help="Give up on a single app after this many seconds (0 disables).",
    ),
    overwrite: bool = typer.Option(
        False, "--overwrite", help="Replace APKs that already exist in OUTPUT."
    ),
    report_path: Path | None = typer.Option(
        None, "--report", help="Write a JSON report of the run to this file."
    ),
    failed_list_path: Path | None = typer.Option(
        None,
        "--failed-list",
        help="Write failed app IDs to this file, one per line, for a retry run.",
    ),
    no_progress: bool = typer.Option(
        False, "--no-progress", help="Do not show the live progress bar."
    ),
):
    """Download APKs for one app or a list of apps."""
    if app_name and list_source:
        console.print("[red]✗ Use either --app-name or --list-source, not both.[/red]")
        raise typer.Exit(code=1)
    if not app_name and not list_source:
        console.print(
            "[red]✗ No apps given.[/red] "
            "Use: [cyan]-a <APP_ID>[/cyan] or [cyan]-l csv -c <FILE>[/cyan]"
        )
        raise typer.Exit(code=1)
    if list_source == ListSource.CSV and csv_path is None:
        console.print("[red]✗ --csv is required when the list source is csv.[/red]")
        raise typer.Exit(code=1)

    cli_options = {
        key: value
        for key, value in {
            "parallel": parallel,
            "download_source": download_source,
            "per_item_timeout": timeout,
        }.items()
        if value is not None
    }

    try:
        config = ConfigManager(CONFIG_FILE).load_config(cli_options)
        sink = PayloadSink(output, overwrite=overwrite)
    except ConfigurationError as e:
        console.print(f"[bold red]Error: {escape(str(e))}[/bold red]")
        raise typer.Exit(code=1) from e

    async def _download_async() -> BatchReport:
        parsed = await _load_items(app_name, list_source, csv_path, field)
        print_diagnostics(parsed.diagnostics)
        if not parsed.items:
            log.warning("[yellow]No valid app IDs to download.[/yellow]")

        cancel_signal = CancelSignal()
        installed = _install_signal_handlers(cancel_signal, asyncio.current_task())
        progress = ProgressManager(
            console,
            total=len(parsed.items),
            enabled=not no_progress and console.is_terminal,
        )

        async def on_result(result: FetchResult) -> None:
            await sink(result)
            progress.advance(result)

        try:
            async with create_driver(config.download_source, config) as driver, progress:
                orchestrator = DownloadOrchestrator(
                    driver,
                    config.to_run_config(),
                    cancel_signal=cancel_signal,
                    on_result=on_result,
                )
                return await orchestrator.run(parsed.items)
        finally:
            loop = asyncio.get_running_loop()
            for sig in installed:
                loop.remove_signal_handler(sig)

    try:
        report = asyncio.run(_download_async())
    except ConfigurationError as e:
        console.print(f"[bold red]Error: {escape(str(e))}[/bold red]")
        raise typer.Exit(code=1) from e

    print_summary_panel(report, sink, source=config.download_source.value)

    try:
        if report_path:
            write_report(report, report_path)
        if failed_list_path:
            write_failed_list(report, failed_list_path)
    except ConfigurationError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    if not report.ok or not sink.ok:
        raise typer.Exit(code=1)
