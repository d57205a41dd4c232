"""
Rich progress display for a running batch.
"""

import logging

from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from apk_downloader.models.results import FetchResult, FetchSuccess

log = logging.getLogger("apk_downloader")


class ProgressManager:
    """
    Tracks completed items against the batch size.

    Fed from the orchestrator's result hook. When disabled (dry terminals,
    ``--no-progress``) it only keeps the counters.
    """

    def __init__(self, console: Console, total: int, enabled: bool = True):
        self.console = console
        self.total = total
        self.enabled = enabled and total > 0

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(bar_width=40),
            MofNCompleteColumn(),
            "•",
            TimeElapsedColumn(),
            console=console,
            transient=False,
        )
        self._task_id: TaskID | None = None
        self._stats = {"succeeded": 0, "failed": 0}

    def _description(self) -> str:
        return (
            f"[green]✓ {self._stats['succeeded']}[/green] "
            f"[red]✗ {self._stats['failed']}[/red]"
        )

    def advance(self, result: FetchResult) -> None:
        if isinstance(result, FetchSuccess):
            self._stats["succeeded"] += 1
        else:
            self._stats["failed"] += 1
            log.warning(
                f"  [red]✗ {result.identifier}[/red] "
                f"[dim]({result.kind.value}: {escape(result.message)})[/dim]"
            )

        if self.enabled and self._task_id is not None:
            self.progress.update(
                self._task_id, advance=1, description=self._description()
            )

    async def __aenter__(self):
        if self.enabled:
            self._task_id = self.progress.add_task(self._description(), total=self.total)
            self.progress.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.enabled:
            self.progress.stop()
