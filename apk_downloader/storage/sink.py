"""
Persists successfully fetched packages to the output directory.
"""

import asyncio
import logging
import os
from pathlib import Path

import aiofiles
from pathvalidate import sanitize_filename

from apk_downloader.exceptions import ConfigurationError
from apk_downloader.models.results import FetchResult, FetchSuccess

log = logging.getLogger(__name__)


class PayloadSink:
    """
    Writes each payload to ``<output_dir>/<app_id>.apk``.

    Files are written to a ``.part`` sibling first and renamed into place, so
    an interrupted run never leaves a truncated APK behind.
    """

    def __init__(self, output_dir: Path, overwrite: bool = False):
        output_dir = Path(output_dir)
        if not output_dir.is_dir():
            raise ConfigurationError(f"OUTPUT is not a valid directory: {output_dir}")
        self.output_dir = output_dir
        self.overwrite = overwrite
        self.saved: list[str] = []
        self.skipped: list[str] = []
        self.errors: dict[str, str] = {}

    @property
    def ok(self) -> bool:
        return not self.errors

    def path_for(self, identifier: str) -> Path:
        return self.output_dir / f"{sanitize_filename(identifier)}.apk"

    async def __call__(self, result: FetchResult) -> None:
        """Orchestrator result hook: stores successes, ignores failures."""
        if isinstance(result, FetchSuccess):
            await self.write(result)

    async def write(self, result: FetchSuccess) -> Path | None:
        destination = self.path_for(result.identifier)
        exists = await asyncio.to_thread(destination.exists)
        if exists and not self.overwrite:
            log.info(
                f"  [yellow]○ File already exists for {result.identifier}. "
                "Keeping it.[/yellow]"
            )
            self.skipped.append(result.identifier)
            return None

        temp_path = destination.with_name(destination.name + ".part")
        try:
            async with aiofiles.open(temp_path, "wb") as f:
                await f.write(result.payload)
            await asyncio.to_thread(os.replace, temp_path, destination)
        except OSError as e:
            self.errors[result.identifier] = str(e)
            log.error(f"[red]  ✗ Could not save {result.identifier}: {e}[/red]")
            await asyncio.to_thread(temp_path.unlink, missing_ok=True)
            return None

        self.saved.append(result.identifier)
        log.info(f"  [green]✓ Saved {result.identifier}[/green] [dim]→ {destination.name}[/dim]")
        return destination
