"""
Entry point for ``apk-downloader`` and ``python -m apk_downloader``.

Errors that escape a command are rendered here, so commands can simply raise.
"""

import asyncio
import logging
import os
import sys

import typer
from rich.console import Console

from apk_downloader import __version__
from apk_downloader.cli.app import app
from apk_downloader.cli.formatters import format_error_with_suggestions
from apk_downloader.exceptions import ApkDownloaderError

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def main() -> None:
    if os.name == "nt":
        # Rich output contains symbols the legacy Windows code pages lack
        for stream in (sys.stdout, sys.stderr):
            try:
                stream.reconfigure(encoding="utf-8")
            except (TypeError, AttributeError):
                pass

    console = Console(stderr=True)

    try:
        app()
    except (typer.Exit, typer.Abort):
        pass
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\n[yellow]⚠️  Download aborted. No report was written.[/yellow]")
        sys.exit(EXIT_INTERRUPTED)
    except ApkDownloaderError as e:
        console.print(format_error_with_suggestions(e))
        sys.exit(EXIT_FAILURE)
    except Exception as e:
        console.print(
            format_error_with_suggestions(e, {"version": __version__, "type": "Unexpected"})
        )
        logging.getLogger("apk_downloader").debug("Full traceback:", exc_info=True)
        sys.exit(EXIT_FAILURE)


if __name__ == "__main__":
    main()
