"""
Writes batch reports to disk for auditing and selective retries.
"""

import json
import logging
from pathlib import Path

from apk_downloader.exceptions import ConfigurationError
from apk_downloader.models.results import BatchReport

log = logging.getLogger(__name__)


def write_report(report: BatchReport, path: Path) -> None:
    """Saves the report as JSON."""
    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(report.to_dict(), f, indent=2)
            f.write("\n")
    except OSError as e:
        raise ConfigurationError(f"Could not write report to {path}: {e}") from e
    log.info(f"Report written to [dim]{path}[/dim]")


def write_failed_list(report: BatchReport, path: Path) -> int:
    """
    Saves the failed app IDs, one per line, so they can be fed back in with
    ``--list-source csv --csv <path>``.

    Returns:
        The number of identifiers written.
    """
    identifiers = report.failed_identifiers
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.writelines(f"{identifier}\n" for identifier in identifiers)
    except OSError as e:
        raise ConfigurationError(f"Could not write failed list to {path}: {e}") from e
    log.info(f"{len(identifiers)} failed app IDs written to [dim]{path}[/dim]")
    return len(identifiers)
