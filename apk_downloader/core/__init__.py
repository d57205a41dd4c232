"""
Core application engine for orchestrating the download process.

This package contains the primary logic. The `DownloadOrchestrator` drives a
batch through a bounded pool of concurrent fetches, handing every outcome to
the `OutcomeCollector`, which assembles the final `BatchReport`.
"""

from .cancellation import CancelSignal
from .collector import OutcomeCollector
from .orchestrator import DownloadOrchestrator, run

__all__ = ["CancelSignal", "DownloadOrchestrator", "OutcomeCollector", "run"]
