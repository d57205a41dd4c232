"""
Accumulates fetch results from concurrently completing downloads into a report.
"""

import asyncio
import logging

from apk_downloader.exceptions import OrchestrationError
from apk_downloader.models.results import BatchReport, FetchResult, FetchSuccess

log = logging.getLogger(__name__)


class OutcomeCollector:
    """
    Thread-safe (task-safe) accumulator of per-item outcomes.

    Results are kept in completion order. Each identifier may be recorded
    once; a second result is a programming error that is logged and ignored.
    """

    def __init__(self, total: int):
        self.total = total
        self._report = BatchReport(total=total)
        self._seen: set[str] = set()
        self._lock = asyncio.Lock()

    @property
    def recorded(self) -> int:
        return len(self._seen)

    @property
    def outstanding(self) -> int:
        return self.total - self.recorded

    def has(self, identifier: str) -> bool:
        return identifier in self._seen

    async def record(self, result: FetchResult) -> bool:
        """
        Adds a result to the report.

        Returns:
            True if the result was recorded, False if it was a duplicate.
        """
        async with self._lock:
            if result.identifier in self._seen:
                log.error(
                    f"[red]Duplicate result for '{result.identifier}' ignored "
                    f"({type(result).__name__}).[/red]"
                )
                return False
            self._seen.add(result.identifier)

            if isinstance(result, FetchSuccess):
                self._report.succeeded.append(result.identifier)
                self._report.bytes_downloaded += result.byte_length
            else:
                self._report.failed.append((result.identifier, result.kind))
                self._report.messages[result.identifier] = result.message
            return True

    def finalize(self, duration_s: float = 0.0, peak_in_flight: int = 0) -> BatchReport:
        """
        Returns the completed report.

        Raises:
            OrchestrationError: If any submitted item is still unaccounted for.
        """
        if self.outstanding:
            raise OrchestrationError(
                f"Cannot finalize report: {self.outstanding} of {self.total} "
                "items have no result."
            )
        self._report.duration_s = duration_s
        self._report.peak_in_flight = peak_in_flight
        return self._report
