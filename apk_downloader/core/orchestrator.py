"""
The main orchestrator: drives a batch of work items through a bounded pool of
concurrent source-driver fetches and collects one result per item.
"""

import asyncio
import logging
import time
from collections import deque
from typing import Any, Awaitable, Callable, Iterable, Optional

import aiohttp

from apk_downloader.exceptions import ConfigurationError, FetchError
from apk_downloader.models.config import RunConfig
from apk_downloader.models.results import (
    BatchReport,
    ErrorKind,
    FetchFailure,
    FetchResult,
    FetchSuccess,
    WorkItem,
)
from apk_downloader.sources.base import SourceDriver

from .cancellation import CancelSignal
from .collector import OutcomeCollector

log = logging.getLogger(__name__)

ResultHook = Callable[[FetchResult], Awaitable[Any]]


class DownloadOrchestrator:
    """
    Schedules fetches against one source driver.

    The ready queue and the in-flight task map are only touched by the
    scheduling loop inside ``run``, which executes on the event loop thread.
    Completed fetches never mutate them directly, so the parallelism ceiling
    holds under any completion order.
    """

    def __init__(
        self,
        driver: SourceDriver,
        config: RunConfig,
        cancel_signal: Optional[CancelSignal] = None,
        on_result: Optional[ResultHook] = None,
    ):
        self.driver = driver
        self.config = config
        self.cancel_signal = cancel_signal or CancelSignal()
        self.on_result = on_result

        self._queue: deque[WorkItem] = deque()
        self._in_flight: dict[asyncio.Task, WorkItem] = {}
        self._abandoned: set[asyncio.Task] = set()
        self.peak_in_flight = 0
        self.report: Optional[BatchReport] = None

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    @property
    def queued(self) -> int:
        return len(self._queue)

    @property
    def unwinding(self) -> int:
        """Timed-out driver calls that have not finished cancelling yet."""
        return len(self._abandoned)

    async def run(self, items: Iterable[WorkItem]) -> BatchReport:
        """
        Processes every item exactly once and returns the batch report.

        Raises:
            ConfigurationError: If the run configuration is unusable. Per-item
            failures are never raised, they are recorded in the report.
        """
        if self.config.parallelism < 1:
            raise ConfigurationError(
                f"Parallelism must be at least 1, got {self.config.parallelism}."
            )

        self._queue = self._build_queue(items)
        self._in_flight = {}
        self.peak_in_flight = 0
        collector = OutcomeCollector(len(self._queue))
        start_time = time.monotonic()

        if not self._queue:
            log.info("No items to download. Nothing to do.")
            self.report = collector.finalize()
            return self.report

        log.info(
            f"Downloading {collector.total} apps from [cyan]{self.config.source.value}"
            f"[/cyan] with up to {self.config.parallelism} parallel fetches."
        )

        cancel_waiter = asyncio.create_task(self.cancel_signal.wait())
        try:
            await self._schedule(collector, cancel_waiter)
        except asyncio.CancelledError:
            log.warning("[yellow]Download run interrupted. Stopping fetches...[/yellow]")
            self.cancel_signal.cancel("run task cancelled")
            await self._shutdown(collector)
            self.report = collector.finalize(
                time.monotonic() - start_time, self.peak_in_flight
            )
            raise
        finally:
            cancel_waiter.cancel()
            if self._abandoned:
                log.debug(
                    f"{len(self._abandoned)} timed-out driver calls are still unwinding."
                )

        self.report = collector.finalize(
            time.monotonic() - start_time, self.peak_in_flight
        )
        return self.report

    def _build_queue(self, items: Iterable[WorkItem]) -> deque[WorkItem]:
        queue: deque[WorkItem] = deque()
        seen: set[str] = set()
        duplicates = 0
        for item in items:
            if item.identifier in seen:
                duplicates += 1
                continue
            seen.add(item.identifier)
            queue.append(item)
        if duplicates:
            log.warning(
                f"[yellow]Removed {duplicates} duplicate app IDs from the batch.[/yellow]"
            )
        return queue

    async def _schedule(
        self, collector: OutcomeCollector, cancel_waiter: asyncio.Task
    ) -> None:
        while self._queue or self._in_flight:
            if self.cancel_signal.is_set():
                break
            self._fill_slots()

            done, _ = await asyncio.wait(
                {*self._in_flight, cancel_waiter},
                return_when=asyncio.FIRST_COMPLETED,
            )
            recorded = []
            for task in done:
                if task is cancel_waiter:
                    continue
                self._in_flight.pop(task)
                result = task.result()
                if await self._record(collector, result):
                    recorded.append(result)

            # Freed slots are refilled before the hooks run (they may write to disk)
            if not self.cancel_signal.is_set():
                self._fill_slots()
            for result in recorded:
                await self._notify(result)

        if self.cancel_signal.is_set():
            log.warning(
                f"[yellow]Cancelling run ({self.cancel_signal.reason}): "
                f"{self.in_flight} in flight, {self.queued} queued.[/yellow]"
            )
            await self._shutdown(collector)

    def _fill_slots(self) -> None:
        """Dispatches queued items in input order while slots are free."""
        while self._queue and len(self._in_flight) < self.config.parallelism:
            item = self._queue.popleft()
            task = asyncio.create_task(
                self._fetch_item(item), name=f"fetch:{item.identifier}"
            )
            self._in_flight[task] = item
            self.peak_in_flight = max(self.peak_in_flight, len(self._in_flight))
            log.debug(f"Dispatched {item.identifier} ({len(self._in_flight)} in flight)")

    async def _fetch_item(self, item: WorkItem) -> FetchResult:
        """
        Runs one driver call, bounded by the per-item timeout.

        On timeout the driver call is cancelled but not awaited: the slot is
        released immediately and whatever the driver produces later is dropped.
        """
        timeout = self.config.per_item_timeout
        if not timeout:
            return await self._invoke_driver(item)

        driver_task = asyncio.create_task(
            self._invoke_driver(item), name=f"driver:{item.identifier}"
        )
        try:
            done, _ = await asyncio.wait({driver_task}, timeout=timeout)
        except asyncio.CancelledError:
            # Run shutdown: the outer task unwinds together with the driver call
            driver_task.cancel()
            await asyncio.wait({driver_task})
            raise
        if done:
            return driver_task.result()

        driver_task.cancel()
        self._abandoned.add(driver_task)
        driver_task.add_done_callback(self._abandoned.discard)
        log.warning(
            f"[yellow]  ⏱ {item.identifier} timed out after {timeout:.1f}s[/yellow]"
        )
        return FetchFailure(
            item.identifier,
            ErrorKind.TIMEOUT,
            f"No result within {timeout:.1f}s",
        )

    async def _invoke_driver(self, item: WorkItem) -> FetchResult:
        """Calls the driver once, converting every fault into a FetchFailure."""
        identifier = item.identifier
        log.debug(f"Downloading {identifier}...")
        try:
            payload = await self.driver.fetch(identifier)
        except FetchError as e:
            return FetchFailure(identifier, e.kind, str(e))
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            return FetchFailure(
                identifier, ErrorKind.NETWORK_FAILURE, str(e) or type(e).__name__
            )
        except Exception as e:
            log.error(
                f"[red]  ✗ Unexpected driver fault for {identifier}: {e}[/red]",
                exc_info=log.getEffectiveLevel() == logging.DEBUG,
            )
            return FetchFailure(
                identifier, ErrorKind.PROTOCOL_FAULT, f"{type(e).__name__}: {e}"
            )

        if isinstance(payload, (FetchSuccess, FetchFailure)):
            if payload.identifier != identifier:
                return FetchFailure(
                    identifier,
                    ErrorKind.PROTOCOL_FAULT,
                    f"Driver answered for '{payload.identifier}' instead.",
                )
            return payload
        if not isinstance(payload, (bytes, bytearray, memoryview)):
            return FetchFailure(
                identifier,
                ErrorKind.PROTOCOL_FAULT,
                f"Driver returned {type(payload).__name__} instead of bytes.",
            )
        return FetchSuccess(identifier, bytes(payload))

    async def _collect(self, collector: OutcomeCollector, result: FetchResult) -> None:
        if await self._record(collector, result):
            await self._notify(result)

    async def _record(self, collector: OutcomeCollector, result: FetchResult) -> bool:
        if not await collector.record(result):
            return False
        if isinstance(result, FetchFailure):
            log.debug(f"{result.identifier} failed ({result.kind.value}): {result.message}")
        return True

    async def _notify(self, result: FetchResult) -> None:
        if self.on_result is not None:
            try:
                await self.on_result(result)
            except Exception as e:
                log.error(
                    f"[red]Result handler failed for {result.identifier}: {e}[/red]",
                    exc_info=log.getEffectiveLevel() == logging.DEBUG,
                )

    async def _shutdown(self, collector: OutcomeCollector) -> None:
        """
        Stops in-flight fetches and records every unresolved item as Cancelled.
        """
        tasks = list(self._in_flight)
        for task in tasks:
            task.cancel()

        stopped: list[WorkItem] = []
        if tasks:
            done, still_running = await asyncio.wait(
                tasks, timeout=self.config.grace_period
            )
            if still_running:
                log.warning(
                    f"[yellow]{len(still_running)} fetches did not stop within "
                    f"{self.config.grace_period:.1f}s; abandoning them.[/yellow]"
                )
            for task in done:
                item = self._in_flight.pop(task)
                if not task.cancelled() and task.exception() is None:
                    await self._collect(collector, task.result())
                else:
                    log.debug(f"{item.identifier} stopped before completing.")
                    stopped.append(item)

        unresolved = stopped + list(self._in_flight.values()) + list(self._queue)
        self._in_flight.clear()
        self._queue.clear()

        reason = self.cancel_signal.reason or "run cancelled"
        for item in unresolved:
            if not collector.has(item.identifier):
                await self._collect(
                    collector,
                    FetchFailure(item.identifier, ErrorKind.CANCELLED, reason),
                )


async def run(
    items: Iterable[WorkItem],
    config: RunConfig,
    driver: SourceDriver,
    *,
    cancel_signal: Optional[CancelSignal] = None,
    on_result: Optional[ResultHook] = None,
) -> BatchReport:
    """Convenience wrapper: runs one batch with a fresh orchestrator."""
    orchestrator = DownloadOrchestrator(
        driver, config, cancel_signal=cancel_signal, on_result=on_result
    )
    return await orchestrator.run(items)
