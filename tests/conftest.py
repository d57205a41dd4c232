"""
Shared fakes for the test suite: scripted source drivers and a stand-in for
aiohttp.ClientSession.
"""

import asyncio
from typing import Any

import pytest

from apk_downloader.models.results import WorkItem

APK_BYTES = b"PK\x03\x04" + b"\x00" * 60

# Sentinel: the fetch never completes on its own
HANG = object()


class ScriptedDriver:
    """
    A source driver whose behaviour per app ID is scripted.

    Outcomes may be bytes, an exception instance (raised) or HANG. Delays are
    in seconds and applied before the outcome.
    """

    name = "scripted"

    def __init__(
        self,
        outcomes: dict[str, Any] | None = None,
        delays: dict[str, float] | None = None,
        default: bytes = APK_BYTES,
    ):
        self.outcomes = outcomes or {}
        self.delays = delays or {}
        self.default = default
        self.calls: list[str] = []
        self.cancelled: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def fetch(self, identifier: str):
        self.calls.append(identifier)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(identifier, 0))
            outcome = self.outcomes.get(identifier, self.default)
            if outcome is HANG:
                await asyncio.Event().wait()
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        except asyncio.CancelledError:
            self.cancelled.append(identifier)
            raise
        finally:
            self.in_flight -= 1

    async def close(self) -> None:
        self.closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class GatedDriver(ScriptedDriver):
    """A driver whose fetches block until the test releases them."""

    name = "gated"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._gates: dict[str, asyncio.Event] = {}

    def _gate(self, identifier: str) -> asyncio.Event:
        return self._gates.setdefault(identifier, asyncio.Event())

    def release(self, identifier: str) -> None:
        self._gate(identifier).set()

    async def fetch(self, identifier: str):
        self.calls.append(identifier)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await self._gate(identifier).wait()
            outcome = self.outcomes.get(identifier, self.default)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        except asyncio.CancelledError:
            self.cancelled.append(identifier)
            raise
        finally:
            self.in_flight -= 1


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Polls the event loop until predicate() is true."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


class FakeResponse:
    def __init__(
        self,
        status: int = 200,
        body: bytes = APK_BYTES,
        content_type: str = "application/vnd.android.package-archive",
        url: str = "https://example.invalid/file",
    ):
        self.status = status
        self.body = body
        self.headers = {"Content-Type": content_type}
        self.url = url

    async def read(self) -> bytes:
        return self.body

    async def text(self) -> str:
        return self.body.decode("utf-8")

    def raise_for_status(self) -> None:
        if self.status >= 400:
            raise RuntimeError(f"HTTP {self.status}")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False


class FakeSession:
    """
    Minimal aiohttp.ClientSession stand-in.

    ``routes`` maps a URL to a response, an exception, or a list of those
    consumed one request at a time (the last entry repeats).
    """

    def __init__(self, routes: dict[str, Any]):
        self.routes = {
            url: list(value) if isinstance(value, list) else [value]
            for url, value in routes.items()
        }
        self.requests: list[str] = []
        self.closed = False

    def get(self, url: str, **kwargs: Any):
        self.requests.append(url)
        if url not in self.routes:
            return FakeResponse(status=404, body=b"not found", content_type="text/plain")
        queue = self.routes[url]
        outcome = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def close(self) -> None:
        self.closed = True


def make_items(*identifiers: str) -> list[WorkItem]:
    return [WorkItem(identifier) for identifier in identifiers]


@pytest.fixture
def apk_bytes() -> bytes:
    return APK_BYTES
