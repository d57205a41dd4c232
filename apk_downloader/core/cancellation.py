"""
Explicit cancellation signal shared between the CLI and a running orchestrator.
"""

import asyncio
import logging
from typing import Optional

log = logging.getLogger(__name__)


class CancelSignal:
    """
    A one-shot stop request for a download run.

    Must be set from the event loop thread (e.g. via
    ``loop.add_signal_handler``); use ``cancel_threadsafe`` from anywhere else.
    """

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled by user") -> None:
        if self._event.is_set():
            return
        self.reason = reason
        log.debug(f"Cancellation requested: {reason}")
        self._event.set()

    def cancel_threadsafe(
        self, loop: asyncio.AbstractEventLoop, reason: str = "cancelled by user"
    ) -> None:
        loop.call_soon_threadsafe(self.cancel, reason)

    def is_set(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()
