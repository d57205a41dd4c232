"""
The source driver capability the orchestrator depends on, and a shared
aiohttp-based implementation base for HTTP distribution sources.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, runtime_checkable
from urllib.parse import urlsplit

import aiohttp

from apk_downloader.exceptions import (
    AppNotFoundError,
    InvalidPayloadError,
    SourceAuthError,
    SourceNetworkError,
)
from apk_downloader.models.config import DEFAULT_USER_AGENT

from .rate_limiter import AdaptiveRateLimiter

log = logging.getLogger(__name__)

# Every APK (and APKPure's XAPK bundles) is a ZIP archive
APK_MAGIC = b"PK\x03\x04"


@runtime_checkable
class SourceDriver(Protocol):
    """
    Fetches one application package from one distribution source.

    ``fetch`` is called concurrently for different identifiers and must stop
    promptly when its task is cancelled. Expected failures are raised as
    ``FetchError`` subclasses.
    """

    name: str

    async def fetch(self, identifier: str) -> bytes: ...

    async def close(self) -> None: ...


@dataclass
class SourceResponse:
    """A fully read HTTP response."""

    status: int
    url: str
    content_type: str = ""
    body: bytes = field(default=b"", repr=False)

    @property
    def is_html(self) -> bool:
        return "text/html" in self.content_type.lower()

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        try:
            return json.loads(self.body)
        except ValueError as e:
            raise InvalidPayloadError(f"Malformed JSON from {self.url}: {e}") from e


class HttpSourceDriver:
    """
    Base class for drivers that talk HTTP.

    Features:
    - One connection pool per driver instance, sized from the parallelism
    - Adaptive rate limiting
    - Bounded retries with exponential backoff for transient faults
    - HTTP status to error-kind mapping
    """

    name = "http"
    RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})

    def __init__(
        self,
        max_workers: int = 4,
        max_attempts: int = 3,
        base_delay: float = 1.5,
        requests_per_second: float = 4.0,
        user_agent: str = DEFAULT_USER_AGENT,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Args:
            max_workers: The number of concurrent fetches, used to tune the pool.
            max_attempts: Attempts per request before giving up.
            base_delay: First backoff delay in seconds, doubled on every retry.
            requests_per_second: Initial request rate towards the source.
            user_agent: User-Agent header sent with every request.
            session: An externally managed session (mainly for tests).
        """
        self.max_workers = max_workers
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.user_agent = user_agent
        self._session = session
        self._owns_session = session is None
        self._rate_limiter = AdaptiveRateLimiter(
            requests_per_second, requests_per_second * 2
        )

    async def _initialize_session(self) -> aiohttp.ClientSession:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.max_workers * 2,
                limit_per_host=self.max_workers,
                ttl_dns_cache=300,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={"User-Agent": self.user_agent},
                timeout=aiohttp.ClientTimeout(total=None, sock_connect=15, sock_read=60),
            )
            self._owns_session = True
            log.debug(f"Created {self.name} session with limit_per_host={self.max_workers}")
        return self._session

    async def close(self) -> None:
        """Gracefully closes the session if this driver created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def fetch(self, identifier: str) -> bytes:
        raise NotImplementedError

    async def _get(self, url: str, identifier: str, **kwargs: Any) -> SourceResponse:
        """
        GETs a URL with rate limiting and retries, returning the full body.

        Raises:
            AppNotFoundError, SourceAuthError: For definitive HTTP answers.
            SourceNetworkError: When every attempt failed transiently.
        """
        session = await self._initialize_session()
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_attempts + 1):
            await self._rate_limiter.acquire()
            try:
                async with session.get(url, allow_redirects=True, **kwargs) as r:
                    if r.status == 429:
                        await self._rate_limiter.on_429()
                    if r.status in self.RETRY_STATUSES:
                        last_error = SourceNetworkError(
                            f"HTTP {r.status} from {urlsplit(url).netloc}"
                        )
                    else:
                        self._raise_for_status(r.status, identifier, url)
                        return SourceResponse(
                            status=r.status,
                            url=str(r.url),
                            content_type=r.headers.get("Content-Type", ""),
                            body=await r.read(),
                        )
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_error = SourceNetworkError(
                    f"{type(e).__name__} while fetching {url}: {e}"
                )

            if attempt < self.max_attempts:
                log.debug(
                    f"An error has occurred attempting to download {identifier} "
                    f"({last_error}). Retry #{attempt}..."
                )
                await asyncio.sleep(self.base_delay * (2 ** (attempt - 1)))

        log.debug(f"Giving up on {identifier} after {self.max_attempts} attempts.")
        raise last_error

    def _raise_for_status(self, status: int, identifier: str, url: str) -> None:
        if status in (404, 410):
            raise AppNotFoundError(f"{self.name} does not know '{identifier}'.")
        if status in (401, 403):
            raise SourceAuthError(f"{self.name} refused access (HTTP {status}).")
        if status >= 400:
            raise SourceNetworkError(f"HTTP {status} from {urlsplit(url).netloc}")

    def validate_apk(self, identifier: str, payload: bytes) -> bytes:
        """Ensures the payload looks like an APK archive."""
        if not payload.startswith(APK_MAGIC):
            raise InvalidPayloadError(
                f"{self.name} returned {len(payload)} bytes for '{identifier}' "
                "that are not an APK archive."
            )
        return payload
