"""
Value types flowing through a download run: work items, per-item fetch
results and the aggregated batch report.
"""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


class ErrorKind(str, Enum):
    """Categories of per-item failure recorded in a batch report."""

    NOT_FOUND = "NotFound"
    AUTH_FAILURE = "AuthFailure"
    NETWORK_FAILURE = "NetworkFailure"
    TIMEOUT = "Timeout"
    CANCELLED = "Cancelled"
    PROTOCOL_FAULT = "ProtocolFault"


@dataclass(frozen=True)
class WorkItem:
    """One application ID scheduled for download."""

    identifier: str
    source_hint: Optional[str] = None

    def __post_init__(self):
        if not self.identifier or not self.identifier.strip():
            raise ValueError("WorkItem identifier must be a non-empty string.")


@dataclass(frozen=True)
class FetchSuccess:
    identifier: str
    payload: bytes = field(repr=False)

    ok = True

    @property
    def byte_length(self) -> int:
        return len(self.payload)


@dataclass(frozen=True)
class FetchFailure:
    identifier: str
    kind: ErrorKind
    message: str = ""

    ok = False


FetchResult = Union[FetchSuccess, FetchFailure]


@dataclass
class BatchReport:
    """
    Aggregated outcome of one run.

    ``succeeded`` and ``failed`` are ordered by completion, not by input
    order. Their combined length always equals ``total``.
    """

    total: int = 0
    succeeded: list[str] = field(default_factory=list)
    failed: list[tuple[str, ErrorKind]] = field(default_factory=list)
    messages: dict[str, str] = field(default_factory=dict)
    bytes_downloaded: int = 0
    duration_s: float = 0.0
    peak_in_flight: int = 0

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def failed_identifiers(self) -> list[str]:
        return [identifier for identifier, _ in self.failed]

    def counts_by_kind(self) -> dict[ErrorKind, int]:
        """Number of failures per error kind."""
        return dict(Counter(kind for _, kind in self.failed))

    def to_dict(self) -> dict[str, Any]:
        """Serializable form used by the JSON report writer."""
        return {
            "total": self.total,
            "succeeded": list(self.succeeded),
            "failed": [
                {
                    "identifier": identifier,
                    "kind": kind.value,
                    "message": self.messages.get(identifier, ""),
                }
                for identifier, kind in self.failed
            ],
            "bytes_downloaded": self.bytes_downloaded,
            "duration_seconds": round(self.duration_s, 2),
            "peak_in_flight": self.peak_in_flight,
        }
