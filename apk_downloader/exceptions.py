"""
Defines custom exceptions for the application to allow for more specific error handling.
"""

from apk_downloader.models.results import ErrorKind


class ApkDownloaderError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(ApkDownloaderError):
    """Raised for invalid run settings or configuration files."""


class OrchestrationError(ApkDownloaderError):
    """Raised when the orchestrator's bookkeeping is inconsistent."""


class FetchError(ApkDownloaderError):
    """
    Base class for the normal, expected failures of a source driver.

    Each subclass maps to one ErrorKind recorded in the batch report.
    """

    kind: ErrorKind = ErrorKind.PROTOCOL_FAULT


class AppNotFoundError(FetchError):
    """Raised when the selected source does not know the application ID."""

    kind = ErrorKind.NOT_FOUND


class SourceAuthError(FetchError):
    """Raised when the source rejects our credentials or session."""

    kind = ErrorKind.AUTH_FAILURE


class SourceNetworkError(FetchError):
    """Raised for transport-level faults after internal retries are exhausted."""

    kind = ErrorKind.NETWORK_FAILURE


class InvalidPayloadError(FetchError):
    """Raised when a source answers with something that is not an APK."""

    kind = ErrorKind.PROTOCOL_FAULT
