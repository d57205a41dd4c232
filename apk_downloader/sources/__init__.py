"""
Source Driver Layer.

This package holds the pluggable drivers that fetch packages from each
distribution source, and the registry that picks one for a run.
"""

from typing import Optional, Union

from apk_downloader.exceptions import ConfigurationError
from apk_downloader.models.config import AppConfig, SourceSelector

from .apkpure import ApkPureDriver
from .base import HttpSourceDriver, SourceDriver
from .fdroid import FDroidDriver

DRIVERS: dict[SourceSelector, type[HttpSourceDriver]] = {
    SourceSelector.APKPURE: ApkPureDriver,
    SourceSelector.FDROID: FDroidDriver,
}


def create_driver(
    selector: Union[SourceSelector, str], settings: Optional[AppConfig] = None
) -> HttpSourceDriver:
    """
    Builds the driver for a source selection.

    Raises:
        ConfigurationError: If no driver exists for the selector.
    """
    try:
        selector = SourceSelector(str(getattr(selector, "value", selector)).lower())
        driver_cls = DRIVERS[selector]
    except (ValueError, KeyError) as e:
        known = ", ".join(s.value for s in DRIVERS)
        raise ConfigurationError(
            f"Unknown download source '{selector}'. Choose one of: {known}."
        ) from e

    settings = settings or AppConfig()
    return driver_cls(
        max_workers=settings.parallel,
        max_attempts=settings.max_attempts,
        requests_per_second=settings.requests_per_second,
        user_agent=settings.user_agent,
    )


__all__ = [
    "DRIVERS",
    "ApkPureDriver",
    "FDroidDriver",
    "HttpSourceDriver",
    "SourceDriver",
    "create_driver",
]
