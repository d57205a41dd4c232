"""
Data Models Layer.

This package contains the dataclasses and Pydantic models that define the
core data structures used throughout the application: work items, fetch
results, batch reports and configuration.
"""

from .config import AppConfig, RunConfig, SourceSelector
from .results import (
    BatchReport,
    ErrorKind,
    FetchFailure,
    FetchResult,
    FetchSuccess,
    WorkItem,
)

__all__ = [
    "AppConfig",
    "BatchReport",
    "ErrorKind",
    "FetchFailure",
    "FetchResult",
    "FetchSuccess",
    "RunConfig",
    "SourceSelector",
    "WorkItem",
]
