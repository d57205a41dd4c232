"""
Pydantic models for run and application configuration.
Provides robust validation for all settings.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0"
)


class SourceSelector(str, Enum):
    """Distribution sources a run can download from."""

    APKPURE = "apkpure"
    FDROID = "fdroid"


class RunConfig(BaseModel):
    """Settings that stay fixed for the lifetime of one orchestrator run."""

    model_config = ConfigDict(frozen=True)

    parallelism: int = 4
    source: SourceSelector = SourceSelector.APKPURE
    per_item_timeout: Optional[float] = None
    grace_period: float = 5.0

    @field_validator("parallelism")
    @classmethod
    def validate_parallelism(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Parallelism must be at least 1.")
        return v

    @field_validator("per_item_timeout")
    @classmethod
    def validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        """A timeout of zero or less means 'no timeout'."""
        if v is not None and v <= 0:
            return None
        return v

    @field_validator("grace_period")
    @classmethod
    def validate_grace_period(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Grace period cannot be negative.")
        return v


class AppConfig(BaseModel):
    """A validated model of the INI configuration file plus CLI overrides."""

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    # Scheduling
    parallel: int = 4
    download_source: SourceSelector = SourceSelector.APKPURE
    per_item_timeout: float = 0.0
    grace_period: float = 5.0

    # Source driver behaviour
    max_attempts: int = 3
    requests_per_second: float = 4.0
    user_agent: str = DEFAULT_USER_AGENT

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)

    @field_validator("parallel")
    @classmethod
    def validate_parallel(cls, v: int) -> int:
        """Ensures a reasonable number of concurrent fetches."""
        if v < 1 or v > 64:
            raise ValueError("Parallel fetches must be between 1 and 64.")
        return v

    @field_validator("download_source", mode="before")
    @classmethod
    def normalize_source(cls, v):
        # Accept the original tool's spelling (APKPure, GooglePlay, ...)
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("per_item_timeout")
    @classmethod
    def validate_per_item_timeout(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Per-item timeout cannot be negative (0 disables it).")
        return v

    @field_validator("max_attempts")
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        if v < 1 or v > 10:
            raise ValueError("Max attempts must be between 1 and 10.")
        return v

    @field_validator("requests_per_second")
    @classmethod
    def validate_rate(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Requests per second must be positive.")
        return v

    def to_run_config(self) -> RunConfig:
        return RunConfig(
            parallelism=self.parallel,
            source=self.download_source,
            per_item_timeout=self.per_item_timeout or None,
            grace_period=self.grace_period,
        )

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
