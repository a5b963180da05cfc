"""Job tracker defaults: worker pool size and result retention."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .errors import ConfigurationError

DEFAULT_JOB_WORKERS = 4
DEFAULT_RETENTION_SECONDS = 3600.0


@dataclass(frozen=True, slots=True)
class JobConfig:
    max_workers: int = DEFAULT_JOB_WORKERS
    retention_seconds: float = DEFAULT_RETENTION_SECONDS

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ConfigurationError("SPLKIT_JOB_WORKERS", "must be at least 1")
        if self.retention_seconds < 0:
            raise ConfigurationError("SPLKIT_JOB_RETENTION_SECONDS", "must not be negative")


def _read_number[T: (int, float)](name: str, cast: type[T], default: T) -> T:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(name, f"must be a number, got {raw!r}") from exc


def get_job_config() -> JobConfig:
    return JobConfig(
        max_workers=_read_number("SPLKIT_JOB_WORKERS", int, DEFAULT_JOB_WORKERS),
        retention_seconds=_read_number(
            "SPLKIT_JOB_RETENTION_SECONDS", float, DEFAULT_RETENTION_SECONDS
        ),
    )
