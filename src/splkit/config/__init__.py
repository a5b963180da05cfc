"""Application configuration helpers."""

from __future__ import annotations

from .errors import ConfigurationError
from .jobs import JobConfig, get_job_config
from .logging import configure_logging
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "JobConfig",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_job_config",
    "get_storage_config",
]
