"""Where splkit keeps its database.

``DATABASE_URI`` wins when set. Otherwise the SQLite file ``splkit.db`` lives in
``SPLKIT_DATA_DIR``, falling back to the platform data directory
(``$XDG_DATA_HOME/splkit`` or ``%LOCALAPPDATA%\\splkit``).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from .errors import ConfigurationError

APP_DIR_NAME: Final[str] = "splkit"
DEFAULT_DB_FILENAME: Final[str] = "splkit.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def database_path(self, *, ensure: bool = True) -> Path:
        data_dir = self.resolve_data_dir()
        if ensure:
            data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir / self.database_filename

    def database_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.database_path()}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def _default_data_dir() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        base_path = Path(base) if base else (Path.home() / "AppData" / "Local")
    else:
        base = os.getenv("XDG_DATA_HOME")
        base_path = Path(base) if base else (Path.home() / ".local" / "share")
    return base_path / APP_DIR_NAME


def get_storage_config() -> StorageConfig:
    env_dir = os.getenv("SPLKIT_DATA_DIR")
    data_dir = Path(env_dir) if env_dir else _default_data_dir()
    return StorageConfig(data_dir=data_dir)


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """Resolve the database URL; a malformed ``DATABASE_URI`` raises ``ConfigurationError``."""

    env_uri = os.getenv("DATABASE_URI", "").strip()
    if not env_uri:
        return DatabaseConfig(uri=(storage or get_storage_config()).database_uri())
    try:
        make_url(env_uri)
    except ArgumentError as exc:
        raise ConfigurationError("DATABASE_URI", f"is not a SQLAlchemy URL: {env_uri!r}") from exc
    return DatabaseConfig(uri=env_uri)
