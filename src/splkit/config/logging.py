"""Logging setup for the splkit CLI.

``SPLKIT_LOG_LEVEL`` overrides the level chosen by the caller. SQLAlchemy and
Alembic stay at WARNING unless splkit itself logs at DEBUG, so an import run
prints one line per document rather than every statement.
"""

from __future__ import annotations

import logging
import os

from .errors import ConfigurationError

LOG_LEVEL_ENV = "SPLKIT_LOG_LEVEL"
QUIET_LOGGERS = ("sqlalchemy.engine", "alembic")


def _level_from_env(default: int) -> int:
    raw = os.getenv(LOG_LEVEL_ENV)
    if raw is None or not raw.strip():
        return default
    level = logging.getLevelNamesMapping().get(raw.strip().upper())
    if level is None:
        raise ConfigurationError(LOG_LEVEL_ENV, f"is not a logging level: {raw!r}")
    return level


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> int:
    """Initialise the root logger and return the level in effect.

    Pass ``force=True`` to reconfigure during tests.
    """

    effective = _level_from_env(level)
    logging.basicConfig(
        level=effective,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(
            logging.DEBUG if effective <= logging.DEBUG else logging.WARNING
        )
    return effective
