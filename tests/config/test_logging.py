from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from splkit.config import ConfigurationError, configure_logging

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture(autouse=True)
def _restore_loggers() -> Iterator[None]:
    saved = {name: logging.getLogger(name).level for name in ("", "sqlalchemy.engine", "alembic")}
    yield
    for name, level in saved.items():
        logging.getLogger(name).setLevel(level)


def test_env_level_overrides_the_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SPLKIT_LOG_LEVEL", "warning")

    assert configure_logging(force=True) == logging.WARNING
    assert logging.getLogger().level == logging.WARNING


def test_database_loggers_stay_quiet_below_debug(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SPLKIT_LOG_LEVEL", raising=False)

    configure_logging(level=logging.INFO, force=True)

    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    assert logging.getLogger("alembic").level == logging.WARNING


def test_debug_opens_up_database_loggers(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SPLKIT_LOG_LEVEL", "DEBUG")

    configure_logging(force=True)

    assert logging.getLogger("sqlalchemy.engine").level == logging.DEBUG


def test_unknown_level_names_the_setting(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SPLKIT_LOG_LEVEL", "chatty")

    with pytest.raises(ConfigurationError, match="not a logging level") as excinfo:
        configure_logging(force=True)

    assert excinfo.value.setting == "SPLKIT_LOG_LEVEL"
