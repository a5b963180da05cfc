from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from splkit.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyLabelingUnitOfWork,
    shutdown,
    startup,
)

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    startup(engine=engine, force=True)
    try:
        yield engine
    finally:
        shutdown()


@pytest.fixture
def file_engine(tmp_path: Path) -> Iterator[Engine]:
    """Engine shared by worker threads (in-memory databases are per connection)."""
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'splkit.db'}", future=True)
    startup(engine=engine, force=True)
    try:
        yield engine
    finally:
        shutdown()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(sqlite_engine: Engine) -> Callable[[], SqlAlchemyLabelingUnitOfWork]:
    def factory() -> SqlAlchemyLabelingUnitOfWork:
        return SqlAlchemyLabelingUnitOfWork()

    return factory


@pytest.fixture
def threaded_unit_of_work(file_engine: Engine) -> Callable[[], SqlAlchemyLabelingUnitOfWork]:
    def factory() -> SqlAlchemyLabelingUnitOfWork:
        return SqlAlchemyLabelingUnitOfWork()

    return factory
