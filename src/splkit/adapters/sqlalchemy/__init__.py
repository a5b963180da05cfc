"""SQLAlchemy adapter package for splkit."""

from __future__ import annotations

from .mappings import (
    CLASS_BY_ENTITY_TYPE,
    mapper_registry,
    start_mappers,
)
from .repositories import (
    SqlAlchemyDocumentRepository,
    SqlAlchemyDocumentSetRepository,
    SqlAlchemyEntityRepository,
    SqlAlchemyOrganizationRepository,
    SqlAlchemyRepositoryRegistry,
)
from .unit_of_work import (
    SqlAlchemyLabelingUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "CLASS_BY_ENTITY_TYPE",
    "SqlAlchemyDocumentRepository",
    "SqlAlchemyDocumentSetRepository",
    "SqlAlchemyEntityRepository",
    "SqlAlchemyLabelingUnitOfWork",
    "SqlAlchemyOrganizationRepository",
    "SqlAlchemyRepositoryRegistry",
    "StartupError",
    "configured_engine",
    "is_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
