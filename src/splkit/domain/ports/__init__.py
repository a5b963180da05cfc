"""Domain port definitions for adapters."""

from __future__ import annotations

from .operations import NullControl, OperationControl
from .persistence import (
    DocumentRepository,
    DocumentSetRepository,
    EntityRegistry,
    EntityRepository,
    OrganizationRepository,
    PharmacologicClassRepository,
    Repository,
)
from .spl import DocumentComparer, DocumentParser, DocumentRenderer, ParsedDocument
from .unit_of_work import (
    LabelingRepositories,
    LabelingUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "DocumentComparer",
    "DocumentParser",
    "DocumentRenderer",
    "DocumentRepository",
    "DocumentSetRepository",
    "EntityRegistry",
    "EntityRepository",
    "LabelingRepositories",
    "LabelingUnitOfWork",
    "NullControl",
    "OperationControl",
    "OrganizationRepository",
    "ParsedDocument",
    "PharmacologicClassRepository",
    "Repository",
    "RepositoryCollection",
    "UnitOfWork",
]
