"""Ports for persisting domain aggregates."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from splkit.domain.model import Document, DocumentSet, Entity, Organization, PharmacologicClass

if TYPE_CHECKING:
    from splkit.domain.model import (
        DocumentHandle,
        DocumentSetHandle,
        EntityType,
        Guid,
        Handle,
        Oid,
    )


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class DocumentSetRepository(Repository[DocumentSet], Protocol):
    """Persistence contract for document sets (the version chains)."""

    def get(self, handle: DocumentSetHandle) -> DocumentSet | None: ...

    def get_by_set_guid(self, set_guid: Guid) -> DocumentSet | None: ...


@runtime_checkable
class DocumentRepository(Repository[Document], Protocol):
    """Persistence contract for document versions."""

    def get(self, handle: DocumentHandle) -> Document | None: ...

    def get_by_document_guid(self, document_guid: Guid) -> Document | None: ...

    def list_for_set(self, set_guid: Guid) -> list[Document]: ...

    def remove(self, document: Document) -> None: ...


@runtime_checkable
class OrganizationRepository(Repository[Organization], Protocol):
    """Persistence contract for shared organization reference data."""

    def get_by_identifier(self, root: Oid, identifier: str) -> Organization | None: ...


@runtime_checkable
class PharmacologicClassRepository(Repository[PharmacologicClass], Protocol):
    """Persistence contract for shared pharmacologic class reference data."""

    def get_by_code(self, code_system: Oid, code: str) -> PharmacologicClass | None: ...


@runtime_checkable
class EntityRepository[TEntity: Entity](Protocol):
    """Uniform handle-keyed access to one entity type."""

    @property
    def entity_type(self) -> EntityType: ...

    def get(self, handle: Handle) -> TEntity | None: ...

    def remove(self, entity: TEntity) -> None:
        """Refuses entities owned by a document (``ReferentialIntegrityError``)."""
        ...


@runtime_checkable
class EntityRegistry(Protocol):
    """Entity-type tag -> typed repository."""

    def __getitem__(self, entity_type: EntityType) -> EntityRepository[Entity]: ...

    def __contains__(self, entity_type: object) -> bool: ...

    def get(self, entity_type: EntityType, handle: Handle) -> Entity | None: ...
