"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from sqlalchemy import select

from splkit.adapters.sqlalchemy.mappings import (
    CLASS_BY_ENTITY_TYPE,
    document_set_table,
    document_table,
    organization_table,
    pharmacologic_class_table,
)
from splkit.domain.errors import ReferentialIntegrityError
from splkit.domain.model import (
    Document,
    DocumentSet,
    Entity,
    EntityType,
    Organization,
    PharmacologicClass,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from splkit.domain.model import (
        DocumentHandle,
        DocumentSetHandle,
        Guid,
        Handle,
        Oid,
    )


class SqlAlchemyDocumentSetRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: DocumentSet) -> None:
        self.session.add(entity)

    def get(self, handle: DocumentSetHandle) -> DocumentSet | None:
        return self.session.get(DocumentSet, handle.value)

    def get_by_set_guid(self, set_guid: Guid) -> DocumentSet | None:
        stmt = select(DocumentSet).where(document_set_table.c.set_guid == set_guid)
        return self.session.execute(stmt).scalar_one_or_none()


class SqlAlchemyDocumentRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Document) -> None:
        self.session.add(entity)

    def get(self, handle: DocumentHandle) -> Document | None:
        return self.session.get(Document, handle.value)

    def get_by_document_guid(self, document_guid: Guid) -> Document | None:
        stmt = select(Document).where(document_table.c.document_guid == document_guid)
        return self.session.execute(stmt).scalar_one_or_none()

    def list_for_set(self, set_guid: Guid) -> list[Document]:
        stmt = (
            select(Document)
            .join(document_set_table, document_table.c.document_set_id == document_set_table.c.id)
            .where(document_set_table.c.set_guid == set_guid)
            .order_by(document_table.c.version_number)
        )
        return list(self.session.execute(stmt).scalars())

    def remove(self, document: Document) -> None:
        document_set = document.document_set
        if document_set is not None:
            document_set.remove_document(document)
        self.session.delete(document)


class SqlAlchemyOrganizationRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Organization) -> None:
        self.session.add(entity)

    def get_by_identifier(self, root: Oid, identifier: str) -> Organization | None:
        stmt = (
            select(Organization)
            .where(organization_table.c.identifier_root == root)
            .where(organization_table.c.identifier == identifier)
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()


class SqlAlchemyPharmacologicClassRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: PharmacologicClass) -> None:
        self.session.add(entity)

    def get_by_code(self, code_system: Oid, code: str) -> PharmacologicClass | None:
        stmt = (
            select(PharmacologicClass)
            .where(pharmacologic_class_table.c.class_code_system == code_system)
            .where(pharmacologic_class_table.c.class_code == code)
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()


class SqlAlchemyEntityRepository[TEntity: Entity]:
    """Uniform get/remove over one entity type, keyed by handle."""

    # Entities that own their subtree; everything else is removed with its document.
    REMOVABLE: frozenset[EntityType] = frozenset({EntityType.DOCUMENT})

    def __init__(self, session: Session, entity_cls: type[TEntity]) -> None:
        self.session = session
        self._entity_cls = entity_cls

    @property
    def entity_type(self) -> EntityType:
        return self._entity_cls.ENTITY_TYPE

    def get(self, handle: Handle) -> TEntity | None:
        entity = self.session.get(self._entity_cls, handle.value)
        if entity is None:
            return None
        # component handles are shared by several entity types
        if type(entity.handle) is not type(handle):
            return None
        return entity

    def remove(self, entity: TEntity) -> None:
        if self.entity_type not in self.REMOVABLE:
            raise ReferentialIntegrityError(
                f"{self.entity_type.value} is owned by its document; remove the document instead"
            )
        if isinstance(entity, Document) and entity.document_set is not None:
            entity.document_set.remove_document(entity)
        self.session.delete(entity)


class SqlAlchemyRepositoryRegistry:
    """Maps entity-type tags to typed repositories."""

    def __init__(self, session: Session) -> None:
        self._repositories = {
            entity_type: SqlAlchemyEntityRepository(session, entity_cls)
            for entity_type, entity_cls in CLASS_BY_ENTITY_TYPE.items()
        }

    def __getitem__(self, entity_type: EntityType) -> SqlAlchemyEntityRepository[Entity]:
        return self._repositories[entity_type]

    def __contains__(self, entity_type: object) -> bool:
        return entity_type in self._repositories

    def get(self, entity_type: EntityType, handle: Handle) -> Entity | None:
        return self[entity_type].get(handle)


if TYPE_CHECKING:
    from splkit.domain.ports.persistence import (
        DocumentRepository,
        DocumentSetRepository,
        EntityRegistry,
        OrganizationRepository,
        PharmacologicClassRepository,
    )

    _session_stub = cast("Session", object())
    _set_repo: DocumentSetRepository = SqlAlchemyDocumentSetRepository(_session_stub)
    _document_repo: DocumentRepository = SqlAlchemyDocumentRepository(_session_stub)
    _organization_repo: OrganizationRepository = SqlAlchemyOrganizationRepository(_session_stub)
    _class_repo: PharmacologicClassRepository = SqlAlchemyPharmacologicClassRepository(_session_stub)
    _registry: EntityRegistry = SqlAlchemyRepositoryRegistry(_session_stub)
