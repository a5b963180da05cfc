"""Document-level entities. Ownership lives on aggregate roots.

Aggregate roots here:
- DocumentSet owns its Document versions (1:n) and the handle counter
- Document owns authors, sections, products and active moieties
- Organization is shared reference data, linked by DocumentAuthor
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING, ClassVar

from splkit.domain.errors import VersionConflict
from splkit.domain.model.entity import Entity, SequencedEntity
from splkit.domain.model.enums import AuthorRole, EntityType

if TYPE_CHECKING:
    from collections.abc import Iterator

    from splkit.domain.model.primitives import CodedValue, Guid, HL7Timestamp, Oid
    from splkit.domain.model.product import ActiveMoiety, Product
    from splkit.domain.model.section import Section


@dataclass(eq=False, kw_only=True)
class DocumentSet(Entity):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.DOCUMENT_SET

    set_guid: Guid
    # highest handle ever issued for entities of this set; never decreases
    last_handle: int = 0

    _documents: list[Document] = field(default_factory=list["Document"], repr=False)

    @property
    def documents(self) -> tuple[Document, ...]:
        """All versions, oldest first."""
        return tuple(sorted(self._documents, key=lambda d: d.version_number))

    @property
    def versions(self) -> tuple[int, ...]:
        return tuple(d.version_number for d in self.documents)

    @property
    def current(self) -> Document | None:
        if not self._documents:
            return None
        return max(self._documents, key=lambda d: d.version_number)

    def version(self, version_number: int) -> Document | None:
        for document in self._documents:
            if document.version_number == version_number:
                return document
        return None

    def add_document(self, document: Document) -> None:
        existing = self.version(document.version_number)
        if existing is not None and existing is not document:
            raise VersionConflict(
                f"set {self.set_guid} already holds version {document.version_number}"
            )
        # the collection append cascades the document into the owning session
        if document not in self._documents:
            self._documents.append(document)
        document._set_document_set(self)  # pyright: ignore[reportPrivateUsage] # noqa: SLF001

    def remove_document(self, document: Document) -> None:
        self._documents.remove(document)


@dataclass(eq=False, kw_only=True)
class Document(Entity):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.DOCUMENT

    document_guid: Guid
    version_number: int
    title: str | None = None
    document_type: CodedValue | None = None
    effective_time: HL7Timestamp | None = None
    schema_location: str | None = None
    content_hash: str = ""
    source_payload: bytes | None = None
    imported_at: datetime | None = None

    _document_set: DocumentSet | None = field(default=None, repr=False)

    # Owned children (flat; trees are reconstructed from parent links)
    _authors: list[DocumentAuthor] = field(default_factory=list["DocumentAuthor"], repr=False)
    _sections: list[Section] = field(default_factory=list["Section"], repr=False)
    _products: list[Product] = field(default_factory=list["Product"], repr=False)
    _moieties: list[ActiveMoiety] = field(default_factory=list["ActiveMoiety"], repr=False)

    @property
    def document_set(self) -> DocumentSet | None:
        return self._document_set

    def _set_document_set(self, document_set: DocumentSet) -> None:
        self._document_set = document_set

    @property
    def effective_date(self) -> date | None:
        """Calendar date of ``effective_time``; None when absent or not a date."""
        if not self.effective_time or len(self.effective_time) < 8:  # noqa: PLR2004
            return None
        try:
            return datetime.strptime(self.effective_time[:8], "%Y%m%d").date()  # noqa: DTZ007
        except ValueError:
            return None

    @property
    def set_guid(self) -> Guid | None:
        return self._document_set.set_guid if self._document_set is not None else None

    @property
    def is_current(self) -> bool:
        return self._document_set is not None and self._document_set.current is self

    @property
    def authors(self) -> tuple[DocumentAuthor, ...]:
        """Top-level authors (labelers), in document order."""
        return tuple(
            sorted(
                (a for a in self._authors if a.parent is None),
                key=lambda a: a.sequence_number,
            )
        )

    @property
    def all_authors(self) -> tuple[DocumentAuthor, ...]:
        return tuple(self._authors)

    @property
    def sections(self) -> tuple[Section, ...]:
        """Top-level sections, in document order."""
        return tuple(
            sorted(
                (s for s in self._sections if s.parent is None),
                key=lambda s: s.sequence_number,
            )
        )

    @property
    def all_sections(self) -> tuple[Section, ...]:
        return tuple(self._sections)

    @property
    def products(self) -> tuple[Product, ...]:
        return tuple(self._products)

    @property
    def moieties(self) -> tuple[ActiveMoiety, ...]:
        return tuple(self._moieties)

    # Commands (ownership here)
    def add_author(self, organization: Organization, *, declared_name: str | None = None) -> DocumentAuthor:
        author = DocumentAuthor(
            _document=self,
            _organization=organization,
            role=AuthorRole.LABELER,
            declared_name=declared_name,
            sequence_number=len(self.authors) + 1,
        )
        if author not in self._authors:
            self._authors.append(author)
        return author

    def add_section(self, section: Section) -> Section:
        if section.parent is not None:
            raise ValueError("subsections are added through their parent section")
        section.sequence_number = len(self.sections) + 1
        self._attach_section(section)
        return section

    def find_moiety(self, key: str) -> ActiveMoiety | None:
        for moiety in self._moieties:
            if moiety.key == key:
                return moiety
        return None

    def add_moiety(self, moiety: ActiveMoiety) -> ActiveMoiety:
        if self.find_moiety(moiety.key) is not None:
            raise ValueError(f"active moiety {moiety.key!r} already declared")
        moiety._set_document(self)  # pyright: ignore[reportPrivateUsage] # noqa: SLF001
        if moiety not in self._moieties:
            self._moieties.append(moiety)
        return moiety

    def owned_entities(self) -> Iterator[Entity]:
        """Every entity whose lifetime is bound to this document (shared reference data excluded)."""
        yield from self._authors
        for author in self._authors:
            for operation in author.operations:
                yield operation
                yield from operation.products
        yield from self._moieties
        for section in self._sections:
            yield section
            yield from section.blocks
            for substance in section.substances:
                yield substance
                yield from substance.class_links
        for product in self._products:
            yield product
            yield from product.owned_entities()

    # Friend primitives (called only by owners)
    def _attach_section(self, section: Section) -> None:
        section._set_document(self)  # pyright: ignore[reportPrivateUsage] # noqa: SLF001
        if section not in self._sections:
            self._sections.append(section)

    def _attach_author(self, author: DocumentAuthor) -> None:
        if author not in self._authors:
            self._authors.append(author)

    def _attach_product(self, product: Product) -> None:
        if product not in self._products:
            self._products.append(product)


@dataclass(eq=False, kw_only=True)
class Organization(Entity):
    """Shared reference data; the same DUNS number resolves to one row."""

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.ORGANIZATION

    name: str | None = None
    identifier: str | None = None
    identifier_root: Oid | None = None

    @property
    def is_identified(self) -> bool:
        return bool(self.identifier) and bool(self.identifier_root)


@dataclass(eq=False, kw_only=True)
class DocumentAuthor(SequencedEntity):
    """One node of the labeler > registrant > establishment hierarchy."""

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.DOCUMENT_AUTHOR

    _document: Document = field(repr=False)
    _organization: Organization
    role: AuthorRole
    # name as written in this document; the organization row keeps the first one seen
    declared_name: str | None = None
    # author/time/@value; only top-level authors carry one
    time: HL7Timestamp | None = None
    _parent: DocumentAuthor | None = field(default=None, repr=False)

    _children: list[DocumentAuthor] = field(default_factory=list["DocumentAuthor"], repr=False)
    _operations: list[BusinessOperation] = field(
        default_factory=list["BusinessOperation"], repr=False
    )

    @property
    def document(self) -> Document:
        return self._document

    @property
    def organization(self) -> Organization:
        return self._organization

    def _replace_organization(self, organization: Organization) -> None:
        self._organization = organization

    @property
    def parent(self) -> DocumentAuthor | None:
        return self._parent

    @property
    def children(self) -> tuple[DocumentAuthor, ...]:
        return tuple(self._children)

    @property
    def operations(self) -> tuple[BusinessOperation, ...]:
        return tuple(self._operations)

    def add_child(self, organization: Organization, *, declared_name: str | None = None) -> DocumentAuthor:
        depth = 1
        node = self
        while node.parent is not None:
            depth += 1
            node = node.parent
        child = DocumentAuthor(
            _document=self._document,
            _organization=organization,
            _parent=self,
            role=AuthorRole.for_depth(depth),
            declared_name=declared_name,
            sequence_number=len(self._children) + 1,
        )
        if child not in self._children:
            self._children.append(child)
        self._document._attach_author(child)  # pyright: ignore[reportPrivateUsage] # noqa: SLF001
        return child

    def add_operation(self, operation: CodedValue | None) -> BusinessOperation:
        op = BusinessOperation(
            _author=self,
            operation=operation,
            sequence_number=len(self._operations) + 1,
        )
        if op not in self._operations:
            self._operations.append(op)
        return op


@dataclass(eq=False, kw_only=True)
class BusinessOperation(SequencedEntity):
    """An establishment's declared activity (manufacture, label, ...) for listed products."""

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.BUSINESS_OPERATION

    _author: DocumentAuthor = field(repr=False)
    operation: CodedValue | None = None

    _products: list[OperationProduct] = field(default_factory=list["OperationProduct"], repr=False)

    @property
    def author(self) -> DocumentAuthor:
        return self._author

    @property
    def products(self) -> tuple[OperationProduct, ...]:
        return tuple(self._products)

    def add_product_code(self, code: CodedValue) -> OperationProduct:
        link = OperationProduct(
            _operation=self,
            product_code=code,
            sequence_number=len(self._products) + 1,
        )
        if link not in self._products:
            self._products.append(link)
        return link


@dataclass(eq=False, kw_only=True)
class OperationProduct(SequencedEntity):
    """Role-qualified link between an establishment operation and a product.

    The product code is kept as written; ``product`` is filled in when the code
    names a product declared in the same document.
    """

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.OPERATION_PRODUCT

    _operation: BusinessOperation = field(repr=False)
    product_code: CodedValue
    _product: Product | None = field(default=None, repr=False)

    @property
    def operation(self) -> BusinessOperation:
        return self._operation

    @property
    def product(self) -> Product | None:
        return self._product

    def link(self, product: Product) -> None:
        self._product = product
