"""Narrative structure: sections and their ordered content blocks."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from splkit.domain.model.entity import SequencedEntity
from splkit.domain.model.enums import EntityType
from splkit.domain.model.indexing import IndexedSubstance

if TYPE_CHECKING:
    from collections.abc import Iterator

    from splkit.domain.model.document import Document
    from splkit.domain.model.primitives import CodedValue, Guid, HL7Timestamp
    from splkit.domain.model.product import Product


@dataclass(eq=False, kw_only=True)
class Section(SequencedEntity):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.SECTION

    section_guid: Guid | None = None
    anchor_id: str | None = None
    code: CodedValue | None = None
    title: str | None = None
    effective_time: HL7Timestamp | None = None

    _document: Document | None = field(default=None, repr=False)
    _parent: Section | None = field(default=None, repr=False)

    _children: list[Section] = field(default_factory=list["Section"], repr=False)
    _blocks: list[ContentBlock] = field(default_factory=list["ContentBlock"], repr=False)
    _products: list[Product] = field(default_factory=list["Product"], repr=False)
    _substances: list[IndexedSubstance] = field(
        default_factory=list["IndexedSubstance"], repr=False
    )

    @property
    def document(self) -> Document | None:
        return self._document

    def _set_document(self, document: Document) -> None:
        self._document = document

    @property
    def parent(self) -> Section | None:
        return self._parent

    @property
    def children(self) -> tuple[Section, ...]:
        return tuple(self._children)

    @property
    def blocks(self) -> tuple[ContentBlock, ...]:
        return tuple(self._blocks)

    @property
    def products(self) -> tuple[Product, ...]:
        return tuple(self._products)

    @property
    def substances(self) -> tuple[IndexedSubstance, ...]:
        return tuple(self._substances)

    @property
    def depth(self) -> int:
        depth = 0
        node = self._parent
        while node is not None:
            depth += 1
            node = node.parent
        return depth

    def walk(self) -> Iterator[Section]:
        """This section and all descendants, depth first in document order."""
        yield self
        for child in self._children:
            yield from child.walk()

    # Commands (ownership here)
    def add_subsection(self, child: Section) -> Section:
        if child is self or child in self.ancestors():
            raise ValueError("a section cannot contain itself")
        child.sequence_number = len(self._children) + 1
        child._parent = self  # noqa: SLF001
        if child not in self._children:
            self._children.append(child)
        if self._document is not None:
            self._document._attach_section(child)  # pyright: ignore[reportPrivateUsage] # noqa: SLF001
        return child

    def ancestors(self) -> tuple[Section, ...]:
        found: list[Section] = []
        node = self._parent
        while node is not None:
            found.append(node)
            node = node.parent
        return tuple(found)

    def add_block(self, *, block_type: str, markup: str | None, tail: str | None = None) -> ContentBlock:
        block = ContentBlock(
            _section=self,
            block_type=block_type,
            markup=markup,
            tail=tail,
            sequence_number=len(self._blocks) + 1,
        )
        if block not in self._blocks:
            self._blocks.append(block)
        return block

    def add_indexed_substance(
        self, *, code: CodedValue | None, name: str | None = None
    ) -> IndexedSubstance:
        substance = IndexedSubstance(
            _section=self, code=code, name=name, sequence_number=len(self._substances) + 1
        )
        if substance not in self._substances:
            self._substances.append(substance)
        return substance

    def place_product(self, product: Product) -> Product:
        product.sequence_number = len(self._products) + 1
        product._set_section(self)  # pyright: ignore[reportPrivateUsage] # noqa: SLF001
        if product not in self._products:
            self._products.append(product)
        if self._document is not None:
            product._set_document(self._document)  # pyright: ignore[reportPrivateUsage] # noqa: SLF001
            self._document._attach_product(product)  # pyright: ignore[reportPrivateUsage] # noqa: SLF001
        return product


@dataclass(eq=False, kw_only=True)
class ContentBlock(SequencedEntity):
    """One top-level child of a section's narrative ``text``.

    ``markup`` holds the element serialized without namespaces and with
    whitespace runs collapsed; the pseudo block type ``#text`` holds character
    data that precedes the first element.
    """

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.CONTENT_BLOCK

    TEXT_RUN: ClassVar[str] = "#text"

    _section: Section = field(repr=False)
    block_type: str
    markup: str | None = None
    tail: str | None = None

    @property
    def section(self) -> Section:
        return self._section

    @property
    def is_text_run(self) -> bool:
        return self.block_type == self.TEXT_RUN
