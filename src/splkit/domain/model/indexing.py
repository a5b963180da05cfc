"""Indexing data: substances a section indexes and their pharmacologic classes.

``PharmacologicClass`` is shared reference data, like ``Organization``; the
same class code resolves to one row across documents. The ordered links that
attach classes to an indexed substance belong to the document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from splkit.domain.model.entity import Entity, SequencedEntity
from splkit.domain.model.enums import EntityType

if TYPE_CHECKING:
    from splkit.domain.model.primitives import CodedValue, Oid
    from splkit.domain.model.section import Section


@dataclass(eq=False, kw_only=True)
class PharmacologicClass(Entity):
    """An established pharmacologic class or mechanism (MED-RT / MeSH concept)."""

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.PHARMACOLOGIC_CLASS

    code: CodedValue

    @property
    def key(self) -> tuple[Oid, str] | None:
        if not self.code.code or not self.code.code_system:
            return None
        return (self.code.code_system, self.code.code)


@dataclass(eq=False, kw_only=True)
class IndexedSubstance(SequencedEntity):
    """``subject/identifiedSubstance`` of a section: a substance and its classes."""

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.INDEXED_SUBSTANCE

    _section: Section = field(repr=False)
    code: CodedValue | None = None
    name: str | None = None

    _class_links: list[PharmacologicClassLink] = field(
        default_factory=list["PharmacologicClassLink"], repr=False
    )

    @property
    def section(self) -> Section:
        return self._section

    @property
    def class_links(self) -> tuple[PharmacologicClassLink, ...]:
        return tuple(self._class_links)

    @property
    def classes(self) -> tuple[PharmacologicClass, ...]:
        return tuple(link.pharmacologic_class for link in self._class_links)

    def add_class(self, pharmacologic_class: PharmacologicClass) -> PharmacologicClassLink:
        link = PharmacologicClassLink(
            _substance=self,
            _pharmacologic_class=pharmacologic_class,
            sequence_number=len(self._class_links) + 1,
        )
        if link not in self._class_links:
            self._class_links.append(link)
        return link


@dataclass(eq=False, kw_only=True)
class PharmacologicClassLink(SequencedEntity):
    """Ordered edge from an indexed substance to a shared pharmacologic class."""

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.PHARMACOLOGIC_CLASS_LINK

    _substance: IndexedSubstance = field(repr=False)
    _pharmacologic_class: PharmacologicClass

    @property
    def substance(self) -> IndexedSubstance:
        return self._substance

    @property
    def pharmacologic_class(self) -> PharmacologicClass:
        return self._pharmacologic_class

    def _replace_class(self, pharmacologic_class: PharmacologicClass) -> None:
        self._pharmacologic_class = pharmacologic_class
