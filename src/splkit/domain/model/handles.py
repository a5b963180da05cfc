"""Typed, opaque handles for entities.

A handle wraps the surrogate id of exactly one entity type. Tokens render as
``<prefix>_<hex>`` so a document handle can never be accepted where a product
handle is expected.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Self
from uuid import UUID

from splkit.domain.model.enums import EntityType


class InvalidHandle(ValueError):
    """Raised when a token is malformed or names a different entity type."""


@dataclass(frozen=True, slots=True)
class Handle:
    value: UUID

    ENTITY_TYPE: ClassVar[EntityType]
    PREFIX: ClassVar[str]

    def __str__(self) -> str:
        return f"{self.PREFIX}_{self.value.hex}"

    @property
    def token(self) -> str:
        return str(self)

    @classmethod
    def parse(cls, token: str) -> Self:
        prefix, sep, raw = token.strip().partition("_")
        if not sep or not raw:
            raise InvalidHandle(f"malformed handle: {token!r}")
        if prefix != cls.PREFIX:
            kind = _PREFIXES.get(prefix)
            found = kind.value if kind is not None else prefix
            raise InvalidHandle(
                f"expected a {cls.ENTITY_TYPE.value} handle, got a {found} handle"
            )
        try:
            return cls(UUID(hex=raw))
        except ValueError as exc:
            raise InvalidHandle(f"malformed handle: {token!r}") from exc


@dataclass(frozen=True, slots=True)
class DocumentSetHandle(Handle):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.DOCUMENT_SET
    PREFIX: ClassVar[str] = "set"


@dataclass(frozen=True, slots=True)
class DocumentHandle(Handle):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.DOCUMENT
    PREFIX: ClassVar[str] = "doc"


@dataclass(frozen=True, slots=True)
class OrganizationHandle(Handle):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.ORGANIZATION
    PREFIX: ClassVar[str] = "org"


@dataclass(frozen=True, slots=True)
class SectionHandle(Handle):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.SECTION
    PREFIX: ClassVar[str] = "sec"


@dataclass(frozen=True, slots=True)
class ProductHandle(Handle):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.PRODUCT
    PREFIX: ClassVar[str] = "prd"


@dataclass(frozen=True, slots=True)
class PackagingHandle(Handle):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.PACKAGING_LEVEL
    PREFIX: ClassVar[str] = "pkg"


@dataclass(frozen=True, slots=True)
class ComponentHandle(Handle):
    """Handle for the remaining document-owned component rows."""

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.CONTENT_BLOCK
    PREFIX: ClassVar[str] = "cmp"


_BY_TYPE: dict[EntityType, type[Handle]] = {
    EntityType.DOCUMENT_SET: DocumentSetHandle,
    EntityType.DOCUMENT: DocumentHandle,
    EntityType.ORGANIZATION: OrganizationHandle,
    EntityType.SECTION: SectionHandle,
    EntityType.PRODUCT: ProductHandle,
    EntityType.PACKAGING_LEVEL: PackagingHandle,
}

_PREFIXES: dict[str, EntityType] = {
    handle_type.PREFIX: entity_type for entity_type, handle_type in _BY_TYPE.items()
}


def handle_type_for(entity_type: EntityType) -> type[Handle]:
    return _BY_TYPE.get(entity_type, ComponentHandle)
