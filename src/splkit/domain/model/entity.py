"""
Base building blocks:
identity and handle semantics.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar, Protocol, runtime_checkable
from uuid import UUID, uuid4

if TYPE_CHECKING:
    from splkit.domain.model.enums import EntityType
    from splkit.domain.model.handles import Handle


def new_id() -> UUID:
    return uuid4()


@runtime_checkable
class EntityRef(Protocol):
    """Reference to a typed entity using its surrogate identity."""

    @property
    def entity_type(self) -> EntityType: ...

    @property
    def id(self) -> UUID: ...


@dataclass(eq=False, kw_only=True)
class Entity:
    """Identity exists immediately in the domain.

    Ids of document-owned entities are reassigned from the owning set's counter
    just before they are first persisted (see ``splkit.domain.identifiers``).
    """

    id: UUID = field(default_factory=new_id)

    # class-level discriminator; subclasses must override
    ENTITY_TYPE: ClassVar[EntityType]

    @property
    def entity_type(self) -> EntityType:
        return self.ENTITY_TYPE

    @property
    def handle(self) -> Handle:
        from splkit.domain.model.handles import handle_type_for  # noqa: PLC0415

        return handle_type_for(self.ENTITY_TYPE)(self.id)


@dataclass(eq=False, kw_only=True)
class SequencedEntity(Entity):
    """Entity whose position among its siblings is significant for export."""

    sequence_number: int = 0
