"""Identifier service: issues and resolves opaque entity handles.

Document-owned entities draw ids from the owning set's counter
(``DocumentSet.last_handle``). The counter only grows, so an id is never issued
twice, even after the entity is deleted. The id itself is a name-based UUID
over (set, counter), so neighbouring handles share no visible sequence.

Shared reference data (organizations) is not owned by any set and receives
random ids.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import NAMESPACE_URL, UUID, uuid4, uuid5

from splkit.domain.model import Handle, InvalidHandle

if TYPE_CHECKING:
    from collections.abc import Iterable

    from splkit.domain.model import DocumentSet, Entity, EntityType

log = logging.getLogger(__name__)

HANDLE_NAMESPACE = uuid5(NAMESPACE_URL, "urn:splkit:handles")


class IdentifierService:
    def __init__(self, namespace: UUID = HANDLE_NAMESPACE) -> None:
        self._namespace = namespace

    def allocate(self, document_set: DocumentSet, entity_type: EntityType) -> UUID:
        document_set.last_handle += 1
        return uuid5(
            self._namespace,
            f"{document_set.set_guid}/{entity_type.value}/{document_set.last_handle}",
        )

    def register_set(self, document_set: DocumentSet) -> DocumentSet:
        document_set.id = uuid5(self._namespace, f"set/{document_set.set_guid}")
        return document_set

    def assign(self, document_set: DocumentSet, entities: Iterable[Entity]) -> int:
        """Give every entity a fresh id from ``document_set``; returns how many were issued."""
        issued = 0
        for entity in entities:
            entity.id = self.allocate(document_set, entity.entity_type)
            issued += 1
        log.debug(
            "Issued %d handles for set %s (counter now %d)",
            issued,
            document_set.set_guid,
            document_set.last_handle,
        )
        return issued

    def reference_id(self) -> UUID:
        return uuid4()

    @staticmethod
    def resolve[H: Handle](token: str | H, expected: type[H]) -> H:
        """Parse ``token`` as a handle of type ``expected``.

        Raises ``InvalidHandle`` for malformed tokens and for handles of a
        different entity type.
        """
        if isinstance(token, Handle):
            if not isinstance(token, expected):
                raise InvalidHandle(
                    f"expected a {expected.ENTITY_TYPE.value} handle, "
                    f"got a {token.ENTITY_TYPE.value} handle"
                )
            return token
        return expected.parse(token)
