"""Error taxonomy for import, export, comparison and operation tracking.

Every error carries a ``kind`` tag (stable, machine readable) and an optional
``location``: the element path inside the payload being processed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar


class SplError(Exception):
    kind: ClassVar[str] = "error"

    def __init__(self, message: str, *, location: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.location = location

    def __str__(self) -> str:
        if self.location:
            return f"{self.message} (at {self.location})"
        return self.message


class SplImportError(SplError):
    """Fatal import failure: nothing from the payload is persisted."""

    kind = "import_error"


class MalformedDocument(SplImportError):
    """Payload is not well-formed XML or lacks the identity of the document."""

    kind = "malformed_document"


class ReferentialIntegrityError(SplImportError):
    """The payload would produce a graph that breaks containment rules."""

    kind = "referential_integrity"


class VersionConflict(SplImportError):
    """A different snapshot already holds the same (set, version) slot."""

    kind = "version_conflict"


class EntityNotFound(SplError):
    kind = "entity_not_found"


class Cancelled(SplError):
    kind = "cancelled"

    def __init__(self, message: str = "operation was cancelled", *, location: str | None = None) -> None:
        super().__init__(message, location=location)


class OperationNotFound(SplError):
    """Unknown operation id, or the record was purged after its retention window."""

    kind = "operation_not_found"


@dataclass(frozen=True, slots=True)
class SchemaViolation:
    """A non-fatal rule breach recorded during import."""

    rule: str
    message: str
    location: str

    kind: ClassVar[str] = "schema_violation"

    def __str__(self) -> str:
        return f"{self.rule}: {self.message} (at {self.location})"
