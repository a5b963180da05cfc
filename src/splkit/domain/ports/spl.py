"""Ports for turning SPL payloads into domain graphs and back."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from splkit.domain.errors import SchemaViolation
    from splkit.domain.fidelity import FidelityReport
    from splkit.domain.model import Document, Guid
    from splkit.domain.ports.operations import OperationControl


@dataclass(slots=True)
class ParsedDocument:
    """Result of reading one payload: a detached document graph plus findings."""

    document: Document
    set_guid: Guid
    violations: list[SchemaViolation] = field(default_factory=list["SchemaViolation"])

    @property
    def version_number(self) -> int:
        return self.document.version_number


@runtime_checkable
class DocumentParser(Protocol):
    """Callable port that reads an SPL payload.

    Raises ``MalformedDocument`` or ``ReferentialIntegrityError`` for fatal
    problems; everything else is reported through ``violations``.
    """

    def __call__(
        self,
        payload: bytes | str,
        *,
        control: OperationControl | None = None,
    ) -> ParsedDocument: ...


@runtime_checkable
class DocumentRenderer(Protocol):
    """Callable port that serializes a stored document back to SPL XML."""

    def __call__(self, document: Document, *, minify: bool = False) -> str: ...


@runtime_checkable
class DocumentComparer(Protocol):
    """Callable port that diffs a source payload against a regenerated one."""

    def __call__(
        self,
        source: bytes | str,
        regenerated: bytes | str,
        *,
        control: OperationControl | None = None,
    ) -> FidelityReport: ...


__all__ = ["DocumentComparer", "DocumentParser", "DocumentRenderer", "ParsedDocument"]
