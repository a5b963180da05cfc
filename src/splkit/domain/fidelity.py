"""Fidelity reports: how closely a regenerated document matches its source payload."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from splkit.domain.errors import EntityNotFound
from splkit.domain.exporting import load_document
from splkit.domain.ports import NullControl

if TYPE_CHECKING:
    from collections.abc import Callable

    from splkit.domain.model import DocumentHandle
    from splkit.domain.ports import (
        DocumentComparer,
        DocumentRenderer,
        LabelingUnitOfWork,
        OperationControl,
    )

log = logging.getLogger(__name__)

UNSECTIONED = "(none)"


class Verdict(StrEnum):
    MATCH = "match"
    MISSING = "missing"
    EXTRA = "extra"
    VALUE_MISMATCH = "value_mismatch"


@dataclass(frozen=True, slots=True)
class PathComparison:
    """Verdict for one element path.

    ``entity_kind`` names the modeled entity the element belongs to and
    ``section_code`` the code of its enclosing section (None outside sections).
    """

    path: str
    verdict: Verdict
    entity_kind: str
    section_code: str | None = None
    detail: str | None = None

    @property
    def is_discrepancy(self) -> bool:
        return self.verdict is not Verdict.MATCH


@dataclass(slots=True)
class FidelityReport:
    entries: list[PathComparison] = field(default_factory=list["PathComparison"])
    document_handle: str | None = None

    @property
    def discrepancies(self) -> list[PathComparison]:
        return [entry for entry in self.entries if entry.is_discrepancy]

    @property
    def is_faithful(self) -> bool:
        return not self.discrepancies

    @property
    def counts(self) -> dict[Verdict, int]:
        tally = Counter(entry.verdict for entry in self.entries)
        return {verdict: tally.get(verdict, 0) for verdict in Verdict}

    @property
    def by_entity(self) -> dict[str, int]:
        """Discrepancy count per entity kind."""
        return dict(Counter(entry.entity_kind for entry in self.discrepancies))

    @property
    def by_section(self) -> dict[str, int]:
        """Discrepancy count per section code; elements outside sections use ``(none)``."""
        return dict(Counter(entry.section_code or UNSECTIONED for entry in self.discrepancies))


def compare_document(
    handle: DocumentHandle | str,
    *,
    renderer: DocumentRenderer,
    comparer: DocumentComparer,
    unit_of_work_factory: Callable[[], LabelingUnitOfWork],
    source_payload: bytes | str | None = None,
    control: OperationControl | None = None,
) -> FidelityReport:
    """Re-export a stored document and diff it against ``source_payload``.

    Without an explicit payload the original one kept at import time is used.
    Differences are reported, never raised; only a missing document or
    cancellation fails the comparison.
    """

    control = control or NullControl()
    with unit_of_work_factory() as uow:
        document = load_document(handle, uow)
        source = source_payload if source_payload is not None else document.source_payload
        if source is None:
            raise EntityNotFound(
                f"document {document.document_guid} has no stored source payload to compare"
            )
        regenerated = renderer(document)
        document_handle = str(document.handle)
    control.report(10)
    control.raise_if_cancelled()

    report = comparer(source, regenerated, control=control.scaled(10, 100))
    report.document_handle = document_handle
    control.report(100)
    log.info(
        "Compared document %s: %d paths, %d discrepancies",
        document_handle,
        len(report.entries),
        len(report.discrepancies),
    )
    return report
