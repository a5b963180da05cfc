"""Import service: place a parsed SPL payload into its document set's version chain."""

from __future__ import annotations

import logging
import threading
from collections import Counter
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, cast

from splkit.domain.errors import VersionConflict
from splkit.domain.identifiers import IdentifierService
from splkit.domain.model import DocumentSet
from splkit.domain.ports import NullControl

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence

    from splkit.domain.errors import SchemaViolation
    from splkit.domain.model import (
        Document,
        DocumentHandle,
        Guid,
        Oid,
        Organization,
        PharmacologicClass,
    )
    from splkit.domain.ports import (
        DocumentParser,
        LabelingUnitOfWork,
        OperationControl,
        OrganizationRepository,
        PharmacologicClassRepository,
    )

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ImportOutcome:
    """Outcome of importing one payload."""

    document_handle: DocumentHandle
    set_guid: Guid
    version_number: int
    unchanged: bool = False
    violations: list[SchemaViolation] = field(default_factory=list["SchemaViolation"])
    entity_count: int = 0


class SetLocks:
    """One lock per document set; different sets never wait on each other."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    @contextmanager
    def hold(self, set_guid: Guid) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(set_guid, threading.Lock())
        with lock:
            yield


def import_document(
    payload: bytes | str,
    *,
    parser: DocumentParser,
    unit_of_work_factory: Callable[[], LabelingUnitOfWork],
    set_locks: SetLocks,
    identifiers: IdentifierService | None = None,
    control: OperationControl | None = None,
) -> ImportOutcome:
    """Parse ``payload`` and persist it as a new version of its document set.

    Re-importing a snapshot that is already stored (same set, same version,
    same content hash) changes nothing and reports ``unchanged``. Any other
    occupant of the version slot, or a document id already used by another
    snapshot, raises ``VersionConflict`` before anything is written.
    """

    control = control or NullControl()
    identifiers = identifiers or IdentifierService()

    parsed = parser(payload, control=control.scaled(0, 80))
    document = parsed.document
    _log_violations(document, parsed.violations)
    control.raise_if_cancelled()

    with set_locks.hold(parsed.set_guid), unit_of_work_factory() as uow:
        repositories = uow.repositories
        document_set = repositories.document_sets.get_by_set_guid(parsed.set_guid)
        if document_set is None:
            document_set = identifiers.register_set(DocumentSet(set_guid=parsed.set_guid))
            repositories.document_sets.add(document_set)
        else:
            existing = document_set.version(document.version_number)
            if existing is not None:
                if existing.content_hash == document.content_hash:
                    log.info(
                        "Document %s (set %s, version %d) already stored; nothing to do",
                        existing.document_guid,
                        parsed.set_guid,
                        existing.version_number,
                    )
                    control.report(100)
                    return ImportOutcome(
                        document_handle=cast("DocumentHandle", existing.handle),
                        set_guid=parsed.set_guid,
                        version_number=existing.version_number,
                        unchanged=True,
                        violations=parsed.violations,
                    )
                raise VersionConflict(
                    f"set {parsed.set_guid} already holds a different version "
                    f"{document.version_number} (document {existing.document_guid})",
                    location="/document/versionNumber",
                )

        clash = repositories.documents.get_by_document_guid(document.document_guid)
        if clash is not None:
            raise VersionConflict(
                f"document id {document.document_guid} is already used by version "
                f"{clash.version_number} of set {clash.set_guid}",
                location="/document/id",
            )

        shared = _share_organizations(document, repositories.organizations, identifiers)
        _share_pharmacologic_classes(document, repositories.pharmacologic_classes, identifiers)
        entity_count = identifiers.assign(document_set, [document, *document.owned_entities()])
        document.imported_at = datetime.now(UTC)
        document_set.add_document(document)
        repositories.documents.add(document)
        control.report(90)

        control.raise_if_cancelled()
        control.commit(uow.commit)

    control.report(100)
    log.info(
        "Imported document %s as version %d of set %s (%d entities, %d shared organizations)",
        document.document_guid,
        document.version_number,
        parsed.set_guid,
        entity_count,
        shared,
    )
    return ImportOutcome(
        document_handle=cast("DocumentHandle", document.handle),
        set_guid=parsed.set_guid,
        version_number=document.version_number,
        violations=parsed.violations,
        entity_count=entity_count,
    )


def import_documents(
    payloads: Sequence[bytes | str],
    *,
    parser: DocumentParser,
    unit_of_work_factory: Callable[[], LabelingUnitOfWork],
    set_locks: SetLocks,
    identifiers: IdentifierService | None = None,
    control: OperationControl | None = None,
) -> list[ImportOutcome]:
    """Import ``payloads`` one after another; stops at the first fatal error.

    Payloads committed before the failure stay committed.
    """

    control = control or NullControl()
    total = max(len(payloads), 1)
    outcomes: list[ImportOutcome] = []
    for index, payload in enumerate(payloads):
        control.raise_if_cancelled()
        outcomes.append(
            import_document(
                payload,
                parser=parser,
                unit_of_work_factory=unit_of_work_factory,
                set_locks=set_locks,
                identifiers=identifiers,
                control=control.scaled(index * 100 // total, (index + 1) * 100 // total),
            )
        )
    control.report(100)
    return outcomes


def _share_organizations(
    document: Document,
    repository: OrganizationRepository,
    identifiers: IdentifierService,
) -> int:
    """Point authors at stored organizations with the same identifier.

    Returns how many authors were re-pointed at an existing organization.
    """

    seen: dict[tuple[Oid, str], Organization] = {}
    shared = 0
    for author in document.all_authors:
        organization = author.organization
        if not organization.is_identified:
            organization.id = identifiers.reference_id()
            continue
        key = (cast("Oid", organization.identifier_root), cast("str", organization.identifier))
        known = seen.get(key) or repository.get_by_identifier(*key)
        if known is None:
            organization.id = identifiers.reference_id()
            seen[key] = organization
            continue
        if known is not organization:
            author._replace_organization(known)  # pyright: ignore[reportPrivateUsage] # noqa: SLF001
            shared += 1
        seen[key] = known
    return shared


def _share_pharmacologic_classes(
    document: Document,
    repository: PharmacologicClassRepository,
    identifiers: IdentifierService,
) -> None:
    """Point class links at stored classes with the same code; new classes get reference ids."""

    seen: dict[tuple[Oid, str], PharmacologicClass] = {}
    for section in document.all_sections:
        for substance in section.substances:
            for link in substance.class_links:
                pharmacologic_class = link.pharmacologic_class
                key = pharmacologic_class.key
                if key is None:
                    pharmacologic_class.id = identifiers.reference_id()
                    continue
                known = seen.get(key) or repository.get_by_code(*key)
                if known is None:
                    pharmacologic_class.id = identifiers.reference_id()
                    known = pharmacologic_class
                elif known is not pharmacologic_class:
                    link._replace_class(known)  # pyright: ignore[reportPrivateUsage] # noqa: SLF001
                seen[key] = known


def _log_violations(document: Document, violations: Sequence[SchemaViolation]) -> None:
    if not violations:
        return
    by_rule = Counter(violation.rule for violation in violations)
    log.warning(
        "Document %s has %d schema violations: %s",
        document.document_guid,
        len(violations),
        ", ".join(f"{rule}={count}" for rule, count in sorted(by_rule.items())),
    )
