"""Application orchestration entry points."""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from splkit.adapters.spl import SplComparer, SplReader, SplWriter
from splkit.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyLabelingUnitOfWork,
    is_started,
    shutdown as shutdown_store,
    startup as startup_store,
)
from splkit.api.schema import DocumentSummary, ProgressResponse
from splkit.config import get_job_config
from splkit.domain import exporting
from splkit.domain.fidelity import compare_document
from splkit.domain.identifiers import IdentifierService
from splkit.domain.importing import SetLocks, import_documents
from splkit.domain.jobs import JobTracker
from splkit.domain.ports.unit_of_work import LabelingUnitOfWork

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from splkit.config import JobConfig
    from splkit.domain.model import DocumentHandle

UnitOfWorkFactory = Callable[[], LabelingUnitOfWork]

IMPORT_KIND = "import"
COMPARISON_KIND = "comparison"

log = getLogger(__name__)


@dataclass(slots=True)
class _AppState:
    tracker: JobTracker | None = None
    set_locks: SetLocks = field(default_factory=SetLocks)
    identifiers: IdentifierService = field(default_factory=IdentifierService)
    lock: threading.Lock = field(default_factory=threading.Lock)


_STATE = _AppState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    job_config: JobConfig | None = None,
    force: bool = False,
) -> None:
    """Initialise the labeling store and the job tracker."""

    with _STATE.lock:
        if force or not is_started():
            startup_store(engine=engine, database_uri=database_uri, force=force)
        if _STATE.tracker is None or force:
            if _STATE.tracker is not None:
                _STATE.tracker.shutdown()
            config = job_config or get_job_config()
            _STATE.tracker = JobTracker(
                max_workers=config.max_workers,
                retention_seconds=config.retention_seconds,
            )
            log.info(
                "Job tracker ready: workers=%s, retention=%ss",
                config.max_workers,
                config.retention_seconds,
            )


def shutdown() -> None:
    """Stop the worker pool and dispose the store (primarily for tests)."""

    with _STATE.lock:
        if _STATE.tracker is not None:
            _STATE.tracker.shutdown()
            _STATE.tracker = None
        shutdown_store()


def _tracker() -> JobTracker:
    startup()
    tracker = _STATE.tracker
    if tracker is None:
        raise RuntimeError("job tracker not initialised")
    return tracker


def submit_import(
    payloads: Sequence[bytes | str],
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> str:
    """Queue an import of ``payloads`` (in order) and return the operation id."""

    tracker = _tracker()
    effective_uow = unit_of_work_factory or SqlAlchemyLabelingUnitOfWork
    batch = list(payloads)
    log.info("Submitting import of %d payload(s)", len(batch))
    return tracker.submit(
        IMPORT_KIND,
        lambda control: import_documents(
            batch,
            parser=SplReader(),
            unit_of_work_factory=effective_uow,
            set_locks=_STATE.set_locks,
            identifiers=_STATE.identifiers,
            control=control,
        ),
    )


def submit_comparison(
    document_handle: DocumentHandle | str,
    *,
    source_payload: bytes | str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> str:
    """Queue a fidelity comparison for a stored document."""

    tracker = _tracker()
    effective_uow = unit_of_work_factory or SqlAlchemyLabelingUnitOfWork
    log.info("Submitting comparison of %s", document_handle)
    return tracker.submit(
        COMPARISON_KIND,
        lambda control: compare_document(
            document_handle,
            renderer=SplWriter(),
            comparer=SplComparer(),
            unit_of_work_factory=effective_uow,
            source_payload=source_payload,
            control=control,
        ),
    )


def export_document(
    document_handle: DocumentHandle | str,
    *,
    minify: bool = False,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> str:
    """Render a stored document as SPL XML (synchronous)."""

    startup()
    return exporting.export_document(
        document_handle,
        renderer=SplWriter(),
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyLabelingUnitOfWork,
        minify=minify,
    )


def get_progress(operation_id: str) -> ProgressResponse:
    return ProgressResponse.from_domain(_tracker().get_progress(operation_id))


def wait_for(operation_id: str, *, timeout: float | None = None) -> ProgressResponse:
    return ProgressResponse.from_domain(_tracker().wait(operation_id, timeout=timeout))


def cancel_operation(operation_id: str) -> ProgressResponse:
    return ProgressResponse.from_domain(_tracker().cancel(operation_id))


def list_documents(
    set_guid: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[DocumentSummary]:
    """All stored versions of a document set, oldest first."""

    startup()
    with (unit_of_work_factory or SqlAlchemyLabelingUnitOfWork)() as uow:
        documents = uow.repositories.documents.list_for_set(set_guid)
        return [DocumentSummary.from_domain(document) for document in documents]


def current_document(
    set_guid: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> DocumentSummary | None:
    """The highest stored version of a document set, if any."""

    summaries = list_documents(set_guid, unit_of_work_factory=unit_of_work_factory)
    current = [summary for summary in summaries if summary.is_current]
    return current[0] if current else None
