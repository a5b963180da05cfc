"""Background operations: a thread pool plus an in-memory status store.

Every submitted operation runs at most once. Its record moves forward only
(queued -> running -> succeeded | failed) and is kept for a retention window
after it finishes; polling afterwards raises ``OperationNotFound``.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from splkit.domain.errors import Cancelled, OperationNotFound, SplError

if TYPE_CHECKING:
    from collections.abc import Callable

    from splkit.domain.ports import OperationControl

log = logging.getLogger(__name__)


class OperationStatus(StrEnum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (OperationStatus.SUCCEEDED, OperationStatus.FAILED)


_RANK = {
    OperationStatus.QUEUED: 0,
    OperationStatus.RUNNING: 1,
    OperationStatus.SUCCEEDED: 2,
    OperationStatus.FAILED: 2,
}


@dataclass(frozen=True, slots=True)
class OperationError:
    """What went wrong, as data; never a traceback."""

    kind: str
    message: str
    location: str | None = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> OperationError:
        if isinstance(exc, SplError):
            return cls(kind=exc.kind, message=exc.message, location=exc.location)
        return cls(kind="internal_error", message=str(exc) or type(exc).__name__)


@dataclass(frozen=True, slots=True)
class Progress:
    operation_id: str
    kind: str
    status: OperationStatus
    percent: int
    result: Any = None
    error: OperationError | None = None


@dataclass(eq=False, slots=True)
class _Record:
    operation_id: str
    kind: str
    status: OperationStatus = OperationStatus.QUEUED
    percent: int = 0
    result: Any = None
    error: OperationError | None = None
    finished_at: float | None = None
    cancel_requested: threading.Event = field(default_factory=threading.Event)
    # held while a durable write runs; cancellation waits for it
    commit_lock: threading.Lock = field(default_factory=threading.Lock)

    def snapshot(self) -> Progress:
        return Progress(
            operation_id=self.operation_id,
            kind=self.kind,
            status=self.status,
            percent=self.percent,
            result=self.result,
            error=self.error,
        )


class OperationContext:
    """The control handed to running work; bound to one operation record."""

    def __init__(self, tracker: JobTracker, record: _Record) -> None:
        self._tracker = tracker
        self._record = record

    @property
    def operation_id(self) -> str:
        return self._record.operation_id

    @property
    def cancelled(self) -> bool:
        return self._record.cancel_requested.is_set()

    def report(self, percent: int) -> None:
        self._tracker._report(self._record, percent)  # pyright: ignore[reportPrivateUsage] # noqa: SLF001

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise Cancelled

    def commit(self, action: Callable[[], None]) -> None:
        with self._record.commit_lock:
            self.raise_if_cancelled()
            action()

    def scaled(self, low: int, high: int) -> OperationControl:
        return ScaledControl(self, low, high)


class ScaledControl:
    """Maps ``0..100`` progress of a sub-step onto ``low..high`` of its parent."""

    def __init__(self, parent: OperationControl, low: int, high: int) -> None:
        self._parent = parent
        self._low = low
        self._high = high

    def report(self, percent: int) -> None:
        bounded = min(max(percent, 0), 100)
        self._parent.report(self._low + (self._high - self._low) * bounded // 100)

    def raise_if_cancelled(self) -> None:
        self._parent.raise_if_cancelled()

    def commit(self, action: Callable[[], None]) -> None:
        self._parent.commit(action)

    def scaled(self, low: int, high: int) -> OperationControl:
        return ScaledControl(self, low, high)


class JobTracker:
    def __init__(
        self,
        *,
        max_workers: int = 4,
        retention_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="splkit-job")
        self._retention = retention_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._records: dict[str, _Record] = {}

    def submit(self, kind: str, work: Callable[[OperationControl], Any]) -> str:
        """Queue ``work`` and return its operation id.

        ``work`` receives the operation's control; its return value becomes the
        operation result.
        """
        record = _Record(operation_id=uuid4().hex, kind=kind)
        with self._lock:
            self._purge()
            self._records[record.operation_id] = record
        self._executor.submit(self._run, record, work)
        log.info("Queued %s operation %s", kind, record.operation_id)
        return record.operation_id

    def get_progress(self, operation_id: str) -> Progress:
        with self._lock:
            self._purge()
            return self._get(operation_id).snapshot()

    def cancel(self, operation_id: str) -> Progress:
        """Cancel a queued or running operation.

        Finished operations are left untouched. A write already in flight
        completes first and stays; work after it is abandoned.
        """
        with self._lock:
            self._purge()
            record = self._get(operation_id)
        with record.commit_lock, self._lock:
            if record.status.is_terminal:
                return record.snapshot()
            record.cancel_requested.set()
            self._finish(record, OperationStatus.FAILED, error=OperationError.from_exception(Cancelled()))
            log.info("Cancelled %s operation %s", record.kind, operation_id)
            return record.snapshot()

    def wait(self, operation_id: str, *, timeout: float | None = None, interval: float = 0.05) -> Progress:
        """Poll until the operation finishes (or ``timeout`` elapses)."""
        deadline = None if timeout is None else self._clock() + timeout
        while True:
            progress = self.get_progress(operation_id)
            if progress.status.is_terminal:
                return progress
            if deadline is not None and self._clock() >= deadline:
                return progress
            time.sleep(interval)

    def shutdown(self, *, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=not wait)

    # Internals ------------------------------------------------------------

    def _get(self, operation_id: str) -> _Record:
        record = self._records.get(operation_id)
        if record is None:
            raise OperationNotFound(f"unknown operation {operation_id}")
        return record

    def _purge(self) -> None:
        now = self._clock()
        expired = [
            operation_id
            for operation_id, record in self._records.items()
            if record.finished_at is not None and now - record.finished_at > self._retention
        ]
        for operation_id in expired:
            del self._records[operation_id]
        if expired:
            log.debug("Purged %d finished operations", len(expired))

    def _advance(self, record: _Record, status: OperationStatus) -> bool:
        if record.status.is_terminal or _RANK[status] <= _RANK[record.status]:
            return False
        record.status = status
        return True

    def _finish(
        self,
        record: _Record,
        status: OperationStatus,
        *,
        result: Any = None,
        error: OperationError | None = None,
    ) -> None:
        if not self._advance(record, status):
            return
        record.result = result
        record.error = error
        if status is OperationStatus.SUCCEEDED:
            record.percent = 100
        record.finished_at = self._clock()

    def _report(self, record: _Record, percent: int) -> None:
        with self._lock:
            if record.status is OperationStatus.RUNNING:
                record.percent = max(record.percent, min(percent, 100))

    def _run(self, record: _Record, work: Callable[[OperationControl], Any]) -> None:
        with self._lock:
            if not self._advance(record, OperationStatus.RUNNING):
                return
        context = OperationContext(self, record)
        try:
            result = work(context)
        except Cancelled as exc:
            outcome, value, error = OperationStatus.FAILED, None, OperationError.from_exception(exc)
        except SplError as exc:
            log.warning("%s operation %s failed: %s", record.kind, record.operation_id, exc)
            outcome, value, error = OperationStatus.FAILED, None, OperationError.from_exception(exc)
        except Exception as exc:
            log.exception("%s operation %s crashed", record.kind, record.operation_id)
            outcome, value, error = OperationStatus.FAILED, None, OperationError.from_exception(exc)
        else:
            outcome, value, error = OperationStatus.SUCCEEDED, result, None
        with self._lock:
            self._finish(record, outcome, result=value, error=error)
            final = record.status
        log.info("%s operation %s finished: %s", record.kind, record.operation_id, final)
