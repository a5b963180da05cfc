from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import pytest

from splkit.domain.errors import MalformedDocument, OperationNotFound
from splkit.domain.jobs import JobTracker, OperationError, OperationStatus, ScaledControl

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from splkit.domain.ports import OperationControl

TIMEOUT = 5.0


@pytest.fixture
def tracker() -> Iterator[JobTracker]:
    jobs = JobTracker(max_workers=2)
    yield jobs
    jobs.shutdown(wait=False)


def _wait(event: threading.Event) -> None:
    assert event.wait(TIMEOUT), "worker did not reach the expected point"


def test_successful_operation_reports_result(tracker: JobTracker) -> None:
    operation_id = tracker.submit("demo", lambda _control: {"answer": 42})

    progress = tracker.wait(operation_id, timeout=TIMEOUT)

    assert progress.status is OperationStatus.SUCCEEDED
    assert progress.percent == 100
    assert progress.result == {"answer": 42}
    assert progress.error is None
    assert progress.kind == "demo"


def test_failed_operation_carries_error_kind_and_location(tracker: JobTracker) -> None:
    def work(_control: OperationControl) -> None:
        raise MalformedDocument("missing setId", location="/document/setId")

    progress = tracker.wait(tracker.submit("demo", work), timeout=TIMEOUT)

    assert progress.status is OperationStatus.FAILED
    assert progress.error == OperationError(
        kind="malformed_document", message="missing setId", location="/document/setId"
    )


def test_unexpected_exception_is_reported_as_internal_error(tracker: JobTracker) -> None:
    def work(_control: OperationControl) -> None:
        raise KeyError("boom")

    progress = tracker.wait(tracker.submit("demo", work), timeout=TIMEOUT)

    assert progress.status is OperationStatus.FAILED
    assert progress.error is not None
    assert progress.error.kind == "internal_error"


def test_unknown_operation_is_not_found(tracker: JobTracker) -> None:
    with pytest.raises(OperationNotFound):
        tracker.get_progress("does-not-exist")


def test_progress_never_moves_backwards(tracker: JobTracker) -> None:
    reported = threading.Event()
    release = threading.Event()

    def work(control: OperationControl) -> None:
        control.report(50)
        control.report(20)
        reported.set()
        _wait(release)

    operation_id = tracker.submit("demo", work)
    _wait(reported)

    progress = tracker.get_progress(operation_id)
    assert progress.status is OperationStatus.RUNNING
    assert progress.percent == 50

    release.set()
    assert tracker.wait(operation_id, timeout=TIMEOUT).status is OperationStatus.SUCCEEDED


def test_cancel_queued_operation_never_runs_it() -> None:
    tracker = JobTracker(max_workers=1)
    started = threading.Event()
    release = threading.Event()
    ran = threading.Event()

    def blocker(_control: OperationControl) -> None:
        started.set()
        _wait(release)

    try:
        first = tracker.submit("demo", blocker)
        _wait(started)
        second = tracker.submit("demo", lambda _control: ran.set())

        cancelled = tracker.cancel(second)
        release.set()
        tracker.wait(first, timeout=TIMEOUT)
        tracker.shutdown(wait=True)
    finally:
        release.set()
        tracker.shutdown(wait=False)

    assert cancelled.status is OperationStatus.FAILED
    assert cancelled.error is not None
    assert cancelled.error.kind == "cancelled"
    assert not ran.is_set()
    assert tracker.get_progress(second).status is OperationStatus.FAILED


def test_cancel_running_operation_stops_it_at_next_check(tracker: JobTracker) -> None:
    started = threading.Event()
    release = threading.Event()
    reached_end = threading.Event()

    def work(control: OperationControl) -> str:
        started.set()
        _wait(release)
        control.raise_if_cancelled()
        reached_end.set()
        return "done"

    operation_id = tracker.submit("demo", work)
    _wait(started)

    cancelled = tracker.cancel(operation_id)
    release.set()
    final = tracker.wait(operation_id, timeout=TIMEOUT)

    assert cancelled.status is OperationStatus.FAILED
    assert final.status is OperationStatus.FAILED
    assert final.error is not None
    assert final.error.kind == "cancelled"
    assert not reached_end.is_set()


def test_cancel_between_commits_keeps_the_first_and_stops_the_second(tracker: JobTracker) -> None:
    committed = threading.Event()
    release = threading.Event()
    writes: list[str] = []

    def work(control: OperationControl) -> str:
        control.commit(lambda: writes.append("first"))
        committed.set()
        _wait(release)
        control.commit(lambda: writes.append("second"))
        return "done"

    operation_id = tracker.submit("demo", work)
    _wait(committed)

    after_cancel = tracker.cancel(operation_id)
    release.set()
    final = tracker.wait(operation_id, timeout=TIMEOUT)

    assert after_cancel.status is OperationStatus.FAILED
    assert final.status is OperationStatus.FAILED
    assert final.error is not None
    assert final.error.kind == "cancelled"
    assert writes == ["first"]


def test_cancel_waits_for_a_commit_in_flight(tracker: JobTracker) -> None:
    writing = threading.Event()
    release = threading.Event()
    writes: list[str] = []

    def slow_write() -> None:
        writing.set()
        _wait(release)
        writes.append("row")

    operation_id = tracker.submit("demo", lambda control: control.commit(slow_write))
    _wait(writing)

    cancelling = threading.Thread(target=tracker.cancel, args=(operation_id,))
    cancelling.start()
    release.set()
    cancelling.join(TIMEOUT)
    final = tracker.wait(operation_id, timeout=TIMEOUT)

    assert writes == ["row"]
    assert final.status.is_terminal


def test_cancel_finished_operation_changes_nothing(tracker: JobTracker) -> None:
    operation_id = tracker.submit("demo", lambda _control: "done")
    tracker.wait(operation_id, timeout=TIMEOUT)

    progress = tracker.cancel(operation_id)

    assert progress.status is OperationStatus.SUCCEEDED
    assert progress.result == "done"


def test_commit_is_skipped_once_cancelled(tracker: JobTracker) -> None:
    started = threading.Event()
    release = threading.Event()
    writes: list[str] = []
    done = threading.Event()

    def work(control: OperationControl) -> None:
        started.set()
        _wait(release)
        try:
            control.commit(lambda: writes.append("row"))
        finally:
            done.set()

    operation_id = tracker.submit("demo", work)
    _wait(started)
    tracker.cancel(operation_id)
    release.set()
    _wait(done)

    assert writes == []


def test_finished_records_are_purged_after_retention() -> None:
    now = [0.0]
    clock: Callable[[], float] = lambda: now[0]  # noqa: E731
    tracker = JobTracker(max_workers=1, retention_seconds=10.0, clock=clock)
    try:
        operation_id = tracker.submit("demo", lambda _control: None)
        assert tracker.wait(operation_id).status is OperationStatus.SUCCEEDED

        now[0] = 10.0
        assert tracker.get_progress(operation_id).status is OperationStatus.SUCCEEDED

        now[0] = 10.5
        with pytest.raises(OperationNotFound):
            tracker.get_progress(operation_id)
    finally:
        tracker.shutdown()


class _Recorder:
    def __init__(self) -> None:
        self.values: list[int] = []

    def report(self, percent: int) -> None:
        self.values.append(percent)

    def raise_if_cancelled(self) -> None:
        return None

    def commit(self, action: Callable[[], None]) -> None:
        action()

    def scaled(self, low: int, high: int) -> OperationControl:
        return ScaledControl(self, low, high)


def test_scaled_control_maps_onto_parent_range() -> None:
    parent = _Recorder()
    child = ScaledControl(parent, 10, 90)

    child.report(0)
    child.report(50)
    child.report(100)
    child.report(150)
    child.scaled(0, 50).report(100)

    assert parent.values == [10, 50, 90, 90, 50]
