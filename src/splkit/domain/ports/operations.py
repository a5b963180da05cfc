"""Port through which long-running work talks to its tracking record."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable


@runtime_checkable
class OperationControl(Protocol):
    def report(self, percent: int) -> None:
        """Publish progress in ``[0, 100]``; values never go backwards."""
        ...

    def raise_if_cancelled(self) -> None:
        """Raise ``Cancelled`` once cancellation was requested."""
        ...

    def commit(self, action: Callable[[], None]) -> None:
        """Run ``action`` (the durable write) unless cancellation won the race."""
        ...

    def scaled(self, low: int, high: int) -> OperationControl:
        """View that maps ``0..100`` onto ``low..high`` of this control."""
        ...


class NullControl:
    """Control used when work runs outside the job tracker."""

    def report(self, percent: int) -> None:
        return None

    def raise_if_cancelled(self) -> None:
        return None

    def commit(self, action: Callable[[], None]) -> None:
        action()

    def scaled(self, low: int, high: int) -> NullControl:
        return self


__all__ = ["NullControl", "OperationControl"]
