"""ActionStatus - the per-dispatch execution record handed back to callers."""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace


class Outcome(enum.Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    ABORTED = "aborted"


@dataclass(frozen=True)
class ActionStatus:
    """Which lifecycle phases of one dispatch finished, and how it ended.

    A new ActionStatus replaces the previous one as each phase finishes, so a status
    obtained from `dispatch()` is never mutated afterwards.

    Attributes:
        is_dispatched: False if the dispatch was aborted before `before()` started.
        aborted: True if `abort_dispatch()` (or a behavior) prevented the dispatch, or
            `before()` raised AbortDispatchException.
        dispatch_count: Sequence number of this dispatch in its Store (0 if aborted).
        has_finished_method_before: `before()` returned without raising.
        has_finished_method_reduce: `reduce()` returned without raising.
        has_finished_method_after: `after()` ran (it always runs once per dispatch).
        original_error: The error raised by `before()` or `reduce()`, before wrapping.
        wrapped_error: The error after the action's and the global wrap. None if swallowed
            by a wrapper.
        attempts: Number of failed attempts that were retried (Retry behaviors).
    """

    is_dispatched: bool = False
    aborted: bool = False
    dispatch_count: int = 0
    has_finished_method_before: bool = False
    has_finished_method_reduce: bool = False
    has_finished_method_after: bool = False
    original_error: BaseException | None = None
    wrapped_error: BaseException | None = None
    attempts: int = 0

    @property
    def is_completed(self) -> bool:
        return self.has_finished_method_after

    @property
    def is_completed_ok(self) -> bool:
        return self.is_completed and not self.aborted and self.original_error is None

    @property
    def is_completed_failed(self) -> bool:
        return self.is_completed and self.original_error is not None

    @property
    def outcome(self) -> Outcome:
        if self.aborted:
            return Outcome.ABORTED
        if not self.is_completed:
            return Outcome.PENDING
        if self.original_error is not None:
            return Outcome.FAILED
        return Outcome.SUCCESS

    def copy(self, **changes: object) -> ActionStatus:
        return replace(self, **changes)  # type: ignore[arg-type]
