"""Errors raised by the Store itself (as opposed to errors raised by actions)."""

from __future__ import annotations


class StoreException(Exception):
    """The Store was used in a way it doesn't support."""


class StoreTimeoutError(StoreException, TimeoutError):
    """A wait helper (`wait_condition`, `wait_action_type`, ...) timed out.

    Only produced by the wait helpers, never by dispatching itself.
    """


class AbortDispatchException(Exception):
    """Raise from `before()` to silently abort an action that already started.

    The reducer doesn't run, `after()` still runs, and the error is not reported,
    recorded or raised. The action status ends with `aborted=True`.
    """

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return 0


class BehaviorConflictError(TypeError):
    """An action class combines behaviors that compete for the same extension point."""


class PersistException(Exception):
    """Wraps an error raised by a Persistor."""

    error: BaseException

    def __init__(self, error: BaseException) -> None:
        super().__init__(str(error))
        self.error = error
