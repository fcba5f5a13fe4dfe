"""Predefined action that replaces the state through an update function.

Used by `Store.dispatch_state()` and `Action.dispatch_state()`, so that a direct state
change still goes through the dispatch lifecycle and reaches every observer.
"""

from __future__ import annotations

from collections.abc import Callable

from redux_lib.store.Action import Action, _NoChange


class UpdateStateAction[S](Action[S]):
    """Sync action whose reducer is `update(current_state)`.

    Args:
        update: Receives the current state and returns the new one (or None / NO_CHANGE).
    """

    update: Callable[[S], S | _NoChange | None]

    def __init__(self, update: Callable[[S], S | _NoChange | None]) -> None:
        self.update = update

    @classmethod
    def with_state(cls, state: S) -> UpdateStateAction[S]:
        return cls(lambda _: state)

    def reduce(self) -> S | _NoChange | None:
        return self.update(self.state)
