"""Predefined action that asks the persistence process to save right away."""

from __future__ import annotations

from redux_lib.store.Action import NO_CHANGE, Action, _NoChange


class PersistAction[S](Action[S]):
    """Doesn't change the state, but makes the Store persist it now, ignoring the throttle.

    Has no effect if the Store has no persistor, or if persistence is paused.
    """

    def reduce(self) -> _NoChange:
        return NO_CHANGE
