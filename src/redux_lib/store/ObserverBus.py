"""Fan-out of dispatch events to the Store's action, state and error observers."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from redux_lib.store.ActionObserver import ActionObserver
from redux_lib.store.ErrorObserver import ErrorObserver
from redux_lib.store.StateObserver import StateObserver

if TYPE_CHECKING:
    from redux_lib.store.Action import Action
    from redux_lib.store.Store import Store

logger = logging.getLogger(__name__)

type Observer[S] = ActionObserver[S] | StateObserver[S] | ErrorObserver[S]


class ObserverBus[S]:
    """Holds the observers of a Store and notifies them.

    An observer that raises is logged and skipped; it never breaks the dispatch.
    """

    _action_observers: list[ActionObserver[S]]
    _state_observers: list[StateObserver[S]]
    _error_observers: list[ErrorObserver[S]]

    def __init__(
        self,
        action_observers: Iterable[ActionObserver[S]] = (),
        state_observers: Iterable[StateObserver[S]] = (),
        error_observers: Iterable[ErrorObserver[S]] = (),
    ) -> None:
        self._action_observers = list(action_observers)
        self._state_observers = list(state_observers)
        self._error_observers = list(error_observers)

    def add(self, observer: Observer[S]) -> None:
        """Register an observer. It may implement more than one observer interface."""
        added = False
        if isinstance(observer, ActionObserver):
            self._action_observers.append(observer)
            added = True
        if isinstance(observer, StateObserver):
            self._state_observers.append(observer)
            added = True
        if isinstance(observer, ErrorObserver):
            self._error_observers.append(observer)
            added = True
        if not added:
            raise TypeError(f"Cannot observe the store with {type(observer).__name__}")

    def remove(self, observer: Observer[S]) -> None:
        for observers in (self._action_observers, self._state_observers, self._error_observers):
            if observer in observers:
                observers.remove(observer)  # type: ignore[arg-type]

    def __len__(self) -> int:
        return (
            len(self._action_observers)
            + len(self._state_observers)
            + len(self._error_observers)
        )

    def action_started(self, action: Action[S], dispatch_count: int) -> None:
        self._notify_action(action, dispatch_count, ini=True)

    def action_finished(self, action: Action[S], dispatch_count: int) -> None:
        self._notify_action(action, dispatch_count, ini=False)

    def _notify_action(self, action: Action[S], dispatch_count: int, *, ini: bool) -> None:
        for observer in list(self._action_observers):
            try:
                observer.observe(action, dispatch_count, ini=ini)
            except Exception:
                logger.exception("Action observer %r failed for %s", observer, action)

    def state_changed(
        self,
        action: Action[S],
        previous: S,
        new: S,
        error: BaseException | None,
        dispatch_count: int,
    ) -> None:
        for observer in list(self._state_observers):
            try:
                observer.observe(action, previous, new, error, dispatch_count)
            except Exception:
                logger.exception("State observer %r failed for %s", observer, action)

    def error_decisions(
        self, error: BaseException, action: Action[S], store: Store[Any]
    ) -> list[bool | None]:
        """Ask every error observer whether `error` should be raised."""
        decisions: list[bool | None] = []
        for observer in list(self._error_observers):
            try:
                decisions.append(observer.observe(error, action, store))
            except Exception:
                logger.exception("Error observer %r failed for %s", observer, action)
        return decisions
