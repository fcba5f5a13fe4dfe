"""Tracking of in-flight and failed actions, and the waits built on top of it."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from redux_lib.store.exceptions.StoreException import StoreTimeoutError

if TYPE_CHECKING:
    from redux_lib.store.Action import Action, ActionSpec
    from redux_lib.store.ActionStatus import ActionStatus

type StateListener[S] = Callable[[S, Action[S] | None], None]
type ActionListener[S] = Callable[[Action[S]], None]


def _matcher(actions: ActionSpec) -> Callable[[Action[Any]], bool]:
    """Turn an action type, an action, or an iterable of those, into a predicate."""
    if isinstance(actions, type):
        return lambda action: isinstance(action, actions)
    if isinstance(actions, Iterable) and not hasattr(actions, "_bind"):
        matchers = [_matcher(spec) for spec in actions]
        return lambda action: any(match(action) for match in matchers)
    return lambda action: action is actions


class ActionTracker[S]:
    """Knows which actions are running, which failed, and wakes up waiters.

    A failed action stays failed until an action of the same type is dispatched again,
    or `clear_exception_for()` is called.
    """

    _in_flight: list[Action[S]]
    _failed: dict[type[Action[Any]], Action[S]]
    _state_listeners: list[StateListener[S]]
    _finish_listeners: list[ActionListener[S]]
    _waiters: set[asyncio.Future[Any]]

    def __init__(self, get_state: Callable[[], S]) -> None:
        self._get_state = get_state
        self._in_flight = []
        self._failed = {}
        self._state_listeners = []
        self._finish_listeners = []
        self._waiters = set()

    # ==========================================================================
    # Bookkeeping, called by the Store
    # ==========================================================================

    def started(self, action: Action[S]) -> None:
        self._failed.pop(type(action), None)
        self._in_flight.append(action)

    def finished(self, action: Action[S]) -> None:
        for i, running in enumerate(self._in_flight):
            if running is action:
                del self._in_flight[i]
                break
        status = action.status
        if status.original_error is not None and not status.aborted:
            self._failed[type(action)] = action
        for listener in list(self._finish_listeners):
            listener(action)

    def state_changed(self, state: S, action: Action[S] | None) -> None:
        for listener in list(self._state_listeners):
            listener(state, action)

    # ==========================================================================
    # Queries
    # ==========================================================================

    @property
    def in_flight(self) -> tuple[Action[S], ...]:
        return tuple(self._in_flight)

    def in_flight_count(self, actions: ActionSpec) -> int:
        match = _matcher(actions)
        return sum(1 for action in self._in_flight if match(action))

    def is_waiting(self, actions: ActionSpec) -> bool:
        """True if any matching action is running."""
        return self.in_flight_count(actions) > 0

    def is_failed(self, actions: ActionSpec) -> bool:
        return self.exception_for(actions) is not None

    def exception_for(self, actions: ActionSpec) -> BaseException | None:
        """The error of the last failed dispatch matching `actions`, if any.

        This is the wrapped error, or the original one if a wrapper swallowed it.
        """
        match = _matcher(actions)
        for action in self._failed.values():
            if match(action):
                status = action.status
                return status.wrapped_error or status.original_error
        return None

    def clear_exception_for(self, actions: ActionSpec) -> None:
        match = _matcher(actions)
        for kind in [kind for kind, action in self._failed.items() if match(action)]:
            del self._failed[kind]

    # ==========================================================================
    # Waits
    # ==========================================================================

    async def wait_condition(
        self, condition: Callable[[S], bool], *, timeout: float | None = None
    ) -> Action[S] | None:
        """Wait until `condition(state)` is true.

        Returns:
            None if the condition is already true, otherwise the action whose commit made
            it true.

        Raises:
            StoreTimeoutError: If `timeout` seconds pass first.
        """
        if condition(self._get_state()):
            return None

        future: asyncio.Future[Action[S] | None] = asyncio.get_running_loop().create_future()

        def listener(state: S, action: Action[S] | None) -> None:
            if future.done():
                return
            try:
                if condition(state):
                    future.set_result(action)
            except Exception as error:
                future.set_exception(error)

        self._state_listeners.append(listener)
        try:
            return await self._wait(future, timeout, "the state condition")
        finally:
            self._state_listeners.remove(listener)

    async def wait_action_type(
        self, action_type: type[Action[Any]], *, timeout: float | None = None
    ) -> ActionStatus | None:
        """Wait until no action of `action_type` is running.

        Returns:
            None if none was running, otherwise the status of the last one to finish.
        """
        if not self.is_waiting(action_type):
            return None

        future: asyncio.Future[ActionStatus] = asyncio.get_running_loop().create_future()

        def listener(action: Action[S]) -> None:
            if not future.done() and isinstance(action, action_type) and not self.is_waiting(action_type):
                future.set_result(action.status)

        self._finish_listeners.append(listener)
        try:
            return await self._wait(future, timeout, f"{action_type.__qualname__} to finish")
        finally:
            self._finish_listeners.remove(listener)

    async def wait_all_actions(
        self, actions: Iterable[Action[S]] | None = None, *, timeout: float | None = None
    ) -> None:
        """Wait until all the given actions finished, or until no action is running."""
        if actions is None:
            pending = lambda: bool(self._in_flight)  # noqa: E731
        else:
            targets = list(actions)
            pending = lambda: any(  # noqa: E731
                running is target for running in self._in_flight for target in targets
            )
        if not pending():
            return

        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()

        def listener(_: Action[S]) -> None:
            if not future.done() and not pending():
                future.set_result(None)

        self._finish_listeners.append(listener)
        try:
            await self._wait(future, timeout, "actions to finish")
        finally:
            self._finish_listeners.remove(listener)

    async def _wait[R](self, future: asyncio.Future[R], timeout: float | None, what: str) -> R:
        self._waiters.add(future)
        try:
            if timeout is None:
                return await future
            try:
                async with asyncio.timeout(timeout):
                    return await future
            except TimeoutError as error:
                raise StoreTimeoutError(f"Timed out after {timeout}s waiting for {what}.") from error
        finally:
            self._waiters.discard(future)

    def clear(self) -> None:
        """Forget everything and cancel pending waits."""
        for future in list(self._waiters):
            future.cancel()
        self._waiters.clear()
        self._in_flight.clear()
        self._failed.clear()
