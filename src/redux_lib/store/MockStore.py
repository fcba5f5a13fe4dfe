from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from redux_lib.store.Action import Action, DispatchResult
from redux_lib.store.ActionStatus import ActionStatus
from redux_lib.store.Store import Store
from redux_lib.store.exceptions.StoreException import StoreException

logger = logging.getLogger(__name__)

type Mock[S] = Callable[[Action[S]], Action[S] | None] | None


class MockAction[S](Action[S]):
    """Sync stand-in for a mocked action. `action` is the action it replaced."""

    def __init__(self, action: Action[S], reducer: Callable[[Action[S], S], S]) -> None:
        self.action = action
        self._reducer = reducer

    def reduce(self) -> S:
        return self._reducer(self.action, self.state)


class MockStore[S](Store[S]):
    """A Store that replaces dispatched actions by type, for tests.

    A mock is either None, meaning actions of that type are not dispatched at all, or a
    function receiving the original action and returning the action to dispatch instead
    (or None to skip it). `reducer_mock` builds such a function from a plain reducer:

        store = MockStore(AppState(), mocks={LoadUser: None})
        store.add_mock(Increment, MockStore.reducer_mock(lambda action, state: state))

    Actions of types without a mock are dispatched normally.
    """

    def __init__(
        self,
        initial_state: S,
        *,
        mocks: Mapping[type[Action[Any]], Mock[S]] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(initial_state, **kwargs)
        self._mocks: dict[type[Action[Any]], Mock[S]] = dict(mocks or {})

    @staticmethod
    def reducer_mock(reducer: Callable[[Action[S], S], S]) -> Callable[[Action[S]], Action[S]]:
        return lambda action: MockAction(action, reducer)

    def add_mock(self, action_type: type[Action[Any]], mock: Mock[S]) -> MockStore[S]:
        self._mocks[action_type] = mock
        return self

    def add_mocks(self, mocks: Mapping[type[Action[Any]], Mock[S]]) -> MockStore[S]:
        self._mocks.update(mocks)
        return self

    def clear_mocks(self) -> MockStore[S]:
        self._mocks.clear()
        return self

    def dispatch(self, action: Action[S]) -> DispatchResult:
        if type(action) not in self._mocks:
            return super().dispatch(action)

        mock = self._mocks[type(action)]
        replacement = None if mock is None else mock(action)
        if replacement is None:
            logger.debug("%s is mocked out and was not dispatched", action.type_name())
            return ActionStatus()
        if not isinstance(replacement, Action):
            raise StoreException(
                f"The mock for {action.type_name()} returned "
                f"{type(replacement).__name__}, not an action."
            )
        return super().dispatch(replacement)
