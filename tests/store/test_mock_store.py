"""Tests for MockStore, which swaps actions by type."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace

import pytest

from redux_lib.store.Action import Action
from redux_lib.store.ActionStatus import ActionStatus
from redux_lib.store.AsyncAction import AsyncAction
from redux_lib.store.MockStore import MockAction, MockStore
from redux_lib.store.exceptions.StoreException import StoreException


@dataclass(frozen=True)
class AppState:
    counter: int = 0
    name: str = ""


@dataclass(frozen=True)
class Increment(Action[AppState]):
    amount: int = 1

    def reduce(self) -> AppState:
        return replace(self.state, counter=self.state.counter + self.amount)


@dataclass(frozen=True)
class LoadName(AsyncAction[AppState]):
    async def reduce(self) -> AppState:
        await asyncio.sleep(10)
        return replace(self.state, name="from server")


@dataclass(frozen=True)
class SetName(Action[AppState]):
    name: str

    def reduce(self) -> AppState:
        return replace(self.state, name=self.name)


class TestMockStore:
    def test_unmocked_actions_dispatch_normally(self) -> None:
        store = MockStore(AppState())

        store.dispatch(Increment(2))

        assert store.state.counter == 2

    def test_none_mock_skips_the_action(self) -> None:
        store = MockStore(AppState(), mocks={Increment: None})

        status = store.dispatch(Increment())

        assert status == ActionStatus()
        assert store.state.counter == 0
        assert store.dispatch_count == 0

    @pytest.mark.asyncio
    async def test_replace_async_action_with_sync_one(self) -> None:
        store = MockStore(AppState()).add_mock(LoadName, lambda action: SetName("mocked"))

        status = await store.dispatch_and_wait(LoadName())

        assert status.is_completed_ok
        assert store.state.name == "mocked"

    def test_reducer_mock_sees_the_original_action(self) -> None:
        seen: list[Action[AppState]] = []

        def reducer(action: Action[AppState], state: AppState) -> AppState:
            seen.append(action)
            assert isinstance(action, Increment)
            return replace(state, counter=state.counter - action.amount)

        store = MockStore(AppState())
        store.add_mocks({Increment: MockStore.reducer_mock(reducer)})
        original = Increment(3)

        store.dispatch(original)

        assert store.state.counter == -3
        assert seen == [original]

    def test_factory_returning_none_skips(self) -> None:
        store = MockStore(AppState(), mocks={Increment: lambda action: None})

        store.dispatch(Increment())

        assert store.state.counter == 0

    def test_clear_mocks(self) -> None:
        store = MockStore(AppState(), mocks={Increment: None})

        store.clear_mocks().dispatch(Increment())

        assert store.state.counter == 1

    def test_mock_must_return_an_action(self) -> None:
        store = MockStore(AppState(), mocks={Increment: lambda action: "nope"})  # type: ignore[dict-item]

        with pytest.raises(StoreException, match="not an action"):
            store.dispatch(Increment())

    def test_mock_action_is_sync(self) -> None:
        assert MockAction.is_sync()

    def test_store_options_are_passed_on(self) -> None:
        store = MockStore(AppState(), environment={"api": "fake"})
        assert store.env == {"api": "fake"}
