"""Tests for CheckInternet, AbortWhenNoInternet and UnlimitedRetryCheckInternet."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace

import pytest

from redux_lib.store.ActionStatus import ActionStatus
from redux_lib.store.AsyncAction import AsyncAction
from redux_lib.store.Store import Store
from redux_lib.store.behaviors.AbortWhenNoInternet import AbortWhenNoInternet
from redux_lib.store.behaviors.CheckInternet import CheckInternet
from redux_lib.store.behaviors.UnlimitedRetryCheckInternet import UnlimitedRetryCheckInternet
from redux_lib.store.exceptions.ConnectionException import ConnectionException


@dataclass(frozen=True)
class AppState:
    loads: int = 0


@dataclass(frozen=True)
class LoadChecked(AsyncAction[AppState]):
    behaviors = (CheckInternet(),)

    async def reduce(self) -> AppState:
        return replace(self.state, loads=self.state.loads + 1)


@dataclass(frozen=True)
class LoadQuietly(AsyncAction[AppState]):
    behaviors = (CheckInternet(open_dialog=False),)

    async def reduce(self) -> AppState:
        return replace(self.state, loads=self.state.loads + 1)


@dataclass(frozen=True)
class LoadIfOnline(AsyncAction[AppState]):
    behaviors = (AbortWhenNoInternet(),)

    async def reduce(self) -> AppState:
        return replace(self.state, loads=self.state.loads + 1)


@dataclass(frozen=True)
class LoadEventually(AsyncAction[AppState]):
    release: asyncio.Event | None = None

    behaviors = (UnlimitedRetryCheckInternet(max_delay_no_internet=0.5),)

    async def reduce(self) -> AppState:
        if self.release is not None:
            await self.release.wait()
        return replace(self.state, loads=self.state.loads + 1)


def connectivity_sequence(*results: bool) -> Callable[[], Awaitable[bool]]:
    """Connectivity check returning `results` in order, then True forever."""
    remaining = list(results)

    async def check() -> bool:
        return remaining.pop(0) if remaining else True

    return check


class TestCheckInternet:
    @pytest.mark.asyncio
    async def test_no_internet_fails_with_connection_exception(self) -> None:
        store = Store(AppState(), internet_on_off_simulation=False)

        status = await store.dispatch_and_wait(LoadChecked())

        assert status.is_completed_failed
        assert not status.has_finished_method_before
        assert store.state.loads == 0
        error = store.errors[0]
        assert isinstance(error, ConnectionException)
        assert error.if_open_dialog

    @pytest.mark.asyncio
    async def test_dialog_can_be_turned_off(self) -> None:
        store = Store(AppState(), internet_on_off_simulation=False)

        await store.dispatch_and_wait(LoadQuietly())

        assert not store.errors[0].if_open_dialog

    @pytest.mark.asyncio
    async def test_with_internet_runs(self) -> None:
        store = Store(AppState(), internet_on_off_simulation=True)

        status = await store.dispatch_and_wait(LoadChecked())

        assert status.is_completed_ok
        assert store.state.loads == 1

    @pytest.mark.asyncio
    async def test_uses_the_connectivity_check(self) -> None:
        store = Store(
            AppState(),
            connectivity=connectivity_sequence(False),
            internet_on_off_simulation=None,
        )

        first = await store.dispatch_and_wait(LoadChecked())
        second = await store.dispatch_and_wait(LoadChecked())

        assert first.is_completed_failed
        assert second.is_completed_ok


class TestAbortWhenNoInternet:
    @pytest.mark.asyncio
    async def test_aborts_silently(self) -> None:
        store = Store(AppState(), internet_on_off_simulation=False)

        status = await store.dispatch_and_wait(LoadIfOnline())

        assert status.aborted
        assert store.errors == ()
        assert store.state.loads == 0

    @pytest.mark.asyncio
    async def test_runs_when_online(self) -> None:
        store = Store(AppState(), internet_on_off_simulation=True)

        status = await store.dispatch_and_wait(LoadIfOnline())

        assert status.is_completed_ok


class TestUnlimitedRetryCheckInternet:
    @pytest.mark.asyncio
    async def test_retries_until_online(self, sleeps: list[float]) -> None:
        store = Store(
            AppState(),
            connectivity=connectivity_sequence(False, False, False),
            internet_on_off_simulation=None,
        )

        status = await store.dispatch_and_wait(LoadEventually())

        assert status.is_completed_ok
        assert status.attempts == 3
        # Capped at max_delay_no_internet while offline.
        assert sleeps == pytest.approx([0.35, 0.5, 0.5])
        assert store.state.loads == 1

    @pytest.mark.asyncio
    async def test_aborts_while_same_type_runs(self) -> None:
        store = Store(AppState(), internet_on_off_simulation=True)
        release = asyncio.Event()

        first = store.dispatch(LoadEventually(release))
        second = store.dispatch(LoadEventually(release))

        assert isinstance(second, ActionStatus) and second.aborted
        release.set()
        await first  # type: ignore[misc]
        assert store.state.loads == 1

    def test_cannot_be_combined_with_check_internet(self) -> None:
        from redux_lib.store.exceptions.StoreException import BehaviorConflictError

        with pytest.raises(BehaviorConflictError):

            class Conflicting(AsyncAction[AppState]):
                behaviors = (UnlimitedRetryCheckInternet(), CheckInternet())

                async def reduce(self) -> AppState:
                    return self.state
