"""Tests for OptimisticSync: coalescing of rapid changes into at most one request in flight."""

from __future__ import annotations

import asyncio
from collections.abc import Hashable
from dataclasses import dataclass, field, replace
from typing import Any, ClassVar

import pytest

from redux_lib.store.Store import Store
from redux_lib.store.behaviors.Retry import Retry
from redux_lib.store.exceptions.StoreException import BehaviorConflictError
from redux_lib.store.exceptions.UserException import UserException
from redux_lib.store.optimistic.OptimisticSync import OptimisticSync


@dataclass(frozen=True)
class AppState:
    liked: frozenset[str] = frozenset()


class LikeServer:
    def __init__(self) -> None:
        self.gate = asyncio.Event()
        self.requests: list[tuple[str, bool]] = []
        self.fail = False

    async def save(self, item: str, liked: bool) -> bool:
        self.requests.append((item, liked))
        await self.gate.wait()
        if self.fail:
            raise UserException("Could not save")
        return liked


@dataclass(frozen=True)
class ToggleLike(OptimisticSync[AppState, bool]):
    item: str = "post"
    finished: list[Exception | None] = field(default_factory=list, compare=False)

    def optimistic_sync_key_params(self) -> Hashable:
        return self.item

    def value_to_apply(self) -> bool:
        return self.item not in self.state.liked

    def apply_optimistic_value_to_state(self, state: AppState, optimistic_value: bool) -> AppState:
        liked = state.liked | {self.item} if optimistic_value else state.liked - {self.item}
        return replace(state, liked=liked)

    def get_value_from_state(self, state: AppState) -> bool:
        return self.item in state.liked

    async def send_value_to_server(self, value: bool) -> Any:
        server: LikeServer = self.env
        return await server.save(self.item, value)

    async def on_finish(self, error: Exception | None) -> AppState | None:
        self.finished.append(error)
        return None


@dataclass(frozen=True)
class ToggleLikeLimited(ToggleLike):
    max_follow_up_requests: ClassVar[int] = 1


def _store(server: LikeServer) -> Store[AppState]:
    return Store(AppState(), environment=server)


class TestOptimisticSync:
    @pytest.mark.asyncio
    async def test_each_toggle_shows_right_away(self) -> None:
        server = LikeServer()
        store = _store(server)

        store.dispatch(ToggleLike())
        assert "post" in store.state.liked
        store.dispatch(ToggleLike())
        assert "post" not in store.state.liked

        server.gate.set()
        await store.wait_all_actions()

    @pytest.mark.asyncio
    async def test_follow_up_sends_latest_value(self) -> None:
        """Four taps during one request: two requests, the first and the final value."""
        server = LikeServer()
        store = _store(server)

        for _ in range(4):
            store.dispatch(ToggleLike())
        server.gate.set()
        await store.wait_all_actions()

        assert server.requests == [("post", True), ("post", False)]
        assert "post" not in store.state.liked

    @pytest.mark.asyncio
    async def test_no_follow_up_when_value_ends_where_it_was_sent(self) -> None:
        server = LikeServer()
        store = _store(server)

        for _ in range(3):
            store.dispatch(ToggleLike())
        server.gate.set()
        await store.wait_all_actions()

        assert server.requests == [("post", True)]

    @pytest.mark.asyncio
    async def test_keys_sync_independently(self) -> None:
        server = LikeServer()
        store = _store(server)

        store.dispatch(ToggleLike("a"))
        store.dispatch(ToggleLike("b"))
        server.gate.set()
        await store.wait_all_actions()

        assert sorted(server.requests) == [("a", True), ("b", True)]
        assert store.state.liked == {"a", "b"}

    @pytest.mark.asyncio
    async def test_on_finish_called_once_by_the_sender(self) -> None:
        server = LikeServer()
        store = _store(server)
        finished: list[Exception | None] = []

        store.dispatch(ToggleLike(finished=finished))
        store.dispatch(ToggleLike(finished=finished))
        server.gate.set()
        await store.wait_all_actions()

        assert finished == [None]

    @pytest.mark.asyncio
    async def test_failure_releases_the_key(self) -> None:
        server = LikeServer()
        server.fail = True
        server.gate.set()
        store = _store(server)
        finished: list[Exception | None] = []

        status = await store.dispatch_and_wait(ToggleLike(finished=finished))

        assert status.is_completed_failed
        assert finished == [UserException("Could not save")]
        assert store.locks.optimistic_sync_keys == set()

        server.fail = False
        await store.dispatch_and_wait(ToggleLike())
        assert len(server.requests) == 2

    @pytest.mark.asyncio
    async def test_too_many_follow_ups(self) -> None:
        server = LikeServer()
        store = _store(server)

        first = store.dispatch(ToggleLikeLimited())
        store.dispatch(ToggleLikeLimited())
        server.gate.set()

        with pytest.raises(RuntimeError, match="Too many follow-up requests"):
            await first  # type: ignore[misc]

        assert store.locks.optimistic_sync_keys == set()

    def test_retry_is_forbidden(self) -> None:
        with pytest.raises(BehaviorConflictError):

            class Bad(ToggleLike):
                behaviors = (Retry(),)
