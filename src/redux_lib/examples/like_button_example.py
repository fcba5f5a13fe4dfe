"""Example: a "like" button kept in sync with a slow server.

The user taps many times while the first request is in flight. Every tap shows right
away, but only two requests reach the server: the first tap, and a follow-up with the
final value.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace

from redux_lib.store.Store import Store
from redux_lib.store.optimistic.OptimisticSync import OptimisticSync


@dataclass(frozen=True)
class AppState:
    liked: bool = False


class FakeServer:
    def __init__(self) -> None:
        self.liked = False
        self.requests: list[bool] = []

    async def save_like(self, liked: bool) -> bool:
        self.requests.append(liked)
        await asyncio.sleep(0.05)
        self.liked = liked
        return liked


@dataclass(frozen=True)
class ToggleLike(OptimisticSync[AppState, bool]):
    def value_to_apply(self) -> bool:
        return not self.state.liked

    def apply_optimistic_value_to_state(self, state: AppState, optimistic_value: bool) -> AppState:
        return replace(state, liked=optimistic_value)

    def get_value_from_state(self, state: AppState) -> bool:
        return state.liked

    async def send_value_to_server(self, value: bool) -> bool:
        server: FakeServer = self.env
        return await server.save_like(value)

    def apply_server_response_to_state(self, state: AppState, server_response: bool) -> AppState:
        return replace(state, liked=server_response)


async def main() -> None:
    server = FakeServer()
    store = Store(AppState(), environment=server)

    tasks = [store.dispatch(ToggleLike()) for _ in range(4)]
    print(f"Liked (shown right away): {store.state.liked}")

    await asyncio.gather(*tasks)  # type: ignore[arg-type]
    print(f"Liked: {store.state.liked}, on server: {server.liked}")
    print(f"Requests sent: {server.requests}")


if __name__ == "__main__":
    asyncio.run(main())
