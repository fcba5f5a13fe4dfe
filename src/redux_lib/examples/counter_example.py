"""Example: sync and async actions, behaviors, observers and waiting.

A counter that can be incremented right away, or loaded from a (simulated) server.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass, replace

from redux_lib.store.Action import Action
from redux_lib.store.ActionObserver import LoggingActionObserver
from redux_lib.store.AsyncAction import AsyncAction
from redux_lib.store.Store import Store
from redux_lib.store.behaviors.NonReentrant import NonReentrant
from redux_lib.store.behaviors.Retry import Retry
from redux_lib.store.exceptions.UserException import UserException
from redux_lib.util.log import configure_logging


@dataclass(frozen=True)
class AppState:
    counter: int = 0
    description: str = ""


@dataclass(frozen=True)
class Increment(Action[AppState]):
    amount: int = 1

    def reduce(self) -> AppState:
        return replace(self.state, counter=self.state.counter + self.amount)


@dataclass(frozen=True)
class LoadDescription(AsyncAction[AppState]):
    """Fetch a description for the current counter. Fails now and then; retried."""

    behaviors = (NonReentrant(), Retry(initial_delay=0.01))

    failure_rate: float = 0.5

    async def reduce(self) -> AppState:
        counter = self.state.counter
        await asyncio.sleep(0.01)  # Simulate network delay
        if random.random() < self.failure_rate:
            raise ConnectionError("Server unavailable")
        return replace(self.state, description=f"The counter is {counter}")


@dataclass(frozen=True)
class Decrement(Action[AppState]):
    def reduce(self) -> AppState:
        if self.state.counter == 0:
            raise UserException("The counter can't go below zero.")
        return replace(self.state, counter=self.state.counter - 1)


async def main() -> None:
    configure_logging()
    store = Store(AppState(), action_observers=[LoggingActionObserver()])

    store.dispatch(Increment())
    store.dispatch(Increment(amount=2))
    print(f"Counter: {store.state.counter}")

    # A UserException is not raised, but queued for the UI.
    store.dispatch(Decrement())
    store.dispatch(Decrement())
    store.dispatch(Decrement())
    store.dispatch(Decrement())
    error = store.get_and_remove_first_error()
    print(f"Counter: {store.state.counter}, error: {error}")

    # Second dispatch is aborted: the first is still running.
    first = store.dispatch(LoadDescription(failure_rate=0.0))
    second = store.dispatch(LoadDescription(failure_rate=0.0))
    print(f"Loading: {store.is_waiting(LoadDescription)}, second aborted: {second.aborted}")  # type: ignore[union-attr]

    await store.wait_condition(lambda state: state.description != "")
    status = await first  # type: ignore[misc]
    print(f"Description: {store.state.description!r}, ok: {status.is_completed_ok}")


if __name__ == "__main__":
    asyncio.run(main())
