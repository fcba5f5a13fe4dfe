"""Throttled persistence of the Store state, driven by state commits."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from redux_lib.store.actions.persist import PersistAction
from redux_lib.store.persistence.Persistor import Persistor

if TYPE_CHECKING:
    from redux_lib.store.Action import Action

logger = logging.getLogger(__name__)

_UNSET: Any = object()


class ProcessPersistence[S]:
    """Decides when to call the Persistor, so that writes never overlap or pile up.

    - The first change after a quiet period is written right away.
    - Changes within `throttle` seconds of the last write are written once the throttle
      ends, coalesced into a single write of the newest state.
    - A change arriving during a write is written after that write finishes.
    - PersistAction writes right away, regardless of the throttle.

    Writes run as tasks on the running event loop.
    """

    persistor: Persistor[S]
    last_persisted_state: S | None
    newest_state: S
    is_persisting: bool
    is_a_new_state_available: bool
    last_persist_time: float
    is_paused: bool
    is_init: bool

    def __init__(
        self,
        persistor: Persistor[S],
        last_persisted_state: S | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.persistor = persistor
        self.last_persisted_state = last_persisted_state
        self.newest_state = _UNSET
        self.is_persisting = False
        self.is_a_new_state_available = False
        self.clock = clock
        self.last_persist_time = clock()
        self.is_paused = False
        self.is_init = False
        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def throttle(self) -> float:
        return self.persistor.throttle or 0.0

    async def save_initial_state(self, initial_state: S) -> None:
        self.last_persisted_state = initial_state
        await self.persistor.save_initial_state(initial_state)

    async def read_state(self) -> S | None:
        state = await self.persistor.read_state()
        self.last_persisted_state = state
        return state

    async def delete_state(self) -> None:
        self.last_persisted_state = None
        await self.persistor.delete_state()

    def process(self, action: Action[S] | None, new_state: S) -> bool:
        """Called after each action with the current state. Returns True if it wrote now."""
        self.is_init = True
        self.newest_state = new_state

        if self.is_paused or new_state is self.last_persisted_state:
            return False

        if self.is_persisting:
            self.is_a_new_state_available = True
            return False

        now = self.clock()
        if now - self.last_persist_time >= self.throttle or isinstance(action, PersistAction):
            self._cancel_timer()
            return self._persist(now, new_state)

        if self._timer is None:
            loop = _running_loop()
            if loop is None:
                self.is_a_new_state_available = True
                return False
            self._timer = loop.call_later(
                self.throttle - (now - self.last_persist_time), self._on_timer
            )
        return False

    def _on_timer(self) -> None:
        self._timer = None
        self.process(None, self.newest_state)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _persist(self, now: float, new_state: S) -> bool:
        loop = _running_loop()
        if loop is None:
            logger.debug("No running event loop; persistence postponed.")
            self.is_a_new_state_available = True
            return False

        self.is_persisting = True
        self.last_persist_time = now
        self.is_a_new_state_available = False
        task = loop.create_task(self._write(new_state))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def _write(self, new_state: S) -> None:
        try:
            await self.persistor.persist_difference(
                last_persisted_state=self.last_persisted_state, new_state=new_state
            )
        except Exception:
            logger.exception("Persistor failed to save the state")
        finally:
            self.last_persisted_state = new_state
            self.is_persisting = False
            if self.is_a_new_state_available:
                self.is_a_new_state_available = False
                self.process(None, self.newest_state)

    def pause(self) -> None:
        """Stop writing until `resume()`."""
        self.is_paused = True

    def persist_and_pause(self) -> None:
        """Write the newest state now (if not yet written), then pause."""
        self.is_paused = True
        self._cancel_timer()
        if (
            self.is_init
            and not self.is_persisting
            and self.newest_state is not self.last_persisted_state
        ):
            self._persist(self.clock(), self.newest_state)

    def resume(self) -> None:
        self.is_paused = False
        if self.is_init:
            self.process(None, self.newest_state)

    async def flush(self) -> None:
        """Wait for the writes in progress."""
        while self._tasks:
            await asyncio.gather(*self._tasks)

    def close(self) -> None:
        self._cancel_timer()
        for task in self._tasks:
            task.cancel()


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None
