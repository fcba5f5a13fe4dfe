from __future__ import annotations

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class Persistor[S](ABC):
    """Reads and saves the Store state, for example to a local file or database.

    S: The state type

    The Store calls `persist_difference()` after state changes, at most once every
    `throttle` seconds, always with the newest state.
    """

    throttle: float | None = 2.0
    """Minimum seconds between two writes. None or 0 means write on every change."""

    @abstractmethod
    async def read_state(self) -> S | None:
        """Return the saved state, or None if there is none."""
        ...

    @abstractmethod
    async def delete_state(self) -> None: ...

    @abstractmethod
    async def persist_difference(self, *, last_persisted_state: S | None, new_state: S) -> None:
        """Save `new_state`. Implementations may only write what changed since the last save."""
        ...

    async def save_initial_state(self, state: S) -> None:
        await self.persist_difference(last_persisted_state=None, new_state=state)


class LoggingPersistor[S](Persistor[S]):
    """Wraps a Persistor, logging every call at DEBUG."""

    def __init__(self, persistor: Persistor[S]) -> None:
        self._persistor = persistor
        self.throttle = persistor.throttle

    async def read_state(self) -> S | None:
        logger.debug("Persistor: read state.")
        return await self._persistor.read_state()

    async def delete_state(self) -> None:
        logger.debug("Persistor: delete state.")
        await self._persistor.delete_state()

    async def persist_difference(self, *, last_persisted_state: S | None, new_state: S) -> None:
        logger.debug(
            "Persistor: persist difference: last_persisted_state=%r new_state=%r",
            last_persisted_state,
            new_state,
        )
        await self._persistor.persist_difference(
            last_persisted_state=last_persisted_state, new_state=new_state
        )

    async def save_initial_state(self, state: S) -> None:
        logger.debug("Persistor: save initial state.")
        await self._persistor.save_initial_state(state)
