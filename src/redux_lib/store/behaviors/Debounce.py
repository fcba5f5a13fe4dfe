from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from redux_lib.store.behaviors.Behavior import Behavior, BehaviorGroup, KeyParams

if TYPE_CHECKING:
    from redux_lib.store.Action import Action, Reducer

logger = logging.getLogger(__name__)

# Run counters wrap around here, to stay small integers.
_MAX_RUN = 2**31


@dataclass(frozen=True)
class Debounce(Behavior):
    """Delay the reducer by `debounce` seconds, and only run the last of a burst.

    Every dispatch waits `debounce` seconds. If another dispatch with the same lock key
    starts during that time, the earlier one finishes without changing the state, and
    only the latest one runs its reducer. Typical use is search-as-you-type.
    """

    debounce: float = 0.333
    key_params: KeyParams | None = None

    groups = frozenset({BehaviorGroup.WRAP_REDUCE})
    forces_async = True

    def wrap_reduce(self, action: Action[Any], reduce: Reducer[Any]) -> Reducer[Any]:
        async def debounced() -> Any:
            runs = action.store.locks.debounce_runs
            key = self.lock_key(action, self.key_params)
            run = (runs.get(key, 0) + 1) % _MAX_RUN
            runs[key] = run

            await asyncio.sleep(self.debounce)

            if runs.get(key) != run:
                logger.debug("%s debounced (superseded by a later dispatch)", action)
                return None

            del runs[key]
            result = reduce()
            if inspect.isawaitable(result):
                result = await result
            return result

        return debounced
