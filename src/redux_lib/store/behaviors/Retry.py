from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from redux_lib.store.behaviors.Behavior import Behavior, BehaviorGroup

if TYPE_CHECKING:
    from redux_lib.store.Action import Action, Reducer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Retry(Behavior):
    """Retry the reducer with exponential backoff when it raises.

    `before()` is not retried. With the defaults the delays are 0.35s, 0.7s and 1.4s,
    for at most 4 attempts. When the retries are exhausted the last error is raised and
    the earlier ones are discarded. `action.attempts` counts the failed attempts.

    Attributes:
        initial_delay: Seconds to wait before the first retry.
        multiplier: Growth factor of the delay. Values <= 1 are treated as 2.
        max_retries: Retries after the first attempt. Negative means unlimited.
        max_delay: Upper bound of the delay, in seconds.
    """

    initial_delay: float = 0.35
    multiplier: float = 2
    max_retries: int = 3
    max_delay: float = 5.0

    groups = frozenset({BehaviorGroup.WRAP_REDUCE})
    forces_async = True

    def wrap_reduce(self, action: Action[Any], reduce: Reducer[Any]) -> Reducer[Any]:
        if action.handles_retry_internally:
            return reduce

        async def retrying() -> Any:
            while True:
                try:
                    await asyncio.sleep(0)
                    result = reduce()
                    if inspect.isawaitable(result):
                        result = await result
                    return result
                except Exception as error:
                    if not self.should_retry(action):
                        raise
                    delay = self.next_delay(action)
                    logger.info(
                        "%s failed (%r), retrying in %.3fs (attempt %d)",
                        action,
                        error,
                        delay,
                        action.attempts,
                    )
                    await asyncio.sleep(delay)

        return retrying

    def should_retry(self, action: Action[Any]) -> bool:
        """Count a failed attempt, and return True if it should be retried."""
        attempts = action.attempts + 1
        action._update_status(attempts=attempts)
        return self.max_retries < 0 or attempts <= self.max_retries

    def next_delay(self, action: Action[Any]) -> float:
        """Return the next delay: `initial_delay`, then multiplied each time, capped."""
        data = self.data(action)
        multiplier = self.multiplier if self.multiplier > 1 else 2
        current = data.get("delay")
        delay = self.initial_delay if current is None else current * multiplier
        delay = min(delay, self.max_delay)
        data["delay"] = delay
        return delay


@dataclass(frozen=True)
class UnlimitedRetries(Retry):
    """Retry forever. Awaiting such an action may never finish if it keeps failing."""

    max_retries: int = -1
