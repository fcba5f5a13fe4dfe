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


class _NoInternet(Exception):
    pass


@dataclass(frozen=True)
class UnlimitedRetryCheckInternet(Behavior):
    """Keep retrying until the reducer succeeds, checking the internet before each try.

    Meant for actions that load data which must eventually arrive. A dispatch is
    aborted while another action of the same type is running. While there is no
    internet the delay between tries is capped at `max_delay_no_internet`.

    Combines the roles of non-reentrancy, retry and internet checking, so it can't be
    used together with any behavior of those groups.
    """

    initial_delay: float = 0.35
    multiplier: float = 2
    max_retries: int = -1
    max_delay: float = 5.0
    max_delay_no_internet: float = 1.0

    groups = frozenset(
        {BehaviorGroup.ABORT, BehaviorGroup.WRAP_REDUCE, BehaviorGroup.INTERNET}
    )
    forces_async = True

    def abort_dispatch(self, action: Action[Any]) -> bool:
        return action.store.is_waiting(type(action))

    def wrap_reduce(self, action: Action[Any], reduce: Reducer[Any]) -> Reducer[Any]:
        async def retrying() -> Any:
            while True:
                has_internet = True
                try:
                    if not await action.store.has_internet():
                        has_internet = False
                        raise _NoInternet()
                    if action.attempts == 0:
                        logger.info("Trying %s.", action.type_name())
                    else:
                        logger.info(
                            "Retrying %s (attempt %d).", action.type_name(), action.attempts
                        )
                    result = reduce()
                    if inspect.isawaitable(result):
                        result = await result
                    return result
                except Exception:
                    if not has_internet:
                        logger.info(
                            "%s aborted because of no internet (attempt %d).",
                            action.type_name(),
                            action.attempts,
                        )
                    attempts = action.attempts + 1
                    action._update_status(attempts=attempts)
                    if 0 <= self.max_retries < attempts:
                        raise
                    await asyncio.sleep(self.next_delay(action, has_internet=has_internet))

        return retrying

    def next_delay(self, action: Action[Any], *, has_internet: bool) -> float:
        data = self.data(action)
        multiplier = self.multiplier if self.multiplier > 1 else 2
        current = data.get("delay")
        delay = self.initial_delay if current is None else current * multiplier
        delay = min(delay, self.max_delay if has_internet else self.max_delay_no_internet)
        data["delay"] = delay
        return delay
