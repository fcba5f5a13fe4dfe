from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from redux_lib.store.behaviors.Behavior import Behavior, BehaviorGroup, KeyParams

if TYPE_CHECKING:
    from redux_lib.store.Action import Action
    from redux_lib.store.Store import Store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Throttle(Behavior):
    """Run at most once per `throttle` seconds for each lock key.

    The first dispatch runs and opens a throttle window. Dispatches inside the window are
    aborted. The first dispatch after the window runs and opens a new one. Typical use is
    loading data that is fine to show if it's less than a few seconds old.

    Attributes:
        throttle: Window length, in seconds.
        remove_lock_on_error: If True, a failed dispatch closes its window, so the next
            dispatch runs right away.
        ignore: If it returns True for an action, that dispatch runs regardless of the
            window (and opens a new one).
        key_params: Extra params distinguishing lock keys, besides the action type.
    """

    throttle: float = 1.0
    remove_lock_on_error: bool = False
    ignore: Callable[[Any], bool] | None = None
    key_params: KeyParams | None = None

    groups = frozenset({BehaviorGroup.ABORT})

    def abort_dispatch(self, action: Action[Any]) -> bool:
        locks = action.store.locks.throttle_locks
        key = self.lock_key(action, self.key_params)
        now = action.store.clock()

        if self.ignore is not None and self.ignore(action):
            locks[key] = now + self.throttle
            return False

        expires_at = locks.get(key)
        if expires_at is None or expires_at <= now:
            locks[key] = now + self.throttle
            return False

        logger.debug("%s throttled for another %.3fs", action, expires_at - now)
        return True

    def after(self, action: Action[Any]) -> None:
        if self.remove_lock_on_error and action.status.original_error is not None:
            self.remove_lock(action)
        action.store.locks.prune_expired(action.store.clock())

    def remove_lock(self, action: Action[Any]) -> None:
        """Close the throttle window of `action`'s lock key."""
        action.store.locks.throttle_locks.pop(self.lock_key(action, self.key_params), None)

    @staticmethod
    def remove_all_locks(store: Store[Any]) -> None:
        """Close every throttle window of `store`."""
        store.locks.throttle_locks.clear()
