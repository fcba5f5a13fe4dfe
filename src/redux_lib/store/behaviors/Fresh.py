from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from redux_lib.store.behaviors.Behavior import Behavior, BehaviorGroup, KeyParams

if TYPE_CHECKING:
    from redux_lib.store.Action import Action

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fresh(Behavior):
    """Abort the dispatch while the data it loads is still fresh.

    A dispatch that runs marks its lock key fresh for `fresh_for` seconds. Dispatches
    with the same key are aborted until that time passes. If the dispatch fails, the key
    goes back to what it was before (usually stale), so the next dispatch runs. That
    rollback is skipped if a later dispatch already took over the key.

    Attributes:
        fresh_for: Seconds the data stays fresh after a dispatch starts.
        ignore: If it returns True for an action, that dispatch runs even if the data is
            fresh (and makes it fresh again).
        key_params: Extra params distinguishing keys, besides the action type.
    """

    fresh_for: float = 1.0
    ignore: Callable[[Any], bool] | None = None
    key_params: KeyParams | None = None

    groups = frozenset({BehaviorGroup.ABORT})

    def abort_dispatch(self, action: Action[Any]) -> bool:
        fresh_keys = action.store.locks.fresh_keys
        key = self.lock_key(action, self.key_params)
        current = fresh_keys.get(key)
        now = action.store.clock()

        data = self.data(action)
        data["key"] = key
        data["removed"] = False

        if self.ignore is not None and self.ignore(action):
            # If it fails, the data should be considered stale.
            current = None
        elif current is not None and current[0] > now:
            logger.debug("%s aborted: data is still fresh", action)
            data.pop("key")
            return True

        token = object()
        fresh_keys[key] = (now + self.fresh_for, token)
        data["token"] = token
        data["previous"] = current
        return False

    def after(self, action: Action[Any]) -> None:
        data = self.data(action)
        fresh_keys = action.store.locks.fresh_keys
        if (
            "key" in data
            and not data["removed"]
            and action.status.original_error is not None
        ):
            key = data["key"]
            current = fresh_keys.get(key)
            if current is not None and current[1] is data["token"]:
                if data["previous"] is None:
                    del fresh_keys[key]
                else:
                    fresh_keys[key] = data["previous"]
        action.store.locks.prune_expired(action.store.clock())

    def remove_key(self, action: Action[Any]) -> None:
        """Make the data of `action`'s key stale, so the next dispatch runs."""
        action.store.locks.fresh_keys.pop(self.lock_key(action, self.key_params), None)
        self.data(action)["removed"] = True

    def remove_all_keys(self, action: Action[Any]) -> None:
        """Make the data of every key stale."""
        action.store.locks.fresh_keys.clear()
        self.data(action)["removed"] = True
