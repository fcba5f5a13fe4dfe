from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from redux_lib.store.behaviors.Behavior import Behavior, BehaviorGroup, KeyParams

if TYPE_CHECKING:
    from redux_lib.store.Action import Action

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NonReentrant(Behavior):
    """Abort the dispatch while another dispatch with the same lock key is running.

    The lock key is the action type, plus `key_params(action)` if given. With key params,
    `LoadUser(1)` and `LoadUser(2)` may run at the same time, but not two `LoadUser(1)`.
    The lock is released in `after()`, so also when the action fails.
    """

    key_params: KeyParams | None = None

    groups = frozenset({BehaviorGroup.ABORT})

    def abort_dispatch(self, action: Action[Any]) -> bool:
        key = self.lock_key(action, self.key_params)
        keys = action.store.locks.non_reentrant_keys
        if key in keys:
            logger.debug("%s aborted: non-reentrant lock %r is held", action, key)
            return True
        keys.add(key)
        self.data(action)["key"] = key
        return False

    def after(self, action: Action[Any]) -> None:
        data = self.data(action)
        if "key" in data:
            action.store.locks.non_reentrant_keys.discard(data.pop("key"))
