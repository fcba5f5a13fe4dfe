from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from redux_lib.store.behaviors.Behavior import Behavior, BehaviorGroup
from redux_lib.store.exceptions.StoreException import AbortDispatchException

if TYPE_CHECKING:
    from redux_lib.store.Action import Action


@dataclass(frozen=True)
class AbortWhenNoInternet(Behavior):
    """Silently abort the action if there is no internet. No error is reported."""

    groups = frozenset({BehaviorGroup.INTERNET})
    forces_async = True

    async def before(self, action: Action[Any]) -> None:
        if not await action.store.has_internet():
            raise AbortDispatchException()
