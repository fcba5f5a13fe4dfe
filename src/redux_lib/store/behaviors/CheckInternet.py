from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from redux_lib.store.behaviors.Behavior import Behavior, BehaviorGroup
from redux_lib.store.exceptions.ConnectionException import ConnectionException

if TYPE_CHECKING:
    from redux_lib.store.Action import Action


@dataclass(frozen=True)
class CheckInternet(Behavior):
    """Fail with ConnectionException, before the action runs, if there is no internet.

    ConnectionException is a UserException, so it's queued in `store.errors` for the UI
    to show, and not raised by `dispatch_and_wait()`. Note this only checks for a network
    connection, not whether the server can be reached.

    Attributes:
        open_dialog: Whether the UI should show the error in a dialog.
    """

    open_dialog: bool = True

    groups = frozenset({BehaviorGroup.INTERNET})
    forces_async = True

    async def before(self, action: Action[Any]) -> None:
        if not await action.store.has_internet():
            raise ConnectionException.no_connectivity().with_dialog(self.open_dialog)
