from __future__ import annotations

from abc import abstractmethod
from collections.abc import Awaitable
from typing import ClassVar

from redux_lib.store.Action import Action, ActionMode, _NoChange


class AsyncAction[S](Action[S]):
    """An asynchronous action. `before()` and `reduce()` may be `async def`.

    S: The state type

    Dispatching an AsyncAction returns an `asyncio.Task` resolving to the ActionStatus.
    The code up to the first `await` runs inside `dispatch()`, but the state returned by
    `reduce()` is always committed later, never within the `dispatch()` call.

    An async reducer should read `self.state` after its awaits, since other actions may
    have changed the state in the meantime:

        @dataclass(frozen=True)
        class LoadName(AsyncAction[AppState]):
            async def reduce(self) -> AppState:
                name = await api.fetch_name()
                return replace(self.state, name=name)
    """

    mode: ClassVar[ActionMode] = ActionMode.ASYNC

    @abstractmethod
    def reduce(self) -> S | _NoChange | None | Awaitable[S | _NoChange | None]:  # type: ignore[override]
        """Return (or await to) the new state, or NO_CHANGE (or None) to keep it."""
        ...
