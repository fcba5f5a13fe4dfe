"""Optimistic commands: show the result right away, send the command, undo on failure."""

from __future__ import annotations

import asyncio
import logging
from abc import abstractmethod
from collections.abc import Hashable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from redux_lib.store.AsyncAction import AsyncAction
from redux_lib.store.behaviors.Behavior import Behavior, BehaviorGroup
from redux_lib.store.behaviors.Debounce import Debounce
from redux_lib.store.behaviors.Fresh import Fresh
from redux_lib.store.behaviors.NonReentrant import NonReentrant
from redux_lib.store.behaviors.Retry import Retry, UnlimitedRetries
from redux_lib.store.behaviors.Throttle import Throttle
from redux_lib.store.behaviors.UnlimitedRetryCheckInternet import (
    UnlimitedRetryCheckInternet,
)

if TYPE_CHECKING:
    from redux_lib.store.Action import Action

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandLock(Behavior):
    """Non-reentrancy of optimistic commands, keyed by `compute_non_reentrant_key()`."""

    groups = frozenset({BehaviorGroup.ABORT})

    def abort_dispatch(self, action: Action[Any]) -> bool:
        key = action.compute_non_reentrant_key()  # type: ignore[attr-defined]
        keys = action.store.locks.non_reentrant_keys
        if key in keys:
            logger.debug("%s aborted: command %r is already running", action, key)
            return True
        keys.add(key)
        self.data(action)["key"] = key
        return False

    def after(self, action: Action[Any]) -> None:
        data = self.data(action)
        if "key" in data:
            action.store.locks.non_reentrant_keys.discard(data.pop("key"))


class OptimisticCommand[S](AsyncAction[S]):
    """A command to run on the server once per dispatch, shown optimistically.

    For example adding a todo item: the item appears right away, the command is sent,
    and if it fails the item is removed again (unless something else changed it in
    the meantime). The same command can't run twice at the same time; a second
    dispatch while the first is running is aborted.

    Sequence of a dispatch:

    1. `apply_value_to_state(state, optimistic_value())` is committed.
    2. `send_command_to_server(optimistic_value)`. With a Retry behavior only this call
       is retried, keeping the optimistic state in place.
    3. On success, a non-None response is applied with `apply_server_response_to_state`.
    4. On failure, if `should_rollback(...)`, `rollback_state(...)` is committed, and the
       error is raised as the action's error.
    5. Either way, if `should_reload(...)`, `reload_from_server()` runs and its result
       is applied with `apply_reload_result_to_state` if `should_apply_reload(...)`.
    """

    behaviors = (CommandLock(),)
    forbidden_behaviors = (
        NonReentrant,
        Fresh,
        Throttle,
        Debounce,
        UnlimitedRetries,
        UnlimitedRetryCheckInternet,
    )
    handles_retry_internally = True

    @abstractmethod
    def optimistic_value(self) -> Any:
        """The value to show right away, before the server confirms it."""
        ...

    @abstractmethod
    def apply_value_to_state(self, state: S, value: Any) -> S:
        """Return `state` with `value` applied. Used for the optimistic value and rollback."""
        ...

    @abstractmethod
    def get_value_from_state(self, state: S) -> Any:
        """Read, from `state`, the part that `apply_value_to_state` changes."""
        ...

    @abstractmethod
    async def send_command_to_server(self, optimistic_value: Any) -> Any:
        """Run the command on the server. May return a response, or None."""
        ...

    def apply_server_response_to_state(self, state: S, server_response: Any) -> S | None:
        """Return the state updated with the server response, or None to ignore it."""
        return None

    async def reload_from_server(self) -> Any:
        """Fetch the value from the server. Not implemented means no reload."""
        raise NotImplementedError

    def rollback_state(self, *, initial_value: Any, optimistic_value: Any, error: Exception) -> S | None:
        """Return the state to commit when the command failed, or None to keep the state."""
        return self.apply_value_to_state(self.state, initial_value)

    def should_rollback(
        self,
        *,
        current_value: Any,
        initial_value: Any,
        optimistic_value: Any,
        error: Exception,
    ) -> bool:
        """By default roll back only if the state still shows our optimistic value."""
        return current_value == optimistic_value

    def should_reload(
        self,
        *,
        current_value: Any,
        last_applied_value: Any,
        optimistic_value: Any,
        rollback_value: Any,
        error: Exception | None,
    ) -> bool:
        """By default reload only after a failure."""
        return error is not None

    def should_apply_reload(
        self,
        *,
        current_value: Any,
        last_applied_value: Any,
        optimistic_value: Any,
        rollback_value: Any,
        reload_result: Any,
        error: Exception | None,
    ) -> bool:
        return True

    def apply_reload_result_to_state(self, state: S, reload_result: Any) -> S | None:
        return self.apply_value_to_state(state, reload_result)

    def non_reentrant_key_params(self) -> Hashable:
        """Params that let different instances of the command run at the same time."""
        return None

    def compute_non_reentrant_key(self) -> Hashable:
        return (type(self), self.non_reentrant_key_params())

    async def reduce(self) -> None:
        optimistic = self.optimistic_value()
        self.dispatch_state(self.apply_value_to_state(self.state, optimistic))

        command_error: Exception | None = None
        last_applied_value = optimistic
        rollback_value: Any = None

        try:
            server_response = await self._send_command_with_retry(optimistic)
            if server_response is not None:
                new_state = self.apply_server_response_to_state(self.state, server_response)
                if new_state is not None:
                    self.dispatch_state(new_state)
                    last_applied_value = self.get_value_from_state(new_state)
        except Exception as error:
            command_error = error
            current_value = self.get_value_from_state(self.state)
            initial_value = self.get_value_from_state(self.initial_state)
            if self.should_rollback(
                current_value=current_value,
                initial_value=initial_value,
                optimistic_value=optimistic,
                error=error,
            ):
                rollback = self.rollback_state(
                    initial_value=initial_value, optimistic_value=optimistic, error=error
                )
                if rollback is not None:
                    self.dispatch_state(rollback)
                    rollback_value = self.get_value_from_state(rollback)
                    last_applied_value = rollback_value
            raise
        finally:
            await self._reload_if_needed(
                optimistic, last_applied_value, rollback_value, command_error
            )
        return None

    async def _reload_if_needed(
        self,
        optimistic: Any,
        last_applied_value: Any,
        rollback_value: Any,
        command_error: Exception | None,
    ) -> None:
        try:
            if not self.should_reload(
                current_value=self.get_value_from_state(self.state),
                last_applied_value=last_applied_value,
                optimistic_value=optimistic,
                rollback_value=rollback_value,
                error=command_error,
            ):
                return
            reload_result = await self.reload_from_server()
            # The state may have changed while reloading.
            if self.should_apply_reload(
                current_value=self.get_value_from_state(self.state),
                last_applied_value=last_applied_value,
                optimistic_value=optimistic,
                rollback_value=rollback_value,
                reload_result=reload_result,
                error=command_error,
            ):
                new_state = self.apply_reload_result_to_state(self.state, reload_result)
                if new_state is not None:
                    self.dispatch_state(new_state)
        except NotImplementedError:
            pass
        except Exception:
            # A reload failure must not hide the command's own error.
            if command_error is None:
                raise
            logger.warning("%s: reload after a failed command also failed", self, exc_info=True)

    async def _send_command_with_retry(self, optimistic: Any) -> Any:
        retry = self.behavior(Retry)
        if retry is None:
            return await self.send_command_to_server(optimistic)
        while True:
            try:
                return await self.send_command_to_server(optimistic)
            except Exception:
                if not retry.should_retry(self):
                    raise
                await asyncio.sleep(retry.next_delay(self))
