"""Optimistic sync: every change shows right away; the server gets the latest value."""

from __future__ import annotations

import logging
from abc import abstractmethod
from collections.abc import Hashable
from typing import Any, ClassVar

from redux_lib.store.AsyncAction import AsyncAction
from redux_lib.store.behaviors.Fresh import Fresh
from redux_lib.store.behaviors.NonReentrant import NonReentrant
from redux_lib.store.behaviors.Retry import Retry
from redux_lib.store.behaviors.Throttle import Throttle
from redux_lib.store.behaviors.UnlimitedRetryCheckInternet import (
    UnlimitedRetryCheckInternet,
)

logger = logging.getLogger(__name__)


class OptimisticSync[S, T](AsyncAction[S]):
    """Keep a value in sync with the server, with at most one request in flight per key.

    S: The state type
    T: The type of the synced value

    Typical use is a "like" toggle the user may tap many times. Every dispatch applies
    its value to the state right away. If no request for the key is in flight, the value
    is sent. Otherwise the dispatch finishes immediately, and when the in-flight request
    completes, a follow-up request sends the latest value if it differs from the one
    sent. The server response is applied only once the value is stable.

    Can be combined with Debounce, but not with the behaviors that abort or retry.
    """

    forbidden_behaviors = (NonReentrant, Throttle, Fresh, Retry, UnlimitedRetryCheckInternet)

    max_follow_up_requests: ClassVar[int] = 10000
    """Guard against endless follow-ups. -1 means no limit."""

    @abstractmethod
    def value_to_apply(self) -> T:
        """The value this dispatch applies, usually computed from the current state."""
        ...

    @abstractmethod
    def apply_optimistic_value_to_state(self, state: S, optimistic_value: T) -> S: ...

    @abstractmethod
    def get_value_from_state(self, state: S) -> T: ...

    @abstractmethod
    async def send_value_to_server(self, value: T) -> Any:
        """Save `value` on the server. May return a response, or None."""
        ...

    def apply_server_response_to_state(self, state: S, server_response: Any) -> S | None:
        """Return the state updated with the server response, or None to ignore it."""
        return None

    async def on_finish(self, error: Exception | None) -> S | None:
        """Called once the key is in sync, or the request failed. May return a new state."""
        return None

    def optimistic_sync_key_params(self) -> Hashable:
        """Params that make different instances sync independently (for example an item id)."""
        return None

    def compute_optimistic_sync_key(self) -> Hashable:
        return (type(self), self.optimistic_sync_key_params())

    async def reduce(self) -> None:
        key = self.compute_optimistic_sync_key()
        value = self.value_to_apply()
        # Available to on_finish(). Actions are often frozen dataclasses.
        object.__setattr__(self, "optimistic_value", value)
        self.dispatch_state(self.apply_optimistic_value_to_state(self.state, value))

        keys = self.store.locks.optimistic_sync_keys
        if key in keys:
            # The request in flight will send a follow-up if needed.
            return None
        keys.add(key)
        await self._send_and_follow_up(key, value)
        return None

    async def _send_and_follow_up(self, key: Hashable, sent_value: T) -> None:
        request_count = 0
        keys = self.store.locks.optimistic_sync_keys
        while True:
            request_count += 1
            try:
                server_response = await self.send_value_to_server(sent_value)
                state_value = self.get_value_from_state(self.state)
                if self.should_send_another_request(
                    state_value=state_value, sent_value=sent_value, request_count=request_count
                ):
                    logger.debug("%s: value changed while sending, following up", self)
                    sent_value = state_value
                    continue

                if server_response is not None:
                    new_state = self.apply_server_response_to_state(self.state, server_response)
                    if new_state is not None:
                        self.dispatch_state(new_state)
            except Exception as error:
                keys.discard(key)
                await self._call_on_finish(error)
                raise
            keys.discard(key)
            await self._call_on_finish(None)
            return

    def should_send_another_request(self, *, state_value: T, sent_value: T, request_count: int) -> bool:
        """True if the state now holds a value different from the one sent.

        Raises:
            RuntimeError: If more than `max_follow_up_requests` requests were sent.
        """
        if 0 <= self.max_follow_up_requests < request_count:
            raise RuntimeError(
                f"Too many follow-up requests in {self.type_name()} "
                f"(> {self.max_follow_up_requests})."
            )
        return state_value != sent_value

    async def _call_on_finish(self, error: Exception | None) -> None:
        new_state = await self.on_finish(error)
        if new_state is not None:
            self.dispatch_state(new_state)
