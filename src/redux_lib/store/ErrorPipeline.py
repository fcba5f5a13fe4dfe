"""Classification of the errors raised by actions: wrap, then decide whether to raise.

The full sequence, driven by the Store when `before()` or `reduce()` raises:

1. State observers are told of the error.
2. `action.wrap_error(error)`; raising inside it replaces the error, returning None
   swallows it.
3. The Store's `global_wrap_error(error, action)`, with the same rules.
4. `after()` runs.
5. A resulting UserException is queued in `store.errors`.
6. Error observers vote on raising (see `ErrorObserver`).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from redux_lib.store.exceptions.UserException import UserException

if TYPE_CHECKING:
    from redux_lib.store.Action import Action
    from redux_lib.store.ObserverBus import ObserverBus
    from redux_lib.store.Store import Store

logger = logging.getLogger(__name__)

type GlobalWrapError[S] = Callable[[BaseException, Action[S]], BaseException | None]


class ErrorPipeline[S]:
    _global_wrap_error: GlobalWrapError[S] | None
    _observers: ObserverBus[S]

    def __init__(
        self, observers: ObserverBus[S], global_wrap_error: GlobalWrapError[S] | None = None
    ) -> None:
        self._observers = observers
        self._global_wrap_error = global_wrap_error

    def wrap(self, action: Action[S], error: BaseException) -> BaseException | None:
        """Apply the action's and the global wrappers. None means the error was swallowed."""
        wrapped: BaseException | None
        try:
            wrapped = action.wrap_error(error)  # type: ignore[arg-type]
        except Exception as replacement:
            wrapped = replacement
        if wrapped is None:
            logger.debug("%s: error %r swallowed by wrap_error()", action, error)
            return None

        if self._global_wrap_error is not None:
            try:
                wrapped = self._global_wrap_error(wrapped, action)
            except Exception as replacement:
                wrapped = replacement
            if wrapped is None:
                logger.debug("%s: error %r swallowed by global_wrap_error", action, error)
        return wrapped

    def should_raise(self, action: Action[S], error: BaseException, store: Store[Any]) -> bool:
        """Combine the error observers' decisions.

        Any observer returning False swallows the error. Otherwise any returning True
        raises it. Without an opinion, only non-UserException errors are raised.
        """
        decisions = self._observers.error_decisions(error, action, store)
        if any(decision is False for decision in decisions):
            return False
        if any(decision is True for decision in decisions):
            return True
        return not isinstance(error, UserException)
