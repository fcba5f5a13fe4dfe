from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from redux_lib.store.Action import Action


class StateObserver[S](ABC):
    """Notified of every state commit, and of every action that failed.

    For a failure `previous` and `new` are the same object and `error` is set.
    `dispatch_count` is the sequence number of the dispatch of `action`.
    """

    @abstractmethod
    def observe(
        self,
        action: Action[S],
        previous: S,
        new: S,
        error: BaseException | None,
        dispatch_count: int,
    ) -> None: ...


class LoggingStateObserver[S](StateObserver[S]):
    """Logs state changes at DEBUG, and action failures at WARNING."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("redux_lib.state")

    def observe(
        self,
        action: Action[Any],
        previous: Any,
        new: Any,
        error: BaseException | None,
        dispatch_count: int,
    ) -> None:
        if error is not None:
            self.logger.warning("%d) %s failed: %r", dispatch_count, action, error)
        else:
            self.logger.debug("%d) %s changed the state to %r", dispatch_count, action, new)
