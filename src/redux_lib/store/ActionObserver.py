from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from redux_lib.store.Action import Action


class ActionObserver[S](ABC):
    """Notified when a dispatch starts (`ini=True`) and when it ends (`ini=False`).

    Aborted dispatches are not observed.
    """

    @abstractmethod
    def observe(self, action: Action[S], dispatch_count: int, *, ini: bool) -> None: ...


class LoggingActionObserver[S](ActionObserver[S]):
    """Logs the start and the end of every dispatch.

    Args:
        logger: Logger to use. Defaults to the `redux_lib.actions` logger.
        level: Level of the log records.
    """

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.INFO) -> None:
        self.logger = logger or logging.getLogger("redux_lib.actions")
        self.level = level

    def observe(self, action: Action[Any], dispatch_count: int, *, ini: bool) -> None:
        self.logger.log(
            self.level, "%d) %s %s", dispatch_count, action, "INI" if ini else "END"
        )
