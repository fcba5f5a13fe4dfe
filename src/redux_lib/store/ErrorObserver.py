from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from redux_lib.store.exceptions.UserException import UserException

if TYPE_CHECKING:
    from redux_lib.store.Action import Action
    from redux_lib.store.Store import Store

logger = logging.getLogger(__name__)


class ErrorObserver[S](ABC):
    """Decides whether an action's (already wrapped) error is raised to the dispatcher.

    Return True to raise it, False to swallow it, or None to leave the decision to the
    other observers. If any observer returns False the error is swallowed. Otherwise if
    any returns True it's raised. If all return None, UserExceptions are swallowed and
    other errors raised.
    """

    @abstractmethod
    def observe(
        self, error: BaseException, action: Action[S], store: Store[S]
    ) -> bool | None: ...


class SwallowErrorObserver[S](ErrorObserver[S]):
    """Swallows every error. Mostly useful in tests."""

    def observe(self, error: BaseException, action: Action[Any], store: Store[Any]) -> bool:
        return False


class DevelopmentErrorObserver[S](ErrorObserver[S]):
    """Swallows UserExceptions. Other errors are raised, and also queued as user errors.

    This makes programming errors visible in the UI's error dialog during development.
    """

    def observe(self, error: BaseException, action: Action[Any], store: Store[Any]) -> bool:
        from redux_lib.store.actions.user_exception import UserExceptionAction

        if isinstance(error, UserException):
            return False
        logger.error("%s failed: %r", action, error, exc_info=error)
        store.dispatch(UserExceptionAction(str(error), cause=error))
        return True
