"""Predefined action that surfaces an error to the user, through the error queue."""

from __future__ import annotations

from typing import Any

from redux_lib.store.Action import Action
from redux_lib.store.exceptions.UserException import UserException


class UserExceptionAction[S](Action[S]):
    """Raises a UserException, so it's queued in `store.errors` for the UI to show.

    Args:
        msg: The message shown to the user.
        cause: The original error, if any.
        code: Optional error code.
    """

    def __init__(self, msg: str | None = None, *, cause: Any = None, code: Any = None) -> None:
        self.error = UserException(msg, cause=cause, code=code)

    @classmethod
    def from_error(cls, error: UserException) -> UserExceptionAction[Any]:
        action: UserExceptionAction[Any] = cls()
        action.error = error
        return action

    def reduce(self) -> None:
        raise self.error
