"""UserException - the user-facing error kind.

A UserException carries a message meant to be shown to the user (usually in a dialog).
When thrown from `before()` or `reduce()` it is, by default, swallowed by the Store:
it's queued in `store.errors`, recorded for `store.exception_for(ActionType)`, and
not raised to the code that dispatched the action.

Example:
    class SaveName(AsyncAction[AppState]):
        async def reduce(self) -> AppState:
            if not self.name:
                raise UserException("Please type a name.")
            ...
"""

from __future__ import annotations

from typing import Any


class UserException(Exception):
    """An error whose message is meant for the user, not for the logs.

    Attributes:
        msg: The message to display.
        cause: The underlying error, or another UserException with a complementary message.
        code: Optional application-specific code, usable for translation.
        reason: Optional second line explaining what happened or how to fix it.
        if_open_dialog: Whether the UI should open a dialog for this error.
    """

    msg: str | None
    cause: Any
    code: Any
    reason: str | None
    if_open_dialog: bool

    def __init__(
        self,
        msg: str | None = None,
        *,
        cause: Any = None,
        code: Any = None,
        reason: str | None = None,
        if_open_dialog: bool = True,
    ) -> None:
        super().__init__(msg)
        self.msg = msg
        self.cause = cause
        self.code = code
        self.reason = reason
        self.if_open_dialog = if_open_dialog

    def hard_cause(self) -> Any:
        """Return the first cause in the chain that is not a UserException."""
        if isinstance(self.cause, UserException):
            return self.cause.hard_cause()
        return self.cause

    def without_hard_cause(self) -> UserException:
        """Return a copy keeping only the UserException part of the cause chain."""
        cause = (
            self.cause.without_hard_cause()
            if isinstance(self.cause, UserException)
            else None
        )
        return self._copy(cause=cause)

    def add_cause(self, cause: Any) -> UserException:
        """Return a copy with `cause` appended at the end of the cause chain."""
        if cause is None:
            return self
        if isinstance(self.cause, UserException):
            return self._copy(cause=self.cause.add_cause(cause))
        if self.cause is None:
            return self._copy(cause=cause)
        # A hard cause is already present; the new cause goes in front of it.
        if isinstance(cause, UserException):
            return self._copy(cause=cause.add_cause(self.cause))
        return self._copy(cause=cause)

    def add_reason(self, reason: str | None) -> UserException:
        """Return a copy whose reason is extended with `reason`."""
        if not reason:
            return self
        joined = reason if not self.reason else f"{self.reason}\n\n{reason}"
        return self._copy(reason=joined)

    def with_dialog(self, if_open_dialog: bool) -> UserException:
        return self._copy(if_open_dialog=if_open_dialog)

    @property
    def no_dialog(self) -> UserException:
        return self.with_dialog(False)

    def message_and_reason(self) -> str:
        """Text for display: the message, then the reason and any UserException causes."""
        parts = [self.msg or ""]
        if self.reason:
            parts.append(self.reason)
        if isinstance(self.cause, UserException):
            parts.append(self.cause.message_and_reason())
        elif isinstance(self.cause, str):
            parts.append(self.cause)
        return "\n\n".join(p for p in parts if p)

    def _copy(self, **changes: Any) -> UserException:
        kwargs: dict[str, Any] = {
            "cause": self.cause,
            "code": self.code,
            "reason": self.reason,
            "if_open_dialog": self.if_open_dialog,
        }
        kwargs.update(changes)
        return type(self)(self.msg, **kwargs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UserException):
            return NotImplemented
        return (
            type(self) is type(other)
            and self.msg == other.msg
            and self.cause == other.cause
            and self.code == other.code
            and self.reason == other.reason
        )

    def __hash__(self) -> int:
        return hash((type(self), self.msg, self.code, self.reason))

    def __str__(self) -> str:
        return self.message_and_reason()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.msg!r})"
