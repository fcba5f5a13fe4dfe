from __future__ import annotations

from typing import Any

from redux_lib.store.exceptions.UserException import UserException


class ConnectionException(UserException):
    """User-facing error for missing internet connectivity.

    Usage: `raise ConnectionException.no_connectivity()`
    """

    host: str | None

    def __init__(
        self,
        msg: str | None = None,
        *,
        host: str | None = None,
        cause: Any = None,
        code: Any = None,
        reason: str | None = "Please, verify your connection.",
        if_open_dialog: bool = True,
    ) -> None:
        if msg is None:
            msg = (
                "There is no Internet"
                if host is None
                else f"It was not possible to connect to {host}."
            )
        super().__init__(
            msg, cause=cause, code=code, reason=reason, if_open_dialog=if_open_dialog
        )
        self.host = host

    @classmethod
    def no_connectivity(cls) -> ConnectionException:
        return cls()

    def _copy(self, **changes: Any) -> UserException:
        kwargs: dict[str, Any] = {
            "host": self.host,
            "cause": self.cause,
            "code": self.code,
            "reason": self.reason,
            "if_open_dialog": self.if_open_dialog,
        }
        kwargs.update(changes)
        return ConnectionException(self.msg, **kwargs)
