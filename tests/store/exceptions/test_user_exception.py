"""Tests for UserException and ConnectionException."""

from __future__ import annotations

from redux_lib.store.exceptions.ConnectionException import ConnectionException
from redux_lib.store.exceptions.UserException import UserException


class TestUserException:
    def test_message_and_reason(self) -> None:
        error = UserException("Can't save", reason="The name is empty.")
        assert str(error) == "Can't save\n\nThe name is empty."

    def test_user_exception_causes_are_shown(self) -> None:
        error = UserException("Can't save", cause=UserException("Server is down"))
        assert error.message_and_reason() == "Can't save\n\nServer is down"

    def test_hard_cause(self) -> None:
        root = ValueError("timeout")
        error = UserException("A", cause=UserException("B", cause=root))

        assert error.hard_cause() is root
        assert error.without_hard_cause() == UserException("A", cause=UserException("B"))

    def test_add_cause_keeps_chain(self) -> None:
        error = UserException("A").add_cause(UserException("B")).add_cause(KeyError("k"))

        assert isinstance(error.cause, UserException)
        assert isinstance(error.hard_cause(), KeyError)

    def test_add_reason(self) -> None:
        error = UserException("A", reason="first").add_reason("second")
        assert error.reason == "first\n\nsecond"
        assert error.add_reason(None) is error

    def test_dialog(self) -> None:
        error = UserException("A")
        assert error.if_open_dialog
        assert not error.no_dialog.if_open_dialog
        assert error.no_dialog == error

    def test_equality_ignores_dialog_and_identity(self) -> None:
        assert UserException("A", code=1) == UserException("A", code=1)
        assert UserException("A", code=1) != UserException("A", code=2)
        assert len({UserException("A"), UserException("A")}) == 1


class TestConnectionException:
    def test_no_connectivity(self) -> None:
        error = ConnectionException.no_connectivity()

        assert isinstance(error, UserException)
        assert error.msg == "There is no Internet"
        assert error.reason == "Please, verify your connection."

    def test_host_message(self) -> None:
        assert ConnectionException(host="example.com").msg == (
            "It was not possible to connect to example.com."
        )

    def test_copies_keep_type(self) -> None:
        error = ConnectionException(host="example.com").with_dialog(False)

        assert isinstance(error, ConnectionException)
        assert error.host == "example.com"
        assert not error.if_open_dialog
