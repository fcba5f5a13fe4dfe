"""Tests for action, state and error observers, and the logging ones."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Any

import pytest

from redux_lib.store.Action import Action
from redux_lib.store.ActionObserver import ActionObserver, LoggingActionObserver
from redux_lib.store.AsyncAction import AsyncAction
from redux_lib.store.ErrorObserver import DevelopmentErrorObserver, SwallowErrorObserver
from redux_lib.store.StateObserver import LoggingStateObserver, StateObserver
from redux_lib.store.Store import Store
from redux_lib.store.exceptions.UserException import UserException


@dataclass(frozen=True)
class AppState:
    counter: int = 0


@dataclass(frozen=True)
class Increment(Action[AppState]):
    def reduce(self) -> AppState:
        return replace(self.state, counter=self.state.counter + 1)


@dataclass(frozen=True)
class Fail(Action[AppState]):
    error: Exception

    def reduce(self) -> AppState:
        raise self.error


class Aborted(Action[AppState]):
    def abort_dispatch(self) -> bool:
        return True

    def reduce(self) -> AppState:
        return self.state


class RecordingActionObserver(ActionObserver[AppState]):
    def __init__(self) -> None:
        self.calls: list[tuple[str, int, bool]] = []

    def observe(self, action: Action[AppState], dispatch_count: int, *, ini: bool) -> None:
        self.calls.append((action.type_name(), dispatch_count, ini))


class RecordingStateObserver(StateObserver[AppState]):
    def __init__(self) -> None:
        self.calls: list[tuple[int, int, BaseException | None, int]] = []

    def observe(
        self, action: Any, previous: AppState, new: AppState, error: BaseException | None, dispatch_count: int
    ) -> None:
        self.calls.append((previous.counter, new.counter, error, dispatch_count))


class TestActionObservers:
    def test_ini_and_end(self) -> None:
        observer = RecordingActionObserver()
        store = Store(AppState(), action_observers=[observer])

        store.dispatch(Increment())
        store.dispatch(Increment())

        assert observer.calls == [
            ("Increment", 1, True),
            ("Increment", 1, False),
            ("Increment", 2, True),
            ("Increment", 2, False),
        ]

    def test_aborted_dispatch_is_not_observed(self) -> None:
        observer = RecordingActionObserver()
        store = Store(AppState(), action_observers=[observer])

        store.dispatch(Aborted())

        assert observer.calls == []

    def test_subscribe_and_unsubscribe(self) -> None:
        observer = RecordingActionObserver()
        store = Store(AppState())

        store.subscribe(observer)
        store.dispatch(Increment())
        store.unsubscribe(observer)
        store.dispatch(Increment())

        assert len(observer.calls) == 2

    def test_failing_observer_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        class Broken(ActionObserver[AppState]):
            def observe(self, action: Any, dispatch_count: int, *, ini: bool) -> None:
                raise RuntimeError("observer bug")

        store = Store(AppState(), action_observers=[Broken()])
        with caplog.at_level(logging.ERROR, logger="redux_lib"):
            store.dispatch(Increment())

        assert store.state.counter == 1
        assert "Action observer" in caplog.text


class TestStateObservers:
    def test_called_once_per_change(self) -> None:
        observer = RecordingStateObserver()
        store = Store(AppState(), state_observers=[observer])

        store.dispatch(Increment())
        store.dispatch(Increment())

        assert observer.calls == [(0, 1, None, 1), (1, 2, None, 2)]

    def test_told_of_failures(self) -> None:
        observer = RecordingStateObserver()
        store = Store(AppState(), state_observers=[observer])

        store.dispatch(Fail(UserException("no")))

        assert observer.calls == [(0, 0, UserException("no"), 1)]


@dataclass(frozen=True)
class Step(Action[AppState]):
    events: list[str] = field(compare=False)
    fail: bool = False

    def reduce(self) -> AppState:
        if self.fail:
            raise UserException("step failed")
        return replace(self.state, counter=self.state.counter + 1)

    def after(self) -> None:
        self.events.append("after")


@dataclass(frozen=True)
class AsyncStep(AsyncAction[AppState]):
    events: list[str] = field(compare=False)

    async def reduce(self) -> AppState:
        await asyncio.sleep(0)
        return replace(self.state, counter=self.state.counter + 1)

    def after(self) -> None:
        self.events.append("after")


class OrderObserver(ActionObserver[AppState], StateObserver[AppState]):
    """Observes both dispatches and state changes, recording into one list."""

    def __init__(self, events: list[str]) -> None:
        self.events = events

    def observe(self, action: Any, *args: Any, ini: bool | None = None) -> None:  # type: ignore[override]
        if ini is not None:
            self.events.append("ini" if ini else "end")
        else:
            _previous, _new, error, _dispatch_count = args
            self.events.append("state" if error is None else "error")


class TestNotificationOrder:
    """Start, then state changes, then end, for the same dispatch."""

    def test_sync_success(self) -> None:
        events: list[str] = []
        store = Store(AppState())
        store.subscribe(OrderObserver(events))

        store.dispatch(Step(events))

        assert events == ["ini", "state", "after", "end"]

    @pytest.mark.asyncio
    async def test_async_success(self) -> None:
        events: list[str] = []
        store = Store(AppState())
        store.subscribe(OrderObserver(events))

        task = store.dispatch(AsyncStep(events))
        assert events == ["ini"]
        await task  # type: ignore[misc]

        assert events == ["ini", "state", "after", "end"]
        assert store.state.counter == 1

    def test_failing_reducer(self) -> None:
        """The error reaches state observers before after() runs."""
        events: list[str] = []
        store = Store(AppState())
        store.subscribe(OrderObserver(events))

        store.dispatch(Step(events, fail=True))

        assert events == ["ini", "error", "after", "end"]
        assert store.state.counter == 0


class TestErrorObserverImplementations:
    def test_swallow_error_observer(self) -> None:
        store = Store(AppState(), error_observers=[SwallowErrorObserver()])

        status = store.dispatch(Fail(ValueError("bug")))

        assert status.is_completed_failed  # type: ignore[union-attr]

    def test_development_observer_swallows_user_exceptions(self) -> None:
        store = Store(AppState(), error_observers=[DevelopmentErrorObserver()])

        store.dispatch(Fail(UserException("shown")))

        assert [e.msg for e in store.errors] == ["shown"]

    def test_development_observer_raises_and_shows_bugs(self) -> None:
        store = Store(AppState(), error_observers=[DevelopmentErrorObserver()])

        with pytest.raises(ValueError):
            store.dispatch(Fail(ValueError("bug")))

        assert len(store.errors) == 1
        assert store.errors[0].msg == "bug"
        assert isinstance(store.errors[0].cause, ValueError)


class TestLoggingObservers:
    def test_logging_action_observer(self, caplog: pytest.LogCaptureFixture) -> None:
        store = Store(AppState(), action_observers=[LoggingActionObserver()])

        with caplog.at_level(logging.INFO, logger="redux_lib.actions"):
            store.dispatch(Increment())

        messages = [r.getMessage() for r in caplog.records if r.name == "redux_lib.actions"]
        assert messages == ["1) Action Increment INI", "1) Action Increment END"]

    def test_logging_state_observer(self, caplog: pytest.LogCaptureFixture) -> None:
        store = Store(AppState(), state_observers=[LoggingStateObserver()])

        with caplog.at_level(logging.DEBUG, logger="redux_lib.state"):
            store.dispatch(Increment())
            store.dispatch(Fail(UserException("oops")))

        records = [r for r in caplog.records if r.name == "redux_lib.state"]
        assert [r.levelno for r in records] == [logging.DEBUG, logging.WARNING]
        assert "failed" in records[1].getMessage()
