from __future__ import annotations

import enum
import inspect
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Iterable
from typing import TYPE_CHECKING, Any, ClassVar, Final

from redux_lib.store.ActionStatus import ActionStatus
from redux_lib.store.behaviors.Behavior import (
    Behavior,
    collect_behaviors,
    validate_behaviors,
)
from redux_lib.store.exceptions.StoreException import StoreException

if TYPE_CHECKING:
    import asyncio

    from redux_lib.store.Store import Store


class ActionMode(enum.Enum):
    SYNC = "sync"
    ASYNC = "async"


class _NoChange:
    """Type of the NO_CHANGE sentinel."""

    _instance: ClassVar[_NoChange | None] = None

    def __new__(cls) -> _NoChange:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_CHANGE"

    def __bool__(self) -> bool:
        return False


NO_CHANGE: Final = _NoChange()
"""Return from `reduce()` to finish without changing the state."""

# A reducer is a zero-argument callable returning the new state (or NO_CHANGE / None),
# possibly as an awaitable.
type Reducer[S] = Callable[[], S | _NoChange | None | Awaitable[S | _NoChange | None]]

type DispatchResult = ActionStatus | asyncio.Task[ActionStatus]

type ActionSpec = type[Action[Any]] | Action[Any] | Iterable[type[Action[Any]] | Action[Any]]


class Action[S](ABC):
    """A synchronous action. Subclass it and implement `reduce()`.

    S: The state type

    Actions are usually frozen dataclasses carrying their payload:

        @dataclass(frozen=True)
        class Increment(Action[AppState]):
            amount: int = 1

            def reduce(self) -> AppState:
                return replace(self.state, counter=self.state.counter + self.amount)

    A sync action's `before()` and `reduce()` must be plain functions; for async work
    extend AsyncAction instead. Whether an action runs sync or async is decided by its
    class (and its behaviors), never by what a call happens to return.

    Lifecycle of a dispatch: `abort_dispatch()` → `before()` → `reduce()` → `after()`.
    `after()` always runs once the action started, even if `before()` or `reduce()` failed.
    """

    mode: ClassVar[ActionMode] = ActionMode.SYNC

    behaviors: ClassVar[tuple[Behavior, ...]] = ()
    """Behaviors declared by this class (merged with those of its base classes)."""

    forbidden_behaviors: ClassVar[tuple[type[Behavior], ...]] = ()
    """Behavior types that subclasses may not use."""

    handles_retry_internally: ClassVar[bool] = False
    """True if the action applies a Retry behavior itself, to part of its reduce."""

    no_change: ClassVar[_NoChange] = NO_CHANGE

    _effective_behaviors: ClassVar[tuple[Behavior, ...]] = ()
    _forces_async: ClassVar[bool] = False

    # Runtime attributes, set when dispatched.
    _store: Store[S]
    _initial_state: S
    _status: ActionStatus
    _behavior_data: dict[int, dict[str, Any]]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        _check_declaration(cls)
        behaviors = collect_behaviors(cls)
        forbidden = tuple(
            kind for klass in cls.__mro__ for kind in klass.__dict__.get("forbidden_behaviors", ())
        )
        validate_behaviors(cls, behaviors, forbidden)
        cls._effective_behaviors = behaviors
        cls._forces_async = any(b.forces_async for b in behaviors)

    # ==========================================================================
    # Hooks
    # ==========================================================================

    def before(self) -> None | Awaitable[None]:
        """Runs before `reduce()`. Raising here skips the reducer."""
        return None

    @abstractmethod
    def reduce(self) -> S | _NoChange | None:
        """Return the new state, or NO_CHANGE (or None) to keep the current one."""
        ...

    def after(self) -> None:
        """Runs after `reduce()`, or after `before()`/`reduce()` failed. Must not raise."""
        return None

    def abort_dispatch(self) -> bool:
        """Return True to skip this dispatch entirely. Nothing else runs."""
        return False

    def wrap_reduce(self, reduce: Reducer[S]) -> Reducer[S]:
        """Wrap the reducer, for example to check the state before committing it."""
        return reduce

    def wrap_error(self, error: Exception) -> Exception | None:
        """Turn `error` into another error, or return None to swallow it.

        Typically used to turn low-level errors into a UserException.
        """
        return error

    # ==========================================================================
    # Declaration
    # ==========================================================================

    @classmethod
    def is_sync(cls) -> bool:
        """True if dispatching this action finishes synchronously."""
        return cls.mode is ActionMode.SYNC and not cls._forces_async

    @classmethod
    def behaviors_in_effect(cls) -> tuple[Behavior, ...]:
        return cls._effective_behaviors

    @classmethod
    def behavior[B: Behavior](cls, kind: type[B]) -> B | None:
        """Return the behavior of type `kind` in effect for this class, if any."""
        for behavior in cls._effective_behaviors:
            if isinstance(behavior, kind):
                return behavior
        return None

    @classmethod
    def type_name(cls) -> str:
        return cls.__qualname__

    # ==========================================================================
    # Runtime
    # ==========================================================================

    def _bind(self, store: Store[S]) -> None:
        # Actions are often frozen dataclasses, so bypass their __setattr__.
        object.__setattr__(self, "_store", store)
        object.__setattr__(self, "_initial_state", store.state)
        object.__setattr__(self, "_status", ActionStatus())
        object.__setattr__(self, "_behavior_data", {})

    def _update_status(self, **changes: Any) -> None:
        object.__setattr__(self, "_status", self._status.copy(**changes))

    @property
    def store(self) -> Store[S]:
        try:
            return self._store
        except AttributeError:
            raise StoreException(
                f"{self.type_name()} was not dispatched, so it has no store."
            ) from None

    @property
    def state(self) -> S:
        """The current state. It may change while an async action awaits."""
        return self.store.state

    @property
    def initial_state(self) -> S:
        """The state when this action was dispatched."""
        try:
            return self._initial_state
        except AttributeError:
            raise StoreException(
                f"{self.type_name()} was not dispatched, so it has no initial state."
            ) from None

    @property
    def status(self) -> ActionStatus:
        return getattr(self, "_status", None) or ActionStatus()

    @property
    def env(self) -> Any:
        return self.store.env

    @property
    def attempts(self) -> int:
        """Failed attempts retried so far in this dispatch."""
        return self.status.attempts

    def prop(self, key: Any) -> Any:
        return self.store.prop(key)

    def set_prop(self, key: Any, value: Any) -> None:
        self.store.set_prop(key, value)

    def dispatch(self, action: Action[S]) -> DispatchResult:
        return self.store.dispatch(action)

    def dispatch_sync(self, action: Action[S]) -> ActionStatus:
        return self.store.dispatch_sync(action)

    async def dispatch_and_wait(self, action: Action[S]) -> ActionStatus:
        return await self.store.dispatch_and_wait(action)

    def dispatch_all(self, actions: Iterable[Action[S]]) -> list[DispatchResult]:
        return self.store.dispatch_all(actions)

    async def dispatch_and_wait_all(self, actions: Iterable[Action[S]]) -> list[ActionStatus]:
        return await self.store.dispatch_and_wait_all(actions)

    def dispatch_state(self, state: S) -> None:
        """Commit `state` right away, notifying observers, without finishing this action."""
        self.store.dispatch_state(state)

    def is_waiting(self, actions: ActionSpec) -> bool:
        return self.store.is_waiting(actions)

    def is_failed(self, actions: ActionSpec) -> bool:
        return self.store.is_failed(actions)

    def exception_for(self, actions: ActionSpec) -> BaseException | None:
        return self.store.exception_for(actions)

    def clear_exception_for(self, actions: ActionSpec) -> None:
        self.store.clear_exception_for(actions)

    async def wait_condition(
        self, condition: Callable[[S], bool], *, timeout: float | None = None
    ) -> Action[S] | None:
        return await self.store.wait_condition(condition, timeout=timeout)

    def __str__(self) -> str:
        return f"Action {self.type_name()}"


def _check_declaration(cls: type[Action[Any]]) -> None:
    name = cls.__qualname__
    if cls.mode is ActionMode.SYNC:
        for method in ("before", "reduce"):
            if inspect.iscoroutinefunction(getattr(cls, method)):
                raise TypeError(
                    f"{name}.{method}() is async, but {name} is a sync action. "
                    f"Extend AsyncAction instead of Action."
                )
    if inspect.iscoroutinefunction(cls.after):
        raise TypeError(f"{name}.after() must be a plain function, not async.")
    if inspect.iscoroutinefunction(cls.abort_dispatch):
        raise TypeError(f"{name}.abort_dispatch() must be a plain function, not async.")
