from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable, Hashable, Iterable
from typing import Any, overload

from glom import glom

from redux_lib.environment import internet_simulation
from redux_lib.environment import max_errors_queued as default_max_errors_queued
from redux_lib.store.Action import (
    NO_CHANGE,
    Action,
    ActionSpec,
    DispatchResult,
    Reducer,
)
from redux_lib.store.ActionObserver import ActionObserver
from redux_lib.store.ActionStatus import ActionStatus
from redux_lib.store.ActionTracker import ActionTracker
from redux_lib.store.ErrorObserver import ErrorObserver
from redux_lib.store.ErrorPipeline import ErrorPipeline, GlobalWrapError
from redux_lib.store.LockRegistry import LockRegistry
from redux_lib.store.ObserverBus import Observer, ObserverBus
from redux_lib.store.StateObserver import StateObserver
from redux_lib.store.Subscribers import SubscriberCallback, Subscribers
from redux_lib.store.actions.update_state import UpdateStateAction
from redux_lib.store.exceptions.StoreException import (
    AbortDispatchException,
    StoreException,
)
from redux_lib.store.exceptions.UserException import UserException
from redux_lib.store.persistence.Persistor import Persistor
from redux_lib.store.persistence.ProcessPersistence import ProcessPersistence
from redux_lib.util.connectivity import ConnectivityCheck, check_connectivity

logger = logging.getLogger(__name__)

type GlobalWrapReduce[S] = Callable[[Reducer[S], Action[S]], Reducer[S]]


class Store[S]:
    """Holds the application state. The state only changes by dispatching actions.

    S: The state type. States should be immutable; an action returns a new state
    instead of changing the current one.

        store = Store(AppState(counter=0))
        store.dispatch(Increment())
        await store.dispatch_and_wait(LoadName())

    Sync actions finish inside `dispatch()`. Async actions run as tasks on the running
    event loop; `dispatch()` returns the task, and the new state is committed later.
    """

    _state: S
    _env: Any
    _locks: LockRegistry
    _observers: ObserverBus[S]
    _subscribers: Subscribers
    _tracker: ActionTracker[S]
    _error_pipeline: ErrorPipeline[S]
    _errors: deque[UserException]
    _persistence: ProcessPersistence[S] | None
    _tasks: set[asyncio.Task[ActionStatus]]

    def __init__(
        self,
        initial_state: S,
        *,
        environment: Any = None,
        action_observers: Iterable[ActionObserver[S]] = (),
        state_observers: Iterable[StateObserver[S]] = (),
        error_observers: Iterable[ErrorObserver[S]] = (),
        global_wrap_error: GlobalWrapError[S] | None = None,
        wrap_reduce: GlobalWrapReduce[S] | None = None,
        persistor: Persistor[S] | None = None,
        max_errors_queued: int = default_max_errors_queued,
        clock: Callable[[], float] = time.monotonic,
        connectivity: ConnectivityCheck = check_connectivity,
        internet_on_off_simulation: bool | None = internet_simulation,
    ) -> None:
        """
        Args:
            initial_state: The state before any action is dispatched.
            environment: Anything actions need access to (services, config), as `env`.
            action_observers: Notified when each dispatch starts and ends.
            state_observers: Notified of each state commit and each action error.
            error_observers: Decide whether action errors are raised to the dispatcher.
            global_wrap_error: Applied to every error after the action's `wrap_error()`.
            wrap_reduce: Applied to every reducer, after the action's own wrappers.
            persistor: Saves the state after changes (see `Persistor`).
            max_errors_queued: Size of the UserException queue. Older errors are dropped.
            clock: Monotonic clock in seconds, used by Throttle and Fresh.
            connectivity: Async check of the internet connection.
            internet_on_off_simulation: If not None, forces the result of
                `has_internet()`, which is handy in tests.
        """
        self._state = initial_state
        self._state_timestamp = time.time()
        self._env = environment
        self._props: dict[Hashable, Any] = {}
        self._wrap_reduce = wrap_reduce
        self._locks = LockRegistry()
        self._observers = ObserverBus(action_observers, state_observers, error_observers)
        self._subscribers = Subscribers(self)
        self._tracker = ActionTracker(self.get)
        self._error_pipeline = ErrorPipeline(self._observers, global_wrap_error)
        self._errors = deque(maxlen=max_errors_queued)
        self._persistence = (
            ProcessPersistence(persistor, initial_state, clock) if persistor is not None else None
        )
        self._tasks = set()
        self._dispatch_count = 0
        self._reduce_count = 0
        self._shutdown = False
        self.clock = clock
        self.connectivity = connectivity
        self.internet_on_off_simulation = internet_on_off_simulation

    # ==========================================================================
    # State
    # ==========================================================================

    def get(self) -> S:
        return self._state

    @property
    def state(self) -> S:
        return self._state

    @property
    def state_timestamp(self) -> float:
        """Wall-clock time (`time.time()`) of the last state commit."""
        return self._state_timestamp

    @property
    def env(self) -> Any:
        return self._env

    @property
    def locks(self) -> LockRegistry:
        return self._locks

    @property
    def dispatch_count(self) -> int:
        return self._dispatch_count

    @property
    def reduce_count(self) -> int:
        return self._reduce_count

    def prop(self, key: Hashable) -> Any:
        """Return a store-wide property, or None if it's not set."""
        return self._props.get(key)

    def set_prop(self, key: Hashable, value: Any) -> None:
        self._props[key] = value

    @overload
    def select(self, selector: str) -> Any: ...

    @overload
    def select[T](self, selector: Callable[[S], T]) -> T: ...

    def select(self, selector: str | Callable[[S], Any]) -> Any:
        """Read part of the state, by glom path (`"user.name"`) or by function."""
        if isinstance(selector, str):
            return glom(self._state, selector)
        return selector(self._state)

    def connect[T](
        self, selector: str | Callable[[S], T], callback: Callable[[T], None]
    ) -> Callable[[], None]:
        """Call `callback(value)` whenever the selected value changes.

        Returns:
            A function that disconnects the callback.
        """
        last = self.select(selector)

        def on_change(affects: Callable[[str], bool]) -> None:
            nonlocal last
            if isinstance(selector, str) and not affects(selector):
                return
            value = self.select(selector)
            if value != last:
                last = value
                callback(value)

        self._subscribers.append(on_change)
        return lambda: self._subscribers.remove(on_change)

    # ==========================================================================
    # Observers
    # ==========================================================================

    def subscribe(self, observer: Observer[S] | SubscriberCallback) -> None:
        """Add an observer, or a change callback receiving `affects(path)`.

        Observers are instances of ActionObserver, StateObserver or ErrorObserver.
        Any other callable is called after each state change:

            def on_change(affects):
                if affects("user.name"):
                    ...
        """
        if isinstance(observer, (ActionObserver, StateObserver, ErrorObserver)):
            self._observers.add(observer)
        elif callable(observer):
            self._subscribers.append(observer)
        else:
            raise TypeError(f"Cannot subscribe {type(observer).__name__} to the store")

    def unsubscribe(self, observer: Observer[S] | SubscriberCallback) -> None:
        if isinstance(observer, (ActionObserver, StateObserver, ErrorObserver)):
            self._observers.remove(observer)
        else:
            self._subscribers.remove(observer)

    # ==========================================================================
    # Dispatch
    # ==========================================================================

    def dispatch(self, action: Action[S]) -> DispatchResult:
        """Dispatch `action`.

        Returns:
            For a sync action, its final ActionStatus. For an async action, an
            `asyncio.Task` resolving to its final ActionStatus. An aborted dispatch
            returns an ActionStatus with `aborted=True` right away.

        Raises:
            StoreException: If an async action is dispatched with no running event loop.
                Also raised if `action` was already dispatched.
            Exception: A sync action's error, if the error pipeline decides to raise it.
        """
        is_sync = action.is_sync()
        loop: asyncio.AbstractEventLoop | None = None
        if not is_sync:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as e:
                raise StoreException(
                    f"{action.type_name()} is async and can only be dispatched "
                    f"from a running event loop."
                ) from e

        if action.status.is_dispatched:
            raise StoreException(
                f"{action.type_name()} was already dispatched. "
                f"Create a new action each time you dispatch."
            )

        action._bind(self)
        if self._shutdown or self._should_abort(action):
            action._update_status(aborted=True)
            return action.status

        self._dispatch_count += 1
        dispatch_count = self._dispatch_count
        action._update_status(is_dispatched=True, dispatch_count=dispatch_count)
        self._tracker.started(action)
        self._observers.action_started(action, dispatch_count)

        if is_sync:
            return self._process_action_sync(action)

        task: asyncio.Task[ActionStatus] = asyncio.Task(  # type: ignore[call-arg]
            self._process_action_async(action), loop=loop, eager_start=True
        )
        if not task.done():
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        return task

    def dispatch_sync(self, action: Action[S]) -> ActionStatus:
        """Dispatch a sync action. Raises StoreException if the action is async."""
        if not action.is_sync():
            raise StoreException(
                f"Can't dispatch_sync({action.type_name()}) because it's async."
            )
        result = self.dispatch(action)
        assert isinstance(result, ActionStatus)
        return result

    async def dispatch_and_wait(self, action: Action[S]) -> ActionStatus:
        """Dispatch `action` and wait until it finishes, sync or async."""
        result = self.dispatch(action)
        if isinstance(result, ActionStatus):
            return result
        return await result

    def dispatch_all(self, actions: Iterable[Action[S]]) -> list[DispatchResult]:
        """Dispatch the actions in order, without waiting for async ones."""
        return [self.dispatch(action) for action in actions]

    async def dispatch_and_wait_all(self, actions: Iterable[Action[S]]) -> list[ActionStatus]:
        """Dispatch the actions in order, then wait until all of them finish."""
        results = self.dispatch_all(actions)
        return [r if isinstance(r, ActionStatus) else await r for r in results]

    def dispatch_state(self, state: S) -> None:
        """Commit `state` through an UpdateStateAction, so observers see the change."""
        self.dispatch_sync(UpdateStateAction.with_state(state))

    def _should_abort(self, action: Action[S]) -> bool:
        if action.abort_dispatch():
            return True
        return any(behavior.abort_dispatch(action) for behavior in action.behaviors_in_effect())

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    def _process_action_sync(self, action: Action[S]) -> ActionStatus:
        try:
            for behavior in action.behaviors_in_effect():
                _expect_sync(action, "before() of a behavior", behavior.before(action))
            _expect_sync(action, "before()", action.before())
            action._update_status(has_finished_method_before=True)
            if self._shutdown:
                return action.status

            result = self._build_reducer(action)()
            _expect_sync(action, "reduce()", result)
            self._register_state(action, result)  # type: ignore[arg-type]
            action._update_status(has_finished_method_reduce=True)
        except Exception as error:
            return self._handle_error(action, error)
        finally:
            self._finalize(action)
        return action.status

    async def _process_action_async(self, action: Action[S]) -> ActionStatus:
        try:
            for behavior in action.behaviors_in_effect():
                result = behavior.before(action)
                if inspect.isawaitable(result):
                    await result
            result = action.before()
            if inspect.isawaitable(result):
                await result
            action._update_status(has_finished_method_before=True)
            if self._shutdown:
                return action.status

            new_state = self._build_reducer(action)()
            if inspect.isawaitable(new_state):
                new_state = await new_state
            # Async actions never commit within the dispatch() call.
            await asyncio.sleep(0)
            self._register_state(action, new_state)
            action._update_status(has_finished_method_reduce=True)
        except Exception as error:
            return self._handle_error(action, error)
        finally:
            self._finalize(action)
        return action.status

    def _build_reducer(self, action: Action[S]) -> Reducer[S]:
        reducer: Reducer[S] = action.wrap_reduce(action.reduce)
        for behavior in action.behaviors_in_effect():
            reducer = behavior.wrap_reduce(action, reducer)
        if self._wrap_reduce is not None:
            reducer = self._wrap_reduce(reducer, action)
        self._reduce_count += 1
        return reducer

    def _register_state(self, action: Action[S], new_state: Any) -> None:
        if self._shutdown:
            return
        if new_state is not None and new_state is not NO_CHANGE and new_state is not self._state:
            previous = self._state
            self._state = new_state
            self._state_timestamp = time.time()
            self._observers.state_changed(
                action, previous, new_state, None, action.status.dispatch_count
            )
            self._subscribers.notify(previous, new_state)
            self._tracker.state_changed(new_state, action)
        if self._persistence is not None:
            self._persistence.process(action, self._state)

    def _handle_error(self, action: Action[S], error: Exception) -> ActionStatus:
        if isinstance(error, AbortDispatchException):
            action._update_status(aborted=True)
            return action.status
        processed = self._process_error(action, error)
        if processed is None:
            return action.status
        if processed is error:
            raise error
        raise processed from error

    def _process_error(self, action: Action[S], error: Exception) -> BaseException | None:
        """Run the error pipeline. Returns the error to raise, or None to swallow it."""
        self._observers.state_changed(
            action, self._state, self._state, error, action.status.dispatch_count
        )
        action._update_status(original_error=error)
        wrapped = self._error_pipeline.wrap(action, error)
        action._update_status(wrapped_error=wrapped)

        self._after(action)

        if wrapped is None:
            return None
        if isinstance(wrapped, UserException):
            self.add_error(wrapped)
        if self._error_pipeline.should_raise(action, wrapped, self):
            return wrapped
        return None

    def _finalize(self, action: Action[S]) -> None:
        if not action.status.has_finished_method_after:
            self._after(action)
        self._tracker.finished(action)
        self._observers.action_finished(action, action.status.dispatch_count)

    def _after(self, action: Action[S]) -> None:
        try:
            try:
                action.after()
            except Exception:
                logger.exception("Method %s.after() raised; after() should never raise", action.type_name())
            for behavior in action.behaviors_in_effect():
                try:
                    behavior.after(action)
                except Exception:
                    logger.exception(
                        "Behavior %s failed after %s", type(behavior).__name__, action.type_name()
                    )
        finally:
            action._update_status(has_finished_method_after=True)

    # ==========================================================================
    # Waiting
    # ==========================================================================

    def is_waiting(self, actions: ActionSpec) -> bool:
        """True if any action matching `actions` (a type, an action, or an iterable) is running."""
        return self._tracker.is_waiting(actions)

    def is_failed(self, actions: ActionSpec) -> bool:
        return self._tracker.is_failed(actions)

    def exception_for(self, actions: ActionSpec) -> BaseException | None:
        return self._tracker.exception_for(actions)

    def clear_exception_for(self, actions: ActionSpec) -> None:
        self._tracker.clear_exception_for(actions)

    @property
    def actions_in_progress(self) -> tuple[Action[S], ...]:
        return self._tracker.in_flight

    async def wait_condition(
        self, condition: Callable[[S], bool], *, timeout: float | None = None
    ) -> Action[S] | None:
        return await self._tracker.wait_condition(condition, timeout=timeout)

    async def wait_action_type(
        self, action_type: type[Action[Any]], *, timeout: float | None = None
    ) -> ActionStatus | None:
        return await self._tracker.wait_action_type(action_type, timeout=timeout)

    async def wait_all_actions(
        self, actions: Iterable[Action[S]] | None = None, *, timeout: float | None = None
    ) -> None:
        await self._tracker.wait_all_actions(actions, timeout=timeout)

    # ==========================================================================
    # User errors
    # ==========================================================================

    @property
    def errors(self) -> tuple[UserException, ...]:
        """Queued UserExceptions, oldest first, for the UI to show."""
        return tuple(self._errors)

    def add_error(self, error: UserException) -> None:
        self._errors.append(error)

    def get_and_remove_first_error(self) -> UserException | None:
        return self._errors.popleft() if self._errors else None

    # ==========================================================================
    # Internet
    # ==========================================================================

    async def has_internet(self) -> bool:
        if self.internet_on_off_simulation is not None:
            return self.internet_on_off_simulation
        return await self.connectivity()

    # ==========================================================================
    # Persistence
    # ==========================================================================

    def _require_persistence(self) -> ProcessPersistence[S]:
        if self._persistence is None:
            raise StoreException("The store has no persistor.")
        return self._persistence

    async def read_state_from_persistence(self) -> S | None:
        return await self._require_persistence().read_state()

    async def delete_state_from_persistence(self) -> None:
        await self._require_persistence().delete_state()

    async def save_initial_state_in_persistence(self, state: S | None = None) -> None:
        await self._require_persistence().save_initial_state(
            self._state if state is None else state
        )

    def pause_persistor(self) -> None:
        self._require_persistence().pause()

    def persist_and_pause_persistor(self) -> None:
        self._require_persistence().persist_and_pause()

    def resume_persistor(self) -> None:
        self._require_persistence().resume()

    async def flush_persistor(self) -> None:
        """Wait until the writes in progress finish."""
        await self._require_persistence().flush()

    # ==========================================================================
    # Shutdown
    # ==========================================================================

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def shutdown(self) -> None:
        """From now on dispatches are aborted, and running actions don't commit."""
        self._shutdown = True

    async def teardown(self, empty_state: S | None = None) -> None:
        """Shut down, cancel running actions, and release every lock and waiter.

        Args:
            empty_state: If given, replaces the state (without notifying anyone).
        """
        self.shutdown()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        if self._persistence is not None:
            self._persistence.close()
        self._tracker.clear()
        self._locks.clear()
        self._subscribers.clear()
        self._errors.clear()
        if empty_state is not None:
            self._state = empty_state


def _expect_sync(action: Action[Any], method: str, result: object) -> None:
    if inspect.isawaitable(result):
        if inspect.iscoroutine(result):
            result.close()
        raise StoreException(
            f"{method} of sync action {action.type_name()} returned an awaitable. "
            f"Extend AsyncAction instead of Action."
        )
