"""Behavior - base class for composable action behaviors (NonReentrant, Retry, ...).

Behaviors are declared on an action class and configured by their fields:

    @dataclass(frozen=True)
    class LoadUser(AsyncAction[AppState]):
        user_id: int

        behaviors = (NonReentrant(key_params=lambda a: a.user_id), )

A behavior hooks into one or more extension points of the dispatch:

- `abort_dispatch(action)`: decide, before anything runs, whether to skip the dispatch.
- `before(action)`: runs before the action's own `before()`.
- `wrap_reduce(action, reduce)`: wrap the reducer (delay it, retry it, ...).
- `after(action)`: runs after the action's own `after()`, success or failure.

Behaviors that compete for the same extension point belong to the same group, and at
most one behavior per group is allowed on an action. This is checked when the action
class is created, raising BehaviorConflictError.
"""

from __future__ import annotations

import enum
from collections.abc import Awaitable, Callable, Hashable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from redux_lib.store.exceptions.StoreException import BehaviorConflictError

if TYPE_CHECKING:
    from redux_lib.store.Action import Action, Reducer


class BehaviorGroup(enum.Enum):
    ABORT = "abort_dispatch"
    WRAP_REDUCE = "wrap_reduce"
    INTERNET = "internet"


type KeyParams = Callable[[Any], Hashable]


@dataclass(frozen=True)
class Behavior:
    """Base class for behaviors. Subclasses are frozen dataclasses holding configuration.

    Behavior instances are shared by every dispatch of the action class, so anything
    specific to one dispatch is kept in `self.data(action)`.
    """

    groups: ClassVar[frozenset[BehaviorGroup]] = frozenset()
    forces_async: ClassVar[bool] = False

    def abort_dispatch(self, action: Action[Any]) -> bool:
        return False

    def before(self, action: Action[Any]) -> Awaitable[None] | None:
        return None

    def wrap_reduce(self, action: Action[Any], reduce: Reducer[Any]) -> Reducer[Any]:
        return reduce

    def after(self, action: Action[Any]) -> None:
        return None

    def data(self, action: Action[Any]) -> dict[str, Any]:
        """Scratch space for this behavior, for the current dispatch of `action`."""
        return action._behavior_data.setdefault(id(self), {})

    @staticmethod
    def lock_key(action: Action[Any], key_params: KeyParams | None) -> Hashable:
        """Lock key of `action`: its type, plus the optional disambiguating params."""
        return (type(action), key_params(action) if key_params is not None else None)


def collect_behaviors(cls: type) -> tuple[Behavior, ...]:
    """Collect the `behaviors` declared along the MRO of an action class.

    Base classes come first. A behavior declared by a subclass replaces an inherited
    behavior of the same type.
    """
    by_type: dict[type[Behavior], Behavior] = {}
    for klass in reversed(cls.__mro__):
        declared = klass.__dict__.get("behaviors", ())
        for behavior in declared:
            if not isinstance(behavior, Behavior):
                raise TypeError(
                    f"{cls.__name__}.behaviors must contain Behavior instances, "
                    f"got {type(behavior).__name__}"
                )
            by_type.pop(type(behavior), None)
            by_type[type(behavior)] = behavior
    return tuple(by_type.values())


def validate_behaviors(
    cls: type,
    behaviors: Iterable[Behavior],
    forbidden: Iterable[type[Behavior]] = (),
) -> None:
    """Check exclusivity groups and the class's forbidden behaviors.

    Raises:
        BehaviorConflictError: If two behaviors share a group, or a forbidden one is used.
    """
    owners: dict[BehaviorGroup, Behavior] = {}
    forbidden = tuple(forbidden)
    for behavior in behaviors:
        if forbidden and isinstance(behavior, forbidden):
            raise BehaviorConflictError(
                f"{cls.__name__} cannot use the {type(behavior).__name__} behavior."
            )
        for group in behavior.groups:
            other = owners.get(group)
            if other is not None:
                raise BehaviorConflictError(
                    f"{cls.__name__}: the {type(behavior).__name__} behavior cannot be "
                    f"combined with the {type(other).__name__} behavior "
                    f"(both use {group.value})."
                )
            owners[group] = behavior
