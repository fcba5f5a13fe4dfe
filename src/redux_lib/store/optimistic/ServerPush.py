from __future__ import annotations

import logging
from abc import abstractmethod
from collections.abc import Hashable
from typing import Any, ClassVar

from redux_lib.store.Action import Action
from redux_lib.store.LockRegistry import RevisionEntry
from redux_lib.store.behaviors.AbortWhenNoInternet import AbortWhenNoInternet
from redux_lib.store.behaviors.CheckInternet import CheckInternet
from redux_lib.store.behaviors.Debounce import Debounce
from redux_lib.store.behaviors.Fresh import Fresh
from redux_lib.store.behaviors.NonReentrant import NonReentrant
from redux_lib.store.behaviors.Retry import Retry
from redux_lib.store.behaviors.Throttle import Throttle
from redux_lib.store.behaviors.UnlimitedRetryCheckInternet import (
    UnlimitedRetryCheckInternet,
)

logger = logging.getLogger(__name__)


class ServerPush[S](Action[S]):
    """Applies a value pushed by the server, unless a newer revision is already known.

    S: The state type

    Dispatch it when the server pushes a change of a value that is synced by an
    OptimisticSyncWithPush action (`associated_action()`). The push is applied only if
    its revision is strictly greater than the highest revision known for the key, so
    late or duplicated pushes never overwrite newer values.
    """

    forbidden_behaviors = (
        NonReentrant,
        Throttle,
        Fresh,
        Debounce,
        Retry,
        UnlimitedRetryCheckInternet,
        CheckInternet,
        AbortWhenNoInternet,
    )

    apply_even_if_locked: ClassVar[bool] = True
    """If False, pushes arriving while a local request for the key is in flight are ignored."""

    @abstractmethod
    def associated_action(self) -> type[Action[Any]]:
        """The OptimisticSyncWithPush action type that syncs the same value."""
        ...

    @abstractmethod
    def push_server_revision(self) -> int:
        """The revision carried by the push."""
        ...

    @abstractmethod
    def apply_server_push_to_state(self, state: S, key: Hashable, server_revision: int) -> S | None: ...

    @abstractmethod
    def get_server_revision_from_state(self, key: Hashable) -> int | None: ...

    def optimistic_sync_key_params(self) -> Hashable:
        """Must match the key params of the associated action."""
        return None

    def compute_optimistic_sync_key(self) -> Hashable:
        return (self.associated_action(), self.optimistic_sync_key_params())

    def reduce(self) -> S | None:
        key = self.compute_optimistic_sync_key()
        incoming = self.push_server_revision()
        revisions = self.store.locks.revisions

        entry = revisions.get(key)
        from_map = entry.server_revision if entry is not None else None
        from_state = self.get_server_revision_from_state(key)
        if from_map is None and from_state is None:
            current: int | None = None
        else:
            current = max(from_map or 0, from_state or 0)

        if from_map is None and from_state is not None:
            revisions[key] = (entry or RevisionEntry(intent_base_server_revision=from_state))._replace(
                server_revision=from_state
            )

        if current is not None and incoming <= current:
            logger.debug("%s ignored: revision %d is not newer than %d", self, incoming, current)
            return None

        if not self.apply_even_if_locked and key in self.store.locks.optimistic_sync_keys:
            logger.debug("%s ignored: a local request is in flight", self)
            return None

        new_state = self.apply_server_push_to_state(self.state, key, incoming)
        if new_state is None:
            return None

        entry = revisions.get(key)
        if entry is None:
            entry = RevisionEntry(intent_base_server_revision=current or 0)
        revisions[key] = entry._replace(server_revision=incoming)
        return new_state
