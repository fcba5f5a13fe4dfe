"""Per-store registry of the locks and gates used by behaviors and optimistic actions.

Every Store owns one LockRegistry, so two stores (for example in two tests) never share
throttle windows, non-reentrant locks or revision counters. All access happens on the
store's event loop thread, so no synchronization is needed.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from typing import Any, NamedTuple


class RevisionEntry(NamedTuple):
    """Revision bookkeeping of one optimistic-sync key."""

    local_revision: int = 0
    """Incremented on every local dispatch for the key, never by server pushes."""

    server_revision: int | None = None
    """Highest server revision known for the key. None if none is known yet."""

    intent_base_server_revision: int = 0
    """Server revision that the latest local change was based on."""

    local_value: Any = None
    """The latest value applied locally."""


@dataclass
class LockRegistry:
    non_reentrant_keys: set[Hashable] = field(default_factory=set)
    throttle_locks: dict[Hashable, float] = field(default_factory=dict)
    """Lock key -> time (store clock) when the throttle window ends."""

    debounce_runs: dict[Hashable, int] = field(default_factory=dict)
    fresh_keys: dict[Hashable, tuple[float, object]] = field(default_factory=dict)
    """Lock key -> (time when the data stops being fresh, token of the owning dispatch)."""

    optimistic_sync_keys: set[Hashable] = field(default_factory=set)
    revisions: dict[Hashable, RevisionEntry] = field(default_factory=dict)

    def prune_expired(self, now: float) -> None:
        """Drop throttle and freshness entries that ended before `now`."""
        _prune(self.throttle_locks, lambda expires_at: expires_at <= now)
        _prune(self.fresh_keys, lambda entry: entry[0] <= now)

    def clear(self) -> None:
        self.non_reentrant_keys.clear()
        self.throttle_locks.clear()
        self.debounce_runs.clear()
        self.fresh_keys.clear()
        self.optimistic_sync_keys.clear()
        self.revisions.clear()


def _prune[K, V](mapping: dict[K, V], expired: Callable[[V], bool]) -> None:
    for key in [key for key, value in mapping.items() if expired(value)]:
        del mapping[key]
