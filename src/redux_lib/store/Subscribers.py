"""Subscription management for Store."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, Any

from deepdiff import DeepDiff, parse_path

if TYPE_CHECKING:
    from redux_lib.store.Store import Store

logger = logging.getLogger(__name__)

# Callback receives an `affects` function to check if a path was changed
type SubscriberCallback = Callable[[Callable[[str], bool]], None]


def _normalize_diff_path(diff_path: str) -> str:
    """Convert DeepDiff path like root['data']['name'] or root.data.name to 'data.name'."""
    parts = parse_path(diff_path)
    return ".".join(str(p) for p in parts)


def _make_affects(previous: Any, new: Any) -> Callable[[str], bool]:
    """Create an `affects` helper from the difference between two states.

    The difference is only computed the first time `affects` is called.

    Args:
        previous: The state before the commit
        new: The state after the commit

    Returns:
        Function that takes a path string and returns True if that path was changed
    """
    normalized_paths: set[str] | None = None

    def changed_paths() -> set[str]:
        nonlocal normalized_paths
        if normalized_paths is None:
            diff = DeepDiff(previous, new)
            normalized_paths = {_normalize_diff_path(p) for p in diff.affected_paths}
        return normalized_paths

    def affects(path: str) -> bool:
        """Check if a path was affected by this change.

        Args:
            path: Dot-notation path like "user.name" or partial like "name"

        Returns:
            True if any change affects this path. A change of the whole state (for
            example to a state of another type) affects every path.
        """
        paths = changed_paths()
        if not paths:
            return False

        for normalized in paths:
            # A change at the root
            if normalized == "":
                return True
            # Match if path is anywhere in the normalized path (partial match)
            if path in normalized:
                return True
        return False

    return affects


class Subscribers:
    """Manages store subscription callbacks.

    Subscribers are called after every state commit and receive an `affects(path)`
    function to check if specific paths were changed, abstracting away the diff internals.
    """

    _store: Store[Any]
    _callbacks: list[SubscriberCallback]

    def __init__(self, store: Store[Any]) -> None:
        self._store = store
        self._callbacks = []

    def append(self, callback: SubscriberCallback) -> None:
        """Add a subscription callback."""
        self._callbacks.append(callback)

    def remove(self, callback: SubscriberCallback) -> None:
        """Remove a subscription callback."""
        self._callbacks.remove(callback)

    def notify(self, previous: Any, new: Any) -> None:
        """Notify all subscribers of a state change.

        A subscriber that raises is logged and skipped.

        Args:
            previous: The state before the commit
            new: The state after the commit
        """
        if previous is new or not self._callbacks:
            return

        affects = _make_affects(previous, new)
        for callback in list(self._callbacks):
            try:
                callback(affects)
            except Exception:
                logger.exception("Subscriber %r failed", callback)

    def clear(self) -> None:
        self._callbacks.clear()

    def __iter__(self) -> Iterator[SubscriberCallback]:
        """Allow iteration over callbacks."""
        return iter(self._callbacks)

    def __len__(self) -> int:
        """Return number of subscribers."""
        return len(self._callbacks)
