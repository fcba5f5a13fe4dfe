"""Optimistic sync for values that the server may also push (changes from other devices)."""

from __future__ import annotations

import logging
from abc import abstractmethod
from collections.abc import Hashable

from redux_lib.store.LockRegistry import RevisionEntry
from redux_lib.store.exceptions.StoreException import StoreException
from redux_lib.store.optimistic.OptimisticSync import OptimisticSync

logger = logging.getLogger(__name__)


class OptimisticSyncWithPush[S, T](OptimisticSync[S, T]):
    """OptimisticSync that reconciles local changes with server pushes by revision.

    Each local dispatch increments the key's local revision. The server assigns a
    revision to every saved value; `send_value_to_server()` must report it with
    `inform_server_revision()`. Pushes are applied with a ServerPush action for the
    same key, and only when they carry a newer revision than any known one.

    After a request completes, a follow-up is sent only if the user changed the value
    in the meantime, and no newer push already replaced both this response and the
    user's latest change. The server response is applied only if its revision is still
    the newest known one.
    """

    _current_key: Hashable
    _local_revision_called: bool
    _informed_server_revision: int | None

    @abstractmethod
    def get_server_revision_from_state(self, key: Hashable) -> int | None:
        """The server revision stored in the state for `key`, if the state keeps one."""
        ...

    def local_revision(self) -> int:
        """This dispatch's local revision. The first call in a dispatch increments it."""
        key = self._current_key
        revisions = self.store.locks.revisions
        if not self._local_revision_called:
            object.__setattr__(self, "_local_revision_called", True)
            previous = revisions.get(key)
            from_map = previous.server_revision if previous is not None else None
            from_state = self.get_server_revision_from_state(key)
            base = self._best_known_server_revision(key)
            entry = revisions.get(key, RevisionEntry())
            known = None if from_map is None and from_state is None else base
            revisions[key] = entry._replace(
                local_revision=entry.local_revision + 1,
                server_revision=known,
                intent_base_server_revision=base,
            )
        return revisions[key].local_revision

    def server_revision(self) -> int:
        """The highest server revision known for this dispatch's key (0 if none)."""
        return self._best_known_server_revision(self._current_key)

    def inform_server_revision(self, revision: int) -> None:
        """Report the revision the server assigned to the value just sent."""
        object.__setattr__(self, "_informed_server_revision", revision)
        key = self._current_key
        revisions = self.store.locks.revisions
        current = self._best_known_server_revision(key)
        if revision > current:
            entry = revisions.get(key, RevisionEntry(intent_base_server_revision=current))
            revisions[key] = entry._replace(server_revision=revision)

    def _best_known_server_revision(self, key: Hashable) -> int:
        revisions = self.store.locks.revisions
        entry = revisions.get(key)
        from_map = entry.server_revision if entry is not None and entry.server_revision is not None else 0
        from_state = self.get_server_revision_from_state(key) or 0
        if from_state > from_map:
            base = entry.intent_base_server_revision if entry is not None else from_state
            revisions[key] = (entry or RevisionEntry())._replace(
                server_revision=from_state, intent_base_server_revision=base
            )
            return from_state
        return from_map

    async def reduce(self) -> None:
        key = self.compute_optimistic_sync_key()
        object.__setattr__(self, "_current_key", key)
        object.__setattr__(self, "_local_revision_called", False)
        object.__setattr__(self, "_informed_server_revision", None)
        self.local_revision()

        value = self.value_to_apply()
        object.__setattr__(self, "optimistic_value", value)
        revisions = self.store.locks.revisions
        revisions[key] = revisions[key]._replace(local_value=value)
        self.dispatch_state(self.apply_optimistic_value_to_state(self.state, value))

        keys = self.store.locks.optimistic_sync_keys
        if key in keys:
            return None
        keys.add(key)
        await self._send_and_follow_up(key, value)
        return None

    async def _send_and_follow_up(self, key: Hashable, sent_value: T) -> None:
        request_count = 0
        keys = self.store.locks.optimistic_sync_keys
        revisions = self.store.locks.revisions
        while True:
            request_count += 1
            sent_local_revision = self._get_local_revision(key)
            object.__setattr__(self, "_informed_server_revision", None)
            try:
                server_response = await self.send_value_to_server(sent_value)
                informed = self._informed_server_revision
                if informed is None:
                    raise StoreException(
                        f"{self.type_name()}.send_value_to_server() must call "
                        f"inform_server_revision(). Without server pushes, "
                        f"use OptimisticSync instead."
                    )

                need_follow_up = False
                if self._get_local_revision(key) > sent_local_revision:
                    entry = revisions.get(key, RevisionEntry())
                    current_server_revision = self._best_known_server_revision(key)
                    superseded_response = current_server_revision > informed
                    superseded_intent = current_server_revision > entry.intent_base_server_revision
                    if not (superseded_response and superseded_intent):
                        latest = entry.local_value
                        if latest is None:
                            latest = self.get_value_from_state(self.state)
                        need_follow_up = self.should_send_another_request(
                            state_value=latest, sent_value=sent_value, request_count=request_count
                        )
                        if need_follow_up:
                            sent_value = latest
                    else:
                        logger.debug("%s: a server push superseded the local change", self)

                if need_follow_up:
                    continue

                if server_response is not None and informed == self.server_revision():
                    new_state = self.apply_server_response_to_state(self.state, server_response)
                    if new_state is not None:
                        self.dispatch_state(new_state)
            except Exception as error:
                keys.discard(key)
                await self._call_on_finish(error)
                raise
            keys.discard(key)
            await self._call_on_finish(None)
            return

    def _get_local_revision(self, key: Hashable) -> int:
        entry = self.store.locks.revisions.get(key)
        return entry.local_revision if entry is not None else 0
