from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

from deepdiff import DeepDiff

from redux_lib.store.exceptions.StoreException import PersistException
from redux_lib.store.persistence.Persistor import Persistor
from redux_lib.util.json_utils import JSONPyValue, JSONSchema, json

logger = logging.getLogger(__name__)


class JsonFilePersistor[S](Persistor[S]):
    """Saves the state as a JSON file.

    Args:
        path: The JSON file.
        to_json: Converts the state to a JSON-compatible value.
        from_json: Converts the saved JSON back to a state.
        schema: If given, the JSON is validated before writing and after reading.
        throttle: Minimum seconds between two writes.

    A write is skipped when the JSON of the new state has no difference from the JSON
    of the last persisted state. File access runs in a worker thread.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        to_json: Callable[[S], JSONPyValue],
        from_json: Callable[[JSONPyValue], S],
        schema: JSONSchema | None = None,
        throttle: float | None = 2.0,
    ) -> None:
        self.path = Path(path)
        self.to_json = to_json
        self.from_json = from_json
        self.schema = schema
        self.throttle = throttle

    async def read_state(self) -> S | None:
        if not self.path.exists():
            return None
        try:
            data = await asyncio.to_thread(json.load, self.path)
            if self.schema is not None:
                self.schema.validate(data)
        except (OSError, ValueError) as e:
            raise PersistException(e) from e
        return self.from_json(data)

    async def delete_state(self) -> None:
        await asyncio.to_thread(self.path.unlink, missing_ok=True)

    async def persist_difference(self, *, last_persisted_state: S | None, new_state: S) -> None:
        new_json = self.to_json(new_state)
        if last_persisted_state is not None and self.path.exists():
            if not DeepDiff(self.to_json(last_persisted_state), new_json):
                logger.debug("No difference to persist in %s", self.path)
                return
        try:
            if self.schema is not None:
                self.schema.validate(new_json)
            await asyncio.to_thread(json.save, self.path, new_json)
        except (OSError, ValueError) as e:
            raise PersistException(e) from e
