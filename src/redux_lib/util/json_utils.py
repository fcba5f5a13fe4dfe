from __future__ import annotations

import json as _json
import os
from pathlib import Path
from typing import Any, TypeGuard

import jsonschema


type JSONPyPrimitive = str | int | float | bool | None
"""Python primitives that convert to JSON without special treatment."""

type JSONPyDict = dict[str, JSONPyValue]

type JSONPyList = list[JSONPyValue]

type JSONPyValue = JSONPyPrimitive | JSONPyDict | JSONPyList


def _is_py_json(val: Any) -> bool:
    if val is None or isinstance(val, (str, int, float, bool)):
        return True
    if isinstance(val, dict):
        return all(isinstance(k, str) and _is_py_json(v) for k, v in val.items())
    if isinstance(val, list):
        return all(_is_py_json(item) for item in val)
    return False


class JSONSchema(dict[str, JSONPyValue]):
    """A JSON Schema dictionary, checked against the Draft 2020-12 meta-schema."""

    def __new__(cls, data: Any) -> JSONSchema:
        if not isinstance(data, dict):
            raise TypeError("JSONSchema must be a dict")
        try:
            jsonschema.Draft202012Validator.check_schema(data)
        except jsonschema.SchemaError as e:
            raise TypeError(f"Invalid JSON Schema: {e.message}") from e
        return super().__new__(cls, data)

    def __reduce__(self) -> tuple[type[JSONSchema], tuple[dict[str, Any]]]:
        """Support pickling and deepcopy."""
        return (JSONSchema, (dict(self),))

    def validate(self, value: JSONPyValue) -> None:
        """Check `value` against this schema.

        Raises:
            ValueError: If `value` doesn't match, with the validator's message.
        """
        try:
            jsonschema.Draft202012Validator(dict(self)).validate(value)
        except jsonschema.ValidationError as e:
            location = "/".join(str(p) for p in e.absolute_path) or "<root>"
            raise ValueError(f"JSON doesn't match the schema at {location}: {e.message}") from e


class json:
    """Typed wrapper around the standard json module, with file helpers."""

    JSONPyPrimitive = JSONPyPrimitive
    JSONPyValue = JSONPyValue
    JSONDecodeError = _json.JSONDecodeError

    @staticmethod
    def load(path: str | Path) -> JSONPyValue:
        """Load JSON from a file path."""
        return _json.loads(Path(path).read_text(encoding="utf-8"))  # type: ignore[no-any-return]

    @staticmethod
    def save(path: str | Path, json_val: JSONPyValue) -> None:
        """Write `json_val` to `path`, replacing the file atomically.

        The JSON is written to a temporary file next to `path` first, so a crash never
        leaves a half-written file behind.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_text(_json.dumps(json_val, indent=2), encoding="utf-8")
        os.replace(tmp, path)

    @staticmethod
    def to_string(json_val: JSONPyValue) -> str:
        return _json.dumps(json_val)

    @staticmethod
    def parse(json_str: str) -> JSONPyValue:
        return _json.loads(json_str)  # type: ignore[no-any-return]

    @staticmethod
    def is_py_json(val: Any) -> TypeGuard[JSONPyValue]:
        """Check if a value can be serialized to JSON without conversion.

        Args:
            val: Any Python value

        Returns:
            True for str/int/float/bool/None, and dicts (with str keys) and lists of those
        """
        return _is_py_json(val)

    @staticmethod
    def load_schema(path: str | Path) -> JSONSchema:
        """Load a JSON schema from a file path.

        Raises:
            TypeError: If the file does not contain a valid JSON schema (dict)
        """
        return JSONSchema(_json.loads(Path(path).read_text(encoding="utf-8")))
