"""Tests for json_utils module."""

from __future__ import annotations

import copy
from pathlib import Path

import pytest

from redux_lib.util.json_utils import JSONSchema, json

PERSON_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "age": {"type": "integer"},
    },
    "required": ["name"],
}


class TestJSONSchema:
    """Tests for JSONSchema class."""

    def test_valid_empty_schema(self) -> None:
        """Empty dict is a valid JSON schema."""
        schema = JSONSchema({})
        assert schema == {}

    def test_valid_object_schema(self) -> None:
        schema = JSONSchema(PERSON_SCHEMA)
        assert schema["type"] == "object"

    def test_invalid_type_raises(self) -> None:
        """Invalid type value raises TypeError."""
        with pytest.raises(TypeError, match="Invalid JSON Schema"):
            JSONSchema({"type": "not-a-real-type"})

    def test_non_dict_raises(self) -> None:
        with pytest.raises(TypeError, match="must be a dict"):
            JSONSchema(["a", "list"])  # type: ignore[arg-type]

    def test_schema_supports_deepcopy(self) -> None:
        original = JSONSchema(PERSON_SCHEMA)
        copied = copy.deepcopy(original)

        assert copied == original
        assert copied is not original
        assert isinstance(copied, JSONSchema)

    def test_validate_accepts_matching_value(self) -> None:
        JSONSchema(PERSON_SCHEMA).validate({"name": "Ann", "age": 30})

    def test_validate_reports_location(self) -> None:
        """A mismatch raises ValueError naming where it happened."""
        with pytest.raises(ValueError, match="at age"):
            JSONSchema(PERSON_SCHEMA).validate({"name": "Ann", "age": "thirty"})

    def test_validate_missing_required(self) -> None:
        with pytest.raises(ValueError, match="<root>"):
            JSONSchema(PERSON_SCHEMA).validate({"age": 30})


class TestJson:
    """Tests for the json helpers."""

    def test_save_and_load(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "state.json"

        json.save(path, {"counter": 1, "items": ["a", None]})

        assert json.load(path) == {"counter": 1, "items": ["a", None]}
        assert not (tmp_path / "nested" / "state.json.tmp").exists()

    def test_save_replaces_existing_file(self, tmp_path: Path) -> None:
        path = tmp_path / "state.json"
        json.save(path, {"v": 1})
        json.save(path, {"v": 2})
        assert json.load(path) == {"v": 2}

    def test_parse_and_to_string(self) -> None:
        assert json.parse(json.to_string({"a": [1, 2.5, True]})) == {"a": [1, 2.5, True]}

    def test_parse_error(self) -> None:
        with pytest.raises(json.JSONDecodeError):
            json.parse("{not json")

    @pytest.mark.parametrize(
        "value, expected",
        [
            ({"a": [1, "x", None]}, True),
            ({1: "int key"}, False),
            ((1, 2), False),
            ({"a": {1, 2}}, False),
        ],
    )
    def test_is_py_json(self, value: object, expected: bool) -> None:
        assert json.is_py_json(value) is expected

    def test_load_schema(self, tmp_path: Path) -> None:
        path = tmp_path / "schema.json"
        json.save(path, PERSON_SCHEMA)  # type: ignore[arg-type]

        schema = json.load_schema(path)

        assert isinstance(schema, JSONSchema)
        assert schema["required"] == ["name"]
