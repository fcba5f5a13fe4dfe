"""Tests for the settings read from the environment."""

# pyright: reportPrivateUsage=false

from __future__ import annotations

import pytest

from redux_lib import environment


class TestEnvironment:
    @pytest.mark.parametrize(
        "value, expected",
        [("on", True), ("TRUE", True), ("off", False), ("0", False), ("", None), ("maybe", None)],
    )
    def test_internet_simulation(self, monkeypatch: pytest.MonkeyPatch, value: str, expected: bool | None) -> None:
        monkeypatch.setenv("REDUX_LIB_TEST_SIMULATION", value)
        assert environment._get_simulation("REDUX_LIB_TEST_SIMULATION") is expected

    def test_numbers_with_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REDUX_LIB_TEST_INT", "7")
        monkeypatch.delenv("REDUX_LIB_TEST_FLOAT", raising=False)

        assert environment._get_int("REDUX_LIB_TEST_INT", 1) == 7
        assert environment._get_float("REDUX_LIB_TEST_FLOAT", 2.5) == 2.5
