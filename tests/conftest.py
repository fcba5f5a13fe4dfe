"""Fixtures shared by the store tests."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any

import pytest


class FakeClock:
    """Store clock whose time only moves when the test says so."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Replace asyncio.sleep so backoff delays are recorded instead of waited.

    Only positive delays are recorded. Every sleep still yields to the event loop once.
    """
    real_sleep = asyncio.sleep
    recorded: list[float] = []

    def fake_sleep(delay: float, result: Any = None) -> Coroutine[Any, Any, Any]:
        if delay > 0:
            recorded.append(delay)
        return real_sleep(0, result)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    return recorded
