"""
Shared fixtures for the Cadence test suite.

Provides a clean metrics registry per test, a listener that records every
lifecycle event it hears, and a sleep stub so interval/retry delays can be
asserted without actually waiting.
"""

from __future__ import annotations

from typing import Any

import pytest

from cadence.events import LoopEvent
from cadence.metrics import metrics


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture(autouse=True)
def _isolate_defaults_env(monkeypatch):
    """Keep developer shell settings from leaking into policy resolution."""
    for name in (
        "CADENCE_DEFAULT_LIMIT",
        "CADENCE_DEFAULT_INTERVAL",
        "CADENCE_DEFAULT_RETRY_ON_ERROR",
        "CADENCE_DEFAULT_MAX_RETRIES",
        "CADENCE_DEFAULT_RETRY_DELAY",
    ):
        monkeypatch.delenv(name, raising=False)


class EventRecorder:
    """Collects ``(event, args)`` pairs from every event it is attached to."""

    def __init__(self) -> None:
        self.events: list[tuple[str, tuple[Any, ...]]] = []

    def attach(self, target: Any) -> "EventRecorder":
        for event in LoopEvent:
            target.on(event, self._listener_for(event))
        return self

    def _listener_for(self, event: LoopEvent):
        def _record(*args: Any) -> None:
            self.events.append((event.value, args))

        return _record

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def args_of(self, name: str) -> list[tuple[Any, ...]]:
        return [args for event, args in self.events if event == name]


@pytest.fixture()
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture()
def sleeps(monkeypatch) -> list[float]:
    """Replace the engine's asyncio.sleep with a recorder that returns at once."""
    delays: list[float] = []

    async def _fake_sleep(delay: float) -> None:
        delays.append(delay)

    monkeypatch.setattr("cadence.engine.asyncio.sleep", _fake_sleep)
    return delays
