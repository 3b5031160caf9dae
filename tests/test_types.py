"""Tests for cadence.types."""

from __future__ import annotations

import dataclasses

import pytest

from cadence.types import Continue, LoopStats, Stop


def test_stop_tokens_compare_by_type() -> None:
    assert Stop() == Stop()
    assert isinstance(Stop(), Stop)


def test_continue_is_frozen() -> None:
    outcome = Continue(3)
    assert outcome.value == 3
    with pytest.raises(dataclasses.FrozenInstanceError):
        outcome.value = 4  # type: ignore[misc]


def test_record_execution_updates_average() -> None:
    stats = LoopStats()
    stats.record_execution(0.2)
    stats.record_execution(0.4)
    assert stats.execution_count == 2
    assert stats.total_execution_time == pytest.approx(0.6)
    assert stats.average_execution_time == pytest.approx(0.3)


def test_elapsed_only_after_end() -> None:
    stats = LoopStats(start_time=100.0)
    assert stats.elapsed is None
    stats.end_time = 102.5
    assert stats.elapsed == 2.5


def test_as_dict_snapshot() -> None:
    snapshot = LoopStats(execution_count=1, is_running=True).as_dict()
    assert snapshot["execution_count"] == 1
    assert snapshot["is_running"] is True
    assert snapshot["end_time"] is None
    assert set(snapshot) == {
        "start_time",
        "end_time",
        "execution_count",
        "error_count",
        "retry_count",
        "total_execution_time",
        "average_execution_time",
        "is_running",
        "is_paused",
    }
