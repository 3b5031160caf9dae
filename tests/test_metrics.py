"""Tests for cadence.metrics."""

from __future__ import annotations

from cadence.metrics import LoopMetrics, StepTotals
from cadence.types import LoopStats


def _stats(executions: int, seconds: float, errors: int = 0, retries: int = 0) -> LoopStats:
    stats = LoopStats()
    for _ in range(executions):
        stats.record_execution(seconds)
    stats.error_count = errors
    stats.retry_count = retries
    return stats


def test_run_started_counts_active_runs() -> None:
    registry = LoopMetrics()
    registry.run_started("poll")
    registry.run_started("poll")

    totals = registry.for_step("poll")
    assert totals.runs == 2
    assert totals.active_runs == 2
    assert registry.snapshot()["active_runs"] == 2


def test_record_run_folds_in_stats() -> None:
    registry = LoopMetrics()
    registry.run_started("poll")
    registry.record_run("poll", _stats(4, 0.25, errors=2, retries=1))

    totals = registry.for_step("poll")
    assert totals.active_runs == 0
    assert totals.failed_runs == 0
    assert totals.executions == 4
    assert totals.errors == 2
    assert totals.retries == 1
    assert totals.execution_time == 1.0
    assert totals.average_execution_time == 0.25


def test_failed_runs_are_counted_per_step() -> None:
    registry = LoopMetrics()
    for name in ("poll", "sync"):
        registry.run_started(name)
    registry.record_run("poll", _stats(0, 0.0, errors=1), failed=True)
    registry.record_run("sync", _stats(2, 0.1))

    assert registry.for_step("poll").failed_runs == 1
    assert registry.for_step("sync").failed_runs == 0
    steps = registry.snapshot()["steps"]
    assert set(steps) == {"poll", "sync"}
    assert steps["sync"]["executions"] == 2


def test_for_step_returns_a_copy() -> None:
    registry = LoopMetrics()
    registry.run_started("poll")
    registry.for_step("poll").runs = 99
    assert registry.for_step("poll").runs == 1
    assert registry.for_step("unknown") is None


def test_average_with_no_executions() -> None:
    assert StepTotals().average_execution_time == 0.0
    assert StepTotals().as_dict()["average_execution_time"] == 0.0


def test_reset_clears_everything() -> None:
    registry = LoopMetrics()
    registry.run_started("poll")
    registry.reset()

    snapshot = registry.snapshot()
    assert snapshot["steps"] == {}
    assert snapshot["active_runs"] == 0
    assert snapshot["uptime_seconds"] >= 0
