"""
Per-step run totals for every Cadence loop in the process.

Each ``Loop.start()`` reports here twice: once when the run begins and once
when it ends, handing over the run's ``LoopStats``. Totals are keyed by the
step function's qualified name, so a host can see which steps run, fail and
retry without holding on to individual contexts.
"""

from __future__ import annotations

import threading
import time
from dataclasses import asdict, dataclass
from typing import Any, Optional

from cadence.types import LoopStats


@dataclass
class StepTotals:
    """Accumulated numbers for one step function across its runs."""

    runs: int = 0
    failed_runs: int = 0
    active_runs: int = 0
    executions: int = 0
    errors: int = 0
    retries: int = 0
    execution_time: float = 0.0

    @property
    def average_execution_time(self) -> float:
        return self.execution_time / self.executions if self.executions else 0.0

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["execution_time"] = round(self.execution_time, 6)
        data["average_execution_time"] = round(self.average_execution_time, 6)
        return data


class LoopMetrics:
    """Thread-safe totals of finished and in-flight runs, grouped by step."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._steps: dict[str, StepTotals] = {}
        self._since = time.monotonic()

    def run_started(self, step: str) -> None:
        with self._lock:
            totals = self._steps.setdefault(step, StepTotals())
            totals.runs += 1
            totals.active_runs += 1

    def record_run(self, step: str, stats: LoopStats, failed: bool = False) -> None:
        """Fold a finished run's statistics into the step's totals."""
        with self._lock:
            totals = self._steps.setdefault(step, StepTotals())
            totals.active_runs = max(totals.active_runs - 1, 0)
            totals.failed_runs += int(failed)
            totals.executions += stats.execution_count
            totals.errors += stats.error_count
            totals.retries += stats.retry_count
            totals.execution_time += stats.total_execution_time

    def for_step(self, step: str) -> Optional[StepTotals]:
        with self._lock:
            totals = self._steps.get(step)
            return StepTotals(**asdict(totals)) if totals else None

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "uptime_seconds": round(time.monotonic() - self._since, 1),
                "active_runs": sum(t.active_runs for t in self._steps.values()),
                "steps": {name: t.as_dict() for name, t in self._steps.items()},
            }

    def reset(self) -> None:
        with self._lock:
            self._steps.clear()
            self._since = time.monotonic()


metrics = LoopMetrics()
