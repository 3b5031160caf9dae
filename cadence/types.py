"""
Core data types shared across Cadence modules.

The step outcome is a tagged variant: a step either continues with a value
or asks the run to stop. ``LoopStats`` is the per-run statistics record the
engine writes and everyone else reads.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Generic, Optional, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Continue(Generic[T]):
    """An iteration result that keeps the loop going.

    Steps usually return bare values, which the engine treats as
    ``Continue(value)``. Wrapping explicitly is only needed when the value
    itself could be mistaken for a control token.
    """

    value: T


@dataclass(frozen=True)
class Stop:
    """Returned by a step to end the run early and successfully."""


StepOutcome = Union[Continue[T], Stop]


@dataclass
class LoopStats:
    """Statistics for one run.

    Wall-clock timestamps come from ``time.time()``; execution times are
    monotonic durations in seconds.
    """

    start_time: float = 0.0
    end_time: Optional[float] = None
    execution_count: int = 0
    error_count: int = 0
    retry_count: int = 0
    total_execution_time: float = 0.0
    average_execution_time: float = 0.0
    is_running: bool = False
    is_paused: bool = False

    @property
    def elapsed(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return self.end_time - self.start_time

    def record_execution(self, seconds: float) -> None:
        self.total_execution_time += seconds
        self.execution_count += 1
        self.average_execution_time = self.total_execution_time / self.execution_count

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)
