"""
The run context handed to a step function on every iteration.

A context lives exactly as long as one ``Loop.start()`` call. The engine owns
the counters and statistics; the step function reads them and drives pause,
resume, stop and listener registration through the accessors below.
"""

from __future__ import annotations

import asyncio
from typing import Any, Generic, Optional, TypeVar

from cadence.config import LoopPolicy
from cadence.events import EventName, Listener, ListenerRegistry, LoopEvent
from cadence.log import get_logger
from cadence.types import LoopStats, Stop

logger = get_logger(__name__)

T = TypeVar("T")


class LoopContext(Generic[T]):
    """Per-run mutable state: count, bridge, pause flag, stats and listeners."""

    def __init__(
        self,
        policy: LoopPolicy,
        listeners: Optional[ListenerRegistry] = None,
    ) -> None:
        self._policy = policy
        self._listeners = listeners if listeners is not None else ListenerRegistry()
        self._count = 0
        self._bridge: Optional[T] = policy.initial_bridge
        self._paused = False
        # Armed fresh on each pause activation, released (and dropped) by resume().
        self._resume_event: Optional[asyncio.Event] = None
        self.stats = LoopStats()

    # -------------------------------------------------------------------------
    # Read-only state
    # -------------------------------------------------------------------------

    @property
    def policy(self) -> LoopPolicy:
        return self._policy

    @property
    def iteration_count(self) -> int:
        """Completed iterations so far (a final, unretried failure counts too)."""
        return self._count

    @property
    def paused(self) -> bool:
        return self._paused

    def bridge(self) -> Optional[T]:
        """The previous successful result, or the policy's initial bridge."""
        return self._bridge

    # -------------------------------------------------------------------------
    # Control
    # -------------------------------------------------------------------------

    def stop(self) -> Stop:
        """Return a stop token. The step must *return* it to end the run."""
        return Stop()

    def pause(self) -> None:
        """Suspend the run before its next iteration. No-op if already paused."""
        if self._paused:
            return
        self._paused = True
        self._resume_event = asyncio.Event()
        self.stats.is_paused = True
        logger.info("loop.paused", iteration=self._count)
        self._listeners.emit(LoopEvent.PAUSE)

    def resume(self) -> None:
        """Release a pending pause. No-op if not paused."""
        if not self._paused or self._resume_event is None:
            return
        self._paused = False
        self._resume_event.set()
        self._resume_event = None
        self.stats.is_paused = False
        logger.info("loop.resumed", iteration=self._count)
        self._listeners.emit(LoopEvent.RESUME)

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def on(self, event: EventName, listener: Listener) -> None:
        self._listeners.on(event, listener)

    def off(self, event: EventName, listener: Listener) -> None:
        self._listeners.off(event, listener)

    # -------------------------------------------------------------------------
    # Engine-side hooks
    # -------------------------------------------------------------------------

    def _emit(self, event: EventName, *args: Any) -> None:
        self._listeners.emit(event, *args)

    async def _wait_if_paused(self) -> None:
        # Single-shot: a pause armed again after this wait returns is
        # honoured on the next iteration, not this one.
        event = self._resume_event
        if self._paused and event is not None:
            await event.wait()

    def _set_bridge(self, result: Optional[T]) -> None:
        self._bridge = result

    def _increment_count(self) -> None:
        self._count += 1

    def __repr__(self) -> str:
        return (
            f"LoopContext(iteration_count={self._count}, paused={self._paused}, "
            f"running={self.stats.is_running})"
        )
