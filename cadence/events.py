"""
Lifecycle events and the per-run listener registry.

Each run owns its own ``ListenerRegistry``; there is no process-wide bus.
Emission is synchronous and in-process:

  - emit() calls every listener registered at emission time
  - the listener set is snapshotted first, so ``off()`` inside a listener
    only affects later emissions
  - Listener exceptions are logged but do not propagate
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Optional, Union

from cadence.log import get_logger

logger = get_logger(__name__)

Listener = Callable[..., Any]


class LoopEvent(str, Enum):
    """Lifecycle moments a run announces."""

    START = "start"  # listener()
    STOP = "stop"  # listener()
    PAUSE = "pause"  # listener()
    RESUME = "resume"  # listener()
    ERROR = "error"  # listener(exc, attempt)
    RETRY = "retry"  # listener(exc, attempt)
    ITERATION = "iteration"  # listener(count, result)


EventName = Union[LoopEvent, str]


def coerce_event(event: EventName) -> LoopEvent:
    """Turn ``"pause"`` or ``LoopEvent.PAUSE`` into ``LoopEvent.PAUSE``."""
    try:
        return LoopEvent(event)
    except ValueError:
        valid = ", ".join(e.value for e in LoopEvent)
        raise ValueError(f"Unknown loop event {event!r} (expected one of: {valid})") from None


class ListenerRegistry:
    """Maps each event to the set of callbacks registered for it."""

    def __init__(self) -> None:
        self._listeners: dict[LoopEvent, set[Listener]] = {}

    def on(self, event: EventName, listener: Listener) -> None:
        """Register ``listener``. Registering the same callable twice is a no-op."""
        self._listeners.setdefault(coerce_event(event), set()).add(listener)

    def off(self, event: EventName, listener: Listener) -> None:
        """Remove ``listener`` if present."""
        listeners = self._listeners.get(coerce_event(event))
        if listeners:
            listeners.discard(listener)

    def emit(self, event: EventName, *args: Any) -> None:
        """Invoke every listener for ``event`` with exception isolation."""
        name = coerce_event(event)
        listeners = self._listeners.get(name)
        if not listeners:
            return
        for listener in list(listeners):
            try:
                listener(*args)
            except Exception:
                logger.error(
                    "loop.listener_failed",
                    loop_event=name.value,
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    exc_info=True,
                )

    def listener_count(self, event: Optional[EventName] = None) -> int:
        if event is not None:
            return len(self._listeners.get(coerce_event(event), ()))
        return sum(len(listeners) for listeners in self._listeners.values())

    def copy(self) -> "ListenerRegistry":
        """An independent registry holding the same listeners."""
        clone = ListenerRegistry()
        clone._listeners = {event: set(listeners) for event, listeners in self._listeners.items()}
        return clone
