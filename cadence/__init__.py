"""
Cadence: an asyncio iteration controller.

Give it a step function and a policy (limit, interval, retries, pause) and it
runs the step over and over, one call at a time, tracking statistics and
announcing lifecycle events along the way.

    loop = create_loop(limit=5, interval=0.1)(step)
    stats = await loop.start()

Layers (bottom to top):
    1. Policy resolution (config)
    2. Step outcomes and statistics (types)
    3. Lifecycle events (events)
    4. Per-run context (context)
    5. The driver loop and factories (engine)
"""

from cadence.config import LoopDefaults, LoopOptions, LoopPolicy, resolve_policy
from cadence.context import LoopContext
from cadence.engine import (
    Loop,
    LoopFactory,
    create_loop,
    create_pausable_loop,
    create_retry_loop,
)
from cadence.events import ListenerRegistry, LoopEvent
from cadence.log import configure_logging
from cadence.metrics import metrics
from cadence.types import Continue, LoopStats, StepOutcome, Stop

__version__ = "0.1.0"

__all__ = [
    "Continue",
    "ListenerRegistry",
    "Loop",
    "LoopContext",
    "LoopDefaults",
    "LoopEvent",
    "LoopFactory",
    "LoopOptions",
    "LoopPolicy",
    "LoopStats",
    "StepOutcome",
    "Stop",
    "configure_logging",
    "create_loop",
    "create_pausable_loop",
    "create_retry_loop",
    "metrics",
    "resolve_policy",
]
