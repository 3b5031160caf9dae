"""
The Loop Engine: drives a step function under a policy.

The pattern is deliberately plain:

    while count < limit:
        wait while paused
        outcome = await step(ctx, *args)
        if outcome is Stop: break
        record it, hand it to the next iteration through the bridge
        sleep for the interval

Retries wrap the step call. A failure is always announced through the
``error`` event first; it is then either retried (same iteration, after
``retry_delay``) or re-raised out of ``start()`` once the retry budget is
spent. Everything runs on one asyncio task and suspends only while awaiting
the step, a delay, or a pause release, so iterations never overlap.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from typing import Any, Callable, Generic, Optional, TypeVar

from cadence.config import LoopOptions, LoopPolicy, OptionsLike, resolve_policy
from cadence.context import LoopContext
from cadence.events import EventName, Listener, ListenerRegistry, LoopEvent
from cadence.log import get_logger
from cadence.metrics import metrics
from cadence.types import Continue, LoopStats, Stop

logger = get_logger(__name__)

T = TypeVar("T")

# step(ctx, *args, **kwargs) -> value | Continue | Stop | None, or an awaitable of one
StepFunction = Callable[..., Any]


def _step_name(step: StepFunction) -> str:
    return getattr(step, "__qualname__", None) or repr(step)


class Loop(Generic[T]):
    """
    A step function bound to a policy.

    Each ``start()`` is an independent run with its own context, statistics
    and listener registry. Listeners registered on the ``Loop`` itself are
    copied into every new run, which is the only way to hear that run's
    ``start`` event.
    """

    def __init__(self, step: StepFunction, policy: LoopPolicy):
        self._step = step
        self._policy = policy
        self._listeners = ListenerRegistry()

    @property
    def policy(self) -> LoopPolicy:
        return self._policy

    @property
    def step(self) -> StepFunction:
        return self._step

    def on(self, event: EventName, listener: Listener) -> "Loop[T]":
        """Register a listener for every future run. Returns ``self`` for chaining."""
        self._listeners.on(event, listener)
        return self

    def off(self, event: EventName, listener: Listener) -> "Loop[T]":
        self._listeners.off(event, listener)
        return self

    async def start(self, *args: Any, **kwargs: Any) -> LoopStats:
        """
        Run the step function until the limit is reached or it returns ``Stop``.

        Extra positional and keyword arguments are passed to every step call
        after the context.

        Returns:
            The run's ``LoopStats``.

        Raises:
            Whatever the step raised, once retries are disabled or exhausted.
        """
        ctx: LoopContext[T] = LoopContext(self._policy, self._listeners.copy())
        stats = ctx.stats
        name = _step_name(self._step)

        stats.start_time = time.time()
        stats.is_running = True
        metrics.run_started(name)
        logger.info(
            "loop.started",
            step=name,
            limit=self._policy.limit,
            interval=self._policy.interval,
            retry_on_error=self._policy.retry_on_error,
        )

        failed = False
        try:
            ctx._emit(LoopEvent.START)
            await self._drive(ctx, name, args, kwargs)
        except Exception:
            failed = True
            raise
        finally:
            metrics.record_run(name, stats, failed=failed)

        stats.end_time = time.time()
        stats.is_running = False
        logger.info(
            "loop.stopped",
            step=name,
            iterations=ctx.iteration_count,
            executions=stats.execution_count,
            errors=stats.error_count,
            retries=stats.retry_count,
            elapsed_seconds=round(stats.end_time - stats.start_time, 3),
        )
        ctx._emit(LoopEvent.STOP)
        return stats

    async def _drive(
        self,
        ctx: LoopContext[T],
        name: str,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> None:
        policy = self._policy
        stats = ctx.stats
        limit = policy.limit
        retries = 0

        while limit is None or ctx.iteration_count < limit:
            await ctx._wait_if_paused()

            began = time.monotonic()
            try:
                outcome = self._step(ctx, *args, **kwargs)
                if inspect.isawaitable(outcome):
                    outcome = await outcome
            except Exception as e:
                stats.error_count += 1
                attempt = retries + 1
                logger.warning(
                    "loop.step_failed",
                    step=name,
                    iteration=ctx.iteration_count,
                    attempt=attempt,
                    error_type=type(e).__name__,
                    error=str(e)[:200],
                )
                ctx._emit(LoopEvent.ERROR, e, attempt)

                if policy.retry_on_error and retries < policy.max_retries:
                    retries += 1
                    stats.retry_count += 1
                    logger.warning(
                        "loop.retrying",
                        step=name,
                        iteration=ctx.iteration_count,
                        attempt=retries,
                        max_retries=policy.max_retries,
                        delay_seconds=policy.retry_delay,
                    )
                    ctx._emit(LoopEvent.RETRY, e, retries)
                    if policy.retry_delay > 0:
                        await asyncio.sleep(policy.retry_delay)
                    continue

                # The failed attempt still uses up its slot.
                ctx._increment_count()
                logger.error(
                    "loop.retries_exhausted" if policy.retry_on_error else "loop.step_error_propagated",
                    step=name,
                    iteration=ctx.iteration_count - 1,
                    attempts=attempt,
                    error_type=type(e).__name__,
                    error=str(e)[:200],
                )
                raise

            if isinstance(outcome, Stop):
                logger.debug("loop.stop_requested", step=name, iteration=ctx.iteration_count)
                break
            result = outcome.value if isinstance(outcome, Continue) else outcome

            ctx._set_bridge(result)
            elapsed = time.monotonic() - began
            stats.record_execution(elapsed)
            logger.debug(
                "loop.iteration",
                step=name,
                iteration=ctx.iteration_count,
                elapsed_seconds=round(elapsed, 4),
            )
            ctx._emit(LoopEvent.ITERATION, ctx.iteration_count, result)

            ctx._increment_count()
            retries = 0

            if policy.interval > 0:
                await asyncio.sleep(policy.interval)


class LoopFactory(Generic[T]):
    """Binds step functions to one resolved policy.

    Works as a plain call (``factory(step)``) or as a decorator.
    """

    def __init__(self, policy: LoopPolicy):
        self._policy = policy

    @property
    def policy(self) -> LoopPolicy:
        return self._policy

    def __call__(self, step: StepFunction) -> Loop[T]:
        return Loop(step, self._policy)

    def __repr__(self) -> str:
        return f"LoopFactory({self._policy!r})"


def create_loop(options: OptionsLike = None, **overrides: Any) -> LoopFactory[Any]:
    """Resolve a policy once and return a factory for loops that share it."""
    return LoopFactory(resolve_policy(options, **overrides))


def create_pausable_loop(options: OptionsLike = None, **overrides: Any) -> LoopFactory[Any]:
    """Same as ``create_loop``; names the intent to pause and resume."""
    return create_loop(options, **overrides)


def _explicit_retry_flag(options: OptionsLike) -> Optional[bool]:
    if options is None:
        return None
    if isinstance(options, LoopPolicy):
        # Resolved policies always carry the flag, so it cannot mark intent.
        return None
    if isinstance(options, LoopOptions):
        return options.retry_on_error
    return options.get("retry_on_error")


def create_retry_loop(options: OptionsLike = None, **overrides: Any) -> LoopFactory[Any]:
    """Like ``create_loop`` but ``retry_on_error`` defaults to ``True``.

    The flag stays off only when the caller passes ``retry_on_error=False`` as
    a keyword, in a mapping, or in ``LoopOptions``. A resolved ``LoopPolicy``
    always carries the flag, so its value is treated as a default and turned on
    here; pass ``retry_on_error=False`` alongside it to keep retries off.
    """
    if overrides.get("retry_on_error") is None and _explicit_retry_flag(options) is None:
        overrides["retry_on_error"] = True
    return create_loop(options, **overrides)
