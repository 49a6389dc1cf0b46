"""Benchmark execution engine.

Runs an operation in two phases:

1. Warmup: ``warmup_iterations`` untimed calls whose results and errors
   are discarded, so caches and interpreter state settle first.
2. Measurement: up to ``iterations`` timed calls.  Only calls that
   return without raising are recorded.  The elapsed time of the phase
   is checked against ``timeout_ms`` after every call; an operation that
   hangs cannot be interrupted mid-call.

Operations may be plain callables or return awaitables.  Calls are
strictly sequential: each awaitable is driven to completion before the
next call starts, so one iteration's waiting is never attributed to
another.

Usage::

    result = run_benchmark("parse", lambda: parse(doc), BenchmarkConfig(iterations=500))

    # inside a running event loop
    result = await run_benchmark_async("fetch", fetch_page)
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field
from typing import Any, Callable

from latbench.bench.clock import Clock, monotonic_ms, sample_memory_usage
from latbench.bench.config import BenchmarkConfig, check_config
from latbench.bench.errors import NoSuccessfulIterations
from latbench.bench.results import BenchmarkResult
from latbench.bench.stats import aggregate
from latbench.logging import get_logger

log = get_logger("bench.runner")

#: A zero-argument callable returning a value or an awaitable.
Operation = Callable[[], Any]


class EventLoopConflict(RuntimeError):
    """An awaitable operation was benchmarked synchronously inside a running loop."""


# ---------------------------------------------------------------------------
# Error suppression
# ---------------------------------------------------------------------------


@dataclass
class Attempt:
    """Outcome of one call to the benchmarked operation."""

    ok: bool
    value: Any = None
    error: Exception | None = None

    def describe_error(self) -> str:
        """One-line description of the failure, for logging."""
        if self.error is None:
            return ""
        return f"{type(self.error).__name__}: {self.error}"


def attempt(operation: Operation, resolve: Callable[[Any], Any] | None = None) -> Attempt:
    """Call *operation* once, converting any error into a failed Attempt.

    This is the runner's suppression policy: an ``Exception`` raised by
    the operation (or by its awaitable, when *resolve* drives one) never
    escapes.  ``KeyboardInterrupt``, ``SystemExit`` and
    :class:`EventLoopConflict` propagate.

    Args:
        operation: The zero-argument callable to invoke.
        resolve: Applied to the return value; used by the synchronous
            runner to drive awaitables to completion.
    """
    try:
        value = operation()
        if resolve is not None:
            value = resolve(value)
    except EventLoopConflict:
        raise
    except Exception as exc:  # noqa: BLE001
        return Attempt(ok=False, error=exc)
    return Attempt(ok=True, value=value)


async def attempt_async(operation: Operation) -> Attempt:
    """Async counterpart of :func:`attempt`; awaits awaitable return values."""
    try:
        value = operation()
        if inspect.isawaitable(value):
            value = await value
    except Exception as exc:  # noqa: BLE001
        return Attempt(ok=False, error=exc)
    return Attempt(ok=True, value=value)


# ---------------------------------------------------------------------------
# Measurement bookkeeping
# ---------------------------------------------------------------------------


@dataclass
class _Measurement:
    """Mutable state of one run, turned into a BenchmarkResult at the end."""

    name: str
    config: BenchmarkConfig
    clock: Clock
    start: float
    phase_start: float = 0.0
    durations: list[float] = field(default_factory=list)
    attempts: int = 0
    failures: int = 0

    def begin_measured(self) -> None:
        self.phase_start = self.clock()

    def record(self, outcome: Attempt, iter_start: float, iter_end: float) -> None:
        self.attempts += 1
        if outcome.ok:
            self.durations.append(iter_end - iter_start)
            return
        self.failures += 1
        log.debug(
            "Benchmark '%s': iteration %d failed (%s)",
            self.name,
            self.attempts,
            outcome.describe_error(),
        )

    def timed_out(self) -> bool:
        elapsed = self.clock() - self.phase_start
        if elapsed > self.config.timeout_ms:
            log.debug(
                "Benchmark '%s': timeout after %d of %d iterations (%.1fms > %.1fms)",
                self.name,
                self.attempts,
                self.config.iterations,
                elapsed,
                self.config.timeout_ms,
            )
            return True
        return False

    def finish(self) -> BenchmarkResult:
        end = self.clock()
        duration = max(end - self.start, 0.0)

        if not self.durations:
            log.debug(
                "Benchmark '%s': all %d measured iterations failed", self.name, self.attempts
            )
            raise NoSuccessfulIterations(self.name, self.attempts)

        memory: int | None = None
        if self.config.memory_tracking:
            memory = sample_memory_usage()
            if memory is None:
                log.debug("Benchmark '%s': memory usage not available", self.name)

        summary = aggregate(self.durations)
        result = BenchmarkResult.from_summary(
            self.name,
            duration,
            summary,
            memory_usage_bytes=memory,
        )

        if self.failures:
            log.warning(
                "Benchmark '%s': %d of %d iterations failed and were excluded",
                self.name,
                self.failures,
                self.attempts,
            )
        log.info(
            "Benchmark '%s': %d iterations, avg %.4fms (min %.4fms, max %.4fms)",
            self.name,
            result.iterations,
            result.average_time_ms,
            result.min_time_ms,
            result.max_time_ms,
        )
        return result


# ---------------------------------------------------------------------------
# BenchmarkRunner
# ---------------------------------------------------------------------------


class BenchmarkRunner:
    """Executes benchmarks according to a BenchmarkConfig.

    Usage::

        runner = BenchmarkRunner(BenchmarkConfig(iterations=200, warmup_iterations=20))
        result = runner.run("lookup", lambda: table.get("key"))
    """

    def __init__(
        self,
        config: BenchmarkConfig | None = None,
        *,
        clock: Clock | None = None,
    ) -> None:
        self.config = config or BenchmarkConfig()
        self.clock: Clock = clock or monotonic_ms
        self._loop: asyncio.AbstractEventLoop | None = None

    def run(self, name: str, operation: Operation) -> BenchmarkResult:
        """Benchmark *operation* synchronously.

        Awaitables returned by the operation are run on an event loop
        owned by this call, created on first use and closed afterwards.

        Raises:
            BenchmarkConfigError: If the configuration is invalid.
            NoSuccessfulIterations: If every measured iteration failed.
            EventLoopConflict: If the operation returns an awaitable
                while an event loop is already running in this thread.
        """
        check_config(self.config)
        m = self._start(name)
        try:
            for _ in range(self.config.warmup_iterations):
                attempt(operation, self._resolve)

            m.begin_measured()
            for _ in range(self.config.iterations):
                iter_start = self.clock()
                outcome = attempt(operation, self._resolve)
                iter_end = self.clock()
                m.record(outcome, iter_start, iter_end)
                if m.timed_out():
                    break
        finally:
            self._close_loop()
        return m.finish()

    async def run_async(self, name: str, operation: Operation) -> BenchmarkResult:
        """Benchmark *operation* on the running event loop.

        Same semantics as :meth:`run`; awaitables are awaited in place.
        """
        check_config(self.config)
        m = self._start(name)

        for _ in range(self.config.warmup_iterations):
            await attempt_async(operation)

        m.begin_measured()
        for _ in range(self.config.iterations):
            iter_start = self.clock()
            outcome = await attempt_async(operation)
            iter_end = self.clock()
            m.record(outcome, iter_start, iter_end)
            if m.timed_out():
                break

        return m.finish()

    def _start(self, name: str) -> _Measurement:
        log.debug(
            "Benchmark '%s': up to %d calls (%d warmup + %d measured), timeout %.0fms",
            name,
            self.config.total_iterations,
            self.config.warmup_iterations,
            self.config.iterations,
            self.config.timeout_ms,
        )
        return _Measurement(name=name, config=self.config, clock=self.clock, start=self.clock())

    def _resolve(self, value: Any) -> Any:
        """Drive an awaitable to completion on the run's own loop."""
        if not inspect.isawaitable(value):
            return value
        if self._loop is None:
            if _loop_running():
                if inspect.iscoroutine(value):
                    value.close()
                raise EventLoopConflict(
                    "Operation returned an awaitable inside a running event loop; "
                    "use run_benchmark_async() instead."
                )
            self._loop = asyncio.new_event_loop()
        return self._loop.run_until_complete(value)

    def _close_loop(self) -> None:
        loop, self._loop = self._loop, None
        if loop is None:
            return
        try:
            loop.run_until_complete(loop.shutdown_asyncgens())
        finally:
            loop.close()


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def run_benchmark(
    name: str,
    operation: Operation,
    config: BenchmarkConfig | None = None,
    *,
    clock: Clock | None = None,
) -> BenchmarkResult:
    """Benchmark *operation* and return its aggregated result.

    Args:
        name: Identifier copied into the result (need not be unique).
        operation: Zero-argument callable; may return an awaitable.
        config: Iteration, warmup, timeout and memory settings.
        clock: Millisecond clock, defaults to :func:`monotonic_ms`.

    Raises:
        BenchmarkConfigError: If the configuration is invalid.
        NoSuccessfulIterations: If every measured iteration failed.
    """
    return BenchmarkRunner(config, clock=clock).run(name, operation)


async def run_benchmark_async(
    name: str,
    operation: Operation,
    config: BenchmarkConfig | None = None,
    *,
    clock: Clock | None = None,
) -> BenchmarkResult:
    """Coroutine version of :func:`run_benchmark` for use inside an event loop."""
    return await BenchmarkRunner(config, clock=clock).run_async(name, operation)


# ---------------------------------------------------------------------------
# One-shot helpers
# ---------------------------------------------------------------------------


def _call_once(operation: Operation) -> Any:
    value = operation()
    if not inspect.isawaitable(value):
        return value
    if _loop_running():
        if inspect.iscoroutine(value):
            value.close()
        raise EventLoopConflict(
            "Operation returned an awaitable inside a running event loop; "
            "use measure_time_async() instead."
        )
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(value)
    finally:
        loop.close()


def measure_time(name: str, operation: Operation, *, clock: Clock | None = None) -> Any:
    """Run *operation* once, log how long it took, and return its value.

    Errors raised by the operation propagate unchanged.
    """
    clock = clock or monotonic_ms
    start = clock()
    try:
        return _call_once(operation)
    finally:
        log.debug("%s took %.3fms", name, clock() - start)


async def measure_time_async(
    name: str,
    operation: Operation,
    *,
    clock: Clock | None = None,
) -> Any:
    """Coroutine version of :func:`measure_time`."""
    clock = clock or monotonic_ms
    start = clock()
    try:
        value = operation()
        if inspect.isawaitable(value):
            value = await value
        return value
    finally:
        log.debug("%s took %.3fms", name, clock() - start)


def profile_memory(name: str, operation: Operation) -> Any:
    """Run *operation* once and log the change in memory usage.

    When memory cannot be sampled the operation still runs and nothing
    is logged.  Note the fallback sample is the peak RSS, so the delta
    only shows growth of the high-water mark.
    """
    before = sample_memory_usage()
    value = _call_once(operation)
    if before is None:
        return value
    after = sample_memory_usage()
    if after is not None:
        log.debug("%s memory delta: %+d bytes (now %d)", name, after - before, after)
    return value
