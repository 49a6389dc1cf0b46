"""Measurement clock and memory sampling.

All benchmark timing goes through :func:`monotonic_ms`, which reads
``time.perf_counter`` and reports milliseconds.  Callers that need
deterministic timing (tests, mainly) pass their own zero-argument
clock returning milliseconds.

Memory sampling depends on the platform: :func:`sample_memory_usage`
returns ``None`` when the interpreter cannot report a figure.
"""

from __future__ import annotations

import sys
import time
import tracemalloc
from typing import Callable

from latbench.logging import get_logger

log = get_logger("bench.clock")

#: A zero-argument callable returning a monotonic timestamp in milliseconds.
Clock = Callable[[], float]


def monotonic_ms() -> float:
    """Return a monotonic timestamp in milliseconds (sub-ms resolution)."""
    return time.perf_counter() * 1000.0


def sample_memory_usage() -> int | None:
    """Return the current memory usage of the process in bytes.

    Prefers the size of traced allocations when :mod:`tracemalloc` is
    tracing.  Otherwise falls back to the peak resident set size from
    ``resource.getrusage``, which is unavailable on some platforms.

    Returns:
        Bytes in use, or None if no measurement is available.
    """
    if tracemalloc.is_tracing():
        current, _peak = tracemalloc.get_traced_memory()
        return current

    try:
        import resource
    except ImportError:
        log.debug("Memory sampling unavailable: no resource module")
        return None

    try:
        usage = resource.getrusage(resource.RUSAGE_SELF)
    except (OSError, ValueError) as exc:
        log.debug("Memory sampling failed: %s", exc)
        return None

    # On Linux, ru_maxrss is in KB.  On macOS, ru_maxrss is in bytes.
    multiplier = 1 if sys.platform == "darwin" else 1024
    if usage.ru_maxrss <= 0:
        return None
    return int(usage.ru_maxrss * multiplier)
