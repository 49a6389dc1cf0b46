"""Summary statistics for benchmark iteration timings.

Reduces the recorded per-iteration durations of a run to minimum,
maximum and arithmetic mean.  No trimming or outlier rejection is
applied: failed iterations never reach this module, and every
successful one counts.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class TimingSummary:
    """Summary of recorded iteration durations, in milliseconds."""

    count: int
    min_time_ms: float
    max_time_ms: float
    average_time_ms: float


def aggregate(durations: Sequence[float]) -> TimingSummary:
    """Compute summary statistics for a sequence of durations.

    The durations are sorted ascending to take the extremes; the mean
    is the plain sum divided by the count.

    Args:
        durations: Recorded iteration durations in milliseconds.
            Must be non-empty.

    Returns:
        TimingSummary with min, max and average.

    Raises:
        ValueError: If *durations* is empty.
    """
    if not durations:
        raise ValueError("Cannot aggregate an empty sequence of durations")

    sorted_d = sorted(durations)
    n = len(sorted_d)
    average = math.fsum(sorted_d) / n

    # Floating-point summation can land a hair outside [min, max] when
    # every value is identical.
    average = min(max(average, sorted_d[0]), sorted_d[-1])

    return TimingSummary(
        count=n,
        min_time_ms=sorted_d[0],
        max_time_ms=sorted_d[-1],
        average_time_ms=average,
    )
