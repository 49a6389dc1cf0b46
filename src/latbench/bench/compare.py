"""Ranking of benchmark results.

Orders finished results by average iteration time and annotates each
with its position and its relative difference to the fastest result.
Ranking is pure: the input sequence and its results are never changed.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from latbench.bench.results import BenchmarkResult


@dataclass(frozen=True)
class RankedResult:
    """One result with its place in a ranking."""

    result: BenchmarkResult
    position: int  # 0 for the fastest
    percent_improvement_over_fastest: float  # 0 for the fastest, negative otherwise

    @property
    def rank(self) -> int:
        """1-based rank, for display."""
        return self.position + 1

    @property
    def percent_slower(self) -> float:
        """How much slower than the fastest, as a non-negative percentage."""
        return 0.0 - self.percent_improvement_over_fastest

    def to_dict(self) -> dict[str, object]:
        """Serialize to a JSON-compatible dict.

        A non-finite improvement (slower than a zero-time fastest result)
        becomes None, so the output stays valid strict JSON.
        """
        pct = self.percent_improvement_over_fastest
        return {
            "rank": self.rank,
            "position": self.position,
            "percent_improvement_over_fastest": round(pct, 6) if math.isfinite(pct) else None,
            "result": self.result.to_dict(),
        }


def _improvement(fastest: float, average: float) -> float:
    """Relative difference of *average* to *fastest*, in percent."""
    if fastest > 0:
        return (fastest - average) / fastest * 100
    return float("-inf") if average > fastest else 0.0


def rank_benchmarks(results: Sequence[BenchmarkResult]) -> list[RankedResult]:
    """Rank results by average iteration time, fastest first.

    The sort is stable, so results with equal averages keep their
    input order.  Each entry gets
    ``(fastest.average - entry.average) / fastest.average * 100``,
    which is 0 for the fastest and negative for slower results.  If
    the fastest average is 0, slower entries get ``-inf``.

    Args:
        results: Finished results; not modified.

    Returns:
        A new list of RankedResult in ranking order.
    """
    ordered = sorted(results, key=lambda r: r.average_time_ms)
    if not ordered:
        return []

    best = ordered[0].average_time_ms
    ranked: list[RankedResult] = []
    for i, r in enumerate(ordered):
        pct = 0.0 if i == 0 else _improvement(best, r.average_time_ms)
        ranked.append(RankedResult(result=r, position=i, percent_improvement_over_fastest=pct))
    return ranked


def fastest(results: Sequence[BenchmarkResult]) -> BenchmarkResult | None:
    """Return the result with the lowest average time (first one on ties)."""
    ranked = rank_benchmarks(results)
    return ranked[0].result if ranked else None
