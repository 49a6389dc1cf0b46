"""Terminal display formatting for benchmark results.

Produces aligned plain-text tables for results and rankings.
No external dependencies.
"""

from __future__ import annotations

import math
from typing import Sequence

from latbench.bench.compare import RankedResult
from latbench.bench.results import BenchmarkResult


# ---------------------------------------------------------------------------
# Formatting utilities
# ---------------------------------------------------------------------------


def _format_ms(ms: float, precision: int = 2) -> str:
    """Format a millisecond value with adaptive units."""
    if math.isnan(ms):
        return "N/A"
    if ms < 0.001:
        return f"{ms * 1_000_000:.0f}ns"
    if ms < 1:
        return f"{ms * 1000:.{precision}f}\u00b5s"
    if ms < 1000:
        return f"{ms:.{precision}f}ms"
    seconds = ms / 1000
    if seconds < 60:
        return f"{seconds:.{precision}f}s"
    minutes = int(seconds // 60)
    return f"{minutes}m{seconds % 60:.0f}s"


def _format_pct(value: float, precision: int = 1) -> str:
    """Format a percentage with sign."""
    if math.isnan(value):
        return "N/A"
    if math.isinf(value):
        return "+inf%" if value > 0 else "-inf%"
    sign = "+" if value >= 0 else ""
    return f"{sign}{value:.{precision}f}%"


def _format_bytes(n: int | None) -> str:
    """Format a byte count in binary units."""
    if n is None:
        return "-"
    size = float(n)
    for unit in ("B", "KiB", "MiB"):
        if size < 1024:
            return f"{size:.0f}{unit}" if unit == "B" else f"{size:.1f}{unit}"
        size /= 1024
    return f"{size:.1f}GiB"


def _name_width(names: Sequence[str], minimum: int = 10, maximum: int = 40) -> int:
    longest = max((len(n) for n in names), default=minimum)
    return max(minimum, min(longest, maximum))


# ---------------------------------------------------------------------------
# Single result
# ---------------------------------------------------------------------------


def format_result(result: BenchmarkResult) -> str:
    """Format one result as a short multi-line summary."""
    lines = [
        result.name,
        "\u2500" * len(result.name),
        f"  Iterations: {result.iterations}",
        f"  Average:    {_format_ms(result.average_time_ms)}",
        f"  Min:        {_format_ms(result.min_time_ms)}",
        f"  Max:        {_format_ms(result.max_time_ms)}",
        f"  Total:      {_format_ms(result.duration_ms)}",
    ]
    if result.memory_usage_bytes is not None:
        lines.append(f"  Memory:     {_format_bytes(result.memory_usage_bytes)}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


def format_results_table(results: Sequence[BenchmarkResult]) -> str:
    """Format results as a table, in the given order."""
    if not results:
        return "No results."

    w = _name_width([r.name for r in results])
    header = (
        f"{'Benchmark':<{w}s} {'Iter':>6s} {'Average':>10s} "
        f"{'Min':>10s} {'Max':>10s} {'Total':>10s} {'Memory':>9s}"
    )
    lines = [header, "\u2500" * len(header)]
    for r in results:
        lines.append(
            f"{r.name[:w]:<{w}s} {r.iterations:>6d} {_format_ms(r.average_time_ms):>10s} "
            f"{_format_ms(r.min_time_ms):>10s} {_format_ms(r.max_time_ms):>10s} "
            f"{_format_ms(r.duration_ms):>10s} {_format_bytes(r.memory_usage_bytes):>9s}"
        )
    return "\n".join(lines)


def format_ranking(ranked: Sequence[RankedResult], title: str = "") -> str:
    """Format a ranking, fastest first, with each entry's gap to the fastest."""
    if not ranked:
        return "No results to rank."

    lines: list[str] = []
    if title:
        lines.append(title)
        lines.append("\u2500" * len(title))

    w = _name_width([r.result.name for r in ranked])
    header = f"{'#':>3s}  {'Benchmark':<{w}s} {'Average':>10s} {'vs fastest':>11s}"
    lines.append(header)
    lines.append("\u2500" * len(header))
    for entry in ranked:
        if entry.position == 0:
            gap = "fastest"
        else:
            gap = _format_pct(entry.percent_improvement_over_fastest)
        lines.append(
            f"{entry.rank:>3d}  {entry.result.name[:w]:<{w}s} "
            f"{_format_ms(entry.result.average_time_ms):>10s} {gap:>11s}"
        )
    return "\n".join(lines)
