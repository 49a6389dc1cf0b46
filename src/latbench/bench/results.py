"""Benchmark result data structure and serialization.

A :class:`BenchmarkResult` is produced once per runner invocation and
never modified afterwards.  Results can be written to and read from
JSONL files, one result per line::

    {"name":"Hashing with cache","duration_ms":812.4,"iterations":1000,...}
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from latbench.bench.stats import TimingSummary
from latbench.logging import get_logger

log = get_logger("bench.results")


# ---------------------------------------------------------------------------
# BenchmarkResult
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BenchmarkResult:
    """Aggregated outcome of one benchmark run."""

    name: str
    duration_ms: float  # Whole run, warmup included
    iterations: int  # Successful measured iterations
    average_time_ms: float
    min_time_ms: float
    max_time_ms: float
    memory_usage_bytes: int | None = None

    @classmethod
    def from_summary(
        cls,
        name: str,
        duration_ms: float,
        summary: TimingSummary,
        *,
        memory_usage_bytes: int | None = None,
    ) -> BenchmarkResult:
        """Build a result from an aggregated timing summary."""
        return cls(
            name=name,
            duration_ms=duration_ms,
            iterations=summary.count,
            average_time_ms=summary.average_time_ms,
            min_time_ms=summary.min_time_ms,
            max_time_ms=summary.max_time_ms,
            memory_usage_bytes=memory_usage_bytes,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict (sparse: omits absent memory)."""
        d: dict[str, Any] = {
            "name": self.name,
            "duration_ms": round(self.duration_ms, 6),
            "iterations": self.iterations,
            "average_time_ms": round(self.average_time_ms, 6),
            "min_time_ms": round(self.min_time_ms, 6),
            "max_time_ms": round(self.max_time_ms, 6),
        }
        if self.memory_usage_bytes is not None:
            d["memory_usage_bytes"] = self.memory_usage_bytes
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BenchmarkResult:
        """Deserialize from a dict, ignoring unknown fields."""
        return cls(
            name=data["name"],
            duration_ms=float(data.get("duration_ms", 0.0)),
            iterations=int(data["iterations"]),
            average_time_ms=float(data["average_time_ms"]),
            min_time_ms=float(data["min_time_ms"]),
            max_time_ms=float(data["max_time_ms"]),
            memory_usage_bytes=data.get("memory_usage_bytes"),
        )

    def to_jsonl_line(self) -> str:
        """Serialize to a single JSONL line."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_jsonl_line(cls, line: str) -> BenchmarkResult:
        """Deserialize from a single JSONL line."""
        return cls.from_dict(json.loads(line))


# ---------------------------------------------------------------------------
# I/O functions
# ---------------------------------------------------------------------------


def save_results(results_path: Path, results: Iterable[BenchmarkResult]) -> int:
    """Write results to a JSONL file, replacing its contents.

    Returns:
        The number of results written.
    """
    results_path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with open(results_path, "w", encoding="utf-8") as f:
        for result in results:
            f.write(result.to_jsonl_line() + "\n")
            count += 1
    log.info("Wrote %d results to %s", count, results_path)
    return count


def append_result(results_path: Path, result: BenchmarkResult) -> None:
    """Append a single result to a JSONL file.

    Used for incremental writing so finished benchmarks are preserved
    if a later one fails or the process is interrupted.
    """
    results_path.parent.mkdir(parents=True, exist_ok=True)
    with open(results_path, "a", encoding="utf-8") as f:
        f.write(result.to_jsonl_line() + "\n")


def load_results(results_path: Path) -> list[BenchmarkResult]:
    """Load results from a JSONL file.

    Blank lines are skipped.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If a line is not a valid result (message includes
            the line number).
    """
    if not results_path.exists():
        raise FileNotFoundError(f"No results file at {results_path}")

    results: list[BenchmarkResult] = []
    for lineno, line in enumerate(results_path.read_text(encoding="utf-8").splitlines(), 1):
        line = line.strip()
        if not line:
            continue
        try:
            results.append(BenchmarkResult.from_jsonl_line(line))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            raise ValueError(f"{results_path}:{lineno}: invalid result line: {exc}") from exc
    log.debug("Loaded %d results from %s", len(results), results_path)
    return results
