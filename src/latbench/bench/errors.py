"""Exceptions raised by the benchmark subsystem."""

from __future__ import annotations


class BenchmarkError(Exception):
    """Base class for benchmark failures surfaced to the caller."""


class NoSuccessfulIterations(BenchmarkError):
    """Every measured iteration of a benchmark raised an error."""

    def __init__(self, name: str, attempts: int = 0) -> None:
        self.name = name
        self.attempts = attempts
        detail = f" ({attempts} attempts)" if attempts else ""
        super().__init__(f"Benchmark '{name}' failed: no successful iterations{detail}")


class BenchmarkConfigError(BenchmarkError, ValueError):
    """A benchmark configuration was rejected before execution."""
