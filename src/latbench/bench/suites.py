"""Built-in benchmark suites.

A suite benchmarks several variants of one workload so they can be
ranked against each other.  Workload callables are passed in as
arguments (with defaults bound from :mod:`latbench.workloads`), so a
suite never looks up its collaborators at run time.

Suites:
    hashing   cached vs. uncached MurmurHash3, plus always-new inputs
    sources   collecting every host source vs. only the fast subset
"""

from __future__ import annotations

import itertools
import time
from typing import Any, Callable, Mapping, Sequence

from latbench.bench.compare import RankedResult, rank_benchmarks
from latbench.bench.config import BenchmarkConfig
from latbench.bench.errors import BenchmarkConfigError
from latbench.bench.results import BenchmarkResult
from latbench.bench.runner import run_benchmark
from latbench.logging import get_logger
from latbench.workloads.hashing import clear_hash_cache, x64hash128
from latbench.workloads.sources import (
    DEFAULT_SOURCES,
    FAST_SOURCE_NAMES,
    LoadOptions,
    Source,
    load_sources,
)

log = get_logger("bench.suites")

#: Called as ``suite(config, overrides=...)``.
SuiteFn = Callable[..., list[BenchmarkResult]]
SuiteDone = Callable[[str, list[BenchmarkResult]], None]

HASH_TEST_STRINGS: tuple[str, ...] = (
    "short",
    "medium length string",
    "very long string with many characters to test performance of hashing algorithm",
    "string with special chars: !@#$%^&*()_+-=[]{}|;:,.<>?",
    "unicode string: \U0001f680\U0001f31f\U0001f389\U0001f38a\U0001f38b\U0001f38d\U0001f38e",
)


def _config(
    config: BenchmarkConfig | None,
    overrides: Mapping[str, Any] | None,
    **defaults: int,
) -> BenchmarkConfig:
    """Build one benchmark's config.

    Starts from *config* when given, else from the built-in defaults with
    the variant's own *defaults* (its iteration count) applied; then
    layers *overrides* on top.
    """
    base = config if config is not None else BenchmarkConfig().replace(**defaults)
    return base.replace(**overrides) if overrides else base


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------


def benchmark_hashing(
    config: BenchmarkConfig | None = None,
    *,
    overrides: Mapping[str, Any] | None = None,
    hash_fn: Callable[[str], str] = x64hash128,
    clear_cache: Callable[[], None] = clear_hash_cache,
    test_strings: Sequence[str] = HASH_TEST_STRINGS,
) -> list[BenchmarkResult]:
    """Benchmark a string hash with and without its cache.

    The uncached variant clears the cache before every call; the cached
    variant starts from the cache the uncached variant left behind.

    Returns:
        Results for "Hashing without cache", "Hashing with cache" and
        "Hashing new strings", in that order.
    """

    def hash_all() -> None:
        for s in test_strings:
            hash_fn(s)

    def hash_uncached() -> None:
        clear_cache()
        hash_all()

    counter = itertools.count()

    def hash_new() -> None:
        for i in range(100):
            hash_fn(f"new string {i} {next(counter)} {time.time_ns()}")

    repeated = _config(config, overrides, iterations=1000)
    results: list[BenchmarkResult] = []

    clear_cache()
    results.append(run_benchmark("Hashing without cache", hash_uncached, repeated))
    results.append(run_benchmark("Hashing with cache", hash_all, repeated))
    fresh = _config(config, overrides, iterations=100)
    results.append(run_benchmark("Hashing new strings", hash_new, fresh))
    return results


# ---------------------------------------------------------------------------
# Source loading
# ---------------------------------------------------------------------------


def benchmark_source_loading(
    config: BenchmarkConfig | None = None,
    *,
    overrides: Mapping[str, Any] | None = None,
    sources: Mapping[str, Source] = DEFAULT_SOURCES,
    fast_names: Sequence[str] = FAST_SOURCE_NAMES,
) -> list[BenchmarkResult]:
    """Benchmark collecting every source against only the fast subset.

    Each iteration starts from an empty cache.

    Returns:
        Results for "Load all sources" and "Load fast sources only".
    """
    fast_sources = {name: sources[name] for name in fast_names if name in sources}
    missing = [name for name in fast_names if name not in sources]
    if missing:
        log.warning("Fast sources not available: %s", ", ".join(missing))

    async def load_all() -> None:
        get_components = load_sources(sources, LoadOptions(cache={}, debug=False), [])
        await get_components()

    async def load_fast() -> None:
        get_components = load_sources(fast_sources, LoadOptions(cache={}, debug=False), [])
        await get_components()

    all_config = _config(config, overrides, iterations=10)
    fast_config = _config(config, overrides, iterations=100)
    return [
        run_benchmark("Load all sources", load_all, all_config),
        run_benchmark("Load fast sources only", load_fast, fast_config),
    ]


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


SUITES: dict[str, SuiteFn] = {
    "hashing": benchmark_hashing,
    "sources": benchmark_source_loading,
}


def run_suites(
    names: Sequence[str] | None = None,
    configs: Mapping[str, BenchmarkConfig] | None = None,
    *,
    overrides: Mapping[str, Mapping[str, Any]] | None = None,
    suites: Mapping[str, SuiteFn] | None = None,
    on_suite_done: SuiteDone | None = None,
) -> dict[str, list[BenchmarkResult]]:
    """Run the named suites in order.

    Args:
        names: Suite names; all registered suites if None or empty.
        configs: Per-suite configuration replacing every benchmark's
            built-in defaults, iteration counts included.
        overrides: Per-suite settings applied over each benchmark's own
            defaults; a suite's variants keep their iteration counts
            unless ``iterations`` is among them.
        suites: Registry to resolve names in (defaults to SUITES).
        on_suite_done: Called with the suite name and its results as
            soon as each suite finishes, before the next one starts.

    Returns:
        Suite name -> results, in execution order.

    Raises:
        BenchmarkConfigError: If a name is not a registered suite.
        BenchmarkError: If a benchmark in a suite fails; suites already
            finished are not returned, but were passed to *on_suite_done*.
    """
    registry = suites if suites is not None else SUITES
    selected = list(names) if names else list(registry)
    unknown = [n for n in selected if n not in registry]
    if unknown:
        raise BenchmarkConfigError(
            f"Unknown suite(s): {', '.join(unknown)}. Available: {', '.join(registry)}"
        )

    cfgs = configs or {}
    ovrs = overrides or {}
    out: dict[str, list[BenchmarkResult]] = {}
    for name in selected:
        log.info("Running suite '%s'", name)
        out[name] = registry[name](cfgs.get(name), overrides=ovrs.get(name))
        if on_suite_done is not None:
            on_suite_done(name, out[name])
    return out


def run_all_benchmarks(
    config: BenchmarkConfig | None = None,
) -> dict[str, list[RankedResult]]:
    """Run every registered suite and rank each suite's results."""
    configs = {name: config for name in SUITES} if config is not None else None
    by_suite = run_suites(configs=configs)
    return {name: rank_benchmarks(results) for name, results in by_suite.items()}
