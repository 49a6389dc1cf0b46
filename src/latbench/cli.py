"""Command-line interface for latbench.

Subcommands:
    latbench run       Run benchmark suites and rank their results
    latbench show      Display results saved to a JSONL file
    latbench compare   Rank results from one or more JSONL files
    latbench list      List the available suites
"""

from __future__ import annotations

import functools
import json
from pathlib import Path
from typing import Any, Callable

import click

from latbench import __version__
from latbench.logging import get_logger, setup_logging

log = get_logger("cli")


def _logging_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Add ``-v``/``-q``/``--log-file`` to a command and configure logging from them."""

    @click.option("-v", "--verbose", is_flag=True, help="Show detailed output.")
    @click.option("-q", "--quiet", is_flag=True, help="Only show warnings and errors.")
    @click.option(
        "--log-file",
        type=click.Path(dir_okay=False, path_type=Path),
        default=None,
        help="Also log at DEBUG level to this file.",
    )
    @functools.wraps(fn)
    def wrapper(
        *args: Any, verbose: bool, quiet: bool, log_file: Path | None, **kwargs: Any
    ) -> Any:
        setup_logging(verbose=verbose, quiet=quiet, log_file=log_file)
        return fn(*args, **kwargs)

    return wrapper


def _save_suite(results_path: Path, name: str, suite_results: list[Any]) -> None:
    """Append one finished suite's results to *results_path*."""
    from latbench.bench.results import append_result

    for result in suite_results:
        append_result(results_path, result)
    log.info("Saved %d results for suite '%s' to %s", len(suite_results), name, results_path)


def _dump_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, allow_nan=False)


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """latbench: measure and rank operation latency."""


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@main.command()
@click.argument("suite_names", metavar="[SUITE]...", nargs=-1)
@click.option(
    "--profile",
    "profile_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML profile with per-suite settings.",
)
@click.option(
    "--iterations",
    type=int,
    default=None,
    help="Measured iterations for every benchmark (default: each benchmark's own).",
)
@click.option(
    "--warmup",
    type=int,
    default=None,
    help="Warmup iterations per benchmark (default: 100).",
)
@click.option(
    "--timeout",
    "timeout_ms",
    type=float,
    default=None,
    help="Budget for the measured phase, in milliseconds (default: 30000).",
)
@click.option(
    "--memory/--no-memory",
    "memory_tracking",
    default=None,
    help="Record a memory usage sample with each result.",
)
@click.option(
    "--output",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write results to this JSONL file as each suite finishes.",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print rankings as JSON.")
@_logging_options
def run(  # noqa: PLR0913
    suite_names: tuple[str, ...],
    profile_path: Path | None,
    iterations: int | None,
    warmup: int | None,
    timeout_ms: float | None,
    memory_tracking: bool | None,
    output_path: Path | None,
    as_json: bool,
) -> None:
    """Run benchmark suites and print each suite's ranking.

    Runs every suite when no SUITE is given.  Settings from --profile and
    the options are layered over each benchmark's defaults; a benchmark
    keeps its suite's own iteration count unless --iterations (or an
    ``iterations`` profile key) sets one.

    With --output the file is truncated first, then each suite's results
    are appended as soon as that suite finishes, so a later failure
    leaves the earlier suites on disk.

    \b
    Examples:
        latbench run
        latbench run hashing --iterations 500 --warmup 50
        latbench run --profile bench.yaml --output results.jsonl
    """
    from latbench.bench.compare import rank_benchmarks
    from latbench.bench.config import (
        check_config,
        config_from_profile,
        load_profile,
        profile_overrides,
    )
    from latbench.bench.display import format_ranking
    from latbench.bench.errors import BenchmarkError
    from latbench.bench.suites import SUITES, run_suites

    names = list(suite_names) or list(SUITES)
    unknown = [n for n in names if n not in SUITES]
    if unknown:
        click.echo(
            f"Error: Unknown suite(s): {', '.join(unknown)}. Available: {', '.join(SUITES)}",
            err=True,
        )
        raise SystemExit(1)

    cli_overrides: dict[str, object] = {
        "iterations": iterations,
        "warmup_iterations": warmup,
        "timeout_ms": timeout_ms,
        "memory_tracking": memory_tracking,
    }

    truncated = False
    try:
        profile_data = load_profile(profile_path) if profile_path else None
        overrides: dict[str, dict[str, Any]] = {}
        for name in names:
            check_config(config_from_profile(profile_data, name, cli_overrides=cli_overrides))
            overrides[name] = profile_overrides(profile_data, name, cli_overrides=cli_overrides)
        if output_path is not None:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text("", encoding="utf-8")
            truncated = True
        results = run_suites(
            names,
            overrides=overrides,
            on_suite_done=(
                functools.partial(_save_suite, output_path) if output_path is not None else None
            ),
        )
    except (BenchmarkError, FileNotFoundError) as exc:
        click.echo(f"Error: {exc}", err=True)
        if truncated and output_path is not None and output_path.stat().st_size:
            click.echo(f"Results of finished suites kept in: {output_path}", err=True)
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        click.echo("\nBenchmark interrupted.", err=True)
        raise SystemExit(130)  # noqa: B904

    rankings = {name: rank_benchmarks(suite_results) for name, suite_results in results.items()}

    if as_json:
        payload = {name: [r.to_dict() for r in ranked] for name, ranked in rankings.items()}
        click.echo(_dump_json(payload))
    else:
        for name, ranked in rankings.items():
            click.echo()
            click.echo(format_ranking(ranked, title=f"Suite: {name}"))

    if output_path is not None and not as_json:
        click.echo()
        click.echo(f"Results saved to: {output_path}")


# ---------------------------------------------------------------------------
# show
# ---------------------------------------------------------------------------


@main.command("show")
@click.argument("results_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--detail", is_flag=True, default=False, help="Show one block per result.")
@_logging_options
def show(results_file: Path, detail: bool) -> None:
    """Display results saved to RESULTS_FILE (JSONL), in file order."""
    from latbench.bench.display import format_result, format_results_table
    from latbench.bench.results import load_results

    try:
        results = load_results(results_file)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc

    if detail:
        click.echo("\n\n".join(format_result(r) for r in results) or "No results.")
    else:
        click.echo(format_results_table(results))


# ---------------------------------------------------------------------------
# compare
# ---------------------------------------------------------------------------


@main.command("compare")
@click.argument(
    "results_files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--only",
    "only_names",
    type=str,
    multiple=True,
    help="Only rank results with this name (repeatable).",
)
@click.option(
    "--output",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the ranked results, fastest first, to this JSONL file.",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the ranking as JSON.")
@_logging_options
def compare(
    results_files: tuple[Path, ...],
    only_names: tuple[str, ...],
    output_path: Path | None,
    as_json: bool,
) -> None:
    """Rank results from one or more JSONL files by average time.

    Results from all files are merged, in file order, before ranking.
    A slower result compared against a zero fastest average has no
    finite percentage; it prints as ``-inf%`` and as ``null`` in JSON.

    \b
    Examples:
        latbench compare before.jsonl after.jsonl
        latbench compare results.jsonl --only "Hashing with cache" --json
        latbench compare a.jsonl b.jsonl --output merged.jsonl
    """
    from latbench.bench.compare import rank_benchmarks
    from latbench.bench.display import format_ranking
    from latbench.bench.results import BenchmarkResult, load_results, save_results

    merged: list[BenchmarkResult] = []
    for path in results_files:
        try:
            merged.extend(load_results(path))
        except ValueError as exc:
            click.echo(f"Error: {exc}", err=True)
            raise SystemExit(1) from exc

    if only_names:
        wanted = set(only_names)
        merged = [r for r in merged if r.name in wanted]

    ranked = rank_benchmarks(merged)
    if as_json:
        click.echo(_dump_json([r.to_dict() for r in ranked]))
    else:
        click.echo(format_ranking(ranked))

    if output_path is not None:
        save_results(output_path, [r.result for r in ranked])


# ---------------------------------------------------------------------------
# list
# ---------------------------------------------------------------------------


@main.command("list")
def list_suites() -> None:
    """List the available benchmark suites."""
    from latbench.bench.suites import SUITES

    for name, fn in SUITES.items():
        doc = (fn.__doc__ or "").strip().splitlines()
        click.echo(f"{name:<12s} {doc[0] if doc else ''}")


if __name__ == "__main__":
    main()
