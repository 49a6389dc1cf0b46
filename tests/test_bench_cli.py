"""Tests for latbench.cli — Click CLI for the benchmark commands."""

from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from bench_test_helpers import make_result
from click.testing import CliRunner

from latbench import __version__
from latbench.bench.config import BenchmarkConfig
from latbench.bench.errors import NoSuccessfulIterations
from latbench.bench.results import load_results, save_results
from latbench.cli import main
from latbench.logging import reset_logging


class TestHelp(unittest.TestCase):
    """Tests for the group and subcommand help."""

    def test_group_help(self) -> None:
        result = CliRunner().invoke(main, ["--help"])
        self.assertEqual(result.exit_code, 0)
        for command in ("run", "show", "compare", "list"):
            self.assertIn(command, result.output)

    def test_version(self) -> None:
        result = CliRunner().invoke(main, ["--version"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn(__version__, result.output)

    def test_run_help(self) -> None:
        result = CliRunner().invoke(main, ["run", "--help"])
        self.assertEqual(result.exit_code, 0)
        for option in ("--profile", "--iterations", "--warmup", "--timeout", "--output"):
            self.assertIn(option, result.output)

    def test_compare_help(self) -> None:
        result = CliRunner().invoke(main, ["compare", "--help"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("--only", result.output)


class TestList(unittest.TestCase):
    def test_lists_suites(self) -> None:
        result = CliRunner().invoke(main, ["list"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("hashing", result.output)
        self.assertIn("sources", result.output)
        self.assertIn("Benchmark a string hash", result.output)


class TestRun(unittest.TestCase):
    """Tests for the run command."""

    def tearDown(self) -> None:
        reset_logging()

    def test_run_hashing(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            output = Path(tmpdir) / "out" / "results.jsonl"
            result = CliRunner().invoke(
                main,
                ["run", "hashing", "--iterations", "3", "--warmup", "0", "--output", str(output)],
            )
            self.assertEqual(result.exit_code, 0, result.output)
            saved = load_results(output)
        self.assertIn("Suite: hashing", result.output)
        self.assertIn("fastest", result.output)
        self.assertIn("Results saved to:", result.output)
        self.assertEqual(len(saved), 3)
        self.assertTrue(all(r.iterations == 3 for r in saved))

    def test_run_json(self) -> None:
        result = CliRunner().invoke(
            main, ["run", "hashing", "--iterations", "2", "--warmup", "0", "--json", "-q"]
        )
        self.assertEqual(result.exit_code, 0, result.output)
        payload = json.loads(result.output)
        self.assertEqual(list(payload), ["hashing"])
        ranked = payload["hashing"]
        self.assertEqual([entry["rank"] for entry in ranked], [1, 2, 3])
        self.assertEqual(ranked[0]["percent_improvement_over_fastest"], 0)

    def test_unknown_suite(self) -> None:
        result = CliRunner().invoke(main, ["run", "nope"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Unknown suite", result.output)

    def test_invalid_iterations(self) -> None:
        result = CliRunner().invoke(main, ["run", "hashing", "--iterations", "0"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("iterations", result.output)

    def test_negative_timeout(self) -> None:
        result = CliRunner().invoke(main, ["run", "hashing", "--timeout", "-5"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("timeout_ms", result.output)

    def test_benchmark_failure(self) -> None:
        with patch(
            "latbench.bench.suites.run_suites",
            side_effect=NoSuccessfulIterations("Hashing with cache", 3),
        ):
            result = CliRunner().invoke(main, ["run", "hashing"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("no successful iterations", result.output)

    def test_interrupted(self) -> None:
        with patch("latbench.bench.suites.run_suites", side_effect=KeyboardInterrupt):
            result = CliRunner().invoke(main, ["run", "hashing"])
        self.assertEqual(result.exit_code, 130)

    def test_without_options_uses_suite_defaults(self) -> None:
        with patch("latbench.bench.suites.run_suites", return_value={}) as mock_run:
            result = CliRunner().invoke(main, ["run", "hashing", "sources"])
        self.assertEqual(result.exit_code, 0, result.output)
        mock_run.assert_called_once_with(
            ["hashing", "sources"], overrides={"hashing": {}, "sources": {}}, on_suite_done=None
        )

    def test_profile(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            profile = Path(tmpdir) / "profile.yaml"
            profile.write_text(
                "defaults:\n  warmup_iterations: 0\n"
                "suites:\n  hashing:\n    iterations: 4\n  sources:\n    iterations: 2\n"
            )
            with patch("latbench.bench.suites.run_suites", return_value={}) as mock_run:
                result = CliRunner().invoke(
                    main, ["run", "--profile", str(profile), "--timeout", "500"]
                )
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(mock_run.call_args.args, (["hashing", "sources"],))
        overrides = mock_run.call_args.kwargs["overrides"]
        self.assertEqual(
            overrides["hashing"], {"warmup_iterations": 0, "iterations": 4, "timeout_ms": 500.0}
        )
        self.assertEqual(
            overrides["sources"], {"warmup_iterations": 0, "iterations": 2, "timeout_ms": 500.0}
        )

    def test_memory_keeps_suite_iteration_counts(self) -> None:
        captured: list[tuple[str, BenchmarkConfig]] = []

        def fake_run(name, operation, config=None, **kwargs):  # type: ignore[no-untyped-def]
            captured.append((name, config))
            return make_result(name, 1.0)

        with patch("latbench.bench.suites.run_benchmark", side_effect=fake_run):
            result = CliRunner().invoke(main, ["run", "sources", "--memory", "-q"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(
            [(name, cfg.iterations) for name, cfg in captured],
            [("Load all sources", 10), ("Load fast sources only", 100)],
        )
        self.assertTrue(all(cfg.memory_tracking for _, cfg in captured))

    def test_output_keeps_finished_suites_on_failure(self) -> None:
        def first(config, overrides=None):  # type: ignore[no-untyped-def]
            return [make_result("first fast", 1.0), make_result("first slow", 2.0)]

        def second(config, overrides=None):  # type: ignore[no-untyped-def]
            raise NoSuccessfulIterations("second", 3)

        with tempfile.TemporaryDirectory() as tmpdir:
            output = Path(tmpdir) / "results.jsonl"
            save_results(output, [make_result("stale", 9.0)])
            with patch.dict(
                "latbench.bench.suites.SUITES", {"first": first, "second": second}, clear=True
            ):
                result = CliRunner().invoke(
                    main, ["run", "first", "second", "--output", str(output), "-q"]
                )
            saved = load_results(output)
        self.assertEqual(result.exit_code, 1)
        self.assertIn("no successful iterations", result.output)
        self.assertIn("Results of finished suites kept in", result.output)
        self.assertEqual([r.name for r in saved], ["first fast", "first slow"])

    def test_invalid_config_leaves_output_untouched(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            output = Path(tmpdir) / "results.jsonl"
            save_results(output, [make_result("kept", 1.0)])
            result = CliRunner().invoke(
                main, ["run", "hashing", "--iterations", "0", "--output", str(output)]
            )
            saved = load_results(output)
        self.assertEqual(result.exit_code, 1)
        self.assertNotIn("kept in", result.output)
        self.assertEqual([r.name for r in saved], ["kept"])

    def test_bad_profile(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            profile = Path(tmpdir) / "profile.yaml"
            profile.write_text("- not\n- a mapping\n")
            result = CliRunner().invoke(main, ["run", "--profile", str(profile)])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Error:", result.output)

    def test_log_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            log_path = Path(tmpdir) / "bench.log"
            result = CliRunner().invoke(
                main,
                [
                    "run",
                    "hashing",
                    "--iterations",
                    "2",
                    "--warmup",
                    "0",
                    "-q",
                    "--log-file",
                    str(log_path),
                ],
            )
            reset_logging()
            self.assertEqual(result.exit_code, 0, result.output)
            text = log_path.read_text()
        self.assertIn("Running suite 'hashing'", text)
        self.assertIn("Benchmark 'Hashing with cache'", text)


class TestShow(unittest.TestCase):
    """Tests for the show command."""

    def tearDown(self) -> None:
        reset_logging()

    def _write(self, tmpdir: str) -> Path:
        path = Path(tmpdir) / "results.jsonl"
        save_results(path, [make_result("slow one", 9.0), make_result("fast one", 1.0)])
        return path

    def test_show_table(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            result = CliRunner().invoke(main, ["show", str(self._write(tmpdir))])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertLess(result.output.index("slow one"), result.output.index("fast one"))

    def test_show_detail(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            result = CliRunner().invoke(main, ["show", str(self._write(tmpdir)), "--detail"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Iterations: 10", result.output)

    def test_show_log_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            log_path = Path(tmpdir) / "show.log"
            result = CliRunner().invoke(
                main, ["show", str(self._write(tmpdir)), "-q", "--log-file", str(log_path)]
            )
            reset_logging()
            self.assertEqual(result.exit_code, 0, result.output)
            self.assertIn("Loaded 2 results", log_path.read_text())

    def test_show_invalid_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "bad.jsonl"
            path.write_text("{broken\n")
            result = CliRunner().invoke(main, ["show", str(path)])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("invalid result line", result.output)

    def test_show_missing_file(self) -> None:
        result = CliRunner().invoke(main, ["show", "/nonexistent/results.jsonl"])
        self.assertNotEqual(result.exit_code, 0)


class TestCompare(unittest.TestCase):
    """Tests for the compare command."""

    def tearDown(self) -> None:
        reset_logging()

    def _write(self, tmpdir: str, name: str, *results: object) -> str:
        path = Path(tmpdir) / name
        save_results(path, results)  # type: ignore[arg-type]
        return str(path)

    def test_compare_merges_files(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            before = self._write(tmpdir, "before.jsonl", make_result("before", 4.0))
            after = self._write(tmpdir, "after.jsonl", make_result("after", 2.0))
            result = CliRunner().invoke(main, ["compare", before, after])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertLess(result.output.index("after"), result.output.index("before"))
        self.assertIn("-100.0%", result.output)

    def test_compare_json(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self._write(
                tmpdir,
                "r.jsonl",
                make_result("a", 5.0),
                make_result("b", 2.0),
                make_result("c", 8.0),
            )
            result = CliRunner().invoke(main, ["compare", path, "--json"])
        self.assertEqual(result.exit_code, 0, result.output)
        payload = json.loads(result.output)
        self.assertEqual([e["result"]["name"] for e in payload], ["b", "a", "c"])
        self.assertEqual([e["percent_improvement_over_fastest"] for e in payload], [0, -150, -300])

    def test_compare_json_zero_fastest_is_null(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self._write(
                tmpdir, "r.jsonl", make_result("slow", 2.0), make_result("instant", 0.0)
            )
            result = CliRunner().invoke(main, ["compare", path, "--json"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertNotIn("Infinity", result.output)
        payload = json.loads(result.output)
        self.assertEqual([e["result"]["name"] for e in payload], ["instant", "slow"])
        self.assertEqual([e["percent_improvement_over_fastest"] for e in payload], [0, None])

    def test_compare_output(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            before = self._write(tmpdir, "before.jsonl", make_result("before", 4.0))
            after = self._write(tmpdir, "after.jsonl", make_result("after", 2.0))
            merged = Path(tmpdir) / "merged.jsonl"
            result = CliRunner().invoke(
                main, ["compare", before, after, "--output", str(merged)]
            )
            saved = load_results(merged)
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual([r.name for r in saved], ["after", "before"])

    def test_compare_only(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self._write(
                tmpdir,
                "r.jsonl",
                make_result("a", 5.0),
                make_result("b", 2.0),
                make_result("a", 1.0),
            )
            result = CliRunner().invoke(main, ["compare", path, "--only", "a", "--json"])
        self.assertEqual(result.exit_code, 0, result.output)
        payload = json.loads(result.output)
        self.assertEqual([e["result"]["average_time_ms"] for e in payload], [1.0, 5.0])

    def test_compare_nothing_to_rank(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self._write(tmpdir, "r.jsonl", make_result("a", 5.0))
            result = CliRunner().invoke(main, ["compare", path, "--only", "zzz"])
        self.assertEqual(result.exit_code, 0)
        self.assertIn("No results to rank.", result.output)

    def test_compare_requires_file(self) -> None:
        result = CliRunner().invoke(main, ["compare"])
        self.assertNotEqual(result.exit_code, 0)
