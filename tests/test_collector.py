"""Tests for ResultCollector."""

import json

from benchbot.benchmark.collector import ResultCollector


def node_bench_output(average: float) -> str:
    return json.dumps([
        {"name": "Import benchmark (random transfers)", "raw_average": average, "average": average},
    ])


class TestReport:
    """Test report rendering."""

    def test_comparison_table(self) -> None:
        """Should render one row per benchmark with the relative change."""
        collector = ResultCollector()
        collector.collect_base(node_bench_output(2_000_000))
        collector.collect_branch(node_bench_output(1_500_000))

        report = collector.report()

        assert report.splitlines()[0] == "| Benchmark | Base | Branch | Change |"
        assert "| Import benchmark (random transfers) | 2.00 ms | 1.50 ms | -25.00% |" in report

    def test_benchmark_missing_on_one_side(self) -> None:
        """Should show a dash where a run has no result."""
        collector = ResultCollector()
        collector.collect_base(json.dumps([{"name": "a", "average": 500}]))
        collector.collect_branch(json.dumps([{"name": "b", "average": 1500}]))

        report = collector.report()

        assert "| a | 500 ns | - | - |" in report
        assert "| b | - | 1.50 µs | - |" in report

    def test_raw_fallback(self) -> None:
        """Should fall back to the raw output when it isn't JSON."""
        collector = ResultCollector()
        collector.collect_base("base took 3s")
        collector.collect_branch(node_bench_output(1000))

        report = collector.report()

        assert report.startswith("**Base**\n\n```\nbase took 3s\n```")
        assert "**Branch**" in report
