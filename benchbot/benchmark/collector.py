"""
Comparison report for node-bench runs on the base and candidate branches.
"""
import json
import logging
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class ResultCollector:
    """Collects `--json` output of two node-bench runs and renders a table."""

    def __init__(self):
        self.base_output: Optional[str] = None
        self.branch_output: Optional[str] = None

    def collect_base(self, stdout: str) -> None:
        self.base_output = stdout

    def collect_branch(self, stdout: str) -> None:
        self.branch_output = stdout

    def report(self) -> str:
        """Markdown comparison; falls back to raw output if it isn't JSON."""
        base = self._parse(self.base_output)
        branch = self._parse(self.branch_output)

        if base is None or branch is None:
            return self._raw_report()

        lines = [
            "| Benchmark | Base | Branch | Change |",
            "|-----------|------|--------|--------|",
        ]
        for name in sorted(set(base) | set(branch)):
            base_avg = base.get(name)
            branch_avg = branch.get(name)
            lines.append(
                f"| {name} | {self._format_ns(base_avg)} | {self._format_ns(branch_avg)} "
                f"| {self._change(base_avg, branch_avg)} |"
            )
        return "\n".join(lines)

    def _parse(self, output: Optional[str]) -> Optional[Dict[str, float]]:
        if not output:
            return None
        try:
            entries = json.loads(output)
        except json.JSONDecodeError:
            logger.warning("Benchmark output is not JSON; reporting raw output")
            return None
        if isinstance(entries, dict):
            entries = [entries]
        if not isinstance(entries, list):
            return None

        averages: Dict[str, float] = {}
        for entry in entries:
            if not isinstance(entry, dict) or "name" not in entry:
                continue
            average = entry.get("average", entry.get("raw_average"))
            if isinstance(average, (int, float)):
                averages[str(entry["name"])] = float(average)
        return averages

    def _raw_report(self) -> str:
        sections: List[str] = []
        for title, output in (("Base", self.base_output), ("Branch", self.branch_output)):
            sections.append(f"**{title}**\n\n```\n{(output or '').strip()}\n```")
        return "\n\n".join(sections)

    @staticmethod
    def _format_ns(value: Optional[float]) -> str:
        if value is None:
            return "-"
        if value >= 1_000_000:
            return f"{value / 1_000_000:.2f} ms"
        if value >= 1_000:
            return f"{value / 1_000:.2f} µs"
        return f"{value:.0f} ns"

    @staticmethod
    def _change(base: Optional[float], branch: Optional[float]) -> str:
        if base is None or branch is None or base == 0:
            return "-"
        return f"{(branch - base) / base * 100:+.2f}%"
