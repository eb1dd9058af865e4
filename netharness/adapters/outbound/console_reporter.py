"""
Console Reporter Adapter

Implements IReporter for the terminal, plus summaries of test runs,
generations and pattern analyses.
"""

from typing import Any, Dict, List

from netharness.application.ports import IReporter
from netharness.domain.models import Generation, PatternAnalysis, RunStatus, TestRun


class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"
    GRAY = "\033[90m"
    HEADER = "\033[95m"


STATUS_COLORS = {
    RunStatus.QUEUED: Colors.GRAY,
    RunStatus.RUNNING: Colors.BLUE,
    RunStatus.COMPLETED: Colors.GREEN,
    RunStatus.STOPPED: Colors.YELLOW,
    RunStatus.FAILED: Colors.RED,
}


class ConsoleReporter(IReporter):
    """Terminal output with optional colors."""

    def __init__(self, use_color: bool = True):
        self.use_color = use_color

    def _color(self, text: str, color: str) -> str:
        if self.use_color:
            return f"{color}{text}{Colors.RESET}"
        return text

    # -------------------------------------------------------------------------
    # IReporter
    # -------------------------------------------------------------------------

    def info(self, message: str) -> None:
        print(f"  {message}")

    def success(self, message: str) -> None:
        print(self._color(f"✓ {message}", Colors.GREEN))

    def warning(self, message: str) -> None:
        print(self._color(f"! {message}", Colors.YELLOW))

    def error(self, message: str) -> None:
        print(self._color(f"✗ {message}", Colors.RED))

    def table(self, headers: List[str], rows: List[List[Any]]) -> None:
        if not headers or not rows:
            return

        widths = [len(h) for h in headers]
        for row in rows:
            for i, cell in enumerate(row[:len(widths)]):
                widths[i] = max(widths[i], len(str(cell)))

        header_line = "  ".join(str(h).ljust(widths[i]) for i, h in enumerate(headers))
        print(self._color(f"  {header_line}", Colors.BOLD))
        print(f"  {'-' * len(header_line)}")
        for row in rows:
            print("  " + "  ".join(
                str(cell).ljust(widths[i]) if i < len(widths) else str(cell)
                for i, cell in enumerate(row)
            ))

    def section(self, title: str) -> None:
        line = "=" * (len(title) + 4)
        print()
        print(self._color(line, Colors.HEADER))
        print(self._color(f"  {title}  ", Colors.HEADER + Colors.BOLD))
        print(self._color(line, Colors.HEADER))

    # -------------------------------------------------------------------------
    # Run summaries
    # -------------------------------------------------------------------------

    def key_values(self, values: Dict[str, Any]) -> None:
        width = max((len(k) for k in values), default=0) + 2
        for key, value in values.items():
            print(f"  {(key + ':').ljust(width)} {value}")

    def status(self, status: RunStatus) -> str:
        return self._color(status.value, STATUS_COLORS.get(status, Colors.RESET))

    def test_run(self, run: TestRun) -> None:
        r = run.results
        self.section(f"Network test {run.id}")
        self.key_values({
            "Topology": run.topology_id,
            "Scenario": run.scenario.name or "-",
            "Seed": run.scenario.seed,
            "Status": self.status(run.status),
            "Simulated": f"{r.simulated_seconds:.1f}s in {r.ticks} ticks",
            "Transactions": r.total_transactions,
            "Processed": r.processed,
            "Dropped": r.dropped,
            "Lost": r.lost,
            "Queued": r.queued,
            "Success rate": f"{r.success_rate * 100:.2f}%",
            "Avg / peak TPS": f"{r.average_tps:.1f} / {r.peak_tps:.1f}",
            "Latency avg/p95/p99": f"{r.average_latency_ms:.1f} / {r.p95_latency_ms:.1f} / {r.p99_latency_ms:.1f} ms",
            "Availability": f"{r.availability * 100:.1f}%",
            "Partitions observed": r.partitions_observed,
        })
        if run.failure_reason:
            self.error(run.failure_reason)

        if r.phase_metrics:
            print()
            self.table(
                ["Phase", "Target TPS", "Achieved TPS", "Txs", "Processed", "Dropped"],
                [[p.name, f"{p.target_tps:.0f}", f"{p.achieved_tps:.1f}", p.transaction_count, p.processed, p.dropped]
                 for p in r.phase_metrics],
            )
        if r.node_metrics:
            print()
            self.table(
                ["Node", "Status", "Processed", "Dropped", "Avg latency"],
                [[node_id, m.get("status"), m.get("processed"), m.get("dropped"),
                  f"{m.get('average_latency_ms', 0.0):.1f} ms"]
                 for node_id, m in r.node_metrics.items()],
            )
        for fault in r.faults_injected:
            self.warning(f"t={fault.get('at', 0):.1f}s {fault.get('node_id')} {fault.get('from')} -> {fault.get('to')} ({fault.get('cause')})")

    def generation(self, generation: Generation) -> None:
        self.section(f"Generation {generation.id}")
        self.key_values({
            "Profile": generation.profile_id,
            "Seed": generation.options.seed,
            "Status": self.status(generation.status),
            "Simulated": f"{generation.simulated_seconds:.1f}s",
            "Transactions": generation.total_transactions,
            "Errors": generation.error_count,
            "Bytes": generation.total_bytes,
            "Average size": f"{generation.average_size:.0f} B",
            "Actual TPS": f"{generation.actual_tps:.1f}",
        })
        if generation.phase_metrics:
            print()
            self.table(
                ["Phase", "Target TPS", "Achieved TPS", "Txs", "Errors"],
                [[p.name, f"{p.target_tps:.0f}", f"{p.achieved_tps:.1f}", p.transaction_count, p.error_count]
                 for p in generation.phase_metrics],
            )
        if generation.type_counts:
            print()
            total = generation.total_transactions or 1
            self.table(
                ["Type", "Count", "Share"],
                [[t, c, f"{c / total * 100:.1f}%"]
                 for t, c in sorted(generation.type_counts.items(), key=lambda kv: -kv[1])],
            )

    def analysis(self, analysis: PatternAnalysis) -> None:
        self.section(f"Pattern analysis ({analysis.count} transactions)")
        if analysis.count == 0:
            self.warning("No transactions to analyze")
            return
        p = analysis.payload
        self.key_values({
            "Dominant behavior": analysis.dominant_behavior or "-",
            "Payload min/mean/max": f"{p.min} / {p.mean:.0f} / {p.max} B",
            "Payload p50/p95": f"{p.p50:.0f} / {p.p95:.0f} B",
        })
        print()
        self.table(
            ["Type", "Share"],
            [[t, f"{s * 100:.1f}%"] for t, s in sorted(analysis.type_distribution.items(), key=lambda kv: -kv[1])],
        )
        mix = analysis.observed_behavior_mix or analysis.inferred_behavior_mix
        if mix:
            print()
            self.table(["Behavior", "Weight"], [[b, f"{w:.3f}"] for b, w in sorted(mix.items(), key=lambda kv: -kv[1])])
        for insight in analysis.insights:
            self.info(insight)
        for recommendation in analysis.recommendations:
            self.warning(recommendation)
