"""Run Report Generator.

Builds a report from a RunSummary, writes it as JSON and renders it to the
console.
"""

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import structlog
from rich.console import Console
from rich.table import Table

from ..constants import ERROR_SAMPLE_SIZE
from ..models.results import RunSummary

logger = structlog.get_logger(__name__)


@dataclass
class RunReport:
    """
    Structured report data for an apply run.

    Attributes:
        status: completed, partial or failed
        start_time: Start timestamp (ISO)
        end_time: End timestamp (ISO)
        duration_seconds: Total duration
        dump_dir: Directory the dumps were read from
        dry_run: Whether mutations were suppressed
        phases: Per-phase counters, in run order
        totals: Counters summed over all phases
        error_count: Number of per-record failures
        errors: Every per-record failure, tagged with its phase
        metrics: Metrics collector summary (requests, throttles, latency)
    """

    status: str
    start_time: str | None
    end_time: str | None
    duration_seconds: float
    dump_dir: str
    dry_run: bool
    phases: list[dict[str, Any]] = field(default_factory=list)
    totals: dict[str, Any] = field(default_factory=dict)
    error_count: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)
    metrics: dict[str, Any] = field(default_factory=dict)


class ReportGenerator:
    """
    Generate reports for apply runs.

    Usage:
        generator = ReportGenerator(summary, dump_dir, metrics)
        generator.render(console)
        generator.save_json(Path("report.json"))
    """

    def __init__(
        self,
        summary: RunSummary,
        dump_dir: Path | str,
        metrics: dict[str, Any] | None = None,
        error_sample_size: int = ERROR_SAMPLE_SIZE,
    ) -> None:
        self.summary = summary
        self.dump_dir = str(dump_dir)
        self.metrics = metrics or {}
        self.error_sample_size = error_sample_size

    def status(self) -> str:
        totals = self.summary.totals()
        if not totals.failed:
            return "completed"
        return "partial" if totals.succeeded or totals.skipped else "failed"

    def build(self) -> RunReport:
        """Assemble the report object."""
        summary = self.summary
        totals = summary.totals()
        phases = []
        for name, stats in summary.phases:
            entry = stats.to_dict()
            entry.pop("errors")
            phases.append({"phase": name, **entry})

        errors = [
            {"phase": name, **error.to_dict()}
            for name, stats in summary.phases
            for error in stats.errors
        ]
        total_counts = totals.to_dict()
        total_counts.pop("errors")

        return RunReport(
            status=self.status(),
            start_time=summary.started_at.isoformat() if summary.started_at else None,
            end_time=summary.finished_at.isoformat() if summary.finished_at else None,
            duration_seconds=summary.duration_seconds,
            dump_dir=self.dump_dir,
            dry_run=summary.dry_run,
            phases=phases,
            totals=total_counts,
            error_count=len(errors),
            errors=errors,
            metrics=self.metrics,
        )

    def save_json(self, output_path: Path) -> None:
        """
        Write report as JSON.

        Args:
            output_path: Output file path
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(asdict(self.build()), f, indent=2, ensure_ascii=False)

        logger.info("JSON report written", path=str(output_path))

    def summary_table(self) -> Table:
        table = Table(title="Apply Summary")
        table.add_column("Phase", style="cyan")
        for column in ("Total", "Created", "Updated", "Skipped", "Failed", "Published"):
            table.add_column(column, justify="right")

        for name, stats in self.summary.phases:
            failed = f"[red]{stats.failed}[/red]" if stats.failed else "0"
            table.add_row(
                name,
                str(stats.total),
                str(stats.created),
                str(stats.updated),
                str(stats.skipped),
                failed,
                str(stats.publications_synced),
            )

        totals = self.summary.totals()
        table.add_section()
        table.add_row(
            "[bold]total[/bold]",
            str(totals.total),
            str(totals.created),
            str(totals.updated),
            str(totals.skipped),
            str(totals.failed),
            str(totals.publications_synced),
        )
        return table

    def render(self, console: Console) -> None:
        """Print the summary table and a capped sample of errors."""
        console.print()
        console.print(self.summary_table())
        console.print(f"Duration: {self.summary.duration_seconds:.1f}s")
        if self.summary.dry_run:
            console.print("[yellow]DRY RUN: no changes were made[/yellow]")

        totals = self.summary.totals()
        if not totals.failed:
            return

        console.print(f"\n[yellow]WARNING: {totals.failed} record(s) failed[/yellow]")
        for phase, error in self.summary.error_sample(self.error_sample_size):
            console.print(f"  [red]{phase}[/red] {error.key}: {error.message}")
        hidden = len(totals.errors) - self.error_sample_size
        if hidden > 0:
            console.print(f"  [dim]... and {hidden} more[/dim]")
