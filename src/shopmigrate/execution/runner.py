"""
Migration Runner - wraps an apply run with a client and a progress display.

The orchestrator does the work; this module owns the client lifecycle and
turns phase events into rich progress tasks.
"""

import structlog
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)

from ..config import MigratorConfig
from ..models.results import ApplyStats, RunSummary
from ..shopify.client import ShopifyClient
from .orchestrator import ApplyOrchestrator, PhaseObserver, PhaseSelection

logger = structlog.get_logger(__name__)


class ProgressObserver(PhaseObserver):
    """Shows one progress task per phase."""

    def __init__(self, progress: Progress) -> None:
        self.progress = progress
        self.tasks: dict[str, TaskID] = {}

    def phase_started(self, name: str, total: int | None) -> None:
        task = self.tasks.get(name)
        if task is None:
            self.tasks[name] = self.progress.add_task(f"[cyan]{name}", total=total)
        else:
            self.progress.reset(task, total=total, description=f"[cyan]{name}")

    def record_done(self, name: str) -> None:
        task = self.tasks.get(name)
        if task is not None:
            self.progress.advance(task)

    def phase_finished(self, name: str, stats: ApplyStats | None) -> None:
        task = self.tasks.get(name)
        if task is None:
            return
        description = f"[green]DONE: {name}"
        if stats is not None:
            description += f" ({stats.get_summary()})"
            if stats.failed:
                description = f"[yellow]DONE: {name} ({stats.get_summary()})"
        total = self.progress.tasks[task].total
        if total is None:
            self.progress.update(task, total=1, completed=1, description=description)
        else:
            self.progress.update(task, completed=total, description=description)


class MigrationRunner:
    """
    Executes an apply run from start to finish.
    """

    def __init__(self, config: MigratorConfig, console: Console) -> None:
        """
        Initialize MigrationRunner.

        Args:
            config: Migrator configuration; ``config.shop`` must be set
            console: Rich console for output
        """
        if config.shop is None:
            raise ValueError(
                "No destination shop configured. Set DST_SHOP_DOMAIN and DST_ADMIN_TOKEN "
                "or add a 'shop' section to the config file."
            )
        self.config = config
        self.console = console

    def _progress(self) -> Progress:
        return Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            TimeRemainingColumn(),
            console=self.console,
        )

    async def run(self, selection: PhaseSelection | None = None) -> RunSummary:
        """
        Run the selected phases against the configured destination.

        Fatal errors (DumpError, IndexBuildError, SchemaEnumerationError)
        propagate to the caller.
        """
        apply_config = self.config.apply
        self.console.print(f"Destination: [cyan]{self.config.shop.shop}[/cyan]")
        self.console.print(f"Dumps: [cyan]{apply_config.dump_dir}[/cyan]")
        self.console.print(f"Mode: [yellow]{'DRY RUN' if apply_config.dry_run else 'LIVE'}[/yellow]")

        progress = self._progress()
        async with ShopifyClient(self.config.shop, self.config.retry) as client:
            with progress:
                orchestrator = ApplyOrchestrator(
                    client,
                    apply_config,
                    selection=selection,
                    observer=ProgressObserver(progress),
                )
                summary = await orchestrator.run()

        logger.info(
            "Run finished",
            phases=len(summary.phases),
            failed=summary.totals().failed,
        )
        return summary
