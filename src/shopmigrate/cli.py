"""Command-line interface for the store migrator."""

import asyncio
from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .config import MigratorConfig, load_config
from .core.enricher import ReferenceEnricher
from .core.index import DestinationIndexBuilder
from .execution.orchestrator import Phase, PhaseSelection
from .execution.runner import MigrationRunner
from .observability import configure_logging, get_global_collector
from .observability.reporter import ReportGenerator
from .shopify.client import ShopifyClient
from .utils.exceptions import MigratorError

app = typer.Typer(
    name="shopmigrate",
    help="Shopify store migrator - replay dumped catalog and content into a destination store",
    add_completion=False,
)

console = Console()
logger = structlog.get_logger(__name__)


def _load(config_file: Path | None) -> MigratorConfig:
    try:
        return load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]ERROR: Invalid configuration:[/red] {e}")
        raise typer.Exit(code=1) from e


def _setup_logging(config: MigratorConfig, log_level: str | None, log_format: str | None) -> None:
    log_config = config.logging
    configure_logging(
        level=log_level or log_config.level,
        json_logs=(log_format or log_config.format) == "json",
        log_file=log_config.file,
    )


@app.command()
def enrich(
    dump_dir: Path = typer.Argument(
        Path("./dumps"), help="Dump directory to enrich in place", exists=True, file_okay=False
    ),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level"),
) -> None:
    """
    Annotate reference entries in the dumps with source natural keys.

    Runs against the source dump only; no store is contacted. Safe to run
    repeatedly: a second run touches nothing.

    Examples:
        shopmigrate enrich ./dumps
    """
    configure_logging(level=log_level)
    console.print(f"\n[bold blue]Enriching dumps:[/bold blue] {dump_dir}\n")

    try:
        report = ReferenceEnricher(dump_dir).enrich()
    except MigratorError as e:
        console.print(f"\n[red]ERROR: Enrichment failed:[/red] {e}")
        raise typer.Exit(code=1) from e

    table = Table(title="Enrichment")
    table.add_column("File", style="cyan")
    table.add_column("Touched", justify="right")
    table.add_column("Total", justify="right")
    for name, (touched, total) in report.files.items():
        table.add_row(name, str(touched), str(total))
    table.add_section()
    table.add_row("[bold]total[/bold]", str(report.touched), str(report.total))
    console.print(table)


@app.command()
def apply(
    input_dir: Path | None = typer.Option(
        None, "--input", "-i", help="Dump directory (default: from config)", file_okay=False
    ),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
    only: list[str] | None = typer.Option(
        None,
        "--only",
        help=f"Run only this phase (repeatable): {', '.join(p.value for p in Phase)}",
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Resolve everything, write nothing"),
    report: Path | None = typer.Option(None, "--report", help="Write a JSON report to this path"),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Logging level (TRACE, DEBUG, VERBOSE, INFO, WARNING, ERROR)",
    ),
    log_format: str | None = typer.Option(None, "--log-format", help="console or json"),
) -> None:
    """
    Apply dumped records to the destination store.

    Builds the destination index, then runs files, products, collections,
    blogs, articles, pages, menus, metaobjects and metafields in that order.
    Per-record failures are reported but do not change the exit code.

    Examples:
        shopmigrate apply -i ./dumps --dry-run
        shopmigrate apply -c prod.yaml --only products --only metafields
        shopmigrate apply -i ./dumps --report reports/run.json
    """
    config = _load(config_file)
    _setup_logging(config, log_level, log_format)

    if input_dir:
        config.apply.dump_dir = input_dir
    if dry_run:
        config.apply.dry_run = True

    try:
        selection = PhaseSelection.only(*only) if only else PhaseSelection.all()
    except ValueError as e:
        console.print(f"[red]ERROR:[/red] {e}")
        raise typer.Exit(code=1) from e

    console.print(
        Panel.fit(
            f"[bold blue]Shopify Store Migration[/bold blue]\n\n"
            f"Dumps: {config.apply.dump_dir}\n"
            f"Phases: [cyan]{', '.join(selection.names())}[/cyan]\n"
            f"Mode: [yellow]{'DRY RUN' if config.apply.dry_run else 'EXECUTE'}[/yellow]",
            border_style="blue",
        )
    )
    if config.apply.dry_run:
        console.print("[yellow]WARNING: DRY RUN MODE - No changes will be made[/yellow]\n")

    try:
        runner = MigrationRunner(config, console)
        summary = asyncio.run(runner.run(selection))
    except (MigratorError, ValueError) as e:
        console.print(f"\n[bold red]ERROR:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    generator = ReportGenerator(
        summary,
        config.apply.dump_dir,
        metrics=get_global_collector().get_summary(),
        error_sample_size=config.apply.error_sample_size,
    )
    generator.render(console)
    if report:
        generator.save_json(report)
        console.print(f"\n[report saved to: [cyan]{report}[/cyan]]")


@app.command()
def index(
    config_file: Path | None = typer.Option(None, "--config", "-c", help="Configuration file"),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level"),
) -> None:
    """
    Build the destination index and print its sizes.

    Read-only; useful as a connectivity and permissions check.
    """
    config = _load(config_file)
    _setup_logging(config, log_level, None)
    if config.shop is None:
        console.print("[red]ERROR:[/red] No destination shop configured (DST_SHOP_DOMAIN)")
        raise typer.Exit(code=1)

    async def run_index() -> dict[str, int]:
        async with ShopifyClient(config.shop, config.retry) as client:
            builder = DestinationIndexBuilder(client, page_size=config.apply.page_size)
            built = await builder.build()
        return built.size()

    try:
        sizes = asyncio.run(run_index())
    except MigratorError as e:
        console.print(f"\n[bold red]ERROR:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    table = Table(title=f"Destination index: {config.shop.shop}")
    table.add_column("Map", style="cyan")
    table.add_column("Entries", justify="right")
    for name, size in sizes.items():
        table.add_row(name, str(size))
    console.print(table)


@app.command()
def version() -> None:
    """Show version information."""
    console.print(
        Panel.fit(
            "[bold]Shopify Store Migrator[/bold]\n\n"
            f"Version: [cyan]{__version__}[/cyan]\n"
            "Python: 3.11+\n\n"
            "[bold]Phases:[/bold]\n"
            "- Reference enrichment of source dumps\n"
            "- Destination index by natural key\n"
            "- Files, products and variants, collections, blogs, articles, pages\n"
            "- Metaobjects with reference resolution\n"
            "- Batched metafield writes\n",
            title="About",
            border_style="blue",
        )
    )


if __name__ == "__main__":
    app()
