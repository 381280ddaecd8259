"""
Apply orchestration.

Runs the apply phases in dependency order against one destination store:

    IndexBuild -> files -> products (+ variants) -> collections -> blogs
    -> articles -> pages -> IndexRebuild -> menus -> metaobjects -> metafields

Phases run strictly one after another, and so do the records inside a phase:
later phases resolve references to records created by earlier ones, and the
create order must be deterministic for same-phase forward references.

Per-record failures never abort a phase. Only unreadable dumps (DumpError)
and a failed destination snapshot (IndexBuildError, SchemaEnumerationError)
propagate to the caller.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

import structlog

from ..config import ApplyConfig
from ..core.dump_io import read_jsonl
from ..core.index import DestinationIndex, DestinationIndexBuilder
from ..core.relinker import FileIndex, FileRelinker
from ..core.resolver import ReferenceResolver
from ..models.results import ApplyStats, RunSummary
from ..observability.logger import LogContext
from ..shopify.client import ShopifyClient
from .files import FileSync
from .handlers import HANDLER_REGISTRY, ApplyContext, BaseHandler, ProductHandler
from .menus import MenuWriter
from .metafields import MetafieldWriter
from .metaobjects import MetaobjectWriter
from .publications import PublicationSync

logger = structlog.get_logger(__name__)


class Phase(str, Enum):
    """Selectable apply phases, in run order."""

    FILES = "files"
    PRODUCTS = "products"
    COLLECTIONS = "collections"
    BLOGS = "blogs"
    ARTICLES = "articles"
    PAGES = "pages"
    MENUS = "menus"
    METAOBJECTS = "metaobjects"
    METAFIELDS = "metafields"


RECORD_PHASES: tuple[Phase, ...] = (
    Phase.PRODUCTS,
    Phase.COLLECTIONS,
    Phase.BLOGS,
    Phase.ARTICLES,
    Phase.PAGES,
)


@dataclass(frozen=True)
class PhaseSelection:
    """
    Which phases to run.

    Index building always runs. A skipped phase leaves no index entries, so
    references to its kind stay unresolved in later phases.
    """

    phases: frozenset[Phase] = field(default_factory=lambda: frozenset(Phase))

    @classmethod
    def all(cls) -> "PhaseSelection":
        return cls()

    @classmethod
    def only(cls, *names: str | Phase) -> "PhaseSelection":
        """
        Select a subset of phases by name.

        Raises:
            ValueError: If a name is not a phase
        """
        selected = set()
        for name in names:
            try:
                selected.add(Phase(name))
            except ValueError:
                valid = ", ".join(p.value for p in Phase)
                raise ValueError(f"Unknown phase {name!r} (expected one of: {valid})") from None
        return cls(frozenset(selected))

    def __contains__(self, phase: object) -> bool:
        return phase in self.phases

    def names(self) -> list[str]:
        return [p.value for p in Phase if p in self.phases]


class PhaseObserver:
    """
    Receives phase progress events. The default implementation ignores them.

    MigrationRunner subclasses this to drive a rich progress display.
    """

    def phase_started(self, name: str, total: int | None) -> None:
        pass

    def record_done(self, name: str) -> None:
        pass

    def phase_finished(self, name: str, stats: ApplyStats | None) -> None:
        pass


class ApplyOrchestrator:
    """
    Runs all selected phases against one destination.

    Usage:
        async with ShopifyClient(shop_config) as client:
            orchestrator = ApplyOrchestrator(client, apply_config)
            summary = await orchestrator.run()
    """

    def __init__(
        self,
        client: ShopifyClient,
        config: ApplyConfig,
        selection: PhaseSelection | None = None,
        observer: PhaseObserver | None = None,
    ):
        self.client = client
        self.config = config
        self.selection = selection or PhaseSelection.all()
        self.observer = observer or PhaseObserver()
        self.builder = DestinationIndexBuilder(client, page_size=config.page_size)
        self.index: DestinationIndex | None = None

    @property
    def dump_dir(self) -> Path:
        return self.config.dump_dir

    async def _build_index(self, name: str) -> DestinationIndex:
        self.observer.phase_started(name, None)
        with LogContext(phase=name):
            if self.index is None:
                self.index = await self.builder.build()
            else:
                await self.builder.rebuild(self.index)
        self.observer.phase_finished(name, None)
        return self.index

    async def run(self) -> RunSummary:
        """
        Run every selected phase.

        Returns:
            RunSummary with one stats entry per phase that ran

        Raises:
            DumpError: A dump file exists but cannot be read
            IndexBuildError: The destination snapshot or menu listing failed
            SchemaEnumerationError: Metaobject definitions could not be listed
        """
        summary = RunSummary(started_at=datetime.now(), dry_run=self.config.dry_run)
        logger.info(
            "Starting apply",
            dump_dir=str(self.dump_dir),
            phases=self.selection.names(),
            dry_run=self.config.dry_run,
        )

        index = await self._build_index("index")

        relinker = FileRelinker(FileIndex())
        ctx = ApplyContext(
            client=self.client,
            index=index,
            resolver=ReferenceResolver(relinker),
            file_index=relinker.file_index,
            publications=PublicationSync(self.client, index),
            dry_run=self.config.dry_run,
        )

        if Phase.FILES in self.selection:
            with LogContext(phase=Phase.FILES.value):
                self.observer.phase_started(Phase.FILES.value, None)
                file_sync = FileSync(self.client, self.config.page_size, self.config.dry_run)
                file_index, stats = await file_sync.sync(self.dump_dir)
                relinker.file_index = file_index
                ctx.file_index = file_index
                summary.add(Phase.FILES.value, stats)
                self.observer.phase_finished(Phase.FILES.value, stats)

        for phase in RECORD_PHASES:
            if phase not in self.selection:
                continue
            handler = HANDLER_REGISTRY[phase.value]()
            with LogContext(phase=phase.value):
                stats = await self._run_records(handler, ctx)
            summary.add(phase.value, stats)

            if isinstance(handler, ProductHandler) and handler.pending_variants:
                await self._build_index("variants-index")
                with LogContext(phase="variants"):
                    self.observer.phase_started("variants", None)
                    variant_stats = await handler.apply_variants(ctx)
                    self.observer.phase_finished("variants", variant_stats)
                summary.add("variants", variant_stats)

        await self._build_index("index-rebuild")

        if Phase.MENUS in self.selection:
            with LogContext(phase=Phase.MENUS.value):
                self.observer.phase_started(Phase.MENUS.value, None)
                stats = await MenuWriter(ctx, self.config.page_size).apply(self.dump_dir)
                summary.add(Phase.MENUS.value, stats)
                self.observer.phase_finished(Phase.MENUS.value, stats)

        if Phase.METAOBJECTS in self.selection:
            with LogContext(phase=Phase.METAOBJECTS.value):
                self.observer.phase_started(Phase.METAOBJECTS.value, None)
                writer = MetaobjectWriter(ctx, relinker, self.builder)
                stats = await writer.apply(self.dump_dir)
                summary.add(Phase.METAOBJECTS.value, stats)
                self.observer.phase_finished(Phase.METAOBJECTS.value, stats)

        if Phase.METAFIELDS in self.selection:
            with LogContext(phase=Phase.METAFIELDS.value):
                self.observer.phase_started(Phase.METAFIELDS.value, None)
                metafields = MetafieldWriter(ctx, relinker, self.config.metafield_batch_size)
                for name, stats in await metafields.apply(self.dump_dir):
                    summary.add(name, stats)
                self.observer.phase_finished(Phase.METAFIELDS.value, None)

        summary.finished_at = datetime.now()
        totals = summary.totals()
        logger.info(
            "Apply complete",
            duration_seconds=round(summary.duration_seconds, 1),
            summary=totals.get_summary(),
            resolved=ctx.resolver.stats.resolved,
            unresolved=ctx.resolver.stats.unresolved,
            files_relinked=relinker.relinked,
        )
        return summary

    async def _run_records(self, handler: BaseHandler, ctx: ApplyContext) -> ApplyStats:
        """Apply every record of one dump file through its handler."""
        stats = ApplyStats()
        path = self.dump_dir / f"{handler.phase}.jsonl"
        if not path.exists():
            logger.warning("Dump not found, skipping phase", path=str(path))
            return stats

        records: list[dict[str, Any]] = read_jsonl(path)
        self.observer.phase_started(handler.phase, len(records))
        for raw in records:
            await handler.apply_record(ctx, raw, stats)
            self.observer.record_done(handler.phase)
        self.observer.phase_finished(handler.phase, stats)

        logger.info("Phase complete", summary=stats.get_summary())
        return stats
