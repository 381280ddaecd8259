"""Unit tests for phase selection and apply orchestration."""

import pytest

from shopmigrate.execution.orchestrator import ApplyOrchestrator, Phase, PhaseObserver, PhaseSelection
from shopmigrate.utils.exceptions import DumpError, IndexBuildError, TransportError


class RecordingObserver(PhaseObserver):
    """Observer that keeps every event."""

    def __init__(self):
        self.events = []

    def phase_started(self, name, total):
        self.events.append(("started", name, total))

    def record_done(self, name):
        self.events.append(("record", name))

    def phase_finished(self, name, stats):
        self.events.append(("finished", name))


class TestPhaseSelection:
    """Test PhaseSelection."""

    def test_all(self):
        """Test the default selects every phase in run order."""
        selection = PhaseSelection.all()

        assert selection.names() == [p.value for p in Phase]
        assert Phase.METAFIELDS in selection

    def test_only(self):
        """Test a subset keeps run order whatever the input order."""
        selection = PhaseSelection.only("metafields", "products")

        assert selection.names() == ["products", "metafields"]
        assert Phase.PAGES not in selection

    def test_unknown_phase(self):
        """Test an unknown name lists the valid ones."""
        with pytest.raises(ValueError, match="Unknown phase 'themes'.*files, products"):
            PhaseSelection.only("products", "themes")


class TestApplyOrchestrator:
    """Test full runs against the fake destination."""

    @pytest.mark.asyncio
    async def test_phase_order(self, shop, apply_config, write_dump, sample_product):
        """Test phases run and report in dependency order."""
        shop.metaobject_types.append("faq")
        write_dump("products.jsonl", [sample_product])
        write_dump("pages.jsonl", [{"handle": "about"}])
        write_dump("metaobjects-faq.jsonl", [{"handle": "shipping", "fields": []}])

        summary = await ApplyOrchestrator(shop, apply_config).run()

        assert [name for name, _ in summary.phases] == [
            "files",
            "products",
            "variants",
            "collections",
            "blogs",
            "articles",
            "pages",
            "menus",
            "metaobjects",
            "metafields.products",
        ]
        assert summary.get("products").created == 1
        assert summary.get("variants").total == 2
        assert summary.get("metafields.products").updated == 1
        assert summary.finished_at is not None

    @pytest.mark.asyncio
    async def test_selection_limits_phases(self, shop, apply_config, write_dump, sample_product):
        """Test unselected phases are not run."""
        write_dump("products.jsonl", [sample_product])
        write_dump("pages.jsonl", [{"handle": "about"}])

        summary = await ApplyOrchestrator(shop, apply_config, PhaseSelection.only("pages")).run()

        assert [name for name, _ in summary.phases] == ["pages"]
        assert shop.products == {}

    @pytest.mark.asyncio
    async def test_index_rebuilt_at_boundaries(self, shop, apply_config, write_dump, sample_product):
        """Test the index is built, rebuilt for variants and rebuilt before custom data."""
        write_dump("products.jsonl", [sample_product])
        observer = RecordingObserver()

        await ApplyOrchestrator(shop, apply_config, observer=observer).run()

        started = [name for kind, name, *_ in observer.events if kind == "started"]
        assert started[:2] == ["index", "files"]
        assert started.index("variants-index") < started.index("variants")
        assert started.index("index-rebuild") < started.index("menus") < started.index("metaobjects")

    @pytest.mark.asyncio
    async def test_observer_counts_records(self, shop, apply_config, write_dump):
        """Test each record is reported to the observer."""
        write_dump("pages.jsonl", [{"handle": "a"}, {"handle": "b"}])
        observer = RecordingObserver()

        await ApplyOrchestrator(shop, apply_config, PhaseSelection.only("pages"), observer).run()

        assert ("started", "pages", 2) in observer.events
        assert observer.events.count(("record", "pages")) == 2

    @pytest.mark.asyncio
    async def test_dry_run(self, shop, apply_config, write_dump, sample_product):
        """Test a dry run issues no mutations."""
        apply_config.dry_run = True
        write_dump("products.jsonl", [sample_product])
        write_dump("files.jsonl", [{"id": "gid://shopify/MediaImage/1", "url": "https://src/x.png"}])

        summary = await ApplyOrchestrator(shop, apply_config).run()

        assert shop.mutation_count() == 0
        assert summary.dry_run
        assert summary.get("products").skipped == 1
        assert summary.get("variants").skipped == 2

    @pytest.mark.asyncio
    async def test_corrupt_dump_aborts(self, shop, apply_config, dump_dir):
        """Test an unreadable dump propagates."""
        (dump_dir / "products.jsonl").write_text("{broken\n", encoding="utf-8")

        with pytest.raises(DumpError):
            await ApplyOrchestrator(shop, apply_config).run()

    @pytest.mark.asyncio
    async def test_index_failure_aborts(self, shop, apply_config):
        """Test a failed snapshot propagates before any write."""
        shop.failures["productsWithVariants"] = TransportError("down")

        with pytest.raises(IndexBuildError):
            await ApplyOrchestrator(shop, apply_config).run()

        assert shop.mutation_count() == 0

    @pytest.mark.asyncio
    async def test_same_phase_forward_reference(self, shop, apply_config, write_dump):
        """Test a record created earlier in a phase is resolvable by later ones."""
        write_dump(
            "pages.jsonl",
            [
                {"handle": "a"},
                {
                    "handle": "b",
                    "metafields": [
                        {
                            "namespace": "custom",
                            "key": "sibling",
                            "type": "page_reference",
                            "value": "gid://shopify/Page/1",
                            "ref": {"kind": "page", "gid": "gid://shopify/Page/1", "handle": "a"},
                        }
                    ],
                },
            ],
        )

        orchestrator = ApplyOrchestrator(shop, apply_config, PhaseSelection.only("pages", "metafields"))
        await orchestrator.run()

        page_a = shop.by_handle("pages", "a")["id"]
        page_b = shop.by_handle("pages", "b")["id"]
        assert shop.metafield(page_b, "custom", "sibling")["value"] == page_a
        assert orchestrator.index.pages == {"a": page_a, "b": page_b}
