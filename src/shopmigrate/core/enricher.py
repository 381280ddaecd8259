"""
Reference enrichment for dump files.

GIDs are per-store, so a reference-typed metafield exported from the source
is meaningless in the destination. The enricher scans the dump once to learn
every record's natural key, then annotates each reference entry with a tagged
``ref`` (or ``refs`` for lists) carrying that key. Apply resolves the key
against the destination index.

Enrichment rewrites files in place and is idempotent: a second run over
enriched files produces byte-identical output and touches nothing.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from ..constants import (
    ARTICLES_FILE,
    BLOGS_FILE,
    COLLECTIONS_FILE,
    ENRICHED_FILES,
    FILES_FILE,
    PAGES_FILE,
    PRODUCTS_FILE,
    SHOP_METAFIELDS_FILE,
)
from ..models.references import (
    ArticleRef,
    BlogRef,
    CollectionRef,
    FileRef,
    MetaobjectRef,
    PageRef,
    ProductRef,
    ReferenceKind,
    VariantRef,
    bare_reference,
    dump_reference,
    is_list_type,
    is_reference_type,
    kind_for_gid,
    parse_gid_list,
)
from .dump_io import encode_record, metaobject_dump_files, read_jsonl, write_jsonl

logger = structlog.get_logger(__name__)


@dataclass
class SourceKeyMaps:
    """
    Source GID -> natural key payload, one map per referencable kind.

    Payloads are the keyword arguments of the matching reference model, so a
    hit becomes e.g. ``ProductRef(gid=gid, **products[gid])``.
    """

    products: dict[str, dict[str, Any]] = field(default_factory=dict)
    collections: dict[str, dict[str, Any]] = field(default_factory=dict)
    pages: dict[str, dict[str, Any]] = field(default_factory=dict)
    blogs: dict[str, dict[str, Any]] = field(default_factory=dict)
    articles: dict[str, dict[str, Any]] = field(default_factory=dict)
    metaobjects: dict[str, dict[str, Any]] = field(default_factory=dict)
    variants: dict[str, dict[str, Any]] = field(default_factory=dict)
    files: dict[str, dict[str, Any]] = field(default_factory=dict)

    def sizes(self) -> dict[str, int]:
        return {name: len(getattr(self, name)) for name in self.__dataclass_fields__}


_KIND_TABLE: dict[ReferenceKind, tuple[str, type]] = {
    ReferenceKind.PRODUCT: ("products", ProductRef),
    ReferenceKind.COLLECTION: ("collections", CollectionRef),
    ReferenceKind.PAGE: ("pages", PageRef),
    ReferenceKind.BLOG: ("blogs", BlogRef),
    ReferenceKind.ARTICLE: ("articles", ArticleRef),
    ReferenceKind.METAOBJECT: ("metaobjects", MetaobjectRef),
    ReferenceKind.VARIANT: ("variants", VariantRef),
    ReferenceKind.FILE: ("files", FileRef),
}


@dataclass
class EnrichmentReport:
    """Per-file (touched, total) record counts."""

    files: dict[str, tuple[int, int]] = field(default_factory=dict)

    @property
    def touched(self) -> int:
        return sum(touched for touched, _ in self.files.values())

    @property
    def total(self) -> int:
        return sum(total for _, total in self.files.values())


class ReferenceEnricher:
    """
    Annotates reference entries in a dump directory with natural keys.

    Usage:
        enricher = ReferenceEnricher(Path("./dumps"))
        report = enricher.enrich()
    """

    def __init__(self, dump_dir: Path):
        self.dump_dir = dump_dir
        self.maps: SourceKeyMaps | None = None

    # -------------------------------------------------------------------------
    # Source key maps
    # -------------------------------------------------------------------------

    def _records(self, name: str) -> list[dict[str, Any]]:
        path = self.dump_dir / name
        if not path.exists():
            return []
        return read_jsonl(path)

    def build_maps(self) -> SourceKeyMaps:
        """
        Scan the dump for every record's natural key.

        Returns:
            SourceKeyMaps keyed by source GID
        """
        maps = SourceKeyMaps()

        for product in self._records(PRODUCTS_FILE):
            handle = product.get("handle")
            if product.get("id") and handle:
                maps.products[product["id"]] = {"handle": handle}
            for variant in product.get("variants") or []:
                if variant.get("id") and handle:
                    maps.variants[variant["id"]] = {
                        "productHandle": handle,
                        "sku": variant.get("sku") or None,
                        "position": variant.get("position"),
                    }

        for name, target in (
            (COLLECTIONS_FILE, maps.collections),
            (PAGES_FILE, maps.pages),
            (BLOGS_FILE, maps.blogs),
        ):
            for record in self._records(name):
                if record.get("id") and record.get("handle"):
                    target[record["id"]] = {"handle": record["handle"]}

        for article in self._records(ARTICLES_FILE):
            if article.get("id") and article.get("handle"):
                maps.articles[article["id"]] = {
                    "blogHandle": article.get("blogHandle"),
                    "handle": article["handle"],
                }

        for mo_type, path in metaobject_dump_files(self.dump_dir):
            for record in read_jsonl(path):
                if record.get("id") and record.get("handle"):
                    maps.metaobjects[record["id"]] = {
                        "type": record.get("type") or mo_type,
                        "handle": record["handle"],
                    }

        for record in self._records(FILES_FILE):
            url = record.get("url") or record.get("src")
            if record.get("id") and url:
                maps.files[record["id"]] = {"url": url}

        logger.info("Built source key maps", **maps.sizes())
        self.maps = maps
        return maps

    # -------------------------------------------------------------------------
    # Enrichment
    # -------------------------------------------------------------------------

    def reference_for(self, gid: str) -> Any:
        """Tagged reference for a source GID, with its natural key when known."""
        assert self.maps is not None, "build_maps() must run first"
        kind = kind_for_gid(gid)
        entry = _KIND_TABLE.get(kind)
        if entry is None:
            return bare_reference(gid)
        map_name, model = entry
        payload = getattr(self.maps, map_name).get(gid)
        if payload is None:
            logger.debug("Reference target not in dump", gid=gid, kind=kind.value)
            return model(gid=gid)
        return model(gid=gid, **payload)

    def enrich_entry(self, entry: dict[str, Any]) -> None:
        """Attach ``ref`` / ``refs`` to a single metafield or field entry."""
        type_name = entry.get("type")
        if not is_reference_type(type_name):
            return

        value = entry.get("value")
        if is_list_type(type_name):
            try:
                gids = parse_gid_list(value)
            except ValueError as e:
                logger.warning(
                    "Unparsable list reference left as-is",
                    key=entry.get("key"),
                    type=type_name,
                    error=str(e),
                )
                return
            entry["refs"] = [dump_reference(self.reference_for(gid)) for gid in gids]
            return

        if not isinstance(value, str) or not value:
            return
        entry["ref"] = dump_reference(self.reference_for(value))

    def enrich_record(self, record: dict[str, Any]) -> None:
        for entry in record.get("metafields") or []:
            self.enrich_entry(entry)
        for variant in record.get("variants") or []:
            for entry in variant.get("metafields") or []:
                self.enrich_entry(entry)
        for entry in record.get("fields") or []:
            self.enrich_entry(entry)

    def enrich_file(self, path: Path, *, entries: bool = False) -> tuple[int, int]:
        """
        Enrich one dump file in place.

        Args:
            path: JSONL dump
            entries: Each line is itself a metafield entry (shop metafields)

        Returns:
            (touched, total) record counts
        """
        records = read_jsonl(path)
        touched = 0
        for record in records:
            before = encode_record(record)
            if entries:
                self.enrich_entry(record)
            else:
                self.enrich_record(record)
            if encode_record(record) != before:
                touched += 1

        write_jsonl(path, records)
        return touched, len(records)

    def enrich(self) -> EnrichmentReport:
        """
        Enrich every dump file that can hold references.

        Returns:
            EnrichmentReport with per-file counts
        """
        if self.maps is None:
            self.build_maps()

        report = EnrichmentReport()
        targets = [(name, self.dump_dir / name) for name in ENRICHED_FILES]
        targets += [(path.name, path) for _, path in metaobject_dump_files(self.dump_dir)]

        for name, path in targets:
            if not path.exists():
                continue
            counts = self.enrich_file(path, entries=name == SHOP_METAFIELDS_FILE)
            report.files[name] = counts
            if counts[0]:
                logger.info("Enriched dump file", file=name, touched=counts[0], total=counts[1])

        logger.info(
            "Reference enrichment complete", touched=report.touched, total=report.total
        )
        return report
