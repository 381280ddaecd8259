"""
Metafield writes.

Metafields run last: their values may reference any record created by an
earlier phase, metaobjects included. Owners are resolved through the
destination index by natural key, values go through file relinking and the
top-level reference policy, and writes are batched into metafieldsSet calls.

A batch is not all-or-nothing: userErrors that point at a member
(``field: ["metafields", "3", "value"]``) fail only that member.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from ..constants import (
    ARTICLES_FILE,
    BLOGS_FILE,
    COLLECTIONS_FILE,
    METAFIELDS_BATCH_SIZE,
    PAGES_FILE,
    PRODUCTS_FILE,
    SHOP_METAFIELDS_FILE,
)
from ..core.dump_io import read_jsonl
from ..core.relinker import FileRelinker
from ..models.records import MetafieldEntry, VariantRecord
from ..models.references import ReferenceKind
from ..models.results import ApplyStats
from ..observability.logger import LogContext
from ..observability.metrics import get_global_collector
from ..shopify.queries import Mutations, Queries
from ..shopify.response_models import parse_user_errors
from ..utils.exceptions import ShopifyAPIError
from .handlers import ApplyContext, match_variant

logger = structlog.get_logger(__name__)

# Owner kinds in write order
OWNER_KINDS: tuple[str, ...] = (
    "products",
    "variants",
    "collections",
    "pages",
    "blogs",
    "articles",
    "shop",
)


@dataclass
class PendingMetafield:
    """One metafield waiting to be written."""

    owner_kind: str
    owner_key: str
    owner_id: str | None
    entry: dict[str, Any]

    @property
    def label(self) -> str:
        return f"{self.owner_key}/{self.entry.get('namespace')}.{self.entry.get('key')}"


def _variant_label(handle: str, variant: VariantRecord | None, raw_variant: dict[str, Any]) -> str:
    """Natural key of a variant for reports: sku, else position, else its source id."""
    if variant is not None and variant.has_sku:
        return f"{handle}:{variant.sku}"
    if variant is not None and variant.position is not None:
        return f"{handle}:pos{variant.position}"
    return f"{handle}:{raw_variant.get('id') or '?'}"


class MetafieldWriter:
    """
    Writes owner-scoped metafields from the dump directory.

    Usage:
        writer = MetafieldWriter(ctx, relinker)
        for name, stats in await writer.apply(dump_dir):
            ...
    """

    def __init__(
        self,
        ctx: ApplyContext,
        relinker: FileRelinker,
        batch_size: int = METAFIELDS_BATCH_SIZE,
    ):
        self.ctx = ctx
        self.relinker = relinker
        self.batch_size = batch_size
        self._shop_id: str | None = None

    # -------------------------------------------------------------------------
    # Collection
    # -------------------------------------------------------------------------

    def _read(self, dump_dir: Path, name: str) -> list[dict[str, Any]]:
        path = dump_dir / name
        if not path.exists():
            return []
        return read_jsonl(path)

    def _owned(
        self, owner_kind: str, owner_key: str, owner_id: str | None, entries: list[Any]
    ) -> Iterator[PendingMetafield]:
        for entry in entries or []:
            yield PendingMetafield(owner_kind, owner_key, owner_id, entry)

    @staticmethod
    def _variant(handle: str, raw_variant: dict[str, Any]) -> VariantRecord | None:
        """Parse a variant for owner matching; its metafields are validated per entry later."""
        fields = {k: v for k, v in raw_variant.items() if k != "metafields"}
        try:
            return VariantRecord.model_validate(fields)
        except PydanticValidationError as e:
            logger.warning(
                "Unreadable variant, its metafields have no owner",
                product=handle,
                variant=raw_variant.get("id"),
                error=str(e),
            )
            return None

    def collect(self, dump_dir: Path) -> dict[str, list[PendingMetafield]]:
        """
        Gather every metafield in the dump with its resolved owner.

        The shop owner id is filled in by apply().
        """
        index = self.ctx.index
        pending: dict[str, list[PendingMetafield]] = {kind: [] for kind in OWNER_KINDS}

        for product in self._read(dump_dir, PRODUCTS_FILE):
            handle = product.get("handle") or ""
            pending["products"].extend(
                self._owned(
                    "products",
                    handle,
                    index.lookup(ReferenceKind.PRODUCT, handle),
                    product.get("metafields"),
                )
            )
            for raw_variant in product.get("variants") or []:
                variant = self._variant(handle, raw_variant)
                owner_id = match_variant(index, handle, variant) if variant else None
                pending["variants"].extend(
                    self._owned(
                        "variants",
                        _variant_label(handle, variant, raw_variant),
                        owner_id,
                        raw_variant.get("metafields"),
                    )
                )

        for name, kind, ref_kind in (
            (COLLECTIONS_FILE, "collections", ReferenceKind.COLLECTION),
            (PAGES_FILE, "pages", ReferenceKind.PAGE),
            (BLOGS_FILE, "blogs", ReferenceKind.BLOG),
        ):
            for record in self._read(dump_dir, name):
                handle = record.get("handle") or ""
                pending[kind].extend(
                    self._owned(kind, handle, index.lookup(ref_kind, handle), record.get("metafields"))
                )

        for article in self._read(dump_dir, ARTICLES_FILE):
            key = f"{article.get('blogHandle')}:{article.get('handle')}"
            pending["articles"].extend(
                self._owned(
                    "articles",
                    key,
                    index.lookup(ReferenceKind.ARTICLE, key),
                    article.get("metafields"),
                )
            )

        pending["shop"].extend(
            self._owned("shop", "shop", None, self._read(dump_dir, SHOP_METAFIELDS_FILE))
        )
        return pending

    async def shop_id(self) -> str | None:
        """Destination shop GID, fetched once."""
        if self._shop_id is None:
            data = await self.ctx.client.execute(Queries.SHOP_ID)
            self._shop_id = (data.get("shop") or {}).get("id")
        return self._shop_id

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def _prepare(
        self, item: PendingMetafield, stats: ApplyStats
    ) -> tuple[PendingMetafield, dict[str, Any]] | None:
        """Build the MetafieldsSetInput for one item, or count it as skipped/failed."""
        stats.total += 1
        try:
            entry = MetafieldEntry.model_validate(item.entry)
        except PydanticValidationError:
            stats.record_failure(item.label, "Invalid metafield entry")
            return None

        if item.owner_id is None:
            stats.skipped += 1
            logger.debug("Skipping metafield, owner not in destination", key=item.label)
            return None

        relinked = self.relinker.relink_entry(item.entry)
        value = self.ctx.resolver.build_metafield_value(relinked, self.ctx.index)
        if value is None:
            stats.skipped += 1
            logger.debug("Skipping metafield, no value to write", key=item.label)
            return None

        if self.ctx.dry_run:
            stats.skipped += 1
            logger.debug("Dry run", key=item.label, value=value)
            return None

        return item, {
            "ownerId": item.owner_id,
            "namespace": entry.namespace,
            "key": entry.key,
            "type": entry.type,
            "value": value,
        }

    async def _write_batch(
        self, batch: list[tuple[PendingMetafield, dict[str, Any]]], stats: ApplyStats
    ) -> None:
        collector = get_global_collector()
        try:
            payload = await self.ctx.client.mutate(
                Mutations.METAFIELDS_SET,
                {"metafields": [inp for _, inp in batch]},
                "metafieldsSet",
                raise_on_user_errors=False,
            )
        except ShopifyAPIError as e:
            for item, _ in batch:
                stats.record_failure(item.label, str(e))
            collector.count_outcome("metafields", "failed")
            logger.warning("metafieldsSet failed", members=len(batch), error=str(e))
            return

        failed: dict[int, list[str]] = {}
        batch_errors: list[str] = []
        for error in parse_user_errors(payload):
            member = error.member_index("metafields")
            if member is not None and 0 <= member < len(batch):
                failed.setdefault(member, []).append(str(error))
            else:
                batch_errors.append(str(error))

        if batch_errors:
            message = "; ".join(batch_errors)
            for item, _ in batch:
                stats.record_failure(item.label, message)
            collector.count_outcome("metafields", "failed")
            logger.warning("metafieldsSet rejected batch", members=len(batch), error=message)
            return

        for position, (item, _) in enumerate(batch):
            if position in failed:
                stats.record_failure(item.label, "; ".join(failed[position]))
                logger.warning("Metafield rejected", key=item.label, error=failed[position])
            else:
                stats.updated += 1
        collector.count_outcome("metafields", "updated")

    async def apply_owner_kind(self, items: list[PendingMetafield]) -> ApplyStats:
        stats = ApplyStats()
        batch: list[tuple[PendingMetafield, dict[str, Any]]] = []
        for item in items:
            prepared = self._prepare(item, stats)
            if prepared is None:
                continue
            batch.append(prepared)
            if len(batch) >= self.batch_size:
                await self._write_batch(batch, stats)
                batch = []
        if batch:
            await self._write_batch(batch, stats)
        return stats

    async def apply(self, dump_dir: Path) -> list[tuple[str, ApplyStats]]:
        """
        Write all metafields, one stats entry per owner kind.

        Returns:
            ("metafields.<owner kind>", stats) pairs for kinds with metafields
        """
        pending = self.collect(dump_dir)

        if pending["shop"]:
            try:
                shop_id = await self.shop_id()
            except ShopifyAPIError as e:
                logger.warning("Could not fetch destination shop id", error=str(e))
                shop_id = None
            for item in pending["shop"]:
                item.owner_id = shop_id

        results = []
        for kind in OWNER_KINDS:
            if not pending[kind]:
                continue
            with LogContext(owner_kind=kind):
                stats = await self.apply_owner_kind(pending[kind])
            logger.info("Applied metafields", owner_kind=kind, summary=stats.get_summary())
            results.append((f"metafields.{kind}", stats))
        return results
