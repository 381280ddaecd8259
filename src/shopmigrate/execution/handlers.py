"""Record handlers for the entity kinds the migrator writes.

This module implements a strategy pattern: each handler knows how to turn one
dumped record into create/update inputs for its kind. The shared
BaseHandler.apply_record() does the create-or-update branching by natural key,
which makes every phase idempotent:

1. Look the natural key up in the destination index
2. Present  -> update the existing record (counted as "updated")
3. Absent   -> create it and insert the new GID into the index ("created")

Handlers are registered in HANDLER_REGISTRY by phase name.
"""

from dataclasses import dataclass
from typing import Any, ClassVar

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..constants import DEFAULT_OPTION_NAME, DEFAULT_OPTION_VALUE
from ..core.index import DestinationIndex
from ..core.relinker import FileIndex
from ..core.resolver import ReferenceResolver
from ..models.records import (
    ArticleRecord,
    BlogRecord,
    CollectionRecord,
    PageRecord,
    ProductRecord,
    VariantRecord,
)
from ..models.references import ReferenceKind, variant_position_key, variant_sku_key
from ..models.results import ApplyStats
from ..observability.metrics import get_global_collector
from ..shopify.client import ShopifyClient
from ..shopify.queries import Mutations, Queries
from ..utils.exceptions import ShopifyAPIError, ValidationError
from .publications import PublicationSync

logger = structlog.get_logger(__name__)


@dataclass
class ApplyContext:
    """
    Everything a handler needs for one run.

    The index is shared and mutated in place: creates insert into it, and
    the orchestrator swaps in fresh maps at phase boundaries.
    """

    client: ShopifyClient
    index: DestinationIndex
    resolver: ReferenceResolver
    file_index: FileIndex
    publications: PublicationSync
    dry_run: bool = False


class BaseHandler:
    """Base class with the create-or-update flow shared by all handlers."""

    phase: ClassVar[str] = ""
    kind: ClassVar[ReferenceKind]
    model: ClassVar[type[BaseModel]]

    def parse(self, raw: dict[str, Any]) -> Any:
        return self.model.model_validate(raw)

    def key(self, record: Any) -> str:
        return record.handle

    async def create(self, ctx: ApplyContext, record: Any) -> str:
        raise NotImplementedError

    async def update(self, ctx: ApplyContext, record: Any, gid: str) -> None:
        raise NotImplementedError

    async def after_write(
        self, ctx: ApplyContext, record: Any, gid: str, stats: ApplyStats
    ) -> None:
        """Hook run after a successful create or update."""

    def precheck(self, ctx: ApplyContext, record: Any) -> str | None:
        """Return an error message to fail the record before any write."""
        return None

    def on_dry_run(self, record: Any, existing: str | None) -> None:
        """Hook run instead of the write during a dry run."""

    async def apply_record(self, ctx: ApplyContext, raw: dict[str, Any], stats: ApplyStats) -> None:
        """
        Apply one dumped record, recording the outcome in stats.

        Never raises for per-record problems.
        """
        stats.total += 1
        collector = get_global_collector()

        try:
            record = self.parse(raw)
        except PydanticValidationError as e:
            key = str(raw.get("handle") or raw.get("id") or "<unknown>")
            stats.record_failure(key, f"Invalid dump record: {e.error_count()} validation errors")
            collector.count_outcome(self.phase, "failed")
            logger.warning("Invalid dump record", key=key, errors=e.errors(include_url=False))
            return

        key = self.key(record)
        problem = self.precheck(ctx, record)
        if problem:
            stats.record_failure(key, problem)
            collector.count_outcome(self.phase, "failed")
            logger.warning("Record rejected", key=key, error=problem)
            return

        existing = ctx.index.lookup(self.kind, key)

        if ctx.dry_run:
            stats.skipped += 1
            collector.count_outcome(self.phase, "skipped")
            logger.debug("Dry run", key=key, action="update" if existing else "create")
            self.on_dry_run(record, existing)
            return

        try:
            if existing:
                await self.update(ctx, record, existing)
                gid = existing
                stats.updated += 1
                outcome = "updated"
            else:
                gid = await self.create(ctx, record)
                ctx.index.insert(self.kind, key, gid)
                stats.created += 1
                outcome = "created"
        except (ValidationError, ShopifyAPIError) as e:
            stats.record_failure(key, str(e))
            collector.count_outcome(self.phase, "failed")
            logger.warning("Failed to apply record", key=key, error=str(e))
            return

        collector.count_outcome(self.phase, outcome)
        logger.debug("Applied record", key=key, outcome=outcome, id=gid)
        await self.after_write(ctx, record, gid, stats)

    @staticmethod
    def _created_id(payload: dict[str, Any], field: str) -> str:
        node = payload.get(field) or {}
        gid = node.get("id")
        if not gid:
            raise ShopifyAPIError(f"{field} mutation returned no id")
        return gid


class _PublishableHandler(BaseHandler):
    """Adds publication sync after every successful write."""

    async def after_write(
        self, ctx: ApplyContext, record: Any, gid: str, stats: ApplyStats
    ) -> None:
        entries = record.publication_entries()
        if not entries:
            return
        result = await ctx.publications.sync(gid, entries, self.key(record))
        if result.published:
            stats.publications_synced += 1
        if result.errors:
            stats.publication_errors += 1


def _media_inputs(record: ProductRecord, file_index: FileIndex) -> list[dict[str, Any]]:
    """Media inputs for the product's files that exist in the destination."""
    inputs = []
    for media in record.media:
        url = file_index.source_id_to_url.get(media.id)
        if not url:
            logger.debug("Product media not in file index", product=record.handle, media=media.id)
            continue
        inputs.append(
            {
                "mediaContentType": "IMAGE" if media.mediaType == "MediaImage" else "VIDEO",
                "alt": media.alt or "",
                "originalSource": url,
            }
        )
    return inputs


def _is_default_option(option: Any) -> bool:
    return option.name == DEFAULT_OPTION_NAME and option.value == DEFAULT_OPTION_VALUE


def build_variant_input(variant: VariantRecord) -> dict[str, Any]:
    """ProductVariantsBulkInput for one dumped variant (without id)."""
    variant_input: dict[str, Any] = {"price": variant.price or "0.00"}
    if variant.compareAtPrice:
        variant_input["compareAtPrice"] = variant.compareAtPrice
    if variant.barcode:
        variant_input["barcode"] = variant.barcode
    if variant.taxable is not None:
        variant_input["taxable"] = variant.taxable
    if variant.inventoryPolicy:
        variant_input["inventoryPolicy"] = variant.inventoryPolicy

    inventory_item: dict[str, Any] = {}
    if variant.has_sku:
        inventory_item["sku"] = variant.sku
    source_item = variant.inventoryItem or {}
    if source_item.get("tracked") is not None:
        inventory_item["tracked"] = source_item["tracked"]
    weight = (source_item.get("measurement") or {}).get("weight")
    if weight and weight.get("value") is not None:
        inventory_item["measurement"] = {
            "weight": {"value": weight["value"], "unit": str(weight.get("unit", "")).upper()}
        }
    if inventory_item:
        variant_input["inventoryItem"] = inventory_item

    option_values = [
        {"optionName": opt.name, "name": opt.value}
        for opt in variant.selectedOptions
        if not _is_default_option(opt)
    ]
    if option_values:
        variant_input["optionValues"] = option_values
    return variant_input


def match_variant(index: DestinationIndex, product_handle: str, variant: VariantRecord) -> str | None:
    """Destination variant for a dumped variant: sku key first, then position key."""
    if variant.has_sku:
        gid = index.variants.get(variant_sku_key(product_handle, variant.sku))
        if gid:
            return gid
    if variant.position is not None:
        return index.variants.get(variant_position_key(product_handle, variant.position))
    return None


class ProductHandler(_PublishableHandler):
    """
    Products.

    Variants cannot be matched until the product exists and the index has
    been rebuilt, so every product with variants is queued and handled by
    apply_variants() after the orchestrator's forced rebuild.
    """

    phase = "products"
    kind = ReferenceKind.PRODUCT
    model = ProductRecord

    def __init__(self) -> None:
        self.pending_variants: list[tuple[ProductRecord, str]] = []

    async def create(self, ctx: ApplyContext, record: ProductRecord) -> str:
        product: dict[str, Any] = {
            "handle": record.handle,
            "title": record.display_title,
            "descriptionHtml": record.descriptionHtml or "",
            "status": record.status or "ACTIVE",
        }
        if record.vendor:
            product["vendor"] = record.vendor
        if record.productType:
            product["productType"] = record.productType
        if record.tags:
            product["tags"] = record.tags
        if record.options:
            product["productOptions"] = [
                {
                    "name": opt.name,
                    "position": opt.position,
                    "values": [{"name": value} for value in opt.values],
                }
                for opt in record.options
            ]

        variables: dict[str, Any] = {"product": product}
        media = _media_inputs(record, ctx.file_index)
        if media:
            variables["media"] = media

        payload = await ctx.client.mutate(Mutations.PRODUCT_CREATE, variables, "productCreate")
        return self._created_id(payload, "product")

    async def update(self, ctx: ApplyContext, record: ProductRecord, gid: str) -> None:
        product: dict[str, Any] = {
            "id": gid,
            "title": record.display_title,
            "descriptionHtml": record.descriptionHtml or "",
            "status": record.status or "ACTIVE",
        }
        if record.vendor:
            product["vendor"] = record.vendor
        if record.productType:
            product["productType"] = record.productType
        if record.tags:
            product["tags"] = record.tags

        await ctx.client.mutate(Mutations.PRODUCT_UPDATE, {"product": product}, "productUpdate")
        await self._replace_media(ctx, record, gid)

    async def _replace_media(self, ctx: ApplyContext, record: ProductRecord, gid: str) -> None:
        """
        Replace the product's media with the dumped media.

        Existing media are deleted first so repeated runs do not stack
        duplicates. Media failures are logged, never fatal for the product.
        """
        media = _media_inputs(record, ctx.file_index)
        if not media:
            return
        try:
            data = await ctx.client.execute(Queries.PRODUCT_MEDIA, {"id": gid})
            edges = ((data.get("product") or {}).get("media") or {}).get("edges") or []
            existing = [edge["node"]["id"] for edge in edges]
            if existing:
                await ctx.client.mutate(
                    Mutations.PRODUCT_DELETE_MEDIA,
                    {"productId": gid, "mediaIds": existing},
                    "productDeleteMedia",
                )
            await ctx.client.mutate(
                Mutations.PRODUCT_CREATE_MEDIA,
                {"productId": gid, "media": media},
                "productCreateMedia",
            )
        except (ValidationError, ShopifyAPIError) as e:
            logger.warning("Failed to replace product media", key=record.handle, error=str(e))

    async def after_write(
        self, ctx: ApplyContext, record: ProductRecord, gid: str, stats: ApplyStats
    ) -> None:
        await super().after_write(ctx, record, gid, stats)
        if record.variants:
            self.pending_variants.append((record, gid))

    def on_dry_run(self, record: ProductRecord, existing: str | None) -> None:
        if record.variants:
            self.pending_variants.append((record, existing or ""))

    async def apply_variants(self, ctx: ApplyContext) -> ApplyStats:
        """
        Create or update the variants of every queued product.

        Must run after an index rebuild. Each product gets at most one bulk
        update call and one bulk create call.
        """
        stats = ApplyStats()
        collector = get_global_collector()

        for record, product_id in self.pending_variants:
            to_update: list[dict[str, Any]] = []
            to_create: list[dict[str, Any]] = []
            for variant in record.variants:
                stats.total += 1
                variant_input = build_variant_input(variant)
                existing = match_variant(ctx.index, record.handle, variant)
                if existing:
                    variant_input["id"] = existing
                    to_update.append(variant_input)
                else:
                    to_create.append(variant_input)

            if ctx.dry_run:
                stats.skipped += len(to_update) + len(to_create)
                logger.debug(
                    "Dry run",
                    key=record.handle,
                    variants_update=len(to_update),
                    variants_create=len(to_create),
                )
                continue

            if to_update:
                try:
                    await ctx.client.mutate(
                        Mutations.VARIANTS_BULK_UPDATE,
                        {"productId": product_id, "variants": to_update},
                        "productVariantsBulkUpdate",
                    )
                    stats.updated += len(to_update)
                    collector.count_outcome("variants", "updated")
                except (ValidationError, ShopifyAPIError) as e:
                    stats.record_failure(record.handle, f"variant update: {e}", len(to_update))
                    collector.count_outcome("variants", "failed")
                    logger.warning("Variant update failed", key=record.handle, error=str(e))

            if to_create:
                try:
                    payload = await ctx.client.mutate(
                        Mutations.VARIANTS_BULK_CREATE,
                        {"productId": product_id, "variants": to_create},
                        "productVariantsBulkCreate",
                    )
                    for node in payload.get("productVariants") or []:
                        ctx.index.add_variant(
                            record.handle, node.get("sku"), node.get("position"), node["id"]
                        )
                    stats.created += len(to_create)
                    collector.count_outcome("variants", "created")
                except (ValidationError, ShopifyAPIError) as e:
                    stats.record_failure(record.handle, f"variant create: {e}", len(to_create))
                    collector.count_outcome("variants", "failed")
                    logger.warning("Variant create failed", key=record.handle, error=str(e))

        logger.info(
            "Processed variants", products=len(self.pending_variants), summary=stats.get_summary()
        )
        self.pending_variants = []
        return stats


def _rule_set(rule_set: dict[str, Any] | None) -> dict[str, Any] | None:
    """CollectionRuleSetInput from a dumped ruleSet."""
    if not rule_set:
        return None
    return {
        "appliedDisjunctively": bool(rule_set.get("appliedDisjunctively", False)),
        "rules": [
            {
                "column": rule.get("column"),
                "relation": rule.get("relation"),
                "condition": rule.get("condition"),
            }
            for rule in rule_set.get("rules") or []
        ],
    }


class CollectionHandler(_PublishableHandler):
    phase = "collections"
    kind = ReferenceKind.COLLECTION
    model = CollectionRecord

    def _input(self, record: CollectionRecord) -> dict[str, Any]:
        collection_input: dict[str, Any] = {
            "handle": record.handle,
            "title": record.display_title,
            "descriptionHtml": record.descriptionHtml or "",
        }
        if record.templateSuffix:
            collection_input["templateSuffix"] = record.templateSuffix
        rule_set = _rule_set(record.ruleSet)
        if rule_set:
            collection_input["ruleSet"] = rule_set
        return collection_input

    async def create(self, ctx: ApplyContext, record: CollectionRecord) -> str:
        payload = await ctx.client.mutate(
            Mutations.COLLECTION_CREATE, {"input": self._input(record)}, "collectionCreate"
        )
        return self._created_id(payload, "collection")

    async def update(self, ctx: ApplyContext, record: CollectionRecord, gid: str) -> None:
        collection_input = self._input(record)
        collection_input["id"] = gid
        await ctx.client.mutate(
            Mutations.COLLECTION_UPDATE, {"input": collection_input}, "collectionUpdate"
        )


class BlogHandler(BaseHandler):
    phase = "blogs"
    kind = ReferenceKind.BLOG
    model = BlogRecord

    def _input(self, record: BlogRecord) -> dict[str, Any]:
        blog: dict[str, Any] = {"title": record.display_title, "handle": record.handle}
        if record.templateSuffix:
            blog["templateSuffix"] = record.templateSuffix
        return blog

    async def create(self, ctx: ApplyContext, record: BlogRecord) -> str:
        payload = await ctx.client.mutate(
            Mutations.BLOG_CREATE, {"blog": self._input(record)}, "blogCreate"
        )
        return self._created_id(payload, "blog")

    async def update(self, ctx: ApplyContext, record: BlogRecord, gid: str) -> None:
        await ctx.client.mutate(
            Mutations.BLOG_UPDATE, {"id": gid, "blog": self._input(record)}, "blogUpdate"
        )


class ArticleHandler(BaseHandler):
    """
    Articles.

    An article needs its blog in the destination. A missing blog is a hard
    per-record failure: the article is reported and skipped.
    """

    phase = "articles"
    kind = ReferenceKind.ARTICLE
    model = ArticleRecord

    def key(self, record: ArticleRecord) -> str:
        return record.natural_key

    def precheck(self, ctx: ApplyContext, record: ArticleRecord) -> str | None:
        if not ctx.index.lookup(ReferenceKind.BLOG, record.blogHandle):
            return f"Blog not found in destination: {record.blogHandle}"
        return None

    def _input(self, ctx: ApplyContext, record: ArticleRecord) -> dict[str, Any]:
        article: dict[str, Any] = {
            "blogId": ctx.index.lookup(ReferenceKind.BLOG, record.blogHandle),
            "title": record.display_title,
            "handle": record.handle,
            "body": record.body or "",
            "tags": record.tags,
        }
        if record.summary:
            article["summary"] = record.summary
        if record.templateSuffix:
            article["templateSuffix"] = record.templateSuffix
        if record.author_name:
            article["author"] = {"name": record.author_name}
        if record.image and record.image.url:
            article["image"] = record.image.model_dump(exclude_none=True)
        if record.isPublished is not None:
            article["isPublished"] = record.isPublished
        if record.publishedAt:
            article["publishDate"] = record.publishedAt
        return article

    async def create(self, ctx: ApplyContext, record: ArticleRecord) -> str:
        payload = await ctx.client.mutate(
            Mutations.ARTICLE_CREATE, {"article": self._input(ctx, record)}, "articleCreate"
        )
        return self._created_id(payload, "article")

    async def update(self, ctx: ApplyContext, record: ArticleRecord, gid: str) -> None:
        await ctx.client.mutate(
            Mutations.ARTICLE_UPDATE,
            {"id": gid, "article": self._input(ctx, record)},
            "articleUpdate",
        )


class PageHandler(BaseHandler):
    phase = "pages"
    kind = ReferenceKind.PAGE
    model = PageRecord

    def _input(self, record: PageRecord) -> dict[str, Any]:
        page: dict[str, Any] = {
            "title": record.display_title,
            "handle": record.handle,
            "body": record.body or "",
        }
        if record.templateSuffix:
            page["templateSuffix"] = record.templateSuffix
        if record.isPublished is not None:
            page["isPublished"] = record.isPublished
        return page

    async def create(self, ctx: ApplyContext, record: PageRecord) -> str:
        payload = await ctx.client.mutate(
            Mutations.PAGE_CREATE, {"page": self._input(record)}, "pageCreate"
        )
        return self._created_id(payload, "page")

    async def update(self, ctx: ApplyContext, record: PageRecord, gid: str) -> None:
        await ctx.client.mutate(
            Mutations.PAGE_UPDATE, {"id": gid, "page": self._input(record)}, "pageUpdate"
        )


# Handler registry for efficient dispatch, in phase order
HANDLER_REGISTRY: dict[str, type[BaseHandler]] = {
    "products": ProductHandler,
    "collections": CollectionHandler,
    "blogs": BlogHandler,
    "articles": ArticleHandler,
    "pages": PageHandler,
}
