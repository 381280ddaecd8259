"""
Navigation menu writes.

Menus run after the index rebuild, when every product, collection, page,
blog and article the run created is indexed. Each menu item that links a
resource is pointed at the destination record: ``resourceId`` gets the
destination GID and ``url`` is rebuilt from the handle. A resource link whose
target is not in the destination is written as a plain HTTP link to the
source URL, so the menu keeps its shape.

Menus are matched by handle against a listing taken once per run, then
created or replaced wholesale with menuCreate / menuUpdate.
"""

import re
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import structlog
from pydantic import ValidationError as PydanticValidationError

from ..constants import MENUS_FILE
from ..core.dump_io import read_jsonl
from ..models.records import MenuItemRecord, MenuRecord
from ..models.references import ReferenceKind
from ..models.results import ApplyStats
from ..observability.metrics import get_global_collector
from ..shopify.queries import Mutations, Queries
from ..utils.exceptions import IndexBuildError, ShopifyAPIError, ValidationError
from .handlers import ApplyContext

logger = structlog.get_logger(__name__)

# Menu item type -> (index kind, storefront path pattern)
_RESOURCE_LINKS: dict[str, tuple[ReferenceKind, re.Pattern[str]]] = {
    "PRODUCT": (ReferenceKind.PRODUCT, re.compile(r"/products/([^/]+)")),
    "COLLECTION": (ReferenceKind.COLLECTION, re.compile(r"/collections/([^/]+)")),
    "PAGE": (ReferenceKind.PAGE, re.compile(r"/pages/([^/]+)")),
    "BLOG": (ReferenceKind.BLOG, re.compile(r"/blogs/([^/]+)")),
    "ARTICLE": (ReferenceKind.ARTICLE, re.compile(r"/blogs/([^/]+)/([^/]+)")),
}


def resource_key(item: MenuItemRecord) -> str | None:
    """
    Index key of the record a menu item links, or None for other links.

    Explicit handles on the item win over the URL path. Articles are keyed
    ``"{blogHandle}:{handle}"`` like the index.
    """
    link = _RESOURCE_LINKS.get(item.type)
    if link is None:
        return None
    kind, pattern = link

    explicit = {
        ReferenceKind.PRODUCT: item.productHandle,
        ReferenceKind.COLLECTION: item.collectionHandle,
        ReferenceKind.PAGE: item.pageHandle,
        ReferenceKind.BLOG: item.blogHandle,
    }.get(kind)
    if explicit:
        return explicit
    if kind == ReferenceKind.ARTICLE and item.blogHandle and item.articleHandle:
        return f"{item.blogHandle}:{item.articleHandle}"

    if not item.url:
        return None
    match = pattern.search(urlsplit(item.url).path)
    if match is None:
        return None
    return ":".join(match.groups())


def storefront_path(kind: ReferenceKind, key: str) -> str:
    """Storefront URL path of a record from its index key."""
    if kind == ReferenceKind.ARTICLE:
        blog_handle, handle = key.split(":", 1)
        return f"/blogs/{blog_handle}/{handle}"
    return f"/{kind.value}s/{key}"


class MenuWriter:
    """
    Applies ``menus.jsonl``.

    Usage:
        writer = MenuWriter(ctx)
        stats = await writer.apply(dump_dir)
    """

    def __init__(self, ctx: ApplyContext, page_size: int = 50):
        self.ctx = ctx
        self.page_size = page_size
        self.resolved = 0
        self.unresolved = 0

    async def destination_menus(self) -> dict[str, str]:
        """
        Handle -> GID of every menu in the destination.

        Raises:
            IndexBuildError: The listing failed
        """
        menus: dict[str, str] = {}
        try:
            async for node in self.ctx.client.paginate(
                Queries.MENU_HANDLES, "menus", page_size=self.page_size
            ):
                if node.get("handle"):
                    menus[node["handle"]] = node["id"]
        except ShopifyAPIError as e:
            raise IndexBuildError(f"Failed to list destination menus: {e}") from e
        return menus

    def item_input(self, item: MenuItemRecord) -> dict[str, Any]:
        """Menu item input with resource links pointed at the destination."""
        item_input: dict[str, Any] = {"title": item.title, "type": item.type}
        link = _RESOURCE_LINKS.get(item.type)

        if link is None:
            if item.url:
                item_input["url"] = item.url
        else:
            kind = link[0]
            key = resource_key(item)
            gid = self.ctx.index.lookup(kind, key)
            collector = get_global_collector()
            if gid:
                item_input["resourceId"] = gid
                item_input["url"] = storefront_path(kind, key)
                self.resolved += 1
                collector.count_resolution(kind.value, "resolved")
            else:
                logger.debug("Menu link target not in destination", title=item.title, target=key)
                item_input["type"] = "HTTP"
                item_input["url"] = item.url or "/"
                self.unresolved += 1
                collector.count_resolution(kind.value, "unresolved")

        if item.tags:
            item_input["tags"] = item.tags
        if item.items:
            item_input["items"] = [self.item_input(child) for child in item.items]
        return item_input

    async def apply(self, dump_dir: Path) -> ApplyStats:
        """
        Create or replace every dumped menu.

        Raises:
            DumpError: The dump exists but cannot be read
            IndexBuildError: Destination menus could not be listed
        """
        stats = ApplyStats()
        path = dump_dir / MENUS_FILE
        if not path.exists():
            logger.warning("Dump not found, skipping phase", path=str(path))
            return stats

        records = read_jsonl(path)
        existing = await self.destination_menus()
        for raw in records:
            await self.apply_record(raw, existing, stats)

        logger.info(
            "Phase complete",
            summary=stats.get_summary(),
            links_resolved=self.resolved,
            links_unresolved=self.unresolved,
        )
        return stats

    async def apply_record(
        self, raw: dict[str, Any], existing: dict[str, str], stats: ApplyStats
    ) -> None:
        stats.total += 1
        collector = get_global_collector()
        try:
            menu = MenuRecord.model_validate(raw)
        except PydanticValidationError as e:
            key = str(raw.get("handle") or "<unknown>")
            stats.record_failure(key, f"Invalid menu record: {e.error_count()} validation errors")
            collector.count_outcome("menus", "failed")
            return

        items = [self.item_input(item) for item in menu.items]
        gid = existing.get(menu.handle)

        if self.ctx.dry_run:
            stats.skipped += 1
            collector.count_outcome("menus", "skipped")
            logger.debug("Dry run", key=menu.handle, action="update" if gid else "create")
            return

        try:
            if gid:
                await self.ctx.client.mutate(
                    Mutations.MENU_UPDATE,
                    {"id": gid, "title": menu.title, "handle": menu.handle, "items": items},
                    "menuUpdate",
                )
                stats.updated += 1
                outcome = "updated"
            else:
                payload = await self.ctx.client.mutate(
                    Mutations.MENU_CREATE,
                    {"title": menu.title, "handle": menu.handle, "items": items},
                    "menuCreate",
                )
                gid = (payload.get("menu") or {}).get("id")
                if not gid:
                    raise ShopifyAPIError("menu mutation returned no id")
                existing[menu.handle] = gid
                stats.created += 1
                outcome = "created"
        except (ValidationError, ShopifyAPIError) as e:
            stats.record_failure(menu.handle, str(e))
            collector.count_outcome("menus", "failed")
            logger.warning("Failed to apply menu", key=menu.handle, error=str(e))
            return

        collector.count_outcome("menus", outcome)
        logger.debug("Applied menu", key=menu.handle, outcome=outcome, id=gid)
