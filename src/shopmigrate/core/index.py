"""
Destination index.

A snapshot of the destination store as natural key -> destination GID maps,
one per referencable kind. The index is built once at the start of a run,
mutated as records are created, rebuilt at phase boundaries and discarded at
exit. It is passed explicitly to everything that resolves references.

Key formats:
    products / collections / pages / blogs   handle
    articles                                 "{blogHandle}:{handle}"
    metaobjects                              "{type}:{handle}"
    variants                                 "{productHandle}:{sku}" or "{productHandle}:pos{position}"
    publications                             publication name
"""

from dataclasses import dataclass, field
from typing import Any

import structlog

from ..constants import DEFAULT_PAGE_SIZE, VARIANTS_PER_PRODUCT_PAGE
from ..models.references import ReferenceKind, variant_position_key, variant_sku_key
from ..shopify.client import ShopifyClient
from ..shopify.queries import Queries
from ..utils.exceptions import IndexBuildError, SchemaEnumerationError, ShopifyAPIError

logger = structlog.get_logger(__name__)

_KIND_MAPS: dict[ReferenceKind, str] = {
    ReferenceKind.PRODUCT: "products",
    ReferenceKind.COLLECTION: "collections",
    ReferenceKind.PAGE: "pages",
    ReferenceKind.BLOG: "blogs",
    ReferenceKind.ARTICLE: "articles",
    ReferenceKind.METAOBJECT: "metaobjects",
    ReferenceKind.VARIANT: "variants",
}


@dataclass
class DestinationIndex:
    """Natural key -> destination GID maps for one destination store."""

    products: dict[str, str] = field(default_factory=dict)
    collections: dict[str, str] = field(default_factory=dict)
    pages: dict[str, str] = field(default_factory=dict)
    blogs: dict[str, str] = field(default_factory=dict)
    articles: dict[str, str] = field(default_factory=dict)
    metaobjects: dict[str, str] = field(default_factory=dict)
    variants: dict[str, str] = field(default_factory=dict)
    publications: dict[str, str] = field(default_factory=dict)
    metaobject_types: list[str] = field(default_factory=list)

    def map_for(self, kind: ReferenceKind | str) -> dict[str, str] | None:
        """The map holding a kind, or None for kinds without a natural key."""
        try:
            return getattr(self, _KIND_MAPS[ReferenceKind(kind)])
        except (KeyError, ValueError):
            return None

    def lookup(self, kind: ReferenceKind | str, key: str | None) -> str | None:
        if not key:
            return None
        mapping = self.map_for(kind)
        if mapping is None:
            return None
        return mapping.get(key)

    def insert(self, kind: ReferenceKind | str, key: str, gid: str) -> None:
        """Record a newly created destination record so later lookups find it."""
        mapping = self.map_for(kind)
        if mapping is None:
            raise ValueError(f"kind {kind!r} has no index map")
        mapping[key] = gid

    def add_variant(self, product_handle: str, sku: str | None, position: Any, gid: str) -> None:
        """
        Index a variant under its sku key and, if unused, its position key.

        The sku key always wins: a position key never overwrites an existing
        entry, so two variants can never collide on the same key.
        """
        if sku and sku.strip():
            self.variants[variant_sku_key(product_handle, sku)] = gid
        if position is not None:
            self.variants.setdefault(variant_position_key(product_handle, position), gid)

    def replace_with(self, other: "DestinationIndex") -> None:
        """
        Take over every map from a fresh snapshot.

        Maps are replaced, not merged, so a destination record deleted since
        the last build is no longer resolvable.
        """
        for name in self.__dataclass_fields__:
            setattr(self, name, getattr(other, name))

    def replace_metaobject_type(self, mo_type: str, entries: dict[str, str]) -> None:
        """Replace all entries of one metaobject type with handle -> GID entries."""
        prefix = f"{mo_type}:"
        self.metaobjects = {k: v for k, v in self.metaobjects.items() if not k.startswith(prefix)}
        for handle, gid in entries.items():
            self.metaobjects[f"{prefix}{handle}"] = gid
        if mo_type not in self.metaobject_types:
            self.metaobject_types.append(mo_type)

    def size(self) -> dict[str, int]:
        return {
            "products": len(self.products),
            "collections": len(self.collections),
            "pages": len(self.pages),
            "blogs": len(self.blogs),
            "articles": len(self.articles),
            "metaobjects": len(self.metaobjects),
            "variants": len(self.variants),
            "publications": len(self.publications),
            "metaobject_types": len(self.metaobject_types),
        }


class DestinationIndexBuilder:
    """
    Builds a DestinationIndex by paginating the destination store.

    Every connection is read to completion; a partial snapshot would make
    existing records look absent and cause duplicate creates.
    """

    def __init__(self, client: ShopifyClient, page_size: int = DEFAULT_PAGE_SIZE):
        self.client = client
        self.page_size = page_size

    async def build(self) -> DestinationIndex:
        """
        Snapshot the destination store.

        Raises:
            SchemaEnumerationError: Metaobject definitions could not be listed
            IndexBuildError: Any other read failure
        """
        index = DestinationIndex()
        try:
            await self._index_products(index)
            await self._index_handles(index.collections, Queries.COLLECTION_HANDLES, "collections")
            await self._index_handles(index.pages, Queries.PAGE_HANDLES, "pages")
            await self._index_handles(index.blogs, Queries.BLOG_HANDLES, "blogs")
            await self._index_articles(index)
            await self._index_publications(index)
        except ShopifyAPIError as e:
            raise IndexBuildError(f"Failed to build destination index: {e}") from e

        types = await self.enumerate_metaobject_types()
        for mo_type in types:
            try:
                await self.index_metaobject_type(index, mo_type)
            except ShopifyAPIError as e:
                raise IndexBuildError(
                    f"Failed to index metaobjects of type {mo_type!r}: {e}"
                ) from e

        logger.info("Destination index built", **index.size())
        return index

    async def rebuild(self, index: DestinationIndex) -> DestinationIndex:
        """Re-snapshot and swap the fresh maps into an existing index."""
        fresh = await self.build()
        index.replace_with(fresh)
        return index

    async def _index_products(self, index: DestinationIndex) -> None:
        async for product in self.client.paginate(
            Queries.PRODUCTS_WITH_VARIANTS, "products", page_size=self.page_size
        ):
            handle = product.get("handle")
            if not handle:
                continue
            index.products[handle] = product["id"]

            variants = product.get("variants") or {}
            for edge in variants.get("edges") or []:
                node = edge.get("node") or {}
                index.add_variant(handle, node.get("sku"), node.get("position"), node["id"])

            page_info = variants.get("pageInfo") or {}
            if page_info.get("hasNextPage"):
                await self._index_remaining_variants(index, handle, product["id"], page_info)

    async def _index_remaining_variants(
        self, index: DestinationIndex, handle: str, product_id: str, page_info: dict[str, Any]
    ) -> None:
        """Fetch variants beyond the first inline page for one product."""
        logger.debug("Paginating product variants", product=handle)
        seen = 0
        async for node in self.client.paginate(
            Queries.PRODUCT_VARIANTS,
            "product.variants",
            variables={"id": product_id},
            page_size=VARIANTS_PER_PRODUCT_PAGE,
        ):
            seen += 1
            # The first page repeats the inline variants; add_variant is idempotent
            index.add_variant(handle, node.get("sku"), node.get("position"), node["id"])
        logger.debug("Indexed product variants", product=handle, variants=seen)

    async def _index_handles(self, target: dict[str, str], query: str, connection: str) -> None:
        async for node in self.client.paginate(query, connection, page_size=self.page_size):
            if node.get("handle"):
                target[node["handle"]] = node["id"]

    async def _index_articles(self, index: DestinationIndex) -> None:
        async for node in self.client.paginate(
            Queries.ARTICLE_HANDLES, "articles", page_size=self.page_size
        ):
            blog_handle = (node.get("blog") or {}).get("handle")
            if blog_handle and node.get("handle"):
                index.articles[f"{blog_handle}:{node['handle']}"] = node["id"]

    async def _index_publications(self, index: DestinationIndex) -> None:
        async for node in self.client.paginate(
            Queries.PUBLICATIONS, "publications", page_size=self.page_size
        ):
            if node.get("name"):
                index.publications[node["name"]] = node["id"]

    async def enumerate_metaobject_types(self) -> list[str]:
        """
        List every metaobject type defined in the destination.

        Raises:
            SchemaEnumerationError: The definitions listing failed
        """
        try:
            types = [
                node["type"]
                async for node in self.client.paginate(
                    Queries.METAOBJECT_DEFINITION_TYPES,
                    "metaobjectDefinitions",
                    page_size=self.page_size,
                )
                if node.get("type")
            ]
        except ShopifyAPIError as e:
            raise SchemaEnumerationError(f"Failed to list metaobject definitions: {e}") from e
        return sorted(set(types))

    async def index_metaobject_type(self, index: DestinationIndex, mo_type: str) -> int:
        """
        (Re)index all instances of one metaobject type.

        Returns:
            Number of instances found
        """
        entries: dict[str, str] = {}
        async for node in self.client.paginate(
            Queries.METAOBJECT_HANDLES,
            "metaobjects",
            variables={"type": mo_type},
            page_size=self.page_size,
        ):
            if node.get("handle"):
                entries[node["handle"]] = node["id"]
        index.replace_metaobject_type(mo_type, entries)
        logger.debug("Indexed metaobject type", type=mo_type, instances=len(entries))
        return len(entries)
