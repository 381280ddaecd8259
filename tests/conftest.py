"""Pytest configuration and shared fixtures.

Fixtures are organized by category:
- Fake destination: an in-memory store behind the real client surface
- Dump fixtures: temp dump directories and sample records
- Context fixtures: ready-made ApplyContext objects
"""

import itertools
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from shopmigrate.config import ApplyConfig, RetryConfig, ShopConfig
from shopmigrate.core.dump_io import write_jsonl
from shopmigrate.core.index import DestinationIndex
from shopmigrate.core.relinker import FileIndex, FileRelinker
from shopmigrate.core.resolver import ReferenceResolver
from shopmigrate.execution.handlers import ApplyContext
from shopmigrate.execution.publications import PublicationSync
from shopmigrate.models.records import filename_from_url
from shopmigrate.observability import metrics
from shopmigrate.shopify.client import ShopifyClient, _operation_name
from shopmigrate.utils.exceptions import ShopifyAPIError

SHOP_GID = "gid://shopify/Shop/1"
ONLINE_STORE = "gid://shopify/Publication/1"
POINT_OF_SALE = "gid://shopify/Publication/2"


# =============================================================================
# Fake Destination Store
# =============================================================================


def _taken(field: str = "handle") -> dict[str, Any]:
    return {"field": [field], "message": "Handle has already been taken"}


class FakeShop(ShopifyClient):
    """
    In-memory destination store.

    Only ``execute`` is replaced, so ``mutate``, ``paginate`` and ``collect``
    run the real client code against it. Connections honour ``first`` and
    ``after`` so pagination is exercised too.

    Behaviour worth knowing in tests:
    - productCreate adds a default variant (position 1, no sku), like the platform
    - creates with a taken handle return a userError
    - metaobjectUpsert rejects types with no definition
    - metafieldsSet rejects unknown owners per member

    Failure injection:
        shop.failures["productCreate"] = ShopifyAPIError("boom")
        shop.user_errors["pageCreate"] = [{"field": ["title"], "message": "bad"}]
        shop.reject_metafield = lambda mf: "bad value" if mf["key"] == "x" else None
    """

    def __init__(self) -> None:
        super().__init__(
            ShopConfig(shop="dest.myshopify.com", access_token="shpat_test"),
            RetryConfig(max_attempts=1, initial_delay=0, max_delay=0, jitter=0),
        )
        self._ids = itertools.count(1000)
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.failures: dict[str, Exception] = {}
        self.user_errors: dict[str, list[dict[str, Any]]] = {}
        self.reject_metafield: Callable[[dict[str, Any]], str | None] | None = None
        self.inline_variant_limit = 100

        self.products: dict[str, dict[str, Any]] = {}
        self.collections: dict[str, dict[str, Any]] = {}
        self.pages: dict[str, dict[str, Any]] = {}
        self.blogs: dict[str, dict[str, Any]] = {}
        self.articles: dict[str, dict[str, Any]] = {}
        self.metaobjects: dict[str, dict[str, Any]] = {}
        self.files: dict[str, dict[str, Any]] = {}
        self.menus: dict[str, dict[str, Any]] = {}
        self.metafields: dict[tuple[str, str, str], dict[str, Any]] = {}
        self.publications: dict[str, str] = {
            "Online Store": ONLINE_STORE,
            "Point of Sale": POINT_OF_SALE,
        }
        self.published: dict[str, set[str]] = {}
        self.metaobject_types: list[str] = []

    # -------------------------------------------------------------------------
    # Seeding helpers
    # -------------------------------------------------------------------------

    def new_id(self, type_name: str) -> str:
        return f"gid://shopify/{type_name}/{next(self._ids)}"

    def add_product(
        self, handle: str, variants: list[dict[str, Any]] | None = None, **fields: Any
    ) -> str:
        gid = self.new_id("Product")
        product = {"id": gid, "handle": handle, "variants": [], "media": [], **fields}
        for position, variant in enumerate(variants or [{}], start=1):
            product["variants"].append(
                {
                    "id": self.new_id("ProductVariant"),
                    "sku": variant.get("sku"),
                    "position": variant.get("position", position),
                    "price": variant.get("price", "0.00"),
                }
            )
        self.products[gid] = product
        return gid

    def add_handle_record(self, store: str, handle: str, **fields: Any) -> str:
        type_name = {"collections": "Collection", "pages": "Page", "blogs": "Blog"}[store]
        gid = self.new_id(type_name)
        getattr(self, store)[gid] = {"id": gid, "handle": handle, **fields}
        return gid

    def add_metaobject(self, mo_type: str, handle: str, fields: dict[str, Any] | None = None) -> str:
        if mo_type not in self.metaobject_types:
            self.metaobject_types.append(mo_type)
        gid = self.new_id("Metaobject")
        self.metaobjects[gid] = {"id": gid, "type": mo_type, "handle": handle, "fields": fields or {}}
        return gid

    def add_file(self, url: str) -> str:
        gid = self.new_id("MediaImage")
        self.files[gid] = {"id": gid, "url": url, "alt": ""}
        return gid

    def add_menu(self, handle: str, title: str = "", items: list[dict[str, Any]] | None = None) -> str:
        gid = self.new_id("Menu")
        self.menus[gid] = {"id": gid, "handle": handle, "title": title, "items": items or []}
        return gid

    # -------------------------------------------------------------------------
    # Lookups for assertions
    # -------------------------------------------------------------------------

    def by_handle(self, store: str, handle: str) -> dict[str, Any] | None:
        for record in getattr(self, store).values():
            if record.get("handle") == handle:
                return record
        return None

    def metaobject(self, mo_type: str, handle: str) -> dict[str, Any] | None:
        for record in self.metaobjects.values():
            if record["type"] == mo_type and record["handle"] == handle:
                return record
        return None

    def metafield(self, owner_id: str, namespace: str, key: str) -> dict[str, Any] | None:
        return self.metafields.get((owner_id, namespace, key))

    def count(self, operation: str) -> int:
        return sum(1 for name, _ in self.calls if name == operation)

    def mutation_count(self) -> int:
        return sum(1 for name, _ in self.calls if name in self._MUTATIONS)

    def known_ids(self) -> set[str]:
        ids = {SHOP_GID}
        for store in (
            self.products,
            self.collections,
            self.pages,
            self.blogs,
            self.articles,
            self.metaobjects,
            self.files,
        ):
            ids.update(store)
        for product in self.products.values():
            ids.update(v["id"] for v in product["variants"])
        return ids

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    async def execute(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        operation = _operation_name(query)
        variables = dict(variables or {})
        self.calls.append((operation, variables))
        if operation in self.failures:
            raise self.failures[operation]

        handler = getattr(self, f"_op_{operation}", None)
        if handler is None:
            raise ShopifyAPIError(f"FakeShop does not implement {operation}")
        result = handler(variables)
        if operation in self.user_errors and isinstance(result, dict):
            payload = result.get(operation)
            if isinstance(payload, dict):
                payload["userErrors"] = self.user_errors[operation]
        return result

    @staticmethod
    def _connection(nodes: list[dict[str, Any]], variables: dict[str, Any]) -> dict[str, Any]:
        first = int(variables.get("first") or 50)
        offset = int(variables.get("after") or 0)
        page = nodes[offset : offset + first]
        end = offset + len(page)
        return {
            "edges": [{"node": node, "cursor": str(offset + i + 1)} for i, node in enumerate(page)],
            "pageInfo": {"hasNextPage": end < len(nodes), "endCursor": str(end) if page else None},
        }

    @staticmethod
    def _payload(root: str, body: dict[str, Any], errors: list[dict[str, Any]] | None = None):
        return {root: {**body, "userErrors": errors or []}}

    # ---- queries ------------------------------------------------------------

    def _op_productsWithVariants(self, v: dict[str, Any]) -> dict[str, Any]:
        nodes = []
        for product in self.products.values():
            variants = sorted(product["variants"], key=lambda x: x["position"])
            nodes.append(
                {
                    "id": product["id"],
                    "handle": product["handle"],
                    "variants": self._connection(
                        [{k: x[k] for k in ("id", "sku", "position")} for x in variants],
                        {"first": self.inline_variant_limit},
                    ),
                }
            )
        return {"products": self._connection(nodes, v)}

    def _op_productVariants(self, v: dict[str, Any]) -> dict[str, Any]:
        product = self.products.get(v["id"])
        if product is None:
            return {"product": None}
        variants = [
            {k: x[k] for k in ("id", "sku", "position")}
            for x in sorted(product["variants"], key=lambda x: x["position"])
        ]
        return {"product": {"variants": self._connection(variants, v)}}

    def _handles(self, store: dict[str, dict[str, Any]]) -> list[dict[str, Any]]:
        return [{"id": r["id"], "handle": r["handle"]} for r in store.values()]

    def _op_collections(self, v: dict[str, Any]) -> dict[str, Any]:
        return {"collections": self._connection(self._handles(self.collections), v)}

    def _op_pages(self, v: dict[str, Any]) -> dict[str, Any]:
        return {"pages": self._connection(self._handles(self.pages), v)}

    def _op_blogs(self, v: dict[str, Any]) -> dict[str, Any]:
        return {"blogs": self._connection(self._handles(self.blogs), v)}

    def _op_articles(self, v: dict[str, Any]) -> dict[str, Any]:
        nodes = [
            {
                "id": a["id"],
                "handle": a["handle"],
                "blog": {"handle": self.blogs[a["blogId"]]["handle"]},
            }
            for a in self.articles.values()
            if a["blogId"] in self.blogs
        ]
        return {"articles": self._connection(nodes, v)}

    def _op_publications(self, v: dict[str, Any]) -> dict[str, Any]:
        nodes = [{"id": pid, "name": name} for name, pid in self.publications.items()]
        return {"publications": self._connection(nodes, v)}

    def _op_metaobjectDefinitions(self, v: dict[str, Any]) -> dict[str, Any]:
        nodes = [
            {"id": f"gid://shopify/MetaobjectDefinition/{i}", "type": t}
            for i, t in enumerate(self.metaobject_types, start=1)
        ]
        return {"metaobjectDefinitions": self._connection(nodes, v)}

    def _op_metaobjects(self, v: dict[str, Any]) -> dict[str, Any]:
        nodes = [
            {"id": m["id"], "type": m["type"], "handle": m["handle"]}
            for m in self.metaobjects.values()
            if m["type"] == v.get("type")
        ]
        return {"metaobjects": self._connection(nodes, v)}

    def _op_shopId(self, v: dict[str, Any]) -> dict[str, Any]:
        return {"shop": {"id": SHOP_GID}}

    def _op_productMedia(self, v: dict[str, Any]) -> dict[str, Any]:
        product = self.products.get(v["id"])
        if product is None:
            return {"product": None}
        return {
            "product": {"media": {"edges": [{"node": {"id": m["id"]}} for m in product["media"]]}}
        }

    def _op_files(self, v: dict[str, Any]) -> dict[str, Any]:
        nodes = [
            {"id": f["id"], "alt": f["alt"], "image": {"url": f["url"]}} for f in self.files.values()
        ]
        return {"files": self._connection(nodes, v)}

    # ---- products -----------------------------------------------------------

    _MUTATIONS = frozenset(
        {
            "productCreate",
            "productUpdate",
            "productDeleteMedia",
            "productCreateMedia",
            "productVariantsBulkCreate",
            "productVariantsBulkUpdate",
            "collectionCreate",
            "collectionUpdate",
            "blogCreate",
            "blogUpdate",
            "articleCreate",
            "articleUpdate",
            "pageCreate",
            "pageUpdate",
            "metaobjectUpsert",
            "metafieldsSet",
            "publishablePublish",
            "publishableUnpublish",
            "fileCreate",
            "menuCreate",
            "menuUpdate",
        }
    )

    def _add_media(self, product: dict[str, Any], media: list[dict[str, Any]]) -> list[dict]:
        created = []
        for item in media:
            entry = {"id": self.new_id("MediaImage"), "src": item["originalSource"]}
            product["media"].append(entry)
            created.append({"id": entry["id"]})
        return created

    def _op_productCreate(self, v: dict[str, Any]) -> dict[str, Any]:
        fields = dict(v["product"])
        if self.by_handle("products", fields["handle"]):
            return self._payload("productCreate", {"product": None}, [_taken()])
        gid = self.new_id("Product")
        options = fields.pop("productOptions", [])
        product = {"id": gid, "variants": [], "media": [], "options": options, **fields}
        product["variants"].append(
            {
                "id": self.new_id("ProductVariant"),
                "sku": None,
                "position": 1,
                "price": "0.00",
                "title": "Default Title",
            }
        )
        self.products[gid] = product
        self._add_media(product, v.get("media") or [])
        return self._payload("productCreate", {"product": {"id": gid, "handle": product["handle"]}})

    def _op_productUpdate(self, v: dict[str, Any]) -> dict[str, Any]:
        fields = dict(v["product"])
        product = self.products.get(fields.pop("id"))
        if product is None:
            return self._payload("productUpdate", {"product": None}, [_taken("id")])
        product.update(fields)
        return self._payload("productUpdate", {"product": {"id": product["id"]}})

    def _op_productDeleteMedia(self, v: dict[str, Any]) -> dict[str, Any]:
        product = self.products[v["productId"]]
        product["media"] = [m for m in product["media"] if m["id"] not in v["mediaIds"]]
        return {"productDeleteMedia": {"deletedMediaIds": v["mediaIds"], "mediaUserErrors": []}}

    def _op_productCreateMedia(self, v: dict[str, Any]) -> dict[str, Any]:
        created = self._add_media(self.products[v["productId"]], v["media"])
        return {"productCreateMedia": {"media": created, "mediaUserErrors": []}}

    @staticmethod
    def _apply_variant_input(variant: dict[str, Any], data: dict[str, Any]) -> None:
        for key in ("price", "compareAtPrice", "barcode", "taxable", "inventoryPolicy"):
            if key in data:
                variant[key] = data[key]
        item = data.get("inventoryItem") or {}
        if "sku" in item:
            variant["sku"] = item["sku"]
        if "optionValues" in data:
            variant["optionValues"] = data["optionValues"]

    @staticmethod
    def _variant_nodes(variants: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return [{k: x.get(k) for k in ("id", "sku", "position")} for x in variants]

    def _op_productVariantsBulkUpdate(self, v: dict[str, Any]) -> dict[str, Any]:
        product = self.products[v["productId"]]
        by_id = {x["id"]: x for x in product["variants"]}
        updated = []
        for data in v["variants"]:
            variant = by_id[data["id"]]
            self._apply_variant_input(variant, data)
            updated.append(variant)
        return self._payload(
            "productVariantsBulkUpdate", {"productVariants": self._variant_nodes(updated)}
        )

    def _op_productVariantsBulkCreate(self, v: dict[str, Any]) -> dict[str, Any]:
        product = self.products[v["productId"]]
        created = []
        for data in v["variants"]:
            variant = {
                "id": self.new_id("ProductVariant"),
                "sku": None,
                "position": len(product["variants"]) + 1,
            }
            self._apply_variant_input(variant, data)
            product["variants"].append(variant)
            created.append(variant)
        return self._payload(
            "productVariantsBulkCreate", {"productVariants": self._variant_nodes(created)}
        )

    # ---- collections and content --------------------------------------------

    def _create_handle_record(
        self, root: str, store: str, type_name: str, fields: dict[str, Any], out: str
    ) -> dict[str, Any]:
        if self.by_handle(store, fields["handle"]):
            return self._payload(root, {out: None}, [_taken()])
        gid = self.new_id(type_name)
        getattr(self, store)[gid] = {"id": gid, **fields}
        return self._payload(root, {out: {"id": gid, "handle": fields["handle"]}})

    def _update_record(
        self, root: str, store: str, gid: str, fields: dict[str, Any], out: str
    ) -> dict[str, Any]:
        record = getattr(self, store).get(gid)
        if record is None:
            return self._payload(root, {out: None}, [{"field": ["id"], "message": "Not found"}])
        record.update(fields)
        return self._payload(root, {out: {"id": gid, "handle": record["handle"]}})

    def _op_collectionCreate(self, v: dict[str, Any]) -> dict[str, Any]:
        return self._create_handle_record(
            "collectionCreate", "collections", "Collection", dict(v["input"]), "collection"
        )

    def _op_collectionUpdate(self, v: dict[str, Any]) -> dict[str, Any]:
        fields = dict(v["input"])
        gid = fields.pop("id")
        return self._update_record("collectionUpdate", "collections", gid, fields, "collection")

    def _op_blogCreate(self, v: dict[str, Any]) -> dict[str, Any]:
        return self._create_handle_record("blogCreate", "blogs", "Blog", dict(v["blog"]), "blog")

    def _op_blogUpdate(self, v: dict[str, Any]) -> dict[str, Any]:
        return self._update_record("blogUpdate", "blogs", v["id"], dict(v["blog"]), "blog")

    def _op_pageCreate(self, v: dict[str, Any]) -> dict[str, Any]:
        return self._create_handle_record("pageCreate", "pages", "Page", dict(v["page"]), "page")

    def _op_pageUpdate(self, v: dict[str, Any]) -> dict[str, Any]:
        return self._update_record("pageUpdate", "pages", v["id"], dict(v["page"]), "page")

    def _op_articleCreate(self, v: dict[str, Any]) -> dict[str, Any]:
        fields = dict(v["article"])
        if fields.get("blogId") not in self.blogs:
            return self._payload(
                "articleCreate", {"article": None}, [{"field": ["blogId"], "message": "Blog missing"}]
            )
        for article in self.articles.values():
            if article["blogId"] == fields["blogId"] and article["handle"] == fields["handle"]:
                return self._payload("articleCreate", {"article": None}, [_taken()])
        gid = self.new_id("Article")
        self.articles[gid] = {"id": gid, **fields}
        return self._payload("articleCreate", {"article": {"id": gid, "handle": fields["handle"]}})

    def _op_articleUpdate(self, v: dict[str, Any]) -> dict[str, Any]:
        return self._update_record("articleUpdate", "articles", v["id"], dict(v["article"]), "article")

    # ---- custom data --------------------------------------------------------

    def _op_metaobjectUpsert(self, v: dict[str, Any]) -> dict[str, Any]:
        mo_type = v["handle"]["type"]
        handle = v["handle"]["handle"]
        if mo_type not in self.metaobject_types:
            return self._payload(
                "metaobjectUpsert",
                {"metaobject": None},
                [{"field": ["handle", "type"], "message": f"No definition for type {mo_type}"}],
            )
        record = self.metaobject(mo_type, handle)
        if record is None:
            gid = self.new_id("Metaobject")
            record = {"id": gid, "type": mo_type, "handle": handle, "fields": {}}
            self.metaobjects[gid] = record
        for field in v["metaobject"].get("fields") or []:
            record["fields"][field["key"]] = field["value"]
        return self._payload(
            "metaobjectUpsert",
            {"metaobject": {"id": record["id"], "handle": handle, "type": mo_type}},
        )

    def _op_metafieldsSet(self, v: dict[str, Any]) -> dict[str, Any]:
        known = self.known_ids()
        errors = []
        written = []
        for position, metafield in enumerate(v["metafields"]):
            problem = None
            if metafield["ownerId"] not in known:
                problem = ("ownerId", "Owner does not exist")
            elif self.reject_metafield is not None:
                message = self.reject_metafield(metafield)
                if message:
                    problem = ("value", message)
            if problem:
                errors.append({"field": ["metafields", str(position), problem[0]], "message": problem[1]})
                continue
            key = (metafield["ownerId"], metafield["namespace"], metafield["key"])
            self.metafields[key] = {"type": metafield["type"], "value": metafield["value"]}
            written.append({"namespace": metafield["namespace"], "key": metafield["key"]})
        return self._payload("metafieldsSet", {"metafields": written}, errors)

    # ---- publications and files ---------------------------------------------

    def _op_publishablePublish(self, v: dict[str, Any]) -> dict[str, Any]:
        current = self.published.setdefault(v["id"], set())
        current.update(item["publicationId"] for item in v["input"])
        return self._payload("publishablePublish", {})

    def _op_publishableUnpublish(self, v: dict[str, Any]) -> dict[str, Any]:
        current = self.published.setdefault(v["id"], set())
        current.difference_update(item["publicationId"] for item in v["input"])
        return self._payload("publishableUnpublish", {})

    # ---- navigation ---------------------------------------------------------

    def _op_menus(self, v: dict[str, Any]) -> dict[str, Any]:
        return {"menus": self._connection(self._handles(self.menus), v)}

    def _op_menuCreate(self, v: dict[str, Any]) -> dict[str, Any]:
        if self.by_handle("menus", v["handle"]):
            return self._payload("menuCreate", {"menu": None}, [_taken()])
        gid = self.new_id("Menu")
        self.menus[gid] = {"id": gid, "handle": v["handle"], "title": v["title"], "items": v["items"]}
        return self._payload("menuCreate", {"menu": {"id": gid, "handle": v["handle"]}})

    def _op_menuUpdate(self, v: dict[str, Any]) -> dict[str, Any]:
        fields = {"title": v["title"], "items": v["items"]}
        if v.get("handle"):
            fields["handle"] = v["handle"]
        return self._update_record("menuUpdate", "menus", v["id"], fields, "menu")

    def _op_fileCreate(self, v: dict[str, Any]) -> dict[str, Any]:
        created = []
        for item in v["files"]:
            gid = self.new_id("MediaImage")
            url = f"https://cdn.dest.example/files/{filename_from_url(item['originalSource'])}"
            self.files[gid] = {"id": gid, "url": url, "alt": item.get("alt", "")}
            created.append({"id": gid, "alt": item.get("alt", ""), "image": {"url": url}})
        return self._payload("fileCreate", {"files": created})


# =============================================================================
# Global State
# =============================================================================


@pytest.fixture(autouse=True)
def fresh_metrics():
    """Give each test its own global metrics collector."""
    metrics._GLOBAL_COLLECTOR = None
    yield
    metrics._GLOBAL_COLLECTOR = None


# =============================================================================
# Fake Store Fixtures
# =============================================================================


@pytest.fixture
def shop() -> FakeShop:
    """Empty fake destination with two sales channels."""
    return FakeShop()


@pytest.fixture
def dump_dir(tmp_path: Path) -> Path:
    """Empty dump directory."""
    path = tmp_path / "dumps"
    path.mkdir()
    return path


@pytest.fixture
def write_dump(dump_dir: Path) -> Callable[[str, list[dict[str, Any]]], Path]:
    """Write records to a dump file in dump_dir.

    Example:
        def test_something(write_dump):
            write_dump("pages.jsonl", [{"handle": "about"}])
    """

    def _write(name: str, records: list[dict[str, Any]]) -> Path:
        path = dump_dir / name
        write_jsonl(path, records)
        return path

    return _write


@pytest.fixture
def apply_config(dump_dir: Path) -> ApplyConfig:
    return ApplyConfig(dump_dir=dump_dir, page_size=2)


# =============================================================================
# Context Fixtures
# =============================================================================


def make_context(
    client: Any,
    index: DestinationIndex | None = None,
    file_index: FileIndex | None = None,
    dry_run: bool = False,
) -> ApplyContext:
    """ApplyContext wired the way the orchestrator wires it."""
    index = index if index is not None else DestinationIndex()
    relinker = FileRelinker(file_index if file_index is not None else FileIndex())
    return ApplyContext(
        client=client,
        index=index,
        resolver=ReferenceResolver(relinker),
        file_index=relinker.file_index,
        publications=PublicationSync(client, index),
        dry_run=dry_run,
    )


@pytest.fixture
def ctx(shop: FakeShop) -> ApplyContext:
    """Context over an empty index and the fake shop."""
    return make_context(shop)


# =============================================================================
# Data Fixtures
# =============================================================================


@pytest.fixture
def sample_product() -> dict[str, Any]:
    """A product with two variants, one image and a published channel."""
    return {
        "id": "gid://shopify/Product/1",
        "handle": "red-mug",
        "title": "Red Mug",
        "descriptionHtml": "<p>A red mug</p>",
        "status": "ACTIVE",
        "vendor": "Acme",
        "tags": ["mugs", "red"],
        "options": [{"name": "Size", "position": 1, "values": ["S", "L"]}],
        "publications": [
            {"node": {"publication": {"name": "Online Store"}, "isPublished": True}},
            {"node": {"publication": {"name": "Point of Sale"}, "isPublished": False}},
        ],
        "variants": [
            {
                "id": "gid://shopify/ProductVariant/11",
                "sku": "MUG-S",
                "position": 1,
                "price": "10.00",
                "selectedOptions": [{"name": "Size", "value": "S"}],
            },
            {
                "id": "gid://shopify/ProductVariant/12",
                "sku": "MUG-L",
                "position": 2,
                "price": "12.00",
                "selectedOptions": [{"name": "Size", "value": "L"}],
            },
        ],
        "metafields": [
            {"namespace": "custom", "key": "material", "type": "single_line_text_field", "value": "ceramic"}
        ],
    }
