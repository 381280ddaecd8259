"""Tagged reference values.

A reference-typed metafield or metaobject field points at another record by
its opaque GID. GIDs are per-store, so enrichment attaches the natural key of
the target next to the GID, as one of the variants below. Apply resolves the
variant against the destination index.

Wire format on an enriched entry:

    {"key": "related", "type": "product_reference",
     "value": "gid://shopify/Product/1",
     "ref": {"kind": "product", "gid": "gid://shopify/Product/1", "handle": "red-mug"}}

List-typed entries carry ``refs`` (a list of the same objects) instead of ``ref``.
"""

import json
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from ..constants import GID_TYPE_KINDS, GID_TYPE_PATTERN


class ReferenceKind(str, Enum):
    """Target kind of a reference."""

    PRODUCT = "product"
    COLLECTION = "collection"
    PAGE = "page"
    BLOG = "blog"
    ARTICLE = "article"
    METAOBJECT = "metaobject"
    VARIANT = "variant"
    FILE = "file"
    UNRESOLVABLE = "unresolvable"


class _Ref(BaseModel):
    """Fields shared by every reference variant."""

    kind: str
    gid: str

    model_config = {"extra": "allow"}

    def natural_key(self) -> str | None:
        """Index key of the target, or None when the dump had no record for it."""
        return None


class _HandleRef(_Ref):
    handle: str | None = None

    def natural_key(self) -> str | None:
        return self.handle or None


class ProductRef(_HandleRef):
    kind: Literal["product"] = "product"


class CollectionRef(_HandleRef):
    kind: Literal["collection"] = "collection"


class PageRef(_HandleRef):
    kind: Literal["page"] = "page"


class BlogRef(_HandleRef):
    kind: Literal["blog"] = "blog"


class ArticleRef(_Ref):
    kind: Literal["article"] = "article"
    blogHandle: str | None = None
    handle: str | None = None

    def natural_key(self) -> str | None:
        if not self.blogHandle or not self.handle:
            return None
        return f"{self.blogHandle}:{self.handle}"


class MetaobjectRef(_Ref):
    kind: Literal["metaobject"] = "metaobject"
    type: str | None = None
    handle: str | None = None

    def natural_key(self) -> str | None:
        if not self.type or not self.handle:
            return None
        return f"{self.type}:{self.handle}"


class VariantRef(_Ref):
    """
    Variant reference.

    Variants have no handle; they are keyed by product handle plus sku, with
    the 1-based position as fallback when the sku is blank.
    """

    kind: Literal["variant"] = "variant"
    productHandle: str | None = None
    sku: str | None = None
    position: int | None = None

    def natural_keys(self) -> list[str]:
        """Candidate index keys in lookup order (sku first, then position)."""
        if not self.productHandle:
            return []
        keys = []
        if self.sku and self.sku.strip():
            keys.append(variant_sku_key(self.productHandle, self.sku))
        if self.position is not None:
            keys.append(variant_position_key(self.productHandle, self.position))
        return keys

    def natural_key(self) -> str | None:
        keys = self.natural_keys()
        return keys[0] if keys else None


class FileRef(_Ref):
    """
    File reference.

    ``destinationId`` is set by FileRelinker once the file exists in the
    destination; it is never written to dumps.
    """

    kind: Literal["file"] = "file"
    url: str | None = None
    destinationId: str | None = None

    def natural_key(self) -> str | None:
        return self.url or None


class UnresolvableRef(_Ref):
    """
    Reference to a kind without a natural key (e.g. TaxonomyValue).

    Such GIDs are platform-wide rather than per-store, so the raw GID is
    written as-is.
    """

    kind: Literal["unresolvable"] = "unresolvable"
    typeName: str | None = None


Reference = Annotated[
    Union[
        ProductRef,
        CollectionRef,
        PageRef,
        BlogRef,
        ArticleRef,
        MetaobjectRef,
        VariantRef,
        FileRef,
        UnresolvableRef,
    ],
    Field(discriminator="kind"),
]

_REFERENCE_ADAPTER: TypeAdapter[Any] = TypeAdapter(Reference)

_KIND_MODELS: dict[ReferenceKind, type[_Ref]] = {
    ReferenceKind.PRODUCT: ProductRef,
    ReferenceKind.COLLECTION: CollectionRef,
    ReferenceKind.PAGE: PageRef,
    ReferenceKind.BLOG: BlogRef,
    ReferenceKind.ARTICLE: ArticleRef,
    ReferenceKind.METAOBJECT: MetaobjectRef,
    ReferenceKind.VARIANT: VariantRef,
    ReferenceKind.FILE: FileRef,
}


def variant_sku_key(product_handle: str, sku: str) -> str:
    return f"{product_handle}:{sku}"


def variant_position_key(product_handle: str, position: int | str) -> str:
    return f"{product_handle}:pos{position}"


def gid_type(gid: Any) -> str:
    """
    Extract the type name from a GID.

    "gid://shopify/Product/123" -> "Product". Returns "" for anything that
    is not a GID.
    """
    if not isinstance(gid, str):
        return ""
    match = GID_TYPE_PATTERN.search(gid)
    return match.group(1) if match else ""


def kind_for_gid(gid: str) -> ReferenceKind:
    return ReferenceKind(GID_TYPE_KINDS.get(gid_type(gid), ReferenceKind.UNRESOLVABLE.value))


def is_reference_type(type_name: str | None) -> bool:
    return bool(type_name) and "reference" in type_name  # type: ignore[operator]


def is_list_type(type_name: str | None) -> bool:
    return bool(type_name) and type_name.startswith("list.")  # type: ignore[union-attr]


def parse_gid_list(value: Any) -> list[str]:
    """
    Decode a list reference value.

    Raises:
        ValueError: If the value is not a JSON array of strings
    """
    if not isinstance(value, str):
        raise ValueError(f"expected JSON array string, got {type(value).__name__}")
    decoded = json.loads(value)
    if not isinstance(decoded, list) or not all(isinstance(g, str) for g in decoded):
        raise ValueError("expected a JSON array of GID strings")
    return decoded


def bare_reference(gid: str) -> Any:
    """
    Build a reference variant carrying only the GID.

    Used for targets the dump had no record of, and for entries that were
    never enriched. Known kinds stay unresolved at apply time; other kinds
    become UnresolvableRef and pass through.
    """
    kind = kind_for_gid(gid)
    model = _KIND_MODELS.get(kind)
    if model is None:
        return UnresolvableRef(gid=gid, typeName=gid_type(gid) or None)
    return model(gid=gid)


def load_reference(data: dict[str, Any]) -> Any:
    """Validate a serialized reference into its variant model."""
    return _REFERENCE_ADAPTER.validate_python(data)


def dump_reference(ref: _Ref) -> dict[str, Any]:
    return ref.model_dump(mode="json", exclude_none=True)


def entry_references(entry: dict[str, Any]) -> list[Any] | None:
    """
    Get the references carried by a metafield or metaobject field entry.

    Enriched entries are read from ``ref`` / ``refs``. Reference-typed entries
    without them are parsed from the raw value.

    Returns:
        List of reference variants (one element for single references), or
        None if the entry is not a reference or its value cannot be parsed.
    """
    type_name = entry.get("type")
    if not is_reference_type(type_name):
        return None

    if is_list_type(type_name):
        if isinstance(entry.get("refs"), list):
            return [load_reference(item) for item in entry["refs"]]
        try:
            return [bare_reference(gid) for gid in parse_gid_list(entry.get("value"))]
        except ValueError:
            return None

    if isinstance(entry.get("ref"), dict):
        return [load_reference(entry["ref"])]
    value = entry.get("value")
    if not isinstance(value, str) or not value:
        return None
    return [bare_reference(value)]
