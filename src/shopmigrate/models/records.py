"""Pydantic models for dumped records.

Dump files are JSON Lines written by the exporter; these models are the
read-only views the apply handlers build inputs from. Field names follow the
Admin API's camelCase so a record validates directly from its JSON line.

Unknown fields are kept (extra="allow") because enrichment adds ``ref`` /
``refs`` to entries, and newer exports may carry attributes this tool does
not write.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator


def filename_from_url(url: str | None) -> str | None:
    """Last path segment of a URL, without query string."""
    if not url:
        return None
    return url.split("?", 1)[0].rstrip("/").rsplit("/", 1)[-1] or None


class MetafieldEntry(BaseModel):
    """A metafield on a product, variant, collection, page, blog, article or the shop."""

    namespace: str
    key: str
    type: str
    value: str | None = None

    model_config = {"extra": "allow"}

    @property
    def identifier(self) -> str:
        return f"{self.namespace}.{self.key}"


class MetaobjectFieldEntry(BaseModel):
    """A field on a metaobject."""

    key: str
    type: str | None = None
    value: str | None = None

    model_config = {"extra": "allow"}


class PublicationEntry(BaseModel):
    """
    One sales channel a resource was (or was not) published to in the source.

    Accepts both the bulk-export edge shape ``{"node": {...}}`` and a flat
    ``{"publication": {...}, "isPublished": ...}`` object.
    """

    name: str | None = None
    isPublished: bool = False

    model_config = {"extra": "allow"}

    @classmethod
    def from_dump(cls, data: dict[str, Any]) -> "PublicationEntry":
        node = data.get("node", data)
        publication = node.get("publication") or {}
        return cls(
            name=publication.get("name") or node.get("name"),
            isPublished=bool(node.get("isPublished", False)),
        )


class _Record(BaseModel):
    id: str | None = None
    handle: str
    title: str | None = None
    metafields: list[MetafieldEntry] = Field(default_factory=list)

    model_config = {"extra": "allow"}

    @field_validator("metafields", mode="before")
    @classmethod
    def _none_to_list(cls, v: Any) -> Any:
        return v or []

    @property
    def display_title(self) -> str:
        """Title, falling back to the handle in title case."""
        if self.title and self.title.strip():
            return self.title
        return " ".join(word.capitalize() for word in self.handle.split("-"))


class _PublishableRecord(_Record):
    publications: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("publications", mode="before")
    @classmethod
    def _publications_none(cls, v: Any) -> Any:
        return v or []

    def publication_entries(self) -> list[PublicationEntry]:
        return [PublicationEntry.from_dump(p) for p in self.publications]


class SelectedOption(BaseModel):
    name: str
    value: str


class VariantRecord(BaseModel):
    """A product variant as nested in products.jsonl."""

    id: str | None = None
    sku: str | None = None
    title: str | None = None
    position: int | None = None
    price: str | None = None
    compareAtPrice: str | None = None
    barcode: str | None = None
    taxable: bool | None = None
    inventoryPolicy: str | None = None
    selectedOptions: list[SelectedOption] = Field(default_factory=list)
    inventoryItem: dict[str, Any] | None = None
    metafields: list[MetafieldEntry] = Field(default_factory=list)

    model_config = {"extra": "allow"}

    @field_validator("selectedOptions", "metafields", mode="before")
    @classmethod
    def _none_to_list(cls, v: Any) -> Any:
        return v or []

    @property
    def has_sku(self) -> bool:
        return bool(self.sku and self.sku.strip())


class ProductOption(BaseModel):
    name: str
    position: int | None = None
    values: list[str] = Field(default_factory=list)


class MediaEntry(BaseModel):
    id: str
    mediaType: str | None = None
    alt: str | None = None
    url: str | None = None

    model_config = {"extra": "allow"}


class ProductRecord(_PublishableRecord):
    descriptionHtml: str | None = None
    status: str | None = None
    vendor: str | None = None
    productType: str | None = None
    tags: list[str] = Field(default_factory=list)
    options: list[ProductOption] = Field(default_factory=list)
    media: list[MediaEntry] = Field(default_factory=list)
    variants: list[VariantRecord] = Field(default_factory=list)

    @field_validator("tags", "options", "media", "variants", mode="before")
    @classmethod
    def _lists(cls, v: Any) -> Any:
        return v or []


class CollectionRecord(_PublishableRecord):
    descriptionHtml: str | None = None
    templateSuffix: str | None = None
    ruleSet: dict[str, Any] | None = None


class PageRecord(_Record):
    body: str | None = None
    templateSuffix: str | None = None
    isPublished: bool | None = None


class BlogRecord(_Record):
    templateSuffix: str | None = None


class ArticleImage(BaseModel):
    url: str | None = None
    altText: str | None = None


class ArticleRecord(_Record):
    blogHandle: str
    body: str | None = None
    summary: str | None = None
    tags: list[str] = Field(default_factory=list)
    templateSuffix: str | None = None
    author: str | dict[str, Any] | None = None
    image: ArticleImage | None = None
    isPublished: bool | None = None
    publishedAt: str | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v: Any) -> Any:
        return v or []

    @property
    def natural_key(self) -> str:
        return f"{self.blogHandle}:{self.handle}"

    @property
    def author_name(self) -> str | None:
        if isinstance(self.author, dict):
            return self.author.get("name")
        return self.author


class MetaobjectRecord(BaseModel):
    id: str | None = None
    handle: str
    type: str
    fields: list[MetaobjectFieldEntry] = Field(default_factory=list)

    model_config = {"extra": "allow"}

    @property
    def natural_key(self) -> str:
        return f"{self.type}:{self.handle}"


class FileRecord(BaseModel):
    id: str
    url: str | None = None
    src: str | None = None
    alt: str | None = None
    mediaType: str | None = None
    mimeType: str | None = None

    model_config = {"extra": "allow"}

    @property
    def source_url(self) -> str | None:
        return self.url or self.src

    @property
    def filename(self) -> str | None:
        """Last path segment of the source URL, without query string."""
        return filename_from_url(self.source_url)


class MenuItemRecord(BaseModel):
    """
    One navigation link.

    Resource links (PRODUCT, COLLECTION, PAGE, BLOG, ARTICLE) may carry the
    target's handle next to the URL; otherwise the handle is read from the
    URL path at apply time.
    """

    title: str
    type: str = "HTTP"
    url: str | None = None
    tags: list[str] = Field(default_factory=list)
    productHandle: str | None = None
    collectionHandle: str | None = None
    pageHandle: str | None = None
    blogHandle: str | None = None
    articleHandle: str | None = None
    items: list["MenuItemRecord"] = Field(default_factory=list)

    model_config = {"extra": "allow"}

    @field_validator("tags", "items", mode="before")
    @classmethod
    def _lists(cls, v: Any) -> Any:
        return v or []


class MenuRecord(BaseModel):
    id: str | None = None
    handle: str
    title: str
    items: list[MenuItemRecord] = Field(default_factory=list)

    model_config = {"extra": "allow"}

    @field_validator("items", mode="before")
    @classmethod
    def _items(cls, v: Any) -> Any:
        return v or []
