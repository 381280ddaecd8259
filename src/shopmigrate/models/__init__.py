"""Data models for the store migrator."""

from .records import (
    ArticleRecord,
    BlogRecord,
    CollectionRecord,
    FileRecord,
    MenuItemRecord,
    MenuRecord,
    MetafieldEntry,
    MetaobjectFieldEntry,
    MetaobjectRecord,
    PageRecord,
    ProductRecord,
    PublicationEntry,
    VariantRecord,
)
from .references import (
    ArticleRef,
    BlogRef,
    CollectionRef,
    FileRef,
    MetaobjectRef,
    PageRef,
    ProductRef,
    Reference,
    ReferenceKind,
    UnresolvableRef,
    VariantRef,
)
from .results import ApplyStats, RecordError, RunSummary

__all__ = [
    # Records
    "ArticleRecord",
    "BlogRecord",
    "CollectionRecord",
    "FileRecord",
    "MenuItemRecord",
    "MenuRecord",
    "MetafieldEntry",
    "MetaobjectFieldEntry",
    "MetaobjectRecord",
    "PageRecord",
    "ProductRecord",
    "PublicationEntry",
    "VariantRecord",
    # References
    "Reference",
    "ReferenceKind",
    "ProductRef",
    "CollectionRef",
    "PageRef",
    "BlogRef",
    "ArticleRef",
    "MetaobjectRef",
    "VariantRef",
    "FileRef",
    "UnresolvableRef",
    # Results
    "ApplyStats",
    "RecordError",
    "RunSummary",
]
