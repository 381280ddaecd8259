"""Configuration constants for the store migrator.

Named constants for page sizes, batch sizes, dump file names and the
GID type tables used by enrichment and resolution.
"""

import re

# -----------------------------------------------------------------------------
# Admin API
# -----------------------------------------------------------------------------

DEFAULT_API_VERSION: str = "2025-10"

# Connection page size (the Admin API maximum)
DEFAULT_PAGE_SIZE: int = 250

# Safety bound on pages fetched for a single connection
MAX_PAGES: int = 10_000

# Variants fetched inline with each product during indexing
VARIANTS_PER_PRODUCT_PAGE: int = 100

# Warn when the remaining query cost budget drops below this fraction
LOW_COST_BUDGET_RATIO: float = 0.2

# HTTP statuses the platform uses for throttling
RATE_LIMIT_STATUSES: frozenset[int] = frozenset({429, 430})


# -----------------------------------------------------------------------------
# Apply
# -----------------------------------------------------------------------------

# Members per metafieldsSet call
METAFIELDS_BATCH_SIZE: int = 25

# Errors printed by the CLI after a run
ERROR_SAMPLE_SIZE: int = 20


# -----------------------------------------------------------------------------
# Dump Files
# -----------------------------------------------------------------------------

PRODUCTS_FILE: str = "products.jsonl"
COLLECTIONS_FILE: str = "collections.jsonl"
PAGES_FILE: str = "pages.jsonl"
BLOGS_FILE: str = "blogs.jsonl"
ARTICLES_FILE: str = "articles.jsonl"
MENUS_FILE: str = "menus.jsonl"
FILES_FILE: str = "files.jsonl"
SHOP_METAFIELDS_FILE: str = "shop-metafields.jsonl"

METAOBJECT_FILE_PATTERN: re.Pattern[str] = re.compile(r"^metaobjects-(.+)\.jsonl$")

# Files rewritten by the enricher, metaobject files are discovered separately
ENRICHED_FILES: tuple[str, ...] = (
    PRODUCTS_FILE,
    COLLECTIONS_FILE,
    PAGES_FILE,
    BLOGS_FILE,
    ARTICLES_FILE,
    SHOP_METAFIELDS_FILE,
)


# -----------------------------------------------------------------------------
# GID Type Mappings
# -----------------------------------------------------------------------------

GID_TYPE_PATTERN: re.Pattern[str] = re.compile(r"gid://shopify/([^/]+)/")

# Maps GID type names to reference kind values (see models.references)
GID_TYPE_KINDS: dict[str, str] = {
    "Product": "product",
    "Collection": "collection",
    "Page": "page",
    "Blog": "blog",
    "Article": "article",
    "Metaobject": "metaobject",
    "ProductVariant": "variant",
    "MediaImage": "file",
    "GenericFile": "file",
    "Video": "file",
}

# Child list name used when reassembling a flat bulk-export stream
PARENT_CHILD_LISTS: dict[str, str] = {
    "ProductVariant": "variants",
    "Metafield": "metafields",
    "MediaImage": "media",
    "Video": "media",
    "ExternalVideo": "media",
    "Model3d": "media",
    "Article": "articles",
}

# Option that marks a product with only the implicit default variant
DEFAULT_OPTION_NAME: str = "Title"
DEFAULT_OPTION_VALUE: str = "Default Title"
