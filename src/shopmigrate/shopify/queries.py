"""Centralized GraphQL documents for the Shopify Admin API.

Single source of truth for every query and mutation the migrator sends, so
that API version upgrades touch one file.

Usage:
    from shopmigrate.shopify.queries import Mutations, Queries

    async for node in client.paginate(Queries.COLLECTION_HANDLES, "collections"):
        ...
    payload = await client.mutate(Mutations.PAGE_CREATE, {"page": page}, "pageCreate")
"""

from dataclasses import dataclass

_USER_ERRORS = """
      userErrors {
        field
        message
      }"""

_PAGE_INFO = """
      pageInfo {
        hasNextPage
        endCursor
      }"""


@dataclass(frozen=True)
class Queries:
    """
    Read-side documents.

    Every connection query takes ``$first`` / ``$after`` so it can be driven
    by ShopifyClient.paginate().
    """

    # -------------------------------------------------------------------------
    # Index
    # -------------------------------------------------------------------------
    PRODUCTS_WITH_VARIANTS: str = f"""
  query productsWithVariants($first: Int!, $after: String) {{
    products(first: $first, after: $after) {{
      edges {{
        node {{
          id
          handle
          variants(first: 100) {{
            edges {{
              node {{
                id
                sku
                position
              }}
            }}{_PAGE_INFO}
          }}
        }}
        cursor
      }}{_PAGE_INFO}
    }}
  }}
"""

    PRODUCT_VARIANTS: str = f"""
  query productVariants($id: ID!, $first: Int!, $after: String) {{
    product(id: $id) {{
      variants(first: $first, after: $after) {{
        edges {{
          node {{
            id
            sku
            position
          }}
        }}{_PAGE_INFO}
      }}
    }}
  }}
"""

    COLLECTION_HANDLES: str = f"""
  query collections($first: Int!, $after: String) {{
    collections(first: $first, after: $after) {{
      edges {{
        node {{
          id
          handle
        }}
      }}{_PAGE_INFO}
    }}
  }}
"""

    PAGE_HANDLES: str = f"""
  query pages($first: Int!, $after: String) {{
    pages(first: $first, after: $after) {{
      edges {{
        node {{
          id
          handle
        }}
      }}{_PAGE_INFO}
    }}
  }}
"""

    BLOG_HANDLES: str = f"""
  query blogs($first: Int!, $after: String) {{
    blogs(first: $first, after: $after) {{
      edges {{
        node {{
          id
          handle
        }}
      }}{_PAGE_INFO}
    }}
  }}
"""

    ARTICLE_HANDLES: str = f"""
  query articles($first: Int!, $after: String) {{
    articles(first: $first, after: $after) {{
      edges {{
        node {{
          id
          handle
          blog {{
            handle
          }}
        }}
      }}{_PAGE_INFO}
    }}
  }}
"""

    PUBLICATIONS: str = f"""
  query publications($first: Int!, $after: String) {{
    publications(first: $first, after: $after) {{
      edges {{
        node {{
          id
          name
        }}
      }}{_PAGE_INFO}
    }}
  }}
"""

    METAOBJECT_DEFINITION_TYPES: str = f"""
  query metaobjectDefinitions($first: Int!, $after: String) {{
    metaobjectDefinitions(first: $first, after: $after) {{
      edges {{
        node {{
          id
          type
        }}
      }}{_PAGE_INFO}
    }}
  }}
"""

    METAOBJECT_HANDLES: str = f"""
  query metaobjects($type: String!, $first: Int!, $after: String) {{
    metaobjects(type: $type, first: $first, after: $after) {{
      edges {{
        node {{
          id
          type
          handle
        }}
      }}{_PAGE_INFO}
    }}
  }}
"""

    MENU_HANDLES: str = f"""
  query menus($first: Int!, $after: String) {{
    menus(first: $first, after: $after) {{
      edges {{
        node {{
          id
          handle
        }}
      }}{_PAGE_INFO}
    }}
  }}
"""

    # -------------------------------------------------------------------------
    # Apply helpers
    # -------------------------------------------------------------------------
    SHOP_ID: str = """
  query shopId {
    shop {
      id
    }
  }
"""

    PRODUCT_MEDIA: str = """
  query productMedia($id: ID!) {
    product(id: $id) {
      media(first: 250) {
        edges {
          node {
            id
          }
        }
      }
    }
  }
"""

    FILES: str = f"""
  query files($first: Int!, $after: String) {{
    files(first: $first, after: $after) {{
      edges {{
        node {{
          id
          alt
          ... on MediaImage {{
            image {{
              url
            }}
          }}
          ... on GenericFile {{
            url
          }}
          ... on Video {{
            filename
            originalSource {{
              url
            }}
          }}
        }}
      }}{_PAGE_INFO}
    }}
  }}
"""


@dataclass(frozen=True)
class Mutations:
    """Write-side documents. Each payload exposes ``userErrors``."""

    # -------------------------------------------------------------------------
    # Products
    # -------------------------------------------------------------------------
    PRODUCT_CREATE: str = f"""
  mutation productCreate($product: ProductCreateInput!, $media: [CreateMediaInput!]) {{
    productCreate(product: $product, media: $media) {{
      product {{
        id
        handle
      }}{_USER_ERRORS}
    }}
  }}
"""

    PRODUCT_UPDATE: str = f"""
  mutation productUpdate($product: ProductUpdateInput!) {{
    productUpdate(product: $product) {{
      product {{
        id
        handle
      }}{_USER_ERRORS}
    }}
  }}
"""

    PRODUCT_DELETE_MEDIA: str = """
  mutation productDeleteMedia($productId: ID!, $mediaIds: [ID!]!) {
    productDeleteMedia(productId: $productId, mediaIds: $mediaIds) {
      deletedMediaIds
      mediaUserErrors {
        field
        message
        code
      }
    }
  }
"""

    PRODUCT_CREATE_MEDIA: str = """
  mutation productCreateMedia($productId: ID!, $media: [CreateMediaInput!]!) {
    productCreateMedia(productId: $productId, media: $media) {
      media {
        id
      }
      mediaUserErrors {
        field
        message
        code
      }
    }
  }
"""

    VARIANTS_BULK_CREATE: str = f"""
  mutation productVariantsBulkCreate($productId: ID!, $variants: [ProductVariantsBulkInput!]!) {{
    productVariantsBulkCreate(productId: $productId, variants: $variants) {{
      productVariants {{
        id
        sku
        position
      }}{_USER_ERRORS}
    }}
  }}
"""

    VARIANTS_BULK_UPDATE: str = f"""
  mutation productVariantsBulkUpdate($productId: ID!, $variants: [ProductVariantsBulkInput!]!) {{
    productVariantsBulkUpdate(productId: $productId, variants: $variants) {{
      productVariants {{
        id
        sku
        position
      }}{_USER_ERRORS}
    }}
  }}
"""

    # -------------------------------------------------------------------------
    # Collections
    # -------------------------------------------------------------------------
    COLLECTION_CREATE: str = f"""
  mutation collectionCreate($input: CollectionInput!) {{
    collectionCreate(input: $input) {{
      collection {{
        id
        handle
      }}{_USER_ERRORS}
    }}
  }}
"""

    COLLECTION_UPDATE: str = f"""
  mutation collectionUpdate($input: CollectionInput!) {{
    collectionUpdate(input: $input) {{
      collection {{
        id
        handle
      }}{_USER_ERRORS}
    }}
  }}
"""

    # -------------------------------------------------------------------------
    # Online store content
    # -------------------------------------------------------------------------
    BLOG_CREATE: str = f"""
  mutation blogCreate($blog: BlogCreateInput!) {{
    blogCreate(blog: $blog) {{
      blog {{
        id
        handle
      }}{_USER_ERRORS}
    }}
  }}
"""

    BLOG_UPDATE: str = f"""
  mutation blogUpdate($id: ID!, $blog: BlogUpdateInput!) {{
    blogUpdate(id: $id, blog: $blog) {{
      blog {{
        id
        handle
      }}{_USER_ERRORS}
    }}
  }}
"""

    ARTICLE_CREATE: str = f"""
  mutation articleCreate($article: ArticleCreateInput!) {{
    articleCreate(article: $article) {{
      article {{
        id
        handle
      }}{_USER_ERRORS}
    }}
  }}
"""

    ARTICLE_UPDATE: str = f"""
  mutation articleUpdate($id: ID!, $article: ArticleUpdateInput!) {{
    articleUpdate(id: $id, article: $article) {{
      article {{
        id
        handle
      }}{_USER_ERRORS}
    }}
  }}
"""

    PAGE_CREATE: str = f"""
  mutation pageCreate($page: PageCreateInput!) {{
    pageCreate(page: $page) {{
      page {{
        id
        handle
      }}{_USER_ERRORS}
    }}
  }}
"""

    PAGE_UPDATE: str = f"""
  mutation pageUpdate($id: ID!, $page: PageUpdateInput!) {{
    pageUpdate(id: $id, page: $page) {{
      page {{
        id
        handle
      }}{_USER_ERRORS}
    }}
  }}
"""

    # -------------------------------------------------------------------------
    # Custom data
    # -------------------------------------------------------------------------
    METAOBJECT_UPSERT: str = f"""
  mutation metaobjectUpsert($handle: MetaobjectHandleInput!, $metaobject: MetaobjectUpsertInput!) {{
    metaobjectUpsert(handle: $handle, metaobject: $metaobject) {{
      metaobject {{
        id
        handle
        type
      }}{_USER_ERRORS}
    }}
  }}
"""

    METAFIELDS_SET: str = f"""
  mutation metafieldsSet($metafields: [MetafieldsSetInput!]!) {{
    metafieldsSet(metafields: $metafields) {{
      metafields {{
        id
        namespace
        key
      }}{_USER_ERRORS}
    }}
  }}
"""

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------
    MENU_CREATE: str = f"""
  mutation menuCreate($title: String!, $handle: String!, $items: [MenuItemCreateInput!]!) {{
    menuCreate(title: $title, handle: $handle, items: $items) {{
      menu {{
        id
        handle
      }}{_USER_ERRORS}
    }}
  }}
"""

    MENU_UPDATE: str = f"""
  mutation menuUpdate($id: ID!, $title: String!, $handle: String, $items: [MenuItemUpdateInput!]!) {{
    menuUpdate(id: $id, title: $title, handle: $handle, items: $items) {{
      menu {{
        id
        handle
      }}{_USER_ERRORS}
    }}
  }}
"""

    # -------------------------------------------------------------------------
    # Publications
    # -------------------------------------------------------------------------
    PUBLISHABLE_PUBLISH: str = f"""
  mutation publishablePublish($id: ID!, $input: [PublicationInput!]!) {{
    publishablePublish(id: $id, input: $input) {{{_USER_ERRORS}
    }}
  }}
"""

    PUBLISHABLE_UNPUBLISH: str = f"""
  mutation publishableUnpublish($id: ID!, $input: [PublicationInput!]!) {{
    publishableUnpublish(id: $id, input: $input) {{{_USER_ERRORS}
    }}
  }}
"""

    # -------------------------------------------------------------------------
    # Files
    # -------------------------------------------------------------------------
    FILE_CREATE: str = f"""
  mutation fileCreate($files: [FileCreateInput!]!) {{
    fileCreate(files: $files) {{
      files {{
        id
        alt
        ... on MediaImage {{
          image {{
            url
          }}
        }}
        ... on GenericFile {{
          url
        }}
      }}{_USER_ERRORS}
    }}
  }}
"""
