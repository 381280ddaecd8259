"""Shopify Admin GraphQL client and documents."""

from .client import ShopifyClient
from .queries import Mutations, Queries
from .response_models import GraphQLResponse, PageInfo, UserError

__all__ = [
    "ShopifyClient",
    "Queries",
    "Mutations",
    "GraphQLResponse",
    "PageInfo",
    "UserError",
]
