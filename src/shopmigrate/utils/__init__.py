"""Utility functions and exceptions."""

from .exceptions import (
    AuthenticationError,
    DumpError,
    IndexBuildError,
    MigratorError,
    RateLimitError,
    SchemaEnumerationError,
    ShopifyAPIError,
    TransportError,
    ValidationError,
)

__all__ = [
    "MigratorError",
    "DumpError",
    "IndexBuildError",
    "SchemaEnumerationError",
    "ValidationError",
    "ShopifyAPIError",
    "AuthenticationError",
    "TransportError",
    "RateLimitError",
]
