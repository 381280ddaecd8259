"""Custom exceptions for the store migrator.

Exception Hierarchy:
-------------------
MigratorError (base)
├── DumpError                    # Dump file unreadable or corrupt (fatal)
├── IndexBuildError              # Destination snapshot failed (fatal)
│   └── SchemaEnumerationError   # Metaobject definitions could not be listed (fatal)
├── ValidationError              # Inline userErrors returned by a mutation
└── ShopifyAPIError (base for API errors)
    ├── AuthenticationError      # HTTP 401 / 403
    └── TransportError           # Network, timeout, HTTP 5xx
        └── RateLimitError       # HTTP 429 / 430, GraphQL THROTTLED

Usage Guidelines:
----------------
1. TransportError (and RateLimitError) are retried by the client with
   exponential backoff. Whatever escapes the client has exhausted its retries.

2. ValidationError and ShopifyAPIError are per-record outcomes: handlers
   record them against the record's natural key and move on.

3. DumpError, IndexBuildError and SchemaEnumerationError abort the run.

4. An unresolved reference is not an error and has no exception type.
"""

from typing import Any


class MigratorError(Exception):
    """Base exception for all migrator errors."""

    pass


class DumpError(MigratorError):
    """Raised when a dump file cannot be read or decoded."""

    def __init__(self, path: Any, message: str, line_number: int | None = None) -> None:
        """
        Initialize DumpError.

        Args:
            path: Dump file that failed.
            message: Error message.
            line_number: Optional 1-based line where decoding failed.
        """
        self.path = path
        self.line_number = line_number
        location = f"{path}:{line_number}" if line_number else str(path)
        super().__init__(f"{location}: {message}")


class IndexBuildError(MigratorError):
    """Raised when the destination index cannot be built."""

    pass


class SchemaEnumerationError(IndexBuildError):
    """Raised when destination metaobject definitions cannot be enumerated."""

    pass


class ValidationError(MigratorError):
    """
    Raised when a mutation returns userErrors.

    The platform rejected the input on business rules; retrying the same
    input will not help.
    """

    def __init__(self, message: str, user_errors: list[Any] | None = None) -> None:
        """
        Initialize ValidationError.

        Args:
            message: Error message.
            user_errors: Parsed userErrors from the mutation payload.
        """
        super().__init__(message)
        self.user_errors = user_errors or []


class ShopifyAPIError(MigratorError):
    """Base exception for Admin API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """
        Initialize ShopifyAPIError.

        Args:
            message: Error message.
            status_code: Optional HTTP status code.
        """
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(ShopifyAPIError):
    """Raised when the access token is rejected."""

    def __init__(self, message: str = "Authentication failed", status_code: int = 401) -> None:
        super().__init__(message, status_code=status_code)


class TransportError(ShopifyAPIError):
    """Raised for network failures and server-side HTTP errors."""

    pass


class RateLimitError(TransportError):
    """Raised when the API throttles a request."""

    def __init__(self, retry_after: float | None = None, status_code: int | None = 429) -> None:
        """
        Initialize RateLimitError.

        Args:
            retry_after: Seconds the server asked us to wait, if it said.
            status_code: HTTP status (None for GraphQL-level THROTTLED).
        """
        if retry_after is not None:
            message = f"Rate limit exceeded, retry after {retry_after}s"
        else:
            message = "Rate limit exceeded"
        super().__init__(message, status_code=status_code)
        self.retry_after = retry_after
