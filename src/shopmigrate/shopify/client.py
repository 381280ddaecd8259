"""Shopify Admin GraphQL API Client.

Architecture Overview:
---------------------
This client wraps the Admin GraphQL endpoint of one store, providing:
- Async HTTP communication via httpx
- Automatic retry with exponential backoff for transport failures
- Throttle handling (HTTP 429/430 and GraphQL THROTTLED) honouring Retry-After
- Query cost tracking from ``extensions.cost``
- Cursor pagination over connections
- userErrors extraction for mutations

Authentication:
--------------
Admin API access tokens are static: every request carries the
``X-Shopify-Access-Token`` header. There is no session to refresh.

Error Classification:
--------------------
- 429 / 430 / THROTTLED   -> RateLimitError (retried)
- 5xx, network, timeout   -> TransportError (retried)
- 401 / 403               -> AuthenticationError
- other 4xx, GraphQL errors -> ShopifyAPIError
- mutation userErrors     -> ValidationError (from mutate())
"""

import time
from collections.abc import AsyncIterator
from typing import Any

import httpx
import structlog
from pydantic import ValidationError as PydanticValidationError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from ..config import RetryConfig, ShopConfig
from ..constants import (
    DEFAULT_PAGE_SIZE,
    LOW_COST_BUDGET_RATIO,
    MAX_PAGES,
    RATE_LIMIT_STATUSES,
)
from ..observability.metrics import get_global_collector
from ..utils.exceptions import (
    AuthenticationError,
    RateLimitError,
    ShopifyAPIError,
    TransportError,
    ValidationError,
)
from .response_models import GraphQLResponse, PageInfo, UserError, parse_user_errors

logger = structlog.get_logger(__name__)


class _RetryAfterWait:
    """
    Tenacity wait strategy.

    Uses the server's Retry-After hint when a RateLimitError carries one
    (capped at max_delay), and exponential backoff with jitter otherwise.
    """

    def __init__(self, retry_config: RetryConfig) -> None:
        self.max_delay = retry_config.max_delay
        self.backoff = wait_exponential(
            multiplier=retry_config.initial_delay,
            min=retry_config.initial_delay,
            max=retry_config.max_delay,
        ) + wait_random(0, retry_config.jitter)

    def __call__(self, retry_state: RetryCallState) -> float:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(exc, RateLimitError) and exc.retry_after is not None:
            return min(exc.retry_after, self.max_delay)
        return self.backoff(retry_state)


def _operation_name(query: str) -> str:
    """First word after query/mutation, for metrics tags and logs."""
    for keyword in ("mutation", "query"):
        idx = query.find(keyword)
        if idx != -1:
            rest = query[idx + len(keyword) :].strip()
            name = rest.split("(", 1)[0].split("{", 1)[0].strip()
            if name:
                return name
    return "anonymous"


def _dig(data: dict[str, Any], path: str) -> Any:
    """Follow a dotted path ("product.variants") into nested dicts."""
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


class ShopifyClient:
    """
    Shopify Admin GraphQL API client.

    Features:
    - Retries with exponential backoff
    - Throttle handling
    - Cost-aware logging
    - Connection pooling via httpx.AsyncClient
    """

    def __init__(self, config: ShopConfig, retry_config: RetryConfig | None = None):
        """
        Initialize the client.

        Args:
            config: Shop connection details
            retry_config: Backoff settings for transport-level retries
        """
        self.config = config
        self.retry_config = retry_config or RetryConfig()
        self.endpoint = config.endpoint

        # Lazy-loaded
        self._client: httpx.AsyncClient | None = None

        self.collector = get_global_collector()

    async def __aenter__(self) -> "ShopifyClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """HTTP client, created on first use."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.config.timeout,
                headers={
                    "X-Shopify-Access-Token": self.config.access_token,
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
                limits=httpx.Limits(
                    max_connections=self.config.max_connections,
                    max_keepalive_connections=self.config.max_connections,
                ),
            )
        return self._client

    async def execute(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Execute a GraphQL document, retrying transport failures.

        Args:
            query: GraphQL query or mutation
            variables: Variables for the document

        Returns:
            The ``data`` object of the response

        Raises:
            TransportError: Network/5xx/throttle failure after all attempts
            AuthenticationError: Token rejected
            ShopifyAPIError: Non-retriable HTTP or GraphQL error
        """
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(TransportError),
            stop=stop_after_attempt(self.retry_config.max_attempts),
            wait=_RetryAfterWait(self.retry_config),
            before_sleep=self._log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._post(query, variables or {})
        raise AssertionError("unreachable")  # pragma: no cover

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(exc, RateLimitError):
            self.collector.count_throttle()
        logger.warning(
            "Retrying GraphQL request",
            attempt=retry_state.attempt_number,
            max_attempts=self.retry_config.max_attempts,
            wait_seconds=round(retry_state.next_action.sleep, 2) if retry_state.next_action else None,
            error=str(exc),
        )

    async def _post(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """Send one request and classify the outcome."""
        operation = _operation_name(query)
        self.collector.count_request(operation)
        start = time.monotonic()

        try:
            response = await self.client.post(
                self.endpoint, json={"query": query, "variables": variables}
            )
        except (httpx.NetworkError, httpx.TimeoutException) as e:
            raise TransportError(f"HTTP request failed: {e}") from e
        except httpx.HTTPError as e:
            raise ShopifyAPIError(f"HTTP request failed: {e}") from e
        finally:
            self.collector.record_latency((time.monotonic() - start) * 1000)

        if response.status_code in RATE_LIMIT_STATUSES:
            retry_after = self._retry_after(response)
            logger.warning(
                "Rate limited by Admin API",
                status=response.status_code,
                retry_after=retry_after,
                operation=operation,
            )
            raise RateLimitError(retry_after, status_code=response.status_code)

        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"Access token rejected ({response.status_code}): {response.text[:200]}",
                status_code=response.status_code,
            )

        if response.status_code >= 500:
            raise TransportError(
                f"API Error {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        if response.is_error:
            raise ShopifyAPIError(
                f"API Error {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            envelope = GraphQLResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise ShopifyAPIError(f"Malformed GraphQL response: {e}") from e

        self._track_cost(envelope, operation)

        if envelope.errors:
            if envelope.is_throttled:
                logger.warning("Query throttled", operation=operation)
                raise RateLimitError(None, status_code=None)
            raise ShopifyAPIError(envelope.get_error_message())

        if envelope.data is None:
            raise ShopifyAPIError("GraphQL response carried no data")

        return envelope.data

    @staticmethod
    def _retry_after(response: httpx.Response) -> float | None:
        value = response.headers.get("Retry-After")
        if value is None:
            return None
        try:
            return float(value)
        except ValueError:
            return None

    def _track_cost(self, envelope: GraphQLResponse, operation: str) -> None:
        cost = envelope.cost
        if cost is None or cost.throttleStatus is None:
            return
        status = cost.throttleStatus
        self.collector.update_available_cost(status.currentlyAvailable)
        logger.debug(
            "Query cost",
            operation=operation,
            requested=cost.requestedQueryCost,
            actual=cost.actualQueryCost,
            available=status.currentlyAvailable,
            maximum=status.maximumAvailable,
        )
        if status.available_ratio < LOW_COST_BUDGET_RATIO:
            logger.warning(
                "Query cost budget low",
                available=status.currentlyAvailable,
                maximum=status.maximumAvailable,
                restore_rate=status.restoreRate,
            )

    async def mutate(
        self,
        query: str,
        variables: dict[str, Any],
        root: str,
        *,
        raise_on_user_errors: bool = True,
    ) -> dict[str, Any]:
        """
        Execute a mutation and return its payload.

        Args:
            query: Mutation document
            variables: Mutation variables
            root: Payload field name (e.g. "productCreate")
            raise_on_user_errors: Raise ValidationError when userErrors is non-empty

        Returns:
            The payload object under ``data[root]`` (empty dict if null)

        Raises:
            ValidationError: userErrors were returned and raise_on_user_errors is set
        """
        data = await self.execute(query, variables)
        payload = data.get(root) or {}
        if raise_on_user_errors:
            user_errors = parse_user_errors(payload)
            if user_errors:
                raise ValidationError(
                    "; ".join(str(e) for e in user_errors), user_errors=user_errors
                )
        return payload

    @staticmethod
    def user_errors(payload: dict[str, Any]) -> list[UserError]:
        return parse_user_errors(payload)

    async def paginate(
        self,
        query: str,
        connection: str,
        variables: dict[str, Any] | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_pages: int = MAX_PAGES,
    ) -> AsyncIterator[dict[str, Any]]:
        """
        Iterate every node of a connection.

        Follows ``pageInfo.endCursor`` until ``hasNextPage`` is false, so the
        caller always sees a complete listing.

        Args:
            query: Document taking $first and $after
            connection: Dotted path of the connection in ``data``
                (e.g. "products" or "product.variants")
            variables: Extra variables (e.g. {"type": "faq"})
            page_size: Nodes per page
            max_pages: Safety bound against runaway pagination

        Yields:
            Each node dict

        Raises:
            ShopifyAPIError: The listing could not be completed (page bound
                reached or a cursor repeated while more pages remain)
        """
        request_vars = dict(variables or {})
        request_vars["first"] = page_size
        cursor: str | None = None
        seen_cursors: set[str] = set()
        page_count = 0

        while True:
            page_count += 1
            if page_count > max_pages:
                raise ShopifyAPIError(
                    f"Listing {connection!r} still had more pages after {max_pages} pages"
                )

            request_vars["after"] = cursor
            data = await self.execute(query, request_vars)
            conn = _dig(data, connection)
            if not isinstance(conn, dict):
                return

            if "edges" in conn:
                nodes = [edge.get("node") for edge in conn.get("edges") or []]
            else:
                nodes = conn.get("nodes") or []
            for node in nodes:
                if node is not None:
                    yield node

            page_info = PageInfo.model_validate(conn.get("pageInfo") or {})
            if not page_info.hasNextPage:
                return
            if not page_info.endCursor:
                raise ShopifyAPIError(f"Listing {connection!r} has more pages but no cursor")

            if page_info.endCursor in seen_cursors:
                raise ShopifyAPIError(
                    f"Listing {connection!r} repeated cursor {page_info.endCursor!r}"
                )
            seen_cursors.add(page_info.endCursor)
            cursor = page_info.endCursor

    async def collect(
        self,
        query: str,
        connection: str,
        variables: dict[str, Any] | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> list[dict[str, Any]]:
        """Fetch a whole connection into a list."""
        return [node async for node in self.paginate(query, connection, variables, page_size)]
