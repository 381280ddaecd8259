"""Pydantic models for Admin GraphQL responses.

Only the envelope is modelled: ``data`` stays a plain dict because every
query selects a different shape. Errors, userErrors, pagination and cost
extensions are validated so the client can classify failures.

Design Principles:
- Graceful degradation: extra="allow" for unknown fields
- The client validates the envelope once per response
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator


class GraphQLErrorItem(BaseModel):
    """One entry of the top-level ``errors`` array.

    Attributes:
        message: Human readable message
        extensions: Vendor extensions; ``code`` is "THROTTLED" for cost limits
    """

    message: str = ""
    path: list[Any] | None = None
    extensions: dict[str, Any] = Field(default_factory=dict)

    model_config = {"extra": "allow"}

    @field_validator("extensions", mode="before")
    @classmethod
    def _none_extensions(cls, v: Any) -> Any:
        return v or {}

    @property
    def code(self) -> str | None:
        return self.extensions.get("code")

    @property
    def is_throttled(self) -> bool:
        return self.code == "THROTTLED"


class ThrottleStatus(BaseModel):
    """Query cost bucket state reported in ``extensions.cost.throttleStatus``."""

    maximumAvailable: float
    currentlyAvailable: float
    restoreRate: float = 0.0

    model_config = {"extra": "allow"}

    @property
    def available_ratio(self) -> float:
        if self.maximumAvailable <= 0:
            return 1.0
        return self.currentlyAvailable / self.maximumAvailable


class QueryCost(BaseModel):
    requestedQueryCost: float | None = None
    actualQueryCost: float | None = None
    throttleStatus: ThrottleStatus | None = None

    model_config = {"extra": "allow"}


class GraphQLResponse(BaseModel):
    """Top-level GraphQL response envelope."""

    data: dict[str, Any] | None = None
    errors: list[GraphQLErrorItem] = Field(default_factory=list)
    extensions: dict[str, Any] = Field(default_factory=dict)

    model_config = {"extra": "allow"}

    @field_validator("errors", "extensions", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any, info: Any) -> Any:
        if v is None:
            return [] if info.field_name == "errors" else {}
        if info.field_name == "errors" and isinstance(v, str):
            return [{"message": v}]
        return v

    @property
    def cost(self) -> QueryCost | None:
        raw = self.extensions.get("cost")
        if not isinstance(raw, dict):
            return None
        return QueryCost.model_validate(raw)

    @property
    def is_throttled(self) -> bool:
        return any(e.is_throttled for e in self.errors)

    def get_error_message(self) -> str:
        return "; ".join(e.message for e in self.errors if e.message) or "Unknown GraphQL error"


class UserError(BaseModel):
    """A mutation userError.

    Attributes:
        field: Path to the offending input, e.g. ["metafields", "3", "value"]
        message: Validation message
    """

    field: list[str] | None = None
    message: str = ""
    code: str | None = None

    model_config = {"extra": "allow"}

    @field_validator("field", mode="before")
    @classmethod
    def _field_as_strings(cls, v: Any) -> Any:
        if v is None:
            return None
        if isinstance(v, str):
            return [v]
        return [str(part) for part in v]

    def member_index(self, list_name: str) -> int | None:
        """
        Position of the offending member within a list input.

        For field ["metafields", "3", "value"] and list_name "metafields"
        this is 3. Returns None when the error does not point into the list.
        """
        if not self.field:
            return None
        for i, part in enumerate(self.field[:-1]):
            if part == list_name and self.field[i + 1].isdigit():
                return int(self.field[i + 1])
        return None

    def __str__(self) -> str:
        if self.field:
            return f"{'.'.join(self.field)}: {self.message}"
        return self.message


class PageInfo(BaseModel):
    hasNextPage: bool = False
    endCursor: str | None = None

    model_config = {"extra": "allow"}


def parse_user_errors(payload: dict[str, Any] | None) -> list[UserError]:
    """Extract userErrors (or mediaUserErrors) from a mutation payload."""
    if not payload:
        return []
    raw = payload.get("userErrors") or payload.get("mediaUserErrors") or []
    return [UserError.model_validate(item) for item in raw]
