"""Response Envelope Schemas — the uniform wire shape for success and failure responses.

Invariants:
    - Success: {success: true, data, meta?, timestamp?, requestId?}
    - Failure: {success: false, error: {code, message, userMessage?, details?}, timestamp?, requestId?}
    - Optional fields are omitted from the wire when not set; data is always present on success
    - Timestamps are epoch milliseconds

Design Decisions:
    - exclude_unset over exclude_none: a controller returning {"x": None} keeps its None values
"""

import time
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


def now_ms() -> int:
    return int(time.time() * 1000)


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class PaginationMeta(_WireModel):
    page: int = Field(ge=1)
    limit: int = Field(ge=1)
    total: int = Field(ge=0)
    total_pages: int = Field(alias="totalPages")
    has_next: bool = Field(alias="hasNext")
    has_prev: bool = Field(alias="hasPrev")

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PaginationMeta":
        total_pages = (total + limit - 1) // limit
        return cls(
            page=page, limit=limit, total=total, total_pages=total_pages,
            has_next=page < total_pages, has_prev=page > 1,
        )


class ErrorBody(_WireModel):
    code: str
    message: str
    user_message: str | None = Field(default=None, alias="userMessage")
    details: dict[str, Any] | None = None


class _Envelope(_WireModel):
    timestamp: int | None = None
    request_id: str | None = Field(default=None, alias="requestId")

    def to_wire(self) -> dict[str, Any]:
        """Serialize for the transport: camelCase keys, unset optionals omitted."""
        payload = self.model_dump(
            by_alias=True, exclude_unset=True, exclude={"success"},
        )
        return {"success": self.success, **payload}


class SuccessEnvelope(_Envelope):
    success: Literal[True] = True
    data: Any = None
    meta: Any = None


class ErrorEnvelope(_Envelope):
    success: Literal[False] = False
    error: ErrorBody


def parse_envelope(payload: dict[str, Any]) -> SuccessEnvelope | ErrorEnvelope:
    """Parse a wire payload back into its envelope model."""
    if payload.get("success") is True:
        return SuccessEnvelope.model_validate(payload)
    return ErrorEnvelope.model_validate(payload)
