# revenue_sync/api/v1/envelope.py
"""
Response envelope shared by the v1 endpoints:

    {"status": "ok" | "error", "data": ..., "message": ..., "errors": [...]}
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from revenue_sync.domain.exceptions import SplitAllocationError

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    status: str = "ok"
    data: T | None = None
    message: str | None = None
    errors: list[dict[str, Any]] | None = None


class PaginatedData(BaseModel, Generic[T]):
    items: list[T]
    total: int
    limit: int
    offset: int
    has_more: bool


def ok(data: Any = None, message: str | None = None) -> dict:
    return ApiResponse(status="ok", data=data, message=message).model_dump(mode="json")


def error(message: str, errors: list[dict[str, Any]] | None = None) -> dict:
    return ApiResponse(status="error", message=message, errors=errors).model_dump(mode="json")


def paginated(items: list, total: int, limit: int, offset: int) -> dict:
    page = PaginatedData(
        items=items,
        total=total,
        limit=limit,
        offset=offset,
        has_more=(offset + limit) < total,
    )
    return ApiResponse(status="ok", data=page).model_dump(mode="json")


def split_failures(exc: SplitAllocationError) -> list[dict[str, Any]]:
    """One error entry per department whose revenue row could not be written."""
    return [
        {"department": name, "error": str(failure) or failure.__class__.__name__}
        for name, failure in exc.failures
    ]
