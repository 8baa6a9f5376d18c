"""Common Pydantic schemas used across the API."""

import math
from typing import Any, Generic, List, Sequence, Tuple, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Standard API response envelope."""

    message: str = "OK"
    data: T


class ErrorResponse(BaseModel):
    """Standard API error envelope; ``error`` is a stable error code."""

    message: str
    error: str


class PaginatedResponse(BaseModel, Generic[T]):
    """One page of a listing plus offset/limit pagination metadata."""

    data: List[T] = []
    current_page: int = 0
    total_pages: int = 0
    total_items: int = 0
    has_more: bool = False
    items_per_page: int = 0

    @classmethod
    def build(
        cls,
        items: Sequence[Any],
        total_items: int,
        limit: int,
        offset: int,
    ) -> "PaginatedResponse[T]":
        """Compute page metadata for ``items`` found at ``offset``.

        current_page is zero-based (offset // limit); has_more is true while
        rows remain past the end of this page.
        """
        if limit < 1:
            raise ValueError("limit must be positive")
        return cls(
            data=list(items),
            current_page=offset // limit,
            total_pages=math.ceil(total_items / limit),
            total_items=total_items,
            has_more=total_items > offset + limit,
            items_per_page=limit,
        )


def clamp_pagination(
    limit: int,
    offset: int,
    default_limit: int = 10,
    max_limit: int = 100,
) -> Tuple[int, int]:
    """Normalize caller-supplied paging values.

    A limit below 1 falls back to ``default_limit``, larger limits are capped
    at ``max_limit`` and negative offsets become 0.
    """
    if limit < 1:
        limit = default_limit
    if limit > max_limit:
        limit = max_limit
    if offset < 0:
        offset = 0
    return limit, offset
