# src/courtrank/schemas/pagination.py

"""Pagination schemas and utilities for API responses."""

import math
from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class SortOrder(str, Enum):
    """Sort order for list endpoints."""

    ASC = "asc"
    DESC = "desc"


class PlayerSortField(str, Enum):
    """Sortable fields for players."""

    ID = "id"
    NAME = "name"
    CREATED_AT = "created_at"


def page_offset(page: int, limit: int) -> int:
    """Offset of the first record on a 1-indexed page."""
    return (page - 1) * limit


class PaginatedResponse(BaseModel, Generic[T]):
    """Standard paginated response wrapper.

    Attributes:
        items: List of items for the current page
        total: Total number of records matching the filters
        page: 1-indexed page number
        limit: Maximum number of records per page
        pages: Number of pages at this limit
        has_more: Whether more records exist beyond this page
    """

    items: list[T]
    total: int = Field(..., description="Total records matching filters")
    page: int = Field(..., ge=1, description="Page number (1-indexed)")
    limit: int = Field(..., description="Max records returned")
    pages: int = Field(..., description="Total pages at this limit")
    has_more: bool = Field(..., description="More records exist beyond this page")

    @classmethod
    def build(
        cls, items: list, total: int, page: int, limit: int, **extra
    ) -> "PaginatedResponse":
        return cls(
            items=items,
            total=total,
            page=page,
            limit=limit,
            pages=math.ceil(total / limit) if limit else 0,
            has_more=(page_offset(page, limit) + len(items)) < total,
            **extra,
        )
