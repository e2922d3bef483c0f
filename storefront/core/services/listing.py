"""
Shared list query semantics for management tables.

Every list endpoint takes the same page/limit/sort/search parameters and
answers with the same pagination block. Clamping happens here so the
repositories can trust what they receive.
"""

from __future__ import annotations

import math
from collections.abc import Collection
from dataclasses import dataclass
from typing import Any, Literal

from storefront.rules.models import ListingRules

SortOrder = Literal["asc", "desc"]

# SQLite binds OFFSET as a signed 64-bit integer.
MAX_OFFSET = 2**63 - 1


@dataclass(frozen=True)
class ListParams:
    """Normalized list query."""

    page: int = 1
    limit: int = 10
    sort_by: str = "created_at"
    sort_order: SortOrder = "desc"
    search: str | None = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class Pagination:
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, params: ListParams, total: int) -> Pagination:
        total_pages = math.ceil(total / params.limit) if total else 0
        return cls(
            current_page=params.page,
            total_pages=total_pages,
            total_items=total,
            items_per_page=params.limit,
            has_next_page=params.page < total_pages,
            has_prev_page=params.page > 1,
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "current_page": self.current_page,
            "total_pages": self.total_pages,
            "total_items": self.total_items,
            "items_per_page": self.items_per_page,
            "has_next_page": self.has_next_page,
            "has_prev_page": self.has_prev_page,
        }


def build_list_params(
    rules: ListingRules,
    sortable: Collection[str],
    page: int | None = None,
    limit: int | None = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
    search: str | None = None,
    default_sort: str = "created_at",
) -> ListParams:
    """
    Clamp raw query values into a ListParams.

    - page below 1 becomes 1; page past the int64 offset range is capped
    - limit is clamped to [1, max_limit]; missing means default_limit
    - unknown sort columns fall back to `default_sort`
    - blank search is dropped
    """
    if limit is None:
        safe_limit = rules.default_limit
    else:
        safe_limit = max(1, min(limit, rules.max_limit))

    safe_page = page if page is not None and page >= 1 else 1
    safe_page = min(safe_page, MAX_OFFSET // safe_limit)

    column = sort_by if sort_by in sortable else default_sort
    order: SortOrder = "asc" if (sort_order or "").lower() == "asc" else "desc"

    term = search.strip() if search else None

    return ListParams(
        page=safe_page,
        limit=safe_limit,
        sort_by=column,
        sort_order=order,
        search=term or None,
    )


def split_csv(value: str | None) -> list[str]:
    """'a, b,,c' -> ['a', 'b', 'c']"""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]
