"""
Brands component - Port interfaces.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from storefront.core.services.listing import ListParams
from storefront.domain.entities import Brand


class BrandRepoPort(Protocol):
    """Repository interface for brands."""

    def save(self, brand: Brand) -> Brand: ...

    def get_by_id(self, brand_id: UUID) -> Brand | None: ...

    def get_by_slug(self, slug: str) -> Brand | None: ...

    def get_by_name(self, name: str) -> Brand | None: ...

    def slug_exists(self, slug: str) -> bool: ...

    def list(
        self, params: ListParams, is_active: bool | None = None
    ) -> tuple[list[Brand], int]: ...

    def count_by_active(self) -> dict[str, int]: ...


class TimePort(Protocol):
    def now_utc(self) -> datetime: ...
