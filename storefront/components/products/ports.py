from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol
from uuid import UUID

from storefront.core.services.listing import ListParams
from storefront.domain.entities import Brand, Product, ProductVariant


class ProductRepoPort(Protocol):
    def save(self, product: Product) -> Product: ...
    def get_by_id(self, product_id: UUID) -> Product | None: ...
    def get_by_slug(self, slug: str) -> Product | None: ...
    def get_by_name(self, name: str) -> Product | None: ...
    def slug_exists(self, slug: str) -> bool: ...
    def list(
        self,
        params: ListParams,
        is_active: bool | None = None,
        category_ids: Sequence[str] = (),
        brand_ids: Sequence[str] = (),
    ) -> tuple[list[Product], int]: ...
    def count_by_active(self) -> dict[str, int]: ...


class VariantLookupPort(Protocol):
    def list_by_product(
        self, product_id: UUID, active_only: bool = False
    ) -> list[ProductVariant]: ...
    def list_active_for_products(self, product_ids: Sequence[UUID]) -> list[ProductVariant]: ...


class BrandLookupPort(Protocol):
    def get_by_id(self, brand_id: UUID) -> Brand | None: ...


class TimePort(Protocol):
    def now_utc(self) -> datetime: ...
