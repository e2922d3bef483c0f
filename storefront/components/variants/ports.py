from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol
from uuid import UUID

from storefront.core.services.listing import ListParams
from storefront.domain.entities import Option, Product, ProductVariant


class VariantRepoPort(Protocol):
    def save(self, variant: ProductVariant) -> ProductVariant: ...
    def get_by_id(self, variant_id: UUID) -> ProductVariant | None: ...
    def get_many(self, ids: Sequence[UUID]) -> list[ProductVariant]: ...
    def get_by_sku(self, sku_code: str) -> ProductVariant | None: ...
    def sku_exists(self, sku_code: str) -> bool: ...
    def list_by_product(
        self, product_id: UUID, active_only: bool = False
    ) -> list[ProductVariant]: ...
    def list(
        self,
        params: ListParams,
        product_id: UUID | None = None,
        is_active: bool | None = None,
        is_on_sale: bool | None = None,
    ) -> tuple[list[ProductVariant], int]: ...


class ProductLookupPort(Protocol):
    def get_by_id(self, product_id: UUID) -> Product | None: ...


class OptionLookupPort(Protocol):
    def get_many(self, ids: Sequence[UUID]) -> list[Option]: ...


class TimePort(Protocol):
    def now_utc(self) -> datetime: ...
