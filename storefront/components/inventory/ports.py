from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from storefront.core.services.listing import ListParams
from storefront.domain.entities import InventoryRecord, ProductVariant
from storefront.domain.stock import StockStatus


class InventoryRepoPort(Protocol):
    def save(self, record: InventoryRecord) -> InventoryRecord: ...
    def get_by_id(self, record_id: UUID) -> InventoryRecord | None: ...
    def get_by_variant(self, variant_id: UUID) -> InventoryRecord | None: ...
    def list(
        self,
        params: ListParams,
        is_active: bool | None = None,
        stock_status: StockStatus | None = None,
        location: str | None = None,
        product_id: UUID | None = None,
    ) -> tuple[list[InventoryRecord], int]: ...
    def count_by_status(self) -> dict[str, int]: ...


class VariantLookupPort(Protocol):
    """Satisfied by VariantService."""

    def get_by_id(self, variant_id: UUID) -> ProductVariant | None: ...
    def pack_multiplier(self, variant: ProductVariant) -> int: ...


class TimePort(Protocol):
    def now_utc(self) -> datetime: ...
