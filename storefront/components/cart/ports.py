from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol
from uuid import UUID

from storefront.core.services.listing import ListParams
from storefront.domain.entities import Cart, CouponCampaign, ProductVariant, UserCoupon


class CartRepoPort(Protocol):
    def save(self, cart: Cart) -> Cart: ...
    def get_by_id(self, cart_id: UUID) -> Cart | None: ...
    def get_by_user(self, user_id: UUID) -> Cart | None: ...
    def list(
        self,
        params: ListParams,
        user_id: UUID | None = None,
        has_coupon: bool | None = None,
        has_items: bool | None = None,
        min_total: Decimal | None = None,
        max_total: Decimal | None = None,
    ) -> tuple[list[Cart], int]: ...


class VariantLookupPort(Protocol):
    """Satisfied by VariantService."""

    def get_by_id(self, variant_id: UUID) -> ProductVariant | None: ...
    def get_many(self, ids: Sequence[UUID]) -> list[ProductVariant]: ...
    def stock_source(self, variant: ProductVariant) -> tuple[ProductVariant, int]: ...


class StockPort(Protocol):
    """Satisfied by InventoryService."""

    def available(self, variant_id: UUID) -> int: ...


class CouponLookupPort(Protocol):
    """Satisfied by UserCouponService."""

    def usable(
        self, user_id: UUID, code: str
    ) -> tuple[tuple[UserCoupon, CouponCampaign] | None, list[Any]]: ...


class TimePort(Protocol):
    def now_utc(self) -> datetime: ...
