"""
Cart component - Data models.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from storefront.core.services.listing import ListParams
from storefront.domain.entities import Cart


@dataclass(frozen=True)
class CartValidationError:
    code: str
    message: str
    field: str | None = None


# --- Input Models ---


@dataclass(frozen=True)
class AddItemInput:
    user_id: UUID
    product_variant_id: UUID
    quantity: int = 1


@dataclass(frozen=True)
class UpdateItemInput:
    user_id: UUID
    product_variant_id: UUID
    quantity: int


@dataclass(frozen=True)
class RemoveItemInput:
    user_id: UUID
    product_variant_id: UUID


@dataclass(frozen=True)
class ApplyCouponInput:
    user_id: UUID
    coupon_code: str


@dataclass(frozen=True)
class ListCartsInput:
    params: ListParams
    user_id: UUID | None = None
    has_coupon: bool | None = None
    has_items: bool | None = None
    min_total: Decimal | None = None
    max_total: Decimal | None = None


# --- Output Models ---


@dataclass(frozen=True)
class CartOutput:
    cart: Cart | None
    errors: tuple[CartValidationError, ...]
    success: bool


@dataclass(frozen=True)
class CartListOutput:
    carts: tuple[Cart, ...]
    total: int
