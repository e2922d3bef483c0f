"""
CartService - one shopping cart per user.

Totals are never trusted from storage: every read or write recomputes the
subtotal from current variant prices and re-derives the coupon discount
from its campaign, dropping the coupon once it no longer applies.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID, uuid4

from storefront.core.services.listing import ListParams
from storefront.domain.entities import Cart, CartItem, CouponCampaign
from storefront.domain.money import ZERO
from storefront.domain.pricing import calculate_discount, cart_subtotal, cart_total

from .models import CartValidationError
from .ports import CartRepoPort, CouponLookupPort, StockPort, TimePort, VariantLookupPort

logger = logging.getLogger(__name__)


def coupon_applies(campaign: CouponCampaign, cart: Cart) -> bool:
    """A campaign restricted to some variants needs at least one of them in the cart."""
    if not campaign.applicable_product_variant_ids:
        return True
    wanted = set(campaign.applicable_product_variant_ids)
    return any(item.product_variant_id in wanted for item in cart.items)


class CartService:
    def __init__(
        self,
        repo: CartRepoPort,
        variants: VariantLookupPort,
        stock: StockPort,
        coupons: CouponLookupPort,
        clock: TimePort,
    ) -> None:
        self._repo = repo
        self._variants = variants
        self._stock = stock
        self._coupons = coupons
        self._clock = clock

    # --- Totals ---

    def recalculate(self, cart: Cart) -> Cart:
        variants = {
            v.id: v for v in self._variants.get_many([i.product_variant_id for i in cart.items])
        }
        subtotal = cart_subtotal(cart, variants)
        discount = ZERO

        if cart.applied_coupon_code:
            campaign = self._applicable_campaign(cart, subtotal)
            if campaign is None:
                logger.info(
                    "Dropping coupon %s from cart %s; it no longer applies",
                    cart.applied_coupon_code,
                    cart.id,
                )
                cart.applied_coupon_code = None
            else:
                discount = calculate_discount(campaign, subtotal)

        cart.subtotal_amount = subtotal
        cart.coupon_discount_amount = discount
        cart.cart_total_amount = cart_total(subtotal, discount)
        return cart

    def _applicable_campaign(self, cart: Cart, subtotal: Decimal) -> CouponCampaign | None:
        if not cart.items or not cart.applied_coupon_code:
            return None
        resolved, _ = self._coupons.usable(cart.user_id, cart.applied_coupon_code)
        if resolved is None:
            return None
        _, campaign = resolved
        if subtotal < campaign.min_purchase_amount or not coupon_applies(campaign, cart):
            return None
        return campaign

    def _store(self, cart: Cart) -> Cart:
        self.recalculate(cart)
        cart.updated_at = self._clock.now_utc()
        return self._repo.save(cart)

    # --- Queries ---

    def get_or_create(self, user_id: UUID) -> Cart:
        cart = self._repo.get_by_user(user_id)
        if cart is None:
            now = self._clock.now_utc()
            cart = Cart(id=uuid4(), user_id=user_id, created_at=now, updated_at=now)
        return self._store(cart)

    def get_by_id(self, cart_id: UUID) -> Cart | None:
        cart = self._repo.get_by_id(cart_id)
        return self.recalculate(cart) if cart else None

    def list(
        self,
        params: ListParams,
        user_id: UUID | None = None,
        has_coupon: bool | None = None,
        has_items: bool | None = None,
        min_total: Decimal | None = None,
        max_total: Decimal | None = None,
    ) -> tuple[list[Cart], int]:
        return self._repo.list(
            params,
            user_id=user_id,
            has_coupon=has_coupon,
            has_items=has_items,
            min_total=min_total,
            max_total=max_total,
        )

    # --- Commands ---

    def add_item(
        self, user_id: UUID, product_variant_id: UUID, quantity: int = 1
    ) -> tuple[Cart | None, list[CartValidationError]]:
        if quantity < 1:
            return None, [_quantity_invalid("Quantity must be at least 1")]

        variant = self._variants.get_by_id(product_variant_id)
        if variant is None:
            return None, [
                CartValidationError(
                    code="variant_not_found",
                    message="Product variant not found",
                    field="product_variant_id",
                )
            ]
        if not variant.is_active:
            return None, [
                CartValidationError(
                    code="variant_unavailable",
                    message="Product variant is not available",
                    field="product_variant_id",
                )
            ]

        cart = self._repo.get_by_user(user_id)
        if cart is None:
            now = self._clock.now_utc()
            cart = Cart(id=uuid4(), user_id=user_id, created_at=now, updated_at=now)

        existing = cart.find_item(product_variant_id)
        new_quantity = quantity + (existing.quantity if existing else 0)
        stock_error = self._check_stock(product_variant_id, new_quantity)
        if stock_error:
            return None, [stock_error]

        if existing:
            existing.quantity = new_quantity
        else:
            cart.items.append(
                CartItem(
                    id=uuid4(),
                    product_variant_id=product_variant_id,
                    quantity=quantity,
                    price_at_addition=variant.effective_price,
                    added_at=self._clock.now_utc(),
                )
            )
        return self._store(cart), []

    def update_item(
        self, user_id: UUID, product_variant_id: UUID, quantity: int
    ) -> tuple[Cart | None, list[CartValidationError]]:
        """Set a line's quantity; 0 removes the line."""
        if quantity < 0:
            return None, [_quantity_invalid("Quantity cannot be negative")]

        cart = self._repo.get_by_user(user_id)
        if cart is None:
            return None, [_cart_not_found()]
        item = cart.find_item(product_variant_id)
        if item is None:
            return None, [_item_not_found()]

        if quantity == 0:
            cart.items.remove(item)
            return self._store(cart), []

        stock_error = self._check_stock(product_variant_id, quantity)
        if stock_error:
            return None, [stock_error]
        item.quantity = quantity
        return self._store(cart), []

    def remove_item(
        self, user_id: UUID, product_variant_id: UUID
    ) -> tuple[Cart | None, list[CartValidationError]]:
        cart = self._repo.get_by_user(user_id)
        if cart is None:
            return None, [_cart_not_found()]
        item = cart.find_item(product_variant_id)
        if item is None:
            return None, [_item_not_found()]
        cart.items.remove(item)
        return self._store(cart), []

    def clear(self, user_id: UUID) -> tuple[Cart | None, list[CartValidationError]]:
        cart = self._repo.get_by_user(user_id)
        if cart is None:
            return None, [_cart_not_found()]
        cart.items = []
        cart.applied_coupon_code = None
        return self._store(cart), []

    def apply_coupon(
        self, user_id: UUID, coupon_code: str
    ) -> tuple[Cart | None, list[CartValidationError]]:
        cart = self._repo.get_by_user(user_id)
        if cart is None:
            return None, [_cart_not_found()]
        if not cart.items:
            return None, [
                CartValidationError(
                    code="cart_empty", message="Cannot apply a coupon to an empty cart"
                )
            ]

        resolved, errors = self._coupons.usable(user_id, coupon_code)
        if resolved is None:
            return None, [
                CartValidationError(code=e.code, message=e.message, field="coupon_code")
                for e in errors
            ]
        coupon, campaign = resolved

        self.recalculate(cart)
        if cart.subtotal_amount < campaign.min_purchase_amount:
            return None, [
                CartValidationError(
                    code="min_purchase_not_met",
                    message=f"Minimum purchase amount of {campaign.min_purchase_amount} required",
                    field="coupon_code",
                )
            ]
        if not coupon_applies(campaign, cart):
            return None, [
                CartValidationError(
                    code="coupon_not_applicable",
                    message="Coupon does not apply to any item in the cart",
                    field="coupon_code",
                )
            ]

        cart.applied_coupon_code = coupon.coupon_code
        return self._store(cart), []

    def remove_coupon(self, user_id: UUID) -> tuple[Cart | None, list[CartValidationError]]:
        cart = self._repo.get_by_user(user_id)
        if cart is None:
            return None, [_cart_not_found()]
        cart.applied_coupon_code = None
        return self._store(cart), []

    def _check_stock(self, product_variant_id: UUID, quantity: int) -> CartValidationError | None:
        variant = self._variants.get_by_id(product_variant_id)
        if variant is None:
            return None
        source, multiplier = self._variants.stock_source(variant)
        available = self._stock.available(source.id)
        required = quantity * multiplier
        if available < required:
            return CartValidationError(
                code="insufficient_stock",
                message=f"Insufficient stock. Available: {available}, Required: {required}",
                field="quantity",
            )
        return None


def _quantity_invalid(message: str) -> CartValidationError:
    return CartValidationError(code="quantity_invalid", message=message, field="quantity")


def _cart_not_found() -> CartValidationError:
    return CartValidationError(code="cart_not_found", message="Cart not found")


def _item_not_found() -> CartValidationError:
    return CartValidationError(code="item_not_found", message="Item not found in cart")
