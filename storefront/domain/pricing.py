"""
Coupon and cart arithmetic.

Pure functions over the domain entities; no I/O.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from storefront.domain.entities import (
    Cart,
    CouponCampaign,
    CouponStatus,
    ProductVariant,
    UserCoupon,
)
from storefront.domain.money import ZERO, round_money

HUNDRED = Decimal(100)


def campaign_is_valid(campaign: CouponCampaign, now: datetime) -> bool:
    """Active, inside its validity window and below the global usage cap."""
    if not campaign.is_active:
        return False
    if now < campaign.valid_from or now > campaign.valid_until:
        return False
    if (
        campaign.max_global_usage is not None
        and campaign.current_global_usage >= campaign.max_global_usage
    ):
        return False
    return True


def campaign_validity(campaign: CouponCampaign, now: datetime) -> str:
    if now < campaign.valid_from:
        return "upcoming"
    if now > campaign.valid_until:
        return "expired"
    return "active"


def calculate_discount(campaign: CouponCampaign, subtotal: Decimal) -> Decimal:
    if subtotal < campaign.min_purchase_amount:
        return ZERO

    if campaign.discount_type == "PERCENTAGE":
        discount = subtotal * campaign.discount_value / HUNDRED
        if campaign.max_coupon_discount is not None:
            discount = min(discount, campaign.max_coupon_discount)
    elif campaign.discount_type == "AMOUNT":
        discount = min(campaign.discount_value, subtotal)
    else:
        # FREE_SHIPPING: the value is the shipping fee waived
        discount = campaign.discount_value

    return round_money(discount)


def coupon_status(coupon: UserCoupon, now: datetime) -> CouponStatus:
    if not coupon.is_active:
        return "INACTIVE"
    if coupon.is_redeemed:
        return "REDEEMED"
    if now > coupon.expires_at:
        return "EXPIRED"
    return "ACTIVE"


def coupon_unusable_reason(
    coupon: UserCoupon,
    campaign: CouponCampaign,
    now: datetime,
) -> str | None:
    """Return why the coupon cannot be used right now, or None if it can."""
    status = coupon_status(coupon, now)
    if status == "INACTIVE":
        return "Coupon is inactive"
    if status == "REDEEMED":
        return "Coupon has already been redeemed"
    if status == "EXPIRED":
        return "Coupon has expired"
    if not campaign_is_valid(campaign, now):
        return "Coupon campaign is not currently valid"
    if coupon.current_usage_count >= campaign.max_usage_per_user:
        return "Coupon usage limit reached"
    return None


def cart_subtotal(cart: Cart, variants: Mapping[UUID, ProductVariant]) -> Decimal:
    """
    Sum of quantity x current price for every line.

    Lines whose variant is gone fall back to the price captured when added.
    """
    subtotal = ZERO
    for item in cart.items:
        variant = variants.get(item.product_variant_id)
        unit_price = variant.effective_price if variant is not None else item.price_at_addition
        subtotal += unit_price * item.quantity
    return round_money(subtotal)


def cart_total(subtotal: Decimal, discount: Decimal) -> Decimal:
    return round_money(max(ZERO, subtotal - discount))
