from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from storefront.domain.entities import Cart, CartItem, CouponCampaign, ProductVariant, UserCoupon
from storefront.domain.pricing import (
    calculate_discount,
    campaign_is_valid,
    campaign_validity,
    cart_subtotal,
    cart_total,
    coupon_status,
    coupon_unusable_reason,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


def make_campaign(**overrides) -> CouponCampaign:
    data = {
        "name": "Spring Sale",
        "slug": "spring-sale",
        "discount_type": "PERCENTAGE",
        "discount_value": Decimal("10"),
        "valid_from": NOW - timedelta(days=1),
        "valid_until": NOW + timedelta(days=30),
    }
    data.update(overrides)
    return CouponCampaign(**data)


def make_coupon(campaign: CouponCampaign, **overrides) -> UserCoupon:
    data = {
        "campaign_id": campaign.id,
        "user_id": uuid4(),
        "coupon_code": "SPRING-ABCD1234",
        "expires_at": NOW + timedelta(days=7),
    }
    data.update(overrides)
    return UserCoupon(**data)


# --- Discounts ---


def test_percentage_discount_is_capped():
    campaign = make_campaign(discount_value=Decimal("50"), max_coupon_discount=Decimal("30"))
    assert calculate_discount(campaign, Decimal("100.00")) == Decimal("30.00")


def test_percentage_discount_rounds_half_up():
    campaign = make_campaign(discount_value=Decimal("15"))
    assert calculate_discount(campaign, Decimal("33.33")) == Decimal("5.00")


def test_amount_discount_never_exceeds_subtotal():
    campaign = make_campaign(discount_type="AMOUNT", discount_value=Decimal("500"))
    assert calculate_discount(campaign, Decimal("120.00")) == Decimal("120.00")


def test_below_minimum_purchase_gives_nothing():
    campaign = make_campaign(min_purchase_amount=Decimal("200"))
    assert calculate_discount(campaign, Decimal("199.99")) == Decimal("0.00")


def test_free_shipping_uses_value():
    campaign = make_campaign(discount_type="FREE_SHIPPING", discount_value=Decimal("49"))
    assert calculate_discount(campaign, Decimal("10")) == Decimal("49.00")


# --- Campaign validity ---


def test_campaign_validity_windows():
    assert campaign_validity(make_campaign(), NOW) == "active"
    assert campaign_validity(make_campaign(valid_from=NOW + timedelta(hours=1)), NOW) == "upcoming"
    expired = make_campaign(valid_from=NOW - timedelta(days=9), valid_until=NOW - timedelta(days=1))
    assert campaign_validity(expired, NOW) == "expired"


def test_campaign_invalid_when_global_cap_reached():
    campaign = make_campaign(max_global_usage=5, current_global_usage=5)
    assert campaign_is_valid(campaign, NOW) is False


def test_campaign_invalid_when_inactive():
    assert campaign_is_valid(make_campaign(is_active=False), NOW) is False


# --- Coupons ---


@pytest.mark.parametrize(
    ("overrides", "expected"),
    [
        ({}, "ACTIVE"),
        ({"is_active": False}, "INACTIVE"),
        ({"is_redeemed": True}, "REDEEMED"),
        ({"expires_at": NOW - timedelta(seconds=1)}, "EXPIRED"),
    ],
)
def test_coupon_status(overrides, expected):
    campaign = make_campaign()
    assert coupon_status(make_coupon(campaign, **overrides), NOW) == expected


def test_unusable_reason_reports_usage_limit():
    campaign = make_campaign(max_usage_per_user=1)
    coupon = make_coupon(campaign, current_usage_count=1)
    assert coupon_unusable_reason(coupon, campaign, NOW) == "Coupon usage limit reached"


def test_usable_coupon_has_no_reason():
    campaign = make_campaign()
    assert coupon_unusable_reason(make_coupon(campaign), campaign, NOW) is None


# --- Cart ---


def test_cart_subtotal_uses_current_price_with_fallback():
    on_sale = ProductVariant(
        product_id=uuid4(),
        sku_code="A",
        price=Decimal("10.00"),
        discount_price=Decimal("8.00"),
        is_on_sale=True,
    )
    gone_id = uuid4()
    cart = Cart(
        user_id=uuid4(),
        items=[
            CartItem(product_variant_id=on_sale.id, quantity=3, price_at_addition=Decimal("10")),
            CartItem(product_variant_id=gone_id, quantity=1, price_at_addition=Decimal("5.50")),
        ],
    )
    assert cart_subtotal(cart, {on_sale.id: on_sale}) == Decimal("29.50")


def test_cart_total_never_negative():
    assert cart_total(Decimal("10.00"), Decimal("15.00")) == Decimal("0.00")
    assert cart_total(Decimal("10.00"), Decimal("2.50")) == Decimal("7.50")
