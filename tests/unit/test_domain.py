"""
Domain helpers: money, text, stock and entity computed fields.
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from storefront.domain.entities import InventoryRecord, ProductVariant, SupportTicket
from storefront.domain.money import has_at_most_two_decimals, round_money, to_money
from storefront.domain.stock import pack_multiplier, stock_status
from storefront.domain.text import (
    is_email,
    is_http_url,
    is_image_url,
    parse_uuid,
    slugify,
    truncate,
    unique_slug,
)

# --- Money ---


def test_to_money_avoids_float_artefacts():
    assert to_money(0.1) == Decimal("0.1")
    assert to_money("19.99") == Decimal("19.99")


def test_to_money_rejects_garbage():
    with pytest.raises(ValueError):
        to_money("twelve")


def test_round_money_half_up():
    assert round_money("2.345") == Decimal("2.35")
    assert round_money(10) == Decimal("10.00")


def test_two_decimal_check():
    assert has_at_most_two_decimals(Decimal("1.20")) is True
    assert has_at_most_two_decimals(Decimal("1.205")) is False
    assert has_at_most_two_decimals(Decimal("NaN")) is False


def test_money_serialises_as_number():
    variant = ProductVariant(product_id=uuid4(), sku_code="SKU-1", price=Decimal("12.50"))
    data = variant.model_dump(mode="json")
    assert data["price"] == 12.5
    assert data["effective_price"] == 12.5


# --- Text ---


def test_slugify():
    assert slugify("Acme Tools & Co.") == "acme-tools-co"
    assert slugify("  Multiple   Spaces  ") == "multiple-spaces"


def test_unique_slug_appends_counter():
    taken = {"widget", "widget-1"}
    assert unique_slug("widget", taken.__contains__) == "widget-2"
    assert unique_slug("gadget", taken.__contains__) == "gadget"


def test_format_checks():
    assert is_email("a@b.co")
    assert not is_email("not-an-email")
    assert is_http_url("https://example.com/path")
    assert not is_http_url("ftp://example.com")
    assert is_image_url("https://cdn.example.com/logo.PNG?v=2")
    assert not is_image_url("https://cdn.example.com/logo.exe")


def test_parse_uuid():
    value = uuid4()
    assert parse_uuid(str(value)) == value
    assert parse_uuid("some-slug") is None
    assert parse_uuid(None) is None


def test_truncate():
    assert truncate("short", 10) == "short"
    assert truncate("a" * 20, 10) == "aaaaaaa..."


# --- Stock ---


@pytest.mark.parametrize(
    ("quantity", "minimum", "expected"),
    [
        (0, 5, "out_of_stock"),
        (-1, 0, "out_of_stock"),
        (5, 5, "low_stock"),
        (6, 5, "in_stock"),
        (1, 0, "in_stock"),
    ],
)
def test_stock_status(quantity, minimum, expected):
    assert stock_status(quantity, minimum) == expected


def test_inventory_record_exposes_stock_status():
    record = InventoryRecord(product_variant_id=uuid4(), stock_quantity=2, min_stock_level=3)
    assert record.model_dump()["stock_status"] == "low_stock"


def test_pack_multiplier():
    assert pack_multiplier([("color", "red"), ("pack", "6")]) == 6
    assert pack_multiplier([("Pack ", " 12 ")]) == 12
    assert pack_multiplier([("pack", "dozen")]) == 1
    assert pack_multiplier([("pack", "0")]) == 1
    assert pack_multiplier([("size", "L")]) == 1


# --- Entities ---


def test_effective_price_uses_sale_price_only_when_on_sale():
    variant = ProductVariant(
        product_id=uuid4(),
        sku_code="SKU-2",
        price=Decimal("100"),
        discount_price=Decimal("80"),
    )
    assert variant.effective_price == Decimal("100")
    variant.is_on_sale = True
    assert variant.effective_price == Decimal("80")


def test_ticket_overdue():
    now = datetime(2026, 1, 1, tzinfo=UTC)
    ticket = SupportTicket(
        ticket_number="TKT-2026-000001",
        subject="Late parcel",
        description="Where is it",
        user_id=uuid4(),
        user_name="A",
        user_email="a@example.com",
        category="SHIPPING_DELIVERY",
        response_due=now - timedelta(hours=1),
        resolution_due=now + timedelta(hours=10),
    )
    assert ticket.is_overdue(now) is True

    ticket.first_response_at = now - timedelta(hours=2)
    assert ticket.is_overdue(now) is False

    ticket.status = "CLOSED"
    assert ticket.is_overdue(now + timedelta(days=30)) is False
