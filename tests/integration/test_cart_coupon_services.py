"""
Coupon campaigns, user coupons and the cart, wired to SQLite repositories.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from storefront.adapters.sqlite.commerce_repos import (
    SQLiteCampaignRepo,
    SQLiteCartRepo,
    SQLiteUserCouponRepo,
)
from storefront.adapters.sqlite.repos import (
    SQLiteBrandRepo,
    SQLiteInventoryRepo,
    SQLiteOptionRepo,
    SQLiteProductRepo,
    SQLiteUserRepo,
    SQLiteVariantRepo,
)
from storefront.components.cart import (
    AddItemInput,
    ApplyCouponInput,
    CartService,
    ListCartsInput,
    UpdateItemInput,
    run_add_item,
    run_apply_coupon,
    run_list,
    run_update_item,
)
from storefront.components.coupons import (
    CampaignService,
    UserCouponService,
    generate_code,
    validate_coupon_code,
)
from storefront.components.inventory import InventoryService
from storefront.components.options import OptionService
from storefront.components.products import ProductService
from storefront.components.variants import VariantService
from storefront.core.services.listing import ListParams
from storefront.domain.entities import User


@dataclass
class Store:
    users: SQLiteUserRepo
    options: OptionService
    products: ProductService
    variants: VariantService
    inventory: InventoryService
    campaigns: CampaignService
    coupons: UserCouponService
    cart: CartService


@pytest.fixture
def store(test_db_path, clock) -> Store:
    users = SQLiteUserRepo(test_db_path)
    option_repo = SQLiteOptionRepo(test_db_path)
    product_repo = SQLiteProductRepo(test_db_path)
    variant_repo = SQLiteVariantRepo(test_db_path)
    campaign_repo = SQLiteCampaignRepo(test_db_path)
    coupon_repo = SQLiteUserCouponRepo(test_db_path)

    variants = VariantService(variant_repo, product_repo, option_repo, clock)
    inventory = InventoryService(SQLiteInventoryRepo(test_db_path), variants, clock)
    coupons = UserCouponService(coupon_repo, campaign_repo, clock)
    return Store(
        users=users,
        options=OptionService(option_repo, clock),
        products=ProductService(product_repo, variant_repo, SQLiteBrandRepo(test_db_path), clock),
        variants=variants,
        inventory=inventory,
        campaigns=CampaignService(campaign_repo, coupon_repo, users, clock),
        coupons=coupons,
        cart=CartService(SQLiteCartRepo(test_db_path), variants, inventory, coupons, clock),
    )


def _user(store: Store, email: str = "buyer@example.com") -> User:
    return store.users.save(
        User(name="Buyer", email=email, password_hash="x", roles=["customer"])
    )


def _stocked_variant(store: Store, sku: str = "TEE-1", price: str = "25.00", stock: int = 10):
    product, _ = store.products.create(
        name=f"Tee {sku}", description="Cotton tee", category_id="apparel"
    )
    variant, _ = store.variants.create(product.id, sku, price)
    store.inventory.create(variant.id, stock_quantity=stock)
    return variant


def _campaign(store: Store, fixed_now, **overrides):
    data = {
        "name": "Welcome",
        "code_prefix": "welcome",
        "discount_type": "PERCENTAGE",
        "discount_value": Decimal("10"),
        "valid_from": fixed_now - timedelta(days=1),
        "valid_until": fixed_now + timedelta(days=30),
    }
    data.update(overrides)
    campaign, errors = store.campaigns.create(data)
    assert errors == []
    return campaign


def _issue(store: Store, campaign, user: User) -> str:
    generated, errors = store.campaigns.generate_codes(campaign.id, [user.id])
    assert errors == []
    return generated.coupons[0].coupon_code


# --- Codes ---


def test_generated_code_shape():
    code = generate_code("SPRING", 8)
    assert code.startswith("SPRING-")
    assert len(code) == len("SPRING-") + 8
    assert validate_coupon_code(code) == []


def test_invalid_code_format():
    assert validate_coupon_code("ab")[0].code == "coupon_code_invalid"
    assert validate_coupon_code("lower-case")[0].code == "coupon_code_invalid"


# --- Campaigns ---


class TestCampaigns:
    def test_create_normalises_prefix(self, store, fixed_now):
        campaign = _campaign(store, fixed_now)
        assert campaign.code_prefix == "WELCOME"
        assert campaign.slug == "welcome"
        assert campaign.eligibility_criteria == ["NONE"]

    def test_percentage_over_100_rejected(self, store, fixed_now):
        campaign, errors = store.campaigns.create(
            {
                "name": "Too Much",
                "discount_type": "PERCENTAGE",
                "discount_value": Decimal("150"),
                "valid_from": fixed_now,
                "valid_until": fixed_now + timedelta(days=1),
            }
        )
        assert campaign is None
        assert errors[0].code == "discount_value_range"

    def test_window_must_be_ordered(self, store, fixed_now):
        campaign, errors = store.campaigns.create(
            {
                "name": "Backwards",
                "discount_type": "AMOUNT",
                "discount_value": Decimal("5"),
                "valid_from": fixed_now,
                "valid_until": fixed_now - timedelta(days=1),
            }
        )
        assert campaign is None
        assert errors[0].code == "validity_window_invalid"

    def test_update_validates_merged_state(self, store, fixed_now):
        campaign = _campaign(store, fixed_now)
        updated, errors = store.campaigns.update(
            campaign.id, {"valid_until": fixed_now - timedelta(days=2)}
        )
        assert updated is None
        assert errors[0].code == "validity_window_invalid"

        updated, errors = store.campaigns.update(campaign.id, {"name": "Welcome Back"})
        assert errors == []
        assert updated.slug == "welcome-back"

    def test_case_only_rename_is_stripped(self, store, fixed_now):
        campaign = _campaign(store, fixed_now)
        updated, errors = store.campaigns.update(campaign.id, {"name": "  WELCOME  "})
        assert errors == []
        assert updated.name == "WELCOME"
        assert updated.slug == campaign.slug
        assert store.campaigns.get(str(campaign.id)).name == "WELCOME"

    def test_list_by_validity(self, store, fixed_now):
        _campaign(store, fixed_now)
        _campaign(
            store,
            fixed_now,
            name="Later",
            valid_from=fixed_now + timedelta(days=5),
            valid_until=fixed_now + timedelta(days=10),
        )
        campaigns, total = store.campaigns.list(ListParams(), validity="upcoming")
        assert total == 1
        assert campaigns[0].name == "Later"

    def test_generate_codes_skips_existing_holders(self, store, fixed_now):
        campaign = _campaign(store, fixed_now)
        alice = _user(store, "alice@example.com")
        bob = _user(store, "bob@example.com")

        first, _ = store.campaigns.generate_codes(campaign.id, [alice.id])
        second, errors = store.campaigns.generate_codes(campaign.id, [alice.id, bob.id])

        assert errors == []
        assert len(first.coupons) == 1
        assert [c.user_id for c in second.coupons] == [bob.id]
        assert second.skipped_user_ids == (alice.id,)
        assert second.coupons[0].expires_at == campaign.valid_until

    def test_generate_codes_unknown_user(self, store, fixed_now):
        campaign = _campaign(store, fixed_now)
        generated, errors = store.campaigns.generate_codes(campaign.id, [uuid4()])
        assert generated is None
        assert errors[0].code == "user_ids_invalid"

    def test_generate_codes_inactive_campaign(self, store, fixed_now):
        campaign = _campaign(store, fixed_now, is_active=False)
        generated, errors = store.campaigns.generate_codes(campaign.id, [_user(store).id])
        assert generated is None
        assert errors[0].code == "campaign_not_usable"


class RacingCouponRepo:
    """Runs `competitor` once, just before the first redemption is written."""

    def __init__(self, inner: SQLiteUserCouponRepo, competitor) -> None:
        self._inner = inner
        self.competitor = competitor

    def __getattr__(self, name):
        return getattr(self._inner, name)

    def record_redemption(self, coupon, expected_usage_count):
        if self.competitor is not None:
            competitor, self.competitor = self.competitor, None
            competitor()
        return self._inner.record_redemption(coupon, expected_usage_count)


def _racing_coupons(test_db_path, clock, competitor) -> UserCouponService:
    repo = RacingCouponRepo(SQLiteUserCouponRepo(test_db_path), competitor)
    return UserCouponService(repo, SQLiteCampaignRepo(test_db_path), clock)


# --- User coupons ---


class TestUserCoupons:
    def test_redeem_marks_redeemed_and_counts_usage(self, store, fixed_now):
        campaign = _campaign(store, fixed_now)
        user = _user(store)
        code = _issue(store, campaign, user)

        coupon, errors = store.coupons.redeem(user.id, code.lower())
        assert errors == []
        assert coupon.is_redeemed is True
        assert coupon.redeemed_at == fixed_now
        assert store.campaigns.get(str(campaign.id)).current_global_usage == 1

        again, errors = store.coupons.redeem(user.id, code)
        assert again is None
        assert errors[0].code == "coupon_unusable"

    def test_concurrent_redemption_of_same_code_counts_once(
        self, store, fixed_now, test_db_path, clock
    ):
        campaign = _campaign(store, fixed_now)
        user = _user(store)
        code = _issue(store, campaign, user)

        racing = _racing_coupons(
            test_db_path, clock, lambda: store.coupons.redeem(user.id, code)
        )
        coupon, errors = racing.redeem(user.id, code)

        assert coupon is None
        assert errors[0].code == "coupon_unusable"
        (stored,) = store.coupons.list_for_user(user.id)
        assert stored.current_usage_count == 1
        assert store.campaigns.get(str(campaign.id)).current_global_usage == 1

    def test_global_cap_holds_under_concurrent_redemptions(
        self, store, fixed_now, test_db_path, clock
    ):
        campaign = _campaign(store, fixed_now, max_global_usage=1)
        alice = _user(store, "alice@example.com")
        bob = _user(store, "bob@example.com")
        alice_code = _issue(store, campaign, alice)
        bob_code = _issue(store, campaign, bob)

        racing = _racing_coupons(
            test_db_path, clock, lambda: store.coupons.redeem(bob.id, bob_code)
        )
        coupon, errors = racing.redeem(alice.id, alice_code)

        assert coupon is None
        assert errors[0].code == "coupon_unusable"
        assert store.campaigns.get(str(campaign.id)).current_global_usage == 1
        (alice_coupon,) = store.coupons.list_for_user(alice.id)
        assert alice_coupon.current_usage_count == 0
        assert alice_coupon.is_redeemed is False

    def test_other_users_code_not_found(self, store, fixed_now):
        campaign = _campaign(store, fixed_now)
        code = _issue(store, campaign, _user(store, "owner@example.com"))
        intruder = _user(store, "intruder@example.com")
        resolved, errors = store.coupons.usable(intruder.id, code)
        assert resolved is None
        assert errors[0].code == "coupon_not_found"

    def test_valid_only_filters_expired(self, store, fixed_now, clock):
        campaign = _campaign(store, fixed_now)
        user = _user(store)
        store.campaigns.generate_codes(
            campaign.id, [user.id], expires_at=fixed_now + timedelta(hours=1)
        )
        assert len(store.coupons.list_for_user(user.id, valid_only=True)) == 1

        clock.advance(hours=2)
        assert store.coupons.list_for_user(user.id, valid_only=True) == []
        (coupon,) = store.coupons.list_for_user(user.id)
        assert store.coupons.status(coupon) == "EXPIRED"

    def test_admin_status_filter(self, store, fixed_now):
        campaign = _campaign(store, fixed_now)
        user = _user(store)
        code = _issue(store, campaign, user)
        store.coupons.redeem(user.id, code)

        _, redeemed = store.coupons.list(ListParams(), status="REDEEMED")
        _, active = store.coupons.list(ListParams(), status="ACTIVE")
        assert (redeemed, active) == (1, 0)


# --- Cart ---


class TestCart:
    def test_add_recalculates_totals(self, store):
        user = _user(store)
        variant = _stocked_variant(store, price="25.00")

        out = run_add_item(
            AddItemInput(user_id=user.id, product_variant_id=variant.id, quantity=2), store.cart
        )
        assert out.success is True
        assert out.cart.subtotal_amount == Decimal("50.00")
        assert out.cart.cart_total_amount == Decimal("50.00")

        out = run_add_item(AddItemInput(user_id=user.id, product_variant_id=variant.id), store.cart)
        assert len(out.cart.items) == 1
        assert out.cart.items[0].quantity == 3

    def test_insufficient_stock(self, store):
        user = _user(store)
        variant = _stocked_variant(store, stock=2)
        cart, errors = store.cart.add_item(user.id, variant.id, 3)
        assert cart is None
        assert errors[0].code == "insufficient_stock"
        assert "Available: 2, Required: 3" in errors[0].message

    def test_pack_variant_consumes_base_stock(self, store):
        user = _user(store)
        base = _stocked_variant(store, sku="SOCK-1", price="3.00", stock=10)
        six, _ = store.options.create("Pack", "6")
        pack, _ = store.variants.create(base.product_id, "SOCK-6", "15.00", option_ids=[six.id])

        cart, errors = store.cart.add_item(user.id, pack.id, 2)
        assert cart is None
        assert "Required: 12" in errors[0].message

        cart, errors = store.cart.add_item(user.id, pack.id, 1)
        assert errors == []

    def test_inactive_variant_rejected(self, store):
        user = _user(store)
        variant = _stocked_variant(store)
        store.variants.set_active(variant.id, False)
        cart, errors = store.cart.add_item(user.id, variant.id)
        assert errors[0].code == "variant_unavailable"

    def test_update_to_zero_removes_line(self, store):
        user = _user(store)
        variant = _stocked_variant(store)
        store.cart.add_item(user.id, variant.id, 2)

        out = run_update_item(
            UpdateItemInput(user_id=user.id, product_variant_id=variant.id, quantity=0), store.cart
        )
        assert out.cart.items == []
        assert out.cart.cart_total_amount == Decimal("0.00")

    def test_totals_follow_price_changes(self, store):
        user = _user(store)
        variant = _stocked_variant(store, price="25.00")
        store.cart.add_item(user.id, variant.id, 2)

        store.variants.update(variant.id, {"discount_price": "20.00", "is_on_sale": True})
        cart = store.cart.get_or_create(user.id)
        assert cart.subtotal_amount == Decimal("40.00")
        assert cart.items[0].price_at_addition == Decimal("25.00")

    def test_apply_coupon(self, store, fixed_now):
        user = _user(store)
        variant = _stocked_variant(store, price="25.00")
        store.cart.add_item(user.id, variant.id, 4)
        code = _issue(store, _campaign(store, fixed_now), user)

        out = run_apply_coupon(ApplyCouponInput(user_id=user.id, coupon_code=code), store.cart)
        assert out.success is True
        assert out.cart.applied_coupon_code == code
        assert out.cart.coupon_discount_amount == Decimal("10.00")
        assert out.cart.cart_total_amount == Decimal("90.00")

    def test_coupon_on_empty_cart(self, store, fixed_now):
        user = _user(store)
        store.cart.get_or_create(user.id)
        code = _issue(store, _campaign(store, fixed_now), user)
        cart, errors = store.cart.apply_coupon(user.id, code)
        assert errors[0].code == "cart_empty"

    def test_min_purchase_not_met(self, store, fixed_now):
        user = _user(store)
        variant = _stocked_variant(store, price="25.00")
        store.cart.add_item(user.id, variant.id, 1)
        code = _issue(store, _campaign(store, fixed_now, min_purchase_amount=Decimal("100")), user)
        cart, errors = store.cart.apply_coupon(user.id, code)
        assert cart is None
        assert errors[0].code == "min_purchase_not_met"

    def test_coupon_dropped_when_it_stops_applying(self, store, fixed_now):
        user = _user(store)
        variant = _stocked_variant(store, price="25.00")
        store.cart.add_item(user.id, variant.id, 4)
        campaign = _campaign(store, fixed_now, min_purchase_amount=Decimal("80"))
        code = _issue(store, campaign, user)
        store.cart.apply_coupon(user.id, code)

        cart, _ = store.cart.update_item(user.id, variant.id, 1)
        assert cart.applied_coupon_code is None
        assert cart.coupon_discount_amount == Decimal("0.00")
        assert cart.cart_total_amount == Decimal("25.00")

    def test_clear(self, store, fixed_now):
        user = _user(store)
        variant = _stocked_variant(store)
        store.cart.add_item(user.id, variant.id, 1)
        cart, errors = store.cart.clear(user.id)
        assert errors == []
        assert cart.items == []
        assert cart.applied_coupon_code is None

    def test_admin_list_filters(self, store):
        alice = _user(store, "alice@example.com")
        bob = _user(store, "bob@example.com")
        variant = _stocked_variant(store)
        store.cart.add_item(alice.id, variant.id, 1)
        store.cart.get_or_create(bob.id)

        out = run_list(ListCartsInput(params=ListParams(), has_items=True), store.cart)
        assert out.total == 1
        assert out.carts[0].user_id == alice.id

        out = run_list(ListCartsInput(params=ListParams(), min_total=Decimal("1")), store.cart)
        assert out.total == 1
