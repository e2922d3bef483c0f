"""
Shopping cart routes.

The user router works on the caller's own cart; every mutation answers with
the recalculated cart. The admin router is read-only.
"""

from decimal import Decimal
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from storefront.adapters.sqlite.commerce_repos import SQLiteCartRepo
from storefront.api.deps import get_cart_service, list_params, require_permission
from storefront.api.schemas import dump, not_found, ok, page, raise_for_errors
from storefront.components.cart import (
    AddItemInput,
    ApplyCouponInput,
    CartOutput,
    CartService,
    ListCartsInput,
    RemoveItemInput,
    UpdateItemInput,
    run_add_item,
    run_apply_coupon,
    run_get,
    run_list,
    run_remove_item,
    run_update_item,
)
from storefront.core.services.listing import ListParams
from storefront.domain.entities import User

user_router = APIRouter()
admin_router = APIRouter()

shopper = require_permission("cart:manage")
manage = require_permission("carts:view")


class AddItemRequest(BaseModel):
    product_variant_id: UUID
    quantity: int = 1


class UpdateItemRequest(BaseModel):
    quantity: int


class ApplyCouponRequest(BaseModel):
    coupon_code: str


def _respond(result: CartOutput, message: str = "") -> dict[str, Any]:
    if not result.success:
        raise_for_errors(result.errors)
    return ok(dump(result.cart), message=message)


@user_router.get("")
def get_cart(
    user: User = Depends(shopper),
    service: CartService = Depends(get_cart_service),
) -> dict[str, Any]:
    return _respond(run_get(user.id, service))


@user_router.post("/items")
def add_item(
    body: AddItemRequest,
    user: User = Depends(shopper),
    service: CartService = Depends(get_cart_service),
) -> dict[str, Any]:
    result = run_add_item(
        AddItemInput(
            user_id=user.id, product_variant_id=body.product_variant_id, quantity=body.quantity
        ),
        service,
    )
    return _respond(result, message="Item added to cart")


@user_router.patch("/items/{variant_id}")
def update_item(
    variant_id: UUID,
    body: UpdateItemRequest,
    user: User = Depends(shopper),
    service: CartService = Depends(get_cart_service),
) -> dict[str, Any]:
    result = run_update_item(
        UpdateItemInput(user_id=user.id, product_variant_id=variant_id, quantity=body.quantity),
        service,
    )
    return _respond(result, message="Cart updated")


@user_router.delete("/items/{variant_id}")
def remove_item(
    variant_id: UUID,
    user: User = Depends(shopper),
    service: CartService = Depends(get_cart_service),
) -> dict[str, Any]:
    result = run_remove_item(
        RemoveItemInput(user_id=user.id, product_variant_id=variant_id), service
    )
    return _respond(result, message="Item removed from cart")


@user_router.post("/clear")
def clear_cart(
    user: User = Depends(shopper),
    service: CartService = Depends(get_cart_service),
) -> dict[str, Any]:
    cart, errors = service.clear(user.id)
    if cart is None:
        raise_for_errors(errors)
    return ok(dump(cart), message="Cart cleared")


@user_router.post("/coupon")
def apply_coupon(
    body: ApplyCouponRequest,
    user: User = Depends(shopper),
    service: CartService = Depends(get_cart_service),
) -> dict[str, Any]:
    result = run_apply_coupon(
        ApplyCouponInput(user_id=user.id, coupon_code=body.coupon_code), service
    )
    return _respond(result, message="Coupon applied")


@user_router.delete("/coupon")
def remove_coupon(
    user: User = Depends(shopper),
    service: CartService = Depends(get_cart_service),
) -> dict[str, Any]:
    cart, errors = service.remove_coupon(user.id)
    if cart is None:
        raise_for_errors(errors)
    return ok(dump(cart), message="Coupon removed")


# --- Admin ---


@admin_router.get("")
def list_carts(
    params: ListParams = Depends(
        list_params(SQLiteCartRepo.sort_columns, default_sort="updated_at")
    ),
    user_id: UUID | None = None,
    has_coupon: bool | None = None,
    has_items: bool | None = None,
    min_total: Decimal | None = None,
    max_total: Decimal | None = None,
    _: User = Depends(manage),
    service: CartService = Depends(get_cart_service),
) -> dict[str, Any]:
    result = run_list(
        ListCartsInput(
            params=params,
            user_id=user_id,
            has_coupon=has_coupon,
            has_items=has_items,
            min_total=min_total,
            max_total=max_total,
        ),
        service,
    )
    return page(result.carts, result.total, params)


@admin_router.get("/{cart_id}")
def get_cart_by_id(
    cart_id: UUID,
    _: User = Depends(manage),
    service: CartService = Depends(get_cart_service),
) -> dict[str, Any]:
    cart = service.get_by_id(cart_id)
    if cart is None:
        raise not_found("Cart not found")
    return ok(dump(cart))
