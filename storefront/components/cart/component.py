"""
Cart component - Shell Layer.

Each run_* call takes an input model and returns a CartOutput.
"""

from __future__ import annotations

from uuid import UUID

from storefront.domain.entities import Cart

from ._impl import CartService
from .models import (
    AddItemInput,
    ApplyCouponInput,
    CartListOutput,
    CartOutput,
    CartValidationError,
    ListCartsInput,
    RemoveItemInput,
    UpdateItemInput,
)


def _output(cart: Cart | None, errors: list[CartValidationError]) -> CartOutput:
    return CartOutput(cart=cart, errors=tuple(errors), success=cart is not None)


def run_get(user_id: UUID, service: CartService) -> CartOutput:
    return _output(service.get_or_create(user_id), [])


def run_add_item(input_data: AddItemInput, service: CartService) -> CartOutput:
    return _output(
        *service.add_item(input_data.user_id, input_data.product_variant_id, input_data.quantity)
    )


def run_update_item(input_data: UpdateItemInput, service: CartService) -> CartOutput:
    return _output(
        *service.update_item(input_data.user_id, input_data.product_variant_id, input_data.quantity)
    )


def run_remove_item(input_data: RemoveItemInput, service: CartService) -> CartOutput:
    return _output(*service.remove_item(input_data.user_id, input_data.product_variant_id))


def run_apply_coupon(input_data: ApplyCouponInput, service: CartService) -> CartOutput:
    return _output(*service.apply_coupon(input_data.user_id, input_data.coupon_code))


def run_list(input_data: ListCartsInput, service: CartService) -> CartListOutput:
    carts, total = service.list(
        input_data.params,
        user_id=input_data.user_id,
        has_coupon=input_data.has_coupon,
        has_items=input_data.has_items,
        min_total=input_data.min_total,
        max_total=input_data.max_total,
    )
    return CartListOutput(carts=tuple(carts), total=total)
