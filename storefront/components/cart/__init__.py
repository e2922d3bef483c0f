"""
Cart component - per-user cart with recalculated totals.
"""

from ._impl import CartService, coupon_applies
from .component import (
    run_add_item,
    run_apply_coupon,
    run_get,
    run_list,
    run_remove_item,
    run_update_item,
)
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

__all__ = [
    "AddItemInput",
    "ApplyCouponInput",
    "CartListOutput",
    "CartOutput",
    "CartService",
    "CartValidationError",
    "ListCartsInput",
    "RemoveItemInput",
    "UpdateItemInput",
    "coupon_applies",
    "run_add_item",
    "run_apply_coupon",
    "run_get",
    "run_list",
    "run_remove_item",
    "run_update_item",
]
