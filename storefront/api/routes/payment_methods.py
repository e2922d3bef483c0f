"""
Saved payment methods.

Every response goes through `public_view`, so raw tokens and fingerprints
never leave the service and UPI ids are masked.
"""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel, Field

from storefront.adapters.sqlite.commerce_repos import SQLitePaymentMethodRepo
from storefront.api.deps import (
    actor_context,
    get_audit_hooks,
    get_payment_method_service,
    list_params,
    require_permission,
)
from storefront.api.schemas import not_found, ok, raise_for_errors
from storefront.components.payment_methods import PaymentMethodService, public_view
from storefront.core.services.listing import ListParams, Pagination
from storefront.domain.entities import PaymentMethodType, User
from storefront.shell.hooks.audit_hooks import AuditAction, AuditHooks, EntityType

user_router = APIRouter()
admin_router = APIRouter()

owner = require_permission("payments:own")
manage = require_permission("payments:manage")


class PaymentMethodCreateRequest(BaseModel):
    method_type: str
    details: dict[str, Any] = Field(default_factory=dict)
    alias: str | None = None
    is_default: bool = False


class PaymentMethodUpdateRequest(BaseModel):
    alias: str | None = None
    expiry_month: str | None = None
    expiry_year: str | None = None
    card_holder_name: str | None = None
    account_holder_name: str | None = None


class AdminPaymentMethodUpdateRequest(BaseModel):
    alias: str | None = None
    is_active: bool | None = None


# --- My payment methods ---


@user_router.post("", status_code=status.HTTP_201_CREATED)
def add_payment_method(
    body: PaymentMethodCreateRequest,
    user: User = Depends(owner),
    service: PaymentMethodService = Depends(get_payment_method_service),
) -> dict[str, Any]:
    method, errors = service.add(
        user.id, body.method_type, body.details, alias=body.alias, is_default=body.is_default
    )
    if method is None:
        raise_for_errors(errors)
    return ok(public_view(method), message="Payment method added successfully")


@user_router.get("")
def my_payment_methods(
    method_type: PaymentMethodType | None = None,
    user: User = Depends(owner),
    service: PaymentMethodService = Depends(get_payment_method_service),
) -> dict[str, Any]:
    return ok([public_view(m) for m in service.list_for_user(user.id, method_type)])


@user_router.get("/default")
def my_default_payment_method(
    user: User = Depends(owner),
    service: PaymentMethodService = Depends(get_payment_method_service),
) -> dict[str, Any]:
    method = service.get_default(user.id)
    if method is None:
        raise not_found("No default payment method found")
    return ok(public_view(method))


@user_router.get("/{method_id}")
def my_payment_method(
    method_id: UUID,
    user: User = Depends(owner),
    service: PaymentMethodService = Depends(get_payment_method_service),
) -> dict[str, Any]:
    method = service.get_for_user(user.id, method_id)
    if method is None:
        raise not_found("Payment method not found")
    return ok(public_view(method))


@user_router.patch("/{method_id}")
def update_my_payment_method(
    method_id: UUID,
    body: PaymentMethodUpdateRequest,
    user: User = Depends(owner),
    service: PaymentMethodService = Depends(get_payment_method_service),
) -> dict[str, Any]:
    method, errors = service.update_own(user.id, method_id, body.model_dump(exclude_unset=True))
    if method is None:
        raise_for_errors(errors)
    return ok(public_view(method), message="Payment method updated successfully")


@user_router.patch("/{method_id}/default")
def set_my_default_payment_method(
    method_id: UUID,
    user: User = Depends(owner),
    service: PaymentMethodService = Depends(get_payment_method_service),
) -> dict[str, Any]:
    method, errors = service.set_default_own(user.id, method_id)
    if method is None:
        raise_for_errors(errors)
    return ok(public_view(method), message="Default payment method updated")


@user_router.delete("/{method_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_my_payment_method(
    method_id: UUID,
    user: User = Depends(owner),
    service: PaymentMethodService = Depends(get_payment_method_service),
) -> Response:
    deleted, errors = service.delete_own(user.id, method_id)
    if not deleted:
        raise_for_errors(errors)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Admin ---


@admin_router.get("")
def list_payment_methods(
    params: ListParams = Depends(list_params(SQLitePaymentMethodRepo.sort_columns)),
    user_id: UUID | None = None,
    method_type: PaymentMethodType | None = None,
    is_active: bool | None = None,
    _: User = Depends(manage),
    service: PaymentMethodService = Depends(get_payment_method_service),
) -> dict[str, Any]:
    methods, total = service.list(
        params, user_id=user_id, method_type=method_type, is_active=is_active
    )
    return ok([public_view(m) for m in methods], pagination=Pagination.build(params, total))


@admin_router.get("/{method_id}")
def get_payment_method(
    method_id: UUID,
    _: User = Depends(manage),
    service: PaymentMethodService = Depends(get_payment_method_service),
) -> dict[str, Any]:
    method = service.get(method_id)
    if method is None:
        raise not_found("Payment method not found")
    return ok(public_view(method))


@admin_router.put("/{method_id}")
def update_payment_method(
    request: Request,
    method_id: UUID,
    body: AdminPaymentMethodUpdateRequest,
    user: User = Depends(manage),
    service: PaymentMethodService = Depends(get_payment_method_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    changes = body.model_dump(exclude_unset=True)
    method, errors = service.admin_update(method_id, changes)
    if method is None:
        raise_for_errors(errors)
    hooks.log_update(EntityType.PAYMENT_METHOD, method_id, changes, actor_context(request, user))
    return ok(public_view(method), message="Payment method updated successfully")


@admin_router.delete("/{method_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_payment_method(
    request: Request,
    method_id: UUID,
    user: User = Depends(manage),
    service: PaymentMethodService = Depends(get_payment_method_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> Response:
    deleted, errors = service.delete(method_id)
    if not deleted:
        raise_for_errors(errors)
    hooks.log(
        AuditAction.DELETE, EntityType.PAYMENT_METHOD, method_id, actor_context(request, user)
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
