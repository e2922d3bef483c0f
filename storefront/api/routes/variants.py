from decimal import Decimal
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel, Field

from storefront.adapters.sqlite.commerce_repos import SQLiteReviewRepo
from storefront.adapters.sqlite.repos import SQLiteVariantRepo
from storefront.api.deps import (
    actor_context,
    get_audit_hooks,
    get_optional_user,
    get_policy,
    get_review_service,
    get_variant_service,
    is_admin,
    list_params,
    require_permission,
)
from storefront.api.schemas import dump, not_found, ok, page, raise_for_errors
from storefront.components.reviews import ReviewService
from storefront.components.variants import VariantService
from storefront.core.services.listing import ListParams
from storefront.domain.entities import User
from storefront.domain.policy import PolicyEngine
from storefront.shell.hooks.audit_hooks import AuditAction, AuditHooks, EntityType

router = APIRouter()

manage = require_permission("catalog:manage")


class VariantCreateRequest(BaseModel):
    product_id: UUID
    sku_code: str
    price: Decimal
    option_ids: list[UUID] = Field(default_factory=list)
    discount_price: Decimal | None = None
    is_on_sale: bool = False
    images: list[str] = Field(default_factory=list)
    sort_order: int = 0
    is_active: bool = True


class VariantUpdateRequest(BaseModel):
    product_id: UUID | None = None
    sku_code: str | None = None
    price: Decimal | None = None
    option_ids: list[UUID] | None = None
    discount_price: Decimal | None = None
    is_on_sale: bool | None = None
    images: list[str] | None = None
    sort_order: int | None = None
    is_active: bool | None = None


@router.get("")
def list_variants(
    params: ListParams = Depends(list_params(SQLiteVariantRepo.sort_columns)),
    product_id: UUID | None = None,
    is_active: bool | None = None,
    is_on_sale: bool | None = None,
    user: User | None = Depends(get_optional_user),
    policy: PolicyEngine = Depends(get_policy),
    service: VariantService = Depends(get_variant_service),
) -> dict[str, Any]:
    active = is_active if is_admin(user, policy) else True
    variants, total = service.list(
        params, product_id=product_id, is_active=active, is_on_sale=is_on_sale
    )
    return page(variants, total, params)


@router.get("/{variant_id}/reviews")
def variant_reviews(
    variant_id: UUID,
    params: ListParams = Depends(list_params(SQLiteReviewRepo.sort_columns)),
    min_rating: int | None = None,
    max_rating: int | None = None,
    service: ReviewService = Depends(get_review_service),
) -> dict[str, Any]:
    """Approved reviews of an active variant."""
    result, errors = service.list_approved(
        variant_id, params, min_rating=min_rating, max_rating=max_rating
    )
    if result is None:
        raise_for_errors(errors)
    reviews, total = result
    return page(reviews, total, params)


@router.get("/{variant_id}/rating-summary")
def variant_rating_summary(
    variant_id: UUID,
    service: ReviewService = Depends(get_review_service),
) -> dict[str, Any]:
    summary, errors = service.rating_summary(variant_id)
    if summary is None:
        raise_for_errors(errors)
    return ok(dump(summary))


@router.get("/{identifier}")
def get_variant(
    identifier: str,
    user: User | None = Depends(get_optional_user),
    policy: PolicyEngine = Depends(get_policy),
    service: VariantService = Depends(get_variant_service),
) -> dict[str, Any]:
    variant = service.get(identifier, include_inactive=is_admin(user, policy))
    if variant is None:
        raise not_found("Product variant not found")
    data = dump(variant)
    data["pack_multiplier"] = service.pack_multiplier(variant)
    return ok(data)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_variant(
    request: Request,
    body: VariantCreateRequest,
    user: User = Depends(manage),
    service: VariantService = Depends(get_variant_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    variant, errors = service.create(**body.model_dump())
    if variant is None:
        raise_for_errors(errors)
    hooks.log(
        AuditAction.CREATE, EntityType.PRODUCT_VARIANT, variant.id, actor_context(request, user)
    )
    return ok(dump(variant), message="Product variant created successfully")


@router.put("/{variant_id}")
def update_variant(
    request: Request,
    variant_id: UUID,
    body: VariantUpdateRequest,
    user: User = Depends(manage),
    service: VariantService = Depends(get_variant_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    changes = body.model_dump(exclude_unset=True)
    variant, errors = service.update(variant_id, changes)
    if variant is None:
        raise_for_errors(errors)
    hooks.log_update(EntityType.PRODUCT_VARIANT, variant_id, changes, actor_context(request, user))
    return ok(dump(variant), message="Product variant updated successfully")


def _set_active(
    request: Request,
    variant_id: UUID,
    is_active: bool,
    action: AuditAction,
    user: User,
    service: VariantService,
    hooks: AuditHooks,
) -> Any:
    variant, errors = service.set_active(variant_id, is_active)
    if variant is None:
        raise_for_errors(errors)
    hooks.log(action, EntityType.PRODUCT_VARIANT, variant_id, actor_context(request, user))
    return variant


@router.delete("/{variant_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_variant(
    request: Request,
    variant_id: UUID,
    user: User = Depends(manage),
    service: VariantService = Depends(get_variant_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> Response:
    _set_active(request, variant_id, False, AuditAction.DELETE, user, service, hooks)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{variant_id}/activate")
def activate_variant(
    request: Request,
    variant_id: UUID,
    user: User = Depends(manage),
    service: VariantService = Depends(get_variant_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    variant = _set_active(request, variant_id, True, AuditAction.ACTIVATE, user, service, hooks)
    return ok(dump(variant), message="Product variant activated successfully")


@router.patch("/{variant_id}/deactivate")
def deactivate_variant(
    request: Request,
    variant_id: UUID,
    user: User = Depends(manage),
    service: VariantService = Depends(get_variant_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    variant = _set_active(
        request, variant_id, False, AuditAction.DEACTIVATE, user, service, hooks
    )
    return ok(dump(variant), message="Product variant deactivated successfully")
