from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status
from pydantic import BaseModel

from storefront.adapters.sqlite.commerce_repos import SQLiteCampaignRepo, SQLiteUserCouponRepo
from storefront.api.deps import (
    actor_context,
    get_audit_hooks,
    get_campaign_service,
    get_user_coupon_service,
    list_params,
    require_permission,
)
from storefront.api.schemas import dump, not_found, ok, page, raise_for_errors
from storefront.components.coupons import CampaignService, UserCouponService
from storefront.core.services.listing import ListParams, Pagination
from storefront.domain.entities import CouponStatus, DiscountType, User, UserCoupon
from storefront.shell.hooks.audit_hooks import AuditAction, AuditHooks, EntityType

campaign_router = APIRouter()
admin_router = APIRouter()
user_router = APIRouter()

manage = require_permission("coupons:manage")
redeemer = require_permission("coupons:redeem")


class CampaignCreateRequest(BaseModel):
    name: str
    description: str | None = None
    code_prefix: str = ""
    discount_type: DiscountType
    discount_value: Decimal
    min_purchase_amount: Decimal = Decimal("0")
    max_coupon_discount: Decimal | None = None
    valid_from: datetime
    valid_until: datetime
    max_global_usage: int | None = None
    max_usage_per_user: int = 1
    is_unique_per_user: bool = True
    eligibility_criteria: list[str] | None = None
    applicable_product_variant_ids: list[UUID] | None = None
    is_active: bool = True


class CampaignUpdateRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    code_prefix: str | None = None
    discount_type: DiscountType | None = None
    discount_value: Decimal | None = None
    min_purchase_amount: Decimal | None = None
    max_coupon_discount: Decimal | None = None
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    max_global_usage: int | None = None
    max_usage_per_user: int | None = None
    is_unique_per_user: bool | None = None
    eligibility_criteria: list[str] | None = None
    applicable_product_variant_ids: list[UUID] | None = None
    is_active: bool | None = None


class GenerateCodesRequest(BaseModel):
    user_ids: list[UUID]
    expires_at: datetime | None = None


class UserCouponUpdateRequest(BaseModel):
    is_active: bool | None = None
    expires_at: datetime | None = None


def coupon_view(coupon: UserCoupon, service: UserCouponService) -> dict[str, Any]:
    data = dump(coupon)
    data["status"] = service.status(coupon)
    return data


# --- Campaigns (admin) ---


@campaign_router.get("")
def list_campaigns(
    params: ListParams = Depends(list_params(SQLiteCampaignRepo.sort_columns)),
    is_active: bool | None = None,
    discount_type: DiscountType | None = None,
    validity: str | None = None,
    _: User = Depends(manage),
    service: CampaignService = Depends(get_campaign_service),
) -> dict[str, Any]:
    """`validity` is one of active, expired or upcoming."""
    campaigns, total = service.list(
        params, is_active=is_active, discount_type=discount_type, validity=validity
    )
    return page(campaigns, total, params)


@campaign_router.get("/{identifier}")
def get_campaign(
    identifier: str,
    _: User = Depends(manage),
    service: CampaignService = Depends(get_campaign_service),
) -> dict[str, Any]:
    campaign = service.get(identifier)
    if campaign is None:
        raise not_found("Coupon campaign not found")
    return ok(dump(campaign))


@campaign_router.post("", status_code=status.HTTP_201_CREATED)
def create_campaign(
    request: Request,
    body: CampaignCreateRequest,
    user: User = Depends(manage),
    service: CampaignService = Depends(get_campaign_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    campaign, errors = service.create(body.model_dump(), created_by=user.id)
    if campaign is None:
        raise_for_errors(errors)
    hooks.log(
        AuditAction.CREATE, EntityType.COUPON_CAMPAIGN, campaign.id, actor_context(request, user)
    )
    return ok(dump(campaign), message="Coupon campaign created successfully")


@campaign_router.put("/{campaign_id}")
def update_campaign(
    request: Request,
    campaign_id: UUID,
    body: CampaignUpdateRequest,
    user: User = Depends(manage),
    service: CampaignService = Depends(get_campaign_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    changes = body.model_dump(exclude_unset=True)
    campaign, errors = service.update(campaign_id, changes)
    if campaign is None:
        raise_for_errors(errors)
    hooks.log_update(EntityType.COUPON_CAMPAIGN, campaign_id, changes, actor_context(request, user))
    return ok(dump(campaign), message="Coupon campaign updated successfully")


def _set_campaign_active(
    request: Request,
    campaign_id: UUID,
    is_active: bool,
    action: AuditAction,
    user: User,
    service: CampaignService,
    hooks: AuditHooks,
) -> Any:
    campaign, errors = service.set_active(campaign_id, is_active)
    if campaign is None:
        raise_for_errors(errors)
    hooks.log(action, EntityType.COUPON_CAMPAIGN, campaign_id, actor_context(request, user))
    return campaign


@campaign_router.delete("/{campaign_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_campaign(
    request: Request,
    campaign_id: UUID,
    user: User = Depends(manage),
    service: CampaignService = Depends(get_campaign_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> Response:
    _set_campaign_active(request, campaign_id, False, AuditAction.DELETE, user, service, hooks)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@campaign_router.patch("/{campaign_id}/activate")
def activate_campaign(
    request: Request,
    campaign_id: UUID,
    user: User = Depends(manage),
    service: CampaignService = Depends(get_campaign_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    campaign = _set_campaign_active(
        request, campaign_id, True, AuditAction.ACTIVATE, user, service, hooks
    )
    return ok(dump(campaign), message="Coupon campaign activated successfully")


@campaign_router.patch("/{campaign_id}/deactivate")
def deactivate_campaign(
    request: Request,
    campaign_id: UUID,
    user: User = Depends(manage),
    service: CampaignService = Depends(get_campaign_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    campaign = _set_campaign_active(
        request, campaign_id, False, AuditAction.DEACTIVATE, user, service, hooks
    )
    return ok(dump(campaign), message="Coupon campaign deactivated successfully")


@campaign_router.post("/{campaign_id}/generate-codes", status_code=status.HTTP_201_CREATED)
def generate_codes(
    request: Request,
    campaign_id: UUID,
    body: GenerateCodesRequest,
    user: User = Depends(manage),
    service: CampaignService = Depends(get_campaign_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    result, errors = service.generate_codes(campaign_id, body.user_ids, body.expires_at)
    if result is None:
        raise_for_errors(errors)
    hooks.log(
        AuditAction.GENERATE,
        EntityType.COUPON_CAMPAIGN,
        campaign_id,
        actor_context(request, user),
        metadata={"generated": len(result.coupons), "skipped": len(result.skipped_user_ids)},
    )
    return ok(
        {
            "coupons": [dump(c) for c in result.coupons],
            "skipped_user_ids": [str(u) for u in result.skipped_user_ids],
        },
        message=f"Generated {len(result.coupons)} coupon codes",
    )


# --- User coupons (admin) ---


@admin_router.get("")
def list_user_coupons(
    params: ListParams = Depends(list_params(SQLiteUserCouponRepo.sort_columns)),
    campaign_id: UUID | None = None,
    user_id: UUID | None = None,
    coupon_status: CouponStatus | None = Query(default=None, alias="status"),
    _: User = Depends(manage),
    service: UserCouponService = Depends(get_user_coupon_service),
) -> dict[str, Any]:
    coupons, total = service.list(
        params, campaign_id=campaign_id, user_id=user_id, status=coupon_status
    )
    return ok(
        [coupon_view(c, service) for c in coupons], pagination=Pagination.build(params, total)
    )


@admin_router.get("/{coupon_id}")
def get_user_coupon(
    coupon_id: UUID,
    _: User = Depends(manage),
    service: UserCouponService = Depends(get_user_coupon_service),
) -> dict[str, Any]:
    coupon = service.get(coupon_id)
    if coupon is None:
        raise not_found("Coupon not found")
    return ok(coupon_view(coupon, service))


@admin_router.put("/{coupon_id}")
def update_user_coupon(
    request: Request,
    coupon_id: UUID,
    body: UserCouponUpdateRequest,
    user: User = Depends(manage),
    service: UserCouponService = Depends(get_user_coupon_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    changes = body.model_dump(exclude_unset=True)
    coupon, errors = service.update(coupon_id, changes)
    if coupon is None:
        raise_for_errors(errors)
    hooks.log_update(EntityType.USER_COUPON, coupon_id, changes, actor_context(request, user))
    return ok(coupon_view(coupon, service), message="Coupon updated successfully")


@admin_router.delete("/{coupon_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user_coupon(
    request: Request,
    coupon_id: UUID,
    user: User = Depends(manage),
    service: UserCouponService = Depends(get_user_coupon_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> Response:
    deleted, errors = service.delete(coupon_id)
    if not deleted:
        raise_for_errors(errors)
    hooks.log(AuditAction.DELETE, EntityType.USER_COUPON, coupon_id, actor_context(request, user))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- My coupons ---


@user_router.get("")
def my_coupons(
    valid_only: bool = False,
    user: User = Depends(redeemer),
    service: UserCouponService = Depends(get_user_coupon_service),
) -> dict[str, Any]:
    coupons = service.list_for_user(user.id, valid_only=valid_only)
    return ok([coupon_view(c, service) for c in coupons])


@user_router.get("/{code}")
def my_coupon(
    code: str,
    user: User = Depends(redeemer),
    service: UserCouponService = Depends(get_user_coupon_service),
) -> dict[str, Any]:
    coupon = service.get_for_user(user.id, code.strip().upper())
    if coupon is None:
        raise not_found("Coupon not found")
    data = coupon_view(coupon, service)
    campaign = service.campaign_for(coupon)
    data["campaign"] = dump(campaign) if campaign is not None else None
    return ok(data)


@user_router.post("/{code}/redeem")
def redeem_coupon(
    code: str,
    user: User = Depends(redeemer),
    service: UserCouponService = Depends(get_user_coupon_service),
) -> dict[str, Any]:
    coupon, errors = service.redeem(user.id, code)
    if coupon is None:
        raise_for_errors(errors)
    return ok(coupon_view(coupon, service), message="Coupon redeemed successfully")
