"""
Coupon campaigns and the per-user codes issued from them.

A campaign defines the discount and its limits; a user coupon is one code
handed to one user. Discount arithmetic lives in `storefront.domain.pricing`.
"""

from __future__ import annotations

import logging
import re
import secrets
import string
from collections.abc import Sequence
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from storefront.core.services.listing import ListParams
from storefront.domain.entities import (
    CouponCampaign,
    CouponStatus,
    DiscountType,
    UserCoupon,
    ensure_utc,
)
from storefront.domain.money import has_at_most_two_decimals, to_money
from storefront.domain.pricing import campaign_is_valid, coupon_status, coupon_unusable_reason
from storefront.domain.text import parse_uuid, slugify, unique_slug

from .models import CouponValidationError, GeneratedCodes
from .ports import CampaignRepoPort, TimePort, UserCouponRepoPort, UserLookupPort

logger = logging.getLogger(__name__)

NAME_MAX = 100
DESCRIPTION_MAX = 500
PREFIX_MAX = 20
PREFIX_PATTERN = re.compile(r"^[A-Z0-9]*$")
CODE_PATTERN = re.compile(r"^[A-Z0-9-]+$")
CODE_MIN, CODE_MAX = 4, 50
CODE_ALPHABET = string.ascii_uppercase + string.digits
DISCOUNT_TYPES = ("PERCENTAGE", "AMOUNT", "FREE_SHIPPING")
ELIGIBILITY_CRITERIA = (
    "NEW_USER",
    "REFERRAL",
    "FIRST_ORDER",
    "SPECIFIC_USER_GROUP",
    "ALL_USERS",
    "NONE",
)
CAMPAIGN_FIELDS = (
    "name",
    "description",
    "code_prefix",
    "discount_type",
    "discount_value",
    "min_purchase_amount",
    "max_coupon_discount",
    "valid_from",
    "valid_until",
    "max_global_usage",
    "max_usage_per_user",
    "is_unique_per_user",
    "eligibility_criteria",
    "applicable_product_variant_ids",
    "is_active",
)

# --- Validation Functions ---


def _amount_error(field: str, label: str) -> CouponValidationError:
    return CouponValidationError(
        code=f"{field}_invalid",
        message=f"{label} must be a non-negative amount with at most 2 decimals",
        field=field,
    )


def validate_campaign_data(data: dict[str, Any]) -> list[CouponValidationError]:
    """Validate a complete campaign payload (create, or existing merged with changes)."""
    errors: list[CouponValidationError] = []

    name = (data.get("name") or "").strip()
    if not name:
        errors.append(
            CouponValidationError(
                code="name_required", message="Campaign name is required", field="name"
            )
        )
    elif len(name) > NAME_MAX:
        errors.append(
            CouponValidationError(
                code="name_too_long",
                message=f"Campaign name cannot exceed {NAME_MAX} characters",
                field="name",
            )
        )

    if len((data.get("description") or "").strip()) > DESCRIPTION_MAX:
        errors.append(
            CouponValidationError(
                code="description_too_long",
                message=f"Description cannot exceed {DESCRIPTION_MAX} characters",
                field="description",
            )
        )

    prefix = (data.get("code_prefix") or "").strip().upper()
    if len(prefix) > PREFIX_MAX or not PREFIX_PATTERN.match(prefix):
        errors.append(
            CouponValidationError(
                code="code_prefix_invalid",
                message=f"Code prefix must be up to {PREFIX_MAX} letters or digits",
                field="code_prefix",
            )
        )

    discount_type = data.get("discount_type")
    if discount_type not in DISCOUNT_TYPES:
        errors.append(
            CouponValidationError(
                code="discount_type_invalid",
                message="Discount type must be PERCENTAGE, AMOUNT or FREE_SHIPPING",
                field="discount_type",
            )
        )

    value = data.get("discount_value")
    if value is None:
        errors.append(
            CouponValidationError(
                code="discount_value_required",
                message="Discount value is required",
                field="discount_value",
            )
        )
    else:
        value = to_money(value)
        if value < 0 or not has_at_most_two_decimals(value):
            errors.append(_amount_error("discount_value", "Discount value"))
        elif discount_type == "PERCENTAGE" and not 0 < value <= 100:
            errors.append(
                CouponValidationError(
                    code="discount_value_range",
                    message="Percentage discount must be greater than 0 and at most 100",
                    field="discount_value",
                )
            )

    minimum = data.get("min_purchase_amount")
    if minimum is not None:
        minimum = to_money(minimum)
        if minimum < 0 or not has_at_most_two_decimals(minimum):
            errors.append(_amount_error("min_purchase_amount", "Minimum purchase amount"))

    cap = data.get("max_coupon_discount")
    if cap is not None:
        cap = to_money(cap)
        if cap <= 0 or not has_at_most_two_decimals(cap):
            errors.append(
                CouponValidationError(
                    code="max_coupon_discount_invalid",
                    message="Maximum coupon discount must be a positive amount",
                    field="max_coupon_discount",
                )
            )

    valid_from, valid_until = data.get("valid_from"), data.get("valid_until")
    if valid_from is None or valid_until is None:
        errors.append(
            CouponValidationError(
                code="validity_required",
                message="Valid from and valid until dates are required",
                field="valid_until",
            )
        )
    elif ensure_utc(valid_until) <= ensure_utc(valid_from):
        errors.append(
            CouponValidationError(
                code="validity_window_invalid",
                message="Valid until date must be after valid from date",
                field="valid_until",
            )
        )

    max_global = data.get("max_global_usage")
    if max_global is not None and max_global < 0:
        errors.append(
            CouponValidationError(
                code="max_global_usage_negative",
                message="Maximum global usage cannot be negative",
                field="max_global_usage",
            )
        )

    per_user = data.get("max_usage_per_user")
    if per_user is not None and per_user < 1:
        errors.append(
            CouponValidationError(
                code="max_usage_per_user_invalid",
                message="Maximum usage per user must be at least 1",
                field="max_usage_per_user",
            )
        )

    criteria = data.get("eligibility_criteria") or []
    if any(c not in ELIGIBILITY_CRITERIA for c in criteria):
        errors.append(
            CouponValidationError(
                code="eligibility_criteria_invalid",
                message="Invalid eligibility criteria",
                field="eligibility_criteria",
            )
        )

    return errors


def validate_coupon_code(code: str) -> list[CouponValidationError]:
    if CODE_MIN <= len(code) <= CODE_MAX and CODE_PATTERN.match(code):
        return []
    return [
        CouponValidationError(
            code="coupon_code_invalid",
            message=(
                f"Coupon code must be {CODE_MIN}-{CODE_MAX} uppercase letters, numbers or hyphens"
            ),
            field="coupon_code",
        )
    ]


def generate_code(prefix: str, length: int) -> str:
    suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))
    return f"{prefix}-{suffix}" if prefix else suffix


# --- Campaign Service ---


class CampaignService:
    def __init__(
        self,
        repo: CampaignRepoPort,
        coupons: UserCouponRepoPort,
        users: UserLookupPort,
        clock: TimePort,
        code_length: int = 8,
    ) -> None:
        self._repo = repo
        self._coupons = coupons
        self._users = users
        self._clock = clock
        self._code_length = code_length

    def list(
        self,
        params: ListParams,
        is_active: bool | None = None,
        discount_type: DiscountType | None = None,
        validity: str | None = None,
    ) -> tuple[list[CouponCampaign], int]:
        return self._repo.list(
            params,
            now=self._clock.now_utc(),
            is_active=is_active,
            discount_type=discount_type,
            validity=validity,
        )

    def get(self, identifier: str) -> CouponCampaign | None:
        campaign_id = parse_uuid(identifier)
        if campaign_id:
            return self._repo.get_by_id(campaign_id)
        return self._repo.get_by_slug(identifier)

    def create(
        self, data: dict[str, Any], created_by: UUID | None = None
    ) -> tuple[CouponCampaign | None, list[CouponValidationError]]:
        payload = {k: data[k] for k in CAMPAIGN_FIELDS if data.get(k) is not None}
        errors = validate_campaign_data(payload)
        if errors:
            return None, errors

        if self._repo.get_by_name(payload["name"]):
            return None, [_name_duplicate()]

        now = self._clock.now_utc()
        payload["name"] = payload["name"].strip()
        payload["code_prefix"] = (payload.get("code_prefix") or "").strip().upper()
        payload["eligibility_criteria"] = payload.get("eligibility_criteria") or ["NONE"]
        campaign = CouponCampaign(
            **payload,
            id=uuid4(),
            slug=unique_slug(slugify(payload["name"]), self._repo.slug_exists),
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        return self._repo.save(campaign), []

    def update(
        self, campaign_id: UUID, updates: dict[str, Any]
    ) -> tuple[CouponCampaign | None, list[CouponValidationError]]:
        campaign = self._repo.get_by_id(campaign_id)
        if not campaign:
            return None, [_campaign_not_found()]

        changes = {k: v for k, v in updates.items() if k in CAMPAIGN_FIELDS}
        merged = campaign.model_dump() | changes
        errors = validate_campaign_data(merged)
        if errors:
            return None, errors

        new_name = changes.get("name")
        if new_name is not None:
            new_name = new_name.strip()
            changes["name"] = new_name
            if new_name.lower() != campaign.name.lower():
                existing = self._repo.get_by_name(new_name)
                if existing and existing.id != campaign.id:
                    return None, [_name_duplicate()]
                campaign.slug = unique_slug(slugify(new_name), self._repo.slug_exists)
        if "code_prefix" in changes:
            changes["code_prefix"] = (changes["code_prefix"] or "").strip().upper()
        if "eligibility_criteria" in changes:
            changes["eligibility_criteria"] = changes["eligibility_criteria"] or ["NONE"]

        updated = campaign.model_copy(update=changes)
        updated = CouponCampaign.model_validate(updated.model_dump())
        updated.updated_at = self._clock.now_utc()
        return self._repo.save(updated), []

    def set_active(
        self, campaign_id: UUID, is_active: bool
    ) -> tuple[CouponCampaign | None, list[CouponValidationError]]:
        campaign = self._repo.get_by_id(campaign_id)
        if not campaign:
            return None, [_campaign_not_found()]
        campaign.is_active = is_active
        campaign.updated_at = self._clock.now_utc()
        return self._repo.save(campaign), []

    def generate_codes(
        self,
        campaign_id: UUID,
        user_ids: Sequence[UUID],
        expires_at: datetime | None = None,
    ) -> tuple[GeneratedCodes | None, list[CouponValidationError]]:
        """
        Issue one code per user.

        Users who already hold a code are skipped when the campaign is unique per user.
        """
        campaign = self._repo.get_by_id(campaign_id)
        if not campaign:
            return None, [_campaign_not_found()]

        now = self._clock.now_utc()
        if not campaign_is_valid(campaign, now):
            return None, [
                CouponValidationError(
                    code="campaign_not_usable",
                    message="Cannot generate codes for an inactive or expired campaign",
                )
            ]
        if not user_ids:
            return None, [
                CouponValidationError(
                    code="user_ids_required",
                    message="At least one user id is required",
                    field="user_ids",
                )
            ]
        known = {u.id for u in self._users.get_many(list(set(user_ids)))}
        unknown = [str(u) for u in dict.fromkeys(user_ids) if u not in known]
        if unknown:
            return None, [
                CouponValidationError(
                    code="user_ids_invalid",
                    message=f"Unknown user ids: {', '.join(unknown)}",
                    field="user_ids",
                )
            ]
        expiry = ensure_utc(expires_at) if expires_at else campaign.valid_until
        if expiry <= now:
            return None, [
                CouponValidationError(
                    code="expires_at_invalid",
                    message="Expiry must be in the future",
                    field="expires_at",
                )
            ]

        holders: set[UUID] = set()
        if campaign.is_unique_per_user:
            holders = self._coupons.user_ids_for_campaign(campaign.id)
        created: list[UserCoupon] = []
        skipped: list[UUID] = []
        for user_id in dict.fromkeys(user_ids):
            if user_id in holders:
                skipped.append(user_id)
                continue
            code = generate_code(campaign.code_prefix, self._code_length)
            while self._coupons.code_exists(code):
                code = generate_code(campaign.code_prefix, self._code_length)
            coupon = UserCoupon(
                id=uuid4(),
                campaign_id=campaign.id,
                user_id=user_id,
                coupon_code=code,
                expires_at=expiry,
                created_at=now,
                updated_at=now,
            )
            created.append(self._coupons.save(coupon))

        logger.info(
            "Generated %d coupon codes for campaign %s (%d skipped)",
            len(created),
            campaign.id,
            len(skipped),
        )
        return GeneratedCodes(coupons=tuple(created), skipped_user_ids=tuple(skipped)), []


# --- User Coupon Service ---


class UserCouponService:
    def __init__(
        self,
        repo: UserCouponRepoPort,
        campaigns: CampaignRepoPort,
        clock: TimePort,
    ) -> None:
        self._repo = repo
        self._campaigns = campaigns
        self._clock = clock

    def status(self, coupon: UserCoupon) -> CouponStatus:
        return coupon_status(coupon, self._clock.now_utc())

    def campaign_for(self, coupon: UserCoupon) -> CouponCampaign | None:
        return self._campaigns.get_by_id(coupon.campaign_id)

    def list_for_user(self, user_id: UUID, valid_only: bool = False) -> list[UserCoupon]:
        coupons = self._repo.list_by_user(user_id)
        if not valid_only:
            return coupons
        campaigns = {c.id: c for c in self._campaigns.get_many([c.campaign_id for c in coupons])}
        now = self._clock.now_utc()
        return [
            c
            for c in coupons
            if c.campaign_id in campaigns
            and coupon_unusable_reason(c, campaigns[c.campaign_id], now) is None
        ]

    def get_for_user(self, user_id: UUID, code: str) -> UserCoupon | None:
        coupon = self._repo.get_by_code(code)
        if coupon is None or coupon.user_id != user_id:
            return None
        return coupon

    def usable(
        self, user_id: UUID, code: str
    ) -> tuple[tuple[UserCoupon, CouponCampaign] | None, list[CouponValidationError]]:
        """Resolve a code the user owns and may use right now."""
        code = code.strip().upper()
        errors = validate_coupon_code(code)
        if errors:
            return None, errors
        coupon = self.get_for_user(user_id, code)
        if coupon is None:
            return None, [_coupon_not_found()]
        campaign = self._campaigns.get_by_id(coupon.campaign_id)
        if campaign is None:
            return None, [_campaign_not_found()]
        reason = coupon_unusable_reason(coupon, campaign, self._clock.now_utc())
        if reason:
            return None, [
                CouponValidationError(code="coupon_unusable", message=reason, field="coupon_code")
            ]
        return (coupon, campaign), []

    def redeem(
        self, user_id: UUID, code: str
    ) -> tuple[UserCoupon | None, list[CouponValidationError]]:
        resolved, errors = self.usable(user_id, code)
        if resolved is None:
            return None, errors
        coupon, campaign = resolved

        now = self._clock.now_utc()
        expected_usage_count = coupon.current_usage_count
        coupon.current_usage_count += 1
        if coupon.current_usage_count >= campaign.max_usage_per_user:
            coupon.is_redeemed = True
            coupon.redeemed_at = now
        coupon.updated_at = now
        if not self._repo.record_redemption(coupon, expected_usage_count):
            logger.warning("Coupon %s redemption lost to a concurrent change", coupon.coupon_code)
            return None, [
                CouponValidationError(
                    code="coupon_unusable",
                    message="Coupon is no longer available",
                    field="coupon_code",
                )
            ]
        logger.info("Coupon %s redeemed by user %s", coupon.coupon_code, user_id)
        return coupon, []

    # --- Admin ---

    def list(
        self,
        params: ListParams,
        campaign_id: UUID | None = None,
        user_id: UUID | None = None,
        status: CouponStatus | None = None,
    ) -> tuple[list[UserCoupon], int]:
        return self._repo.list(
            params,
            now=self._clock.now_utc(),
            campaign_id=campaign_id,
            user_id=user_id,
            status=status,
        )

    def get(self, coupon_id: UUID) -> UserCoupon | None:
        return self._repo.get_by_id(coupon_id)

    def update(
        self, coupon_id: UUID, updates: dict[str, Any]
    ) -> tuple[UserCoupon | None, list[CouponValidationError]]:
        coupon = self._repo.get_by_id(coupon_id)
        if not coupon:
            return None, [_coupon_not_found()]
        if updates.get("is_active") is not None:
            coupon.is_active = bool(updates["is_active"])
        if updates.get("expires_at") is not None:
            coupon.expires_at = ensure_utc(updates["expires_at"])
        coupon.updated_at = self._clock.now_utc()
        return self._repo.save(coupon), []

    def delete(self, coupon_id: UUID) -> tuple[bool, list[CouponValidationError]]:
        if not self._repo.get_by_id(coupon_id):
            return False, [_coupon_not_found()]
        self._repo.delete(coupon_id)
        return True, []


def _name_duplicate() -> CouponValidationError:
    return CouponValidationError(
        code="name_duplicate", message="Campaign with this name already exists", field="name"
    )


def _campaign_not_found() -> CouponValidationError:
    return CouponValidationError(code="campaign_not_found", message="Coupon campaign not found")


def _coupon_not_found() -> CouponValidationError:
    return CouponValidationError(code="coupon_not_found", message="Coupon not found")

