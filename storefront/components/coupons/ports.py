from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol
from uuid import UUID

from storefront.core.services.listing import ListParams
from storefront.domain.entities import CouponCampaign, CouponStatus, DiscountType, User, UserCoupon


class CampaignRepoPort(Protocol):
    def save(self, campaign: CouponCampaign) -> CouponCampaign: ...
    def get_by_id(self, campaign_id: UUID) -> CouponCampaign | None: ...
    def get_many(self, ids: Sequence[UUID]) -> list[CouponCampaign]: ...
    def get_by_slug(self, slug: str) -> CouponCampaign | None: ...
    def get_by_name(self, name: str) -> CouponCampaign | None: ...
    def slug_exists(self, slug: str) -> bool: ...
    def list(
        self,
        params: ListParams,
        now: datetime,
        is_active: bool | None = None,
        discount_type: DiscountType | None = None,
        validity: str | None = None,
    ) -> tuple[list[CouponCampaign], int]: ...


class UserCouponRepoPort(Protocol):
    def save(self, coupon: UserCoupon) -> UserCoupon: ...
    def get_by_id(self, coupon_id: UUID) -> UserCoupon | None: ...
    def get_by_code(self, code: str) -> UserCoupon | None: ...
    def code_exists(self, code: str) -> bool: ...
    def record_redemption(self, coupon: UserCoupon, expected_usage_count: int) -> bool: ...
    def user_ids_for_campaign(self, campaign_id: UUID) -> set[UUID]: ...
    def list_by_user(self, user_id: UUID) -> list[UserCoupon]: ...
    def list(
        self,
        params: ListParams,
        now: datetime,
        campaign_id: UUID | None = None,
        user_id: UUID | None = None,
        status: CouponStatus | None = None,
    ) -> tuple[list[UserCoupon], int]: ...
    def delete(self, coupon_id: UUID) -> None: ...


class UserLookupPort(Protocol):
    def get_many(self, ids: Sequence[UUID]) -> list[User]: ...


class TimePort(Protocol):
    def now_utc(self) -> datetime: ...
