from dataclasses import dataclass
from uuid import UUID

from storefront.domain.entities import UserCoupon


@dataclass(frozen=True)
class CouponValidationError:
    code: str
    message: str
    field: str | None = None


@dataclass(frozen=True)
class GeneratedCodes:
    """Result of issuing codes for a batch of users."""

    coupons: tuple[UserCoupon, ...]
    skipped_user_ids: tuple[UUID, ...]
