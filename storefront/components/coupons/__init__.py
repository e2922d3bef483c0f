"""
Coupons component - campaigns and user coupon codes.
"""

from ._impl import (
    CampaignService,
    UserCouponService,
    generate_code,
    validate_campaign_data,
    validate_coupon_code,
)
from .models import CouponValidationError, GeneratedCodes

__all__ = [
    "CampaignService",
    "CouponValidationError",
    "GeneratedCodes",
    "UserCouponService",
    "generate_code",
    "validate_campaign_data",
    "validate_coupon_code",
]
