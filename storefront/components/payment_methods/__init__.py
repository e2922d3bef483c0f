"""
Payment methods component - saved cards, UPI ids, wallets and net banking.
"""

from ._impl import (
    PaymentMethodService,
    display_name,
    mask_upi,
    public_view,
    same_instrument,
    validate_details,
)
from .models import PaymentMethodValidationError

__all__ = [
    "PaymentMethodService",
    "PaymentMethodValidationError",
    "display_name",
    "mask_upi",
    "public_view",
    "same_instrument",
    "validate_details",
]
