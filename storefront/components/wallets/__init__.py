"""
Wallets component - balances and transaction ledger.
"""

from ._impl import WalletService, validate_adjustment
from .models import AdjustmentResult, WalletStats, WalletValidationError

__all__ = [
    "AdjustmentResult",
    "WalletService",
    "WalletStats",
    "WalletValidationError",
    "validate_adjustment",
]
