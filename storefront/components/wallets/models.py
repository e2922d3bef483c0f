from dataclasses import dataclass, field
from decimal import Decimal

from storefront.domain.entities import Wallet, WalletTransaction


@dataclass(frozen=True)
class WalletValidationError:
    code: str
    message: str
    field: str | None = None


@dataclass(frozen=True)
class AdjustmentResult:
    wallet: Wallet
    transaction: WalletTransaction


@dataclass(frozen=True)
class WalletStats:
    total_wallets: int
    by_status: dict[str, int] = field(default_factory=dict)
    balance_by_currency: dict[str, Decimal] = field(default_factory=dict)
