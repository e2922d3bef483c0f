"""
WalletService - stored-value wallets and their ledger.

Every balance change is written together with its transaction row. The
wallet carries a version number; a write only lands when the version read
is still current, and a conflicting write is retried against fresh state.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from uuid import UUID, uuid4

from storefront.core.services.listing import ListParams
from storefront.domain.entities import InitiatedBy, Wallet, WalletTransaction
from storefront.domain.money import ZERO, has_at_most_two_decimals, round_money, to_money

from .models import AdjustmentResult, WalletStats, WalletValidationError
from .ports import TimePort, TransactionRepoPort, WalletRepoPort

logger = logging.getLogger(__name__)

DESCRIPTION_MAX = 250
MAX_ATTEMPTS = 3
TRANSACTION_TYPES = ("CREDIT", "DEBIT")
WALLET_STATUSES = ("ACTIVE", "BLOCKED", "INACTIVE")


def validate_adjustment(
    transaction_type: str,
    amount: Decimal,
    description: str,
    max_amount: Decimal,
) -> list[WalletValidationError]:
    errors: list[WalletValidationError] = []

    if transaction_type not in TRANSACTION_TYPES:
        errors.append(
            WalletValidationError(
                code="transaction_type_invalid",
                message="Transaction type must be CREDIT or DEBIT",
                field="transaction_type",
            )
        )

    if amount <= 0 or not has_at_most_two_decimals(amount):
        errors.append(
            WalletValidationError(
                code="amount_invalid",
                message="Amount must be greater than 0 with at most 2 decimals",
                field="amount",
            )
        )
    elif amount > max_amount:
        errors.append(
            WalletValidationError(
                code="amount_too_large",
                message=f"Amount cannot exceed {max_amount}",
                field="amount",
            )
        )

    stripped = (description or "").strip()
    if not stripped:
        errors.append(
            WalletValidationError(
                code="description_required",
                message="Description is required",
                field="description",
            )
        )
    elif len(stripped) > DESCRIPTION_MAX:
        errors.append(
            WalletValidationError(
                code="description_too_long",
                message=f"Description cannot exceed {DESCRIPTION_MAX} characters",
                field="description",
            )
        )

    return errors


class WalletService:
    def __init__(
        self,
        repo: WalletRepoPort,
        transactions: TransactionRepoPort,
        clock: TimePort,
        max_transaction_amount: Decimal = Decimal("1000000"),
        default_currency: str = "INR",
    ) -> None:
        self._repo = repo
        self._transactions = transactions
        self._clock = clock
        self._max_amount = max_transaction_amount
        self._default_currency = default_currency

    # --- Queries ---

    def get_or_create(self, user_id: UUID) -> Wallet:
        wallet = self._repo.get_by_user(user_id)
        if wallet is not None:
            return wallet
        now = self._clock.now_utc()
        wallet = Wallet(
            id=uuid4(),
            user_id=user_id,
            currency=self._default_currency,  # type: ignore[arg-type]
            created_at=now,
            updated_at=now,
        )
        logger.info("Created wallet %s for user %s", wallet.id, user_id)
        return self._repo.save(wallet)

    def get(self, wallet_id: UUID) -> Wallet | None:
        return self._repo.get_by_id(wallet_id)

    def get_by_user(self, user_id: UUID) -> Wallet | None:
        return self._repo.get_by_user(user_id)

    def list(
        self,
        params: ListParams,
        status: str | None = None,
        currency: str | None = None,
        min_balance: Decimal | None = None,
        max_balance: Decimal | None = None,
    ) -> tuple[list[Wallet], int]:
        return self._repo.list(
            params,
            status=status,
            currency=currency,
            min_balance=min_balance,
            max_balance=max_balance,
        )

    def list_transactions(
        self,
        params: ListParams,
        wallet_id: UUID | None = None,
        user_id: UUID | None = None,
        transaction_type: str | None = None,
        status: str | None = None,
    ) -> tuple[list[WalletTransaction], int]:
        return self._transactions.list(
            params,
            wallet_id=wallet_id,
            user_id=user_id,
            transaction_type=transaction_type,
            status=status,
        )

    def stats(self) -> WalletStats:
        wallets = self._repo.list_all()
        by_status = {status: 0 for status in WALLET_STATUSES}
        balances: dict[str, Decimal] = {}
        for wallet in wallets:
            by_status[wallet.status] = by_status.get(wallet.status, 0) + 1
            balances[wallet.currency] = balances.get(wallet.currency, ZERO) + wallet.balance
        return WalletStats(
            total_wallets=len(wallets),
            by_status=by_status,
            balance_by_currency={k: round_money(v) for k, v in balances.items()},
        )

    # --- Commands ---

    def adjust(
        self,
        wallet_id: UUID,
        transaction_type: str,
        amount: Decimal | int | str,
        description: str,
        initiated_by: InitiatedBy = "ADMIN",
        initiated_by_user_id: UUID | None = None,
        reference_type: str | None = None,
        reference_id: str | None = None,
    ) -> tuple[AdjustmentResult | None, list[WalletValidationError]]:
        value = to_money(amount)
        errors = validate_adjustment(transaction_type, value, description, self._max_amount)
        if errors:
            return None, errors

        for attempt in range(1, MAX_ATTEMPTS + 1):
            wallet = self._repo.get_by_id(wallet_id)
            if wallet is None:
                return None, [_not_found()]
            if wallet.status != "ACTIVE":
                return None, [
                    WalletValidationError(code="wallet_inactive", message="Wallet is not active")
                ]

            if transaction_type == "DEBIT":
                if value > wallet.balance:
                    return None, [
                        WalletValidationError(
                            code="insufficient_balance",
                            message="Insufficient wallet balance",
                            field="amount",
                        )
                    ]
                new_balance = wallet.balance - value
            else:
                new_balance = wallet.balance + value

            now = self._clock.now_utc()
            expected_version = wallet.version
            wallet.balance = round_money(new_balance)
            wallet.version = expected_version + 1
            wallet.last_transaction_at = now
            wallet.updated_at = now
            transaction = WalletTransaction(
                id=uuid4(),
                wallet_id=wallet.id,
                user_id=wallet.user_id,
                transaction_type=transaction_type,  # type: ignore[arg-type]
                amount=value,
                currency=wallet.currency,
                description=description.strip(),
                reference_type=reference_type,
                reference_id=reference_id,
                balance_after=wallet.balance,
                status="COMPLETED",
                initiated_by=initiated_by,
                initiated_by_user_id=initiated_by_user_id,
                processed_at=now,
                created_at=now,
                updated_at=now,
            )
            if self._repo.apply_transaction(wallet, transaction, expected_version):
                logger.info(
                    "Wallet %s %s %s %s; balance now %s",
                    wallet.id,
                    transaction_type,
                    value,
                    wallet.currency,
                    wallet.balance,
                )
                return AdjustmentResult(wallet=wallet, transaction=transaction), []
            logger.warning(
                "Wallet %s changed concurrently (attempt %d/%d)", wallet_id, attempt, MAX_ATTEMPTS
            )

        return None, [
            WalletValidationError(
                code="wallet_conflict",
                message="Wallet was modified concurrently, please retry",
            )
        ]

    def set_status(
        self, wallet_id: UUID, status: str
    ) -> tuple[Wallet | None, list[WalletValidationError]]:
        if status not in WALLET_STATUSES:
            return None, [
                WalletValidationError(
                    code="status_invalid",
                    message="Status must be ACTIVE, BLOCKED or INACTIVE",
                    field="status",
                )
            ]
        wallet = self._repo.update_status(wallet_id, status, self._clock.now_utc())
        if wallet is None:
            return None, [_not_found()]
        return wallet, []


def _not_found() -> WalletValidationError:
    return WalletValidationError(code="wallet_not_found", message="Wallet not found")
