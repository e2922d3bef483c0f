from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from storefront.core.services.listing import ListParams
from storefront.domain.entities import Wallet, WalletTransaction


class WalletRepoPort(Protocol):
    def save(self, wallet: Wallet) -> Wallet: ...
    def get_by_id(self, wallet_id: UUID) -> Wallet | None: ...
    def get_by_user(self, user_id: UUID) -> Wallet | None: ...
    def list(
        self,
        params: ListParams,
        status: str | None = None,
        currency: str | None = None,
        min_balance: Decimal | None = None,
        max_balance: Decimal | None = None,
    ) -> tuple[list[Wallet], int]: ...
    def list_all(self) -> list[Wallet]: ...
    def update_status(self, wallet_id: UUID, status: str, at: datetime) -> Wallet | None: ...
    def apply_transaction(
        self, wallet: Wallet, transaction: WalletTransaction, expected_version: int
    ) -> bool: ...


class TransactionRepoPort(Protocol):
    def list(
        self,
        params: ListParams,
        wallet_id: UUID | None = None,
        user_id: UUID | None = None,
        transaction_type: str | None = None,
        status: str | None = None,
    ) -> tuple[list[WalletTransaction], int]: ...


class TimePort(Protocol):
    def now_utc(self) -> datetime: ...
