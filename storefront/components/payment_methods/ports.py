from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from storefront.core.services.listing import ListParams
from storefront.domain.entities import PaymentMethod, PaymentMethodType


class PaymentMethodRepoPort(Protocol):
    def save(self, method: PaymentMethod) -> PaymentMethod: ...
    def get_by_id(self, method_id: UUID) -> PaymentMethod | None: ...
    def list_for_user(
        self,
        user_id: UUID,
        method_type: PaymentMethodType | None = None,
        active_only: bool = True,
    ) -> list[PaymentMethod]: ...
    def get_default(self, user_id: UUID) -> PaymentMethod | None: ...
    def set_default(self, user_id: UUID, method_id: UUID | None, at: datetime) -> None: ...
    def list(
        self,
        params: ListParams,
        user_id: UUID | None = None,
        method_type: PaymentMethodType | None = None,
        is_active: bool | None = None,
    ) -> tuple[list[PaymentMethod], int]: ...


class TokenHasherPort(Protocol):
    def hash_token(self, token: str) -> str: ...


class TimePort(Protocol):
    def now_utc(self) -> datetime: ...
