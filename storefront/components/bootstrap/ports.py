"""Bootstrap component port definitions."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from storefront.domain.entities import User


class UserRepoPort(Protocol):
    """Repository for user persistence."""

    def list_all(self) -> list[User]: ...

    def get_by_email(self, email: str) -> User | None: ...

    def save(self, user: User) -> User: ...


class AuthAdapterPort(Protocol):
    def hash_password(self, password: str) -> str: ...


class TimePort(Protocol):
    def now_utc(self) -> datetime: ...
