from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from storefront.core.services.listing import ListParams
from storefront.domain.entities import Option


class OptionRepoPort(Protocol):
    def save(self, option: Option) -> Option: ...
    def get_by_id(self, option_id: UUID) -> Option | None: ...
    def get_by_slug(self, slug: str) -> Option | None: ...
    def get_by_type_value(self, option_type: str, option_value: str) -> Option | None: ...
    def slug_exists(self, slug: str) -> bool: ...
    def list(
        self, params: ListParams, option_type: str | None = None, is_active: bool | None = None
    ) -> tuple[list[Option], int]: ...
    def list_active(self) -> list[Option]: ...
    def count_by_active(self) -> dict[str, int]: ...


class TimePort(Protocol):
    def now_utc(self) -> datetime: ...
