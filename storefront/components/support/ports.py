from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from storefront.core.services.listing import ListParams
from storefront.domain.entities import SupportTicket


class TicketRepoPort(Protocol):
    def save(self, ticket: SupportTicket) -> SupportTicket: ...
    def get_by_id(self, ticket_id: UUID) -> SupportTicket | None: ...
    def delete(self, ticket_id: UUID) -> None: ...
    def last_sequence_for_year(self, year: int) -> int: ...
    def list(
        self,
        params: ListParams,
        now: datetime,
        user_id: UUID | None = None,
        status: str | None = None,
        priority: str | None = None,
        category: str | None = None,
        assigned_to: UUID | None = None,
        overdue: bool | None = None,
    ) -> tuple[list[SupportTicket], int]: ...
    def count_by_status(self) -> dict[str, int]: ...
    def count_by_priority(self) -> dict[str, int]: ...


class TimePort(Protocol):
    def now_utc(self) -> datetime: ...
