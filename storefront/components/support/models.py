from dataclasses import dataclass, field


@dataclass(frozen=True)
class TicketValidationError:
    code: str
    message: str
    field: str | None = None


@dataclass(frozen=True)
class TicketStats:
    total: int
    overdue: int
    by_status: dict[str, int] = field(default_factory=dict)
    by_priority: dict[str, int] = field(default_factory=dict)
