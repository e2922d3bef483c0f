"""
Support component - tickets, conversation threads and SLA tracking.
"""

from ._impl import (
    ALLOWED_TRANSITIONS,
    SupportService,
    can_transition,
    format_ticket_number,
    is_sla_breached,
    next_priority,
    public_messages,
    validate_ticket_data,
)
from .models import TicketStats, TicketValidationError

__all__ = [
    "ALLOWED_TRANSITIONS",
    "SupportService",
    "TicketStats",
    "TicketValidationError",
    "can_transition",
    "format_ticket_number",
    "is_sla_breached",
    "next_priority",
    "public_messages",
    "validate_ticket_data",
]
