"""
SupportService - customer support tickets.

Tickets follow a fixed status graph (see ALLOWED_TRANSITIONS); CLOSED and
CANCELLED are terminal. Response and resolution deadlines are derived from
the priority using the hours configured in rules.yaml.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime, timedelta
from typing import Any, get_args
from uuid import UUID, uuid4

from storefront.core.services.listing import ListParams
from storefront.domain.entities import (
    MessageRole,
    ResolutionType,
    SupportTicket,
    TicketCategory,
    TicketMessage,
    TicketPriority,
    TicketStatus,
    User,
)

from .models import TicketStats, TicketValidationError
from .ports import TicketRepoPort, TimePort

logger = logging.getLogger(__name__)

SUBJECT_MAX = 200
DESCRIPTION_MAX = 5000
MESSAGE_MAX = 5000
FEEDBACK_MAX = 1000
RESOLUTION_NOTE_MAX = 2000
ORDER_NUMBER_MAX = 50
MAX_TAGS = 10

CATEGORIES: tuple[str, ...] = get_args(TicketCategory)
PRIORITIES: tuple[str, ...] = get_args(TicketPriority)
STATUSES: tuple[str, ...] = get_args(TicketStatus)
RESOLUTION_TYPES: tuple[str, ...] = get_args(ResolutionType)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "OPEN": frozenset({"IN_PROGRESS", "PENDING_USER", "RESOLVED", "CLOSED", "CANCELLED"}),
    "IN_PROGRESS": frozenset({"PENDING_USER", "RESOLVED", "CLOSED"}),
    "PENDING_USER": frozenset({"IN_PROGRESS", "RESOLVED", "CLOSED"}),
    "RESOLVED": frozenset({"CLOSED", "IN_PROGRESS"}),
    "CLOSED": frozenset(),
    "CANCELLED": frozenset(),
}
TERMINAL = ("CLOSED", "CANCELLED")


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def next_priority(priority: str) -> str | None:
    index = PRIORITIES.index(priority)
    return PRIORITIES[index + 1] if index + 1 < len(PRIORITIES) else None


def format_ticket_number(year: int, sequence: int) -> str:
    return f"TKT-{year}-{sequence:06d}"


def is_sla_breached(ticket: SupportTicket, now: datetime) -> bool:
    return ticket.is_overdue(now)


def public_messages(ticket: SupportTicket) -> SupportTicket:
    """Copy of the ticket with internal notes removed, for the ticket owner."""
    return ticket.model_copy(
        update={"messages": [m for m in ticket.messages if not m.is_internal]}
    )


def validate_ticket_data(
    subject: str | None = None,
    description: str | None = None,
    category: str | None = None,
    priority: str | None = None,
    related_order_number: str | None = None,
    tags: Sequence[str] | None = None,
) -> list[TicketValidationError]:
    errors: list[TicketValidationError] = []

    if subject is not None:
        stripped = subject.strip()
        if not stripped or len(stripped) > SUBJECT_MAX:
            errors.append(
                TicketValidationError(
                    code="subject_invalid",
                    message=f"Subject is required and cannot exceed {SUBJECT_MAX} characters",
                    field="subject",
                )
            )
    if description is not None:
        stripped = description.strip()
        if not stripped or len(stripped) > DESCRIPTION_MAX:
            errors.append(
                TicketValidationError(
                    code="description_invalid",
                    message=(
                        f"Description is required and cannot exceed {DESCRIPTION_MAX} characters"
                    ),
                    field="description",
                )
            )
    if category is not None and category not in CATEGORIES:
        errors.append(
            TicketValidationError(
                code="category_invalid", message="Invalid ticket category", field="category"
            )
        )
    if priority is not None and priority not in PRIORITIES:
        errors.append(
            TicketValidationError(
                code="priority_invalid",
                message="Priority must be LOW, MEDIUM, HIGH or URGENT",
                field="priority",
            )
        )
    if related_order_number is not None and len(related_order_number.strip()) > ORDER_NUMBER_MAX:
        errors.append(
            TicketValidationError(
                code="related_order_number_too_long",
                message=f"Order number cannot exceed {ORDER_NUMBER_MAX} characters",
                field="related_order_number",
            )
        )
    if tags is not None and len(tags) > MAX_TAGS:
        errors.append(
            TicketValidationError(
                code="too_many_tags",
                message=f"A ticket can have at most {MAX_TAGS} tags",
                field="tags",
            )
        )
    return errors


def _validate_message(message: str) -> list[TicketValidationError]:
    stripped = (message or "").strip()
    if stripped and len(stripped) <= MESSAGE_MAX:
        return []
    return [
        TicketValidationError(
            code="message_invalid",
            message=f"Message is required and cannot exceed {MESSAGE_MAX} characters",
            field="message",
        )
    ]


class SupportService:
    def __init__(
        self,
        repo: TicketRepoPort,
        clock: TimePort,
        response_hours: Mapping[str, int],
        resolution_hours: Mapping[str, int],
    ) -> None:
        self._repo = repo
        self._clock = clock
        self._response_hours = response_hours
        self._resolution_hours = resolution_hours

    def _apply_sla(self, ticket: SupportTicket) -> None:
        ticket.response_due = ticket.created_at + timedelta(
            hours=self._response_hours.get(ticket.priority, 24)
        )
        ticket.resolution_due = ticket.created_at + timedelta(
            hours=self._resolution_hours.get(ticket.priority, 72)
        )

    def _transition(
        self, ticket: SupportTicket, target: str, actor_id: UUID | None, now: datetime
    ) -> TicketValidationError | None:
        if target == ticket.status:
            return None
        if not can_transition(ticket.status, target):
            return TicketValidationError(
                code="status_transition_invalid",
                message=f"Cannot change status from {ticket.status} to {target}",
                field="status",
            )
        if target == "RESOLVED":
            ticket.resolved_at = now
            ticket.resolved_by = actor_id
        elif target == "CLOSED":
            ticket.closed_at = now
        elif ticket.status == "RESOLVED":
            # reopened
            ticket.resolved_at = None
            ticket.resolved_by = None
        ticket.status = target  # type: ignore[assignment]
        return None

    # --- User ---

    def create(
        self,
        user: User,
        subject: str,
        description: str,
        category: str,
        priority: str = "MEDIUM",
        related_order_number: str | None = None,
        related_product_id: UUID | None = None,
        tags: Sequence[str] = (),
    ) -> tuple[SupportTicket | None, list[TicketValidationError]]:
        errors = validate_ticket_data(
            subject, description, category, priority, related_order_number, tags
        )
        if errors:
            return None, errors

        now = self._clock.now_utc()
        sequence = self._repo.last_sequence_for_year(now.year) + 1
        ticket = SupportTicket(
            id=uuid4(),
            ticket_number=format_ticket_number(now.year, sequence),
            subject=subject.strip(),
            description=description.strip(),
            user_id=user.id,
            user_name=user.name,
            user_email=user.email,
            category=category,  # type: ignore[arg-type]
            priority=priority,  # type: ignore[arg-type]
            related_order_number=(related_order_number or "").strip() or None,
            related_product_id=related_product_id,
            tags=_clean_tags(tags),
            created_at=now,
            updated_at=now,
        )
        self._apply_sla(ticket)
        logger.info("Ticket %s opened by user %s", ticket.ticket_number, user.id)
        return self._repo.save(ticket), []

    def list_for_user(
        self,
        user_id: UUID,
        params: ListParams,
        status: str | None = None,
        category: str | None = None,
    ) -> tuple[list[SupportTicket], int]:
        tickets, total = self._repo.list(
            params, self._clock.now_utc(), user_id=user_id, status=status, category=category
        )
        return [public_messages(t) for t in tickets], total

    def get_for_user(self, user_id: UUID, ticket_id: UUID) -> SupportTicket | None:
        ticket = self._repo.get_by_id(ticket_id)
        if ticket is None or ticket.user_id != user_id:
            return None
        return public_messages(ticket)

    def add_user_message(
        self,
        user: User,
        ticket_id: UUID,
        message: str,
        attachments: Sequence[str] = (),
    ) -> tuple[SupportTicket | None, list[TicketValidationError]]:
        ticket = self._repo.get_by_id(ticket_id)
        if ticket is None or ticket.user_id != user.id:
            return None, [_not_found()]
        errors = _validate_message(message)
        if errors:
            return None, errors
        if ticket.status in TERMINAL:
            return None, [_closed()]

        now = self._clock.now_utc()
        ticket.messages.append(_message(user, "user", message, attachments, False, now))
        if ticket.status == "PENDING_USER":
            ticket.status = "IN_PROGRESS"
        ticket.updated_at = now
        return public_messages(self._repo.save(ticket)), []

    def update_own(
        self, user_id: UUID, ticket_id: UUID, updates: dict[str, Any]
    ) -> tuple[SupportTicket | None, list[TicketValidationError]]:
        ticket = self._repo.get_by_id(ticket_id)
        if ticket is None or ticket.user_id != user_id:
            return None, [_not_found()]
        if ticket.status != "OPEN":
            return None, [
                TicketValidationError(
                    code="ticket_not_editable", message="Only open tickets can be edited"
                )
            ]
        errors = validate_ticket_data(
            subject=updates.get("subject"), description=updates.get("description")
        )
        if errors:
            return None, errors

        if updates.get("subject") is not None:
            ticket.subject = updates["subject"].strip()
        if updates.get("description") is not None:
            ticket.description = updates["description"].strip()
        ticket.updated_at = self._clock.now_utc()
        return public_messages(self._repo.save(ticket)), []

    def close_own(
        self, user_id: UUID, ticket_id: UUID
    ) -> tuple[SupportTicket | None, list[TicketValidationError]]:
        ticket = self._repo.get_by_id(ticket_id)
        if ticket is None or ticket.user_id != user_id:
            return None, [_not_found()]
        now = self._clock.now_utc()
        error = self._transition(ticket, "CLOSED", user_id, now)
        if error:
            return None, [error]
        ticket.updated_at = now
        return public_messages(self._repo.save(ticket)), []

    def rate(
        self, user_id: UUID, ticket_id: UUID, rating: int, feedback: str | None = None
    ) -> tuple[SupportTicket | None, list[TicketValidationError]]:
        ticket = self._repo.get_by_id(ticket_id)
        if ticket is None or ticket.user_id != user_id:
            return None, [_not_found()]
        if ticket.status not in ("RESOLVED", "CLOSED"):
            return None, [
                TicketValidationError(
                    code="ticket_not_resolved",
                    message="Only resolved or closed tickets can be rated",
                )
            ]
        if not 1 <= rating <= 5:
            return None, [
                TicketValidationError(
                    code="rating_range", message="Rating must be between 1 and 5", field="rating"
                )
            ]
        if feedback is not None and len(feedback.strip()) > FEEDBACK_MAX:
            return None, [
                TicketValidationError(
                    code="feedback_too_long",
                    message=f"Feedback cannot exceed {FEEDBACK_MAX} characters",
                    field="feedback",
                )
            ]

        ticket.satisfaction_rating = rating
        ticket.satisfaction_feedback = (feedback or "").strip() or None
        ticket.updated_at = self._clock.now_utc()
        return public_messages(self._repo.save(ticket)), []

    # --- Admin ---

    def list(
        self,
        params: ListParams,
        status: str | None = None,
        priority: str | None = None,
        category: str | None = None,
        assigned_to: UUID | None = None,
        overdue: bool | None = None,
    ) -> tuple[list[SupportTicket], int]:
        return self._repo.list(
            params,
            self._clock.now_utc(),
            status=status,
            priority=priority,
            category=category,
            assigned_to=assigned_to,
            overdue=overdue,
        )

    def get(self, ticket_id: UUID) -> SupportTicket | None:
        return self._repo.get_by_id(ticket_id)

    def update(
        self, ticket_id: UUID, updates: dict[str, Any], actor_id: UUID
    ) -> tuple[SupportTicket | None, list[TicketValidationError]]:
        ticket = self._repo.get_by_id(ticket_id)
        if ticket is None:
            return None, [_not_found()]

        errors = validate_ticket_data(
            category=updates.get("category"),
            priority=updates.get("priority"),
            tags=updates.get("tags"),
        )
        status = updates.get("status")
        if status is not None and status not in STATUSES:
            errors.append(
                TicketValidationError(
                    code="status_invalid", message="Invalid ticket status", field="status"
                )
            )
        resolution_type = updates.get("resolution_type")
        if resolution_type is not None and resolution_type not in RESOLUTION_TYPES:
            errors.append(
                TicketValidationError(
                    code="resolution_type_invalid",
                    message="Invalid resolution type",
                    field="resolution_type",
                )
            )
        note = updates.get("resolution_note")
        if note is not None and len(note.strip()) > RESOLUTION_NOTE_MAX:
            errors.append(
                TicketValidationError(
                    code="resolution_note_too_long",
                    message=f"Resolution note cannot exceed {RESOLUTION_NOTE_MAX} characters",
                    field="resolution_note",
                )
            )
        if errors:
            return None, errors

        now = self._clock.now_utc()
        if status is not None:
            error = self._transition(ticket, status, actor_id, now)
            if error:
                return None, [error]
        if updates.get("priority") is not None and updates["priority"] != ticket.priority:
            ticket.priority = updates["priority"]
            self._apply_sla(ticket)
        if updates.get("category") is not None:
            ticket.category = updates["category"]
        if updates.get("tags") is not None:
            ticket.tags = _clean_tags(updates["tags"])
        if note is not None:
            ticket.resolution_note = note.strip() or None
        if resolution_type is not None:
            ticket.resolution_type = resolution_type

        ticket.updated_at = now
        return self._repo.save(ticket), []

    def assign(
        self, ticket_id: UUID, assignee_id: UUID
    ) -> tuple[SupportTicket | None, list[TicketValidationError]]:
        ticket = self._repo.get_by_id(ticket_id)
        if ticket is None:
            return None, [_not_found()]
        if ticket.status in TERMINAL:
            return None, [_closed()]
        now = self._clock.now_utc()
        ticket.assigned_to = assignee_id
        ticket.assigned_at = now
        if ticket.status == "OPEN":
            ticket.status = "IN_PROGRESS"
        ticket.updated_at = now
        return self._repo.save(ticket), []

    def add_admin_message(
        self,
        admin: User,
        ticket_id: UUID,
        message: str,
        is_internal: bool = False,
        attachments: Sequence[str] = (),
    ) -> tuple[SupportTicket | None, list[TicketValidationError]]:
        ticket = self._repo.get_by_id(ticket_id)
        if ticket is None:
            return None, [_not_found()]
        errors = _validate_message(message)
        if errors:
            return None, errors
        if ticket.status in TERMINAL:
            return None, [_closed()]

        now = self._clock.now_utc()
        ticket.messages.append(_message(admin, "admin", message, attachments, is_internal, now))
        if not is_internal and ticket.first_response_at is None:
            ticket.first_response_at = now
        ticket.updated_at = now
        return self._repo.save(ticket), []

    def escalate(
        self, ticket_id: UUID
    ) -> tuple[SupportTicket | None, list[TicketValidationError]]:
        ticket = self._repo.get_by_id(ticket_id)
        if ticket is None:
            return None, [_not_found()]
        if ticket.status in TERMINAL:
            return None, [_closed()]
        raised = next_priority(ticket.priority)
        if raised is None:
            return None, [
                TicketValidationError(
                    code="priority_at_maximum", message="Ticket is already at URGENT priority"
                )
            ]
        ticket.priority = raised  # type: ignore[assignment]
        self._apply_sla(ticket)
        ticket.updated_at = self._clock.now_utc()
        logger.info("Ticket %s escalated to %s", ticket.ticket_number, raised)
        return self._repo.save(ticket), []

    def delete(self, ticket_id: UUID) -> tuple[bool, list[TicketValidationError]]:
        if self._repo.get_by_id(ticket_id) is None:
            return False, [_not_found()]
        self._repo.delete(ticket_id)
        return True, []

    def stats(self) -> TicketStats:
        by_status = {status: 0 for status in STATUSES} | self._repo.count_by_status()
        by_priority = {p: 0 for p in PRIORITIES} | self._repo.count_by_priority()
        _, overdue = self._repo.list(ListParams(limit=1), self._clock.now_utc(), overdue=True)
        return TicketStats(
            total=sum(by_status.values()),
            overdue=overdue,
            by_status=by_status,
            by_priority=by_priority,
        )


def _message(
    sender: User,
    role: MessageRole,
    text: str,
    attachments: Sequence[str],
    is_internal: bool,
    now: datetime,
) -> TicketMessage:
    return TicketMessage(
        id=uuid4(),
        sender_id=sender.id,
        sender_name=sender.name,
        sender_role=role,
        message=text.strip(),
        attachments=[a.strip() for a in attachments if a.strip()],
        is_internal=is_internal,
        created_at=now,
    )


def _clean_tags(tags: Sequence[str]) -> list[str]:
    return list(dict.fromkeys(t.strip().lower() for t in tags if t.strip()))


def _not_found() -> TicketValidationError:
    return TicketValidationError(code="ticket_not_found", message="Support ticket not found")


def _closed() -> TicketValidationError:
    return TicketValidationError(
        code="ticket_closed", message="Ticket is closed or cancelled"
    )
