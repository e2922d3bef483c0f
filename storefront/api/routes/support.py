from dataclasses import asdict
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status
from pydantic import BaseModel, Field

from storefront.adapters.clock import SystemClock
from storefront.adapters.sqlite.commerce_repos import SQLiteSupportTicketRepo
from storefront.api.deps import (
    actor_context,
    get_audit_hooks,
    get_clock,
    get_support_service,
    list_params,
    require_permission,
)
from storefront.api.schemas import dump, not_found, ok, raise_for_errors
from storefront.components.support import SupportService, is_sla_breached
from storefront.core.services.listing import ListParams, Pagination
from storefront.domain.entities import (
    SupportTicket,
    TicketCategory,
    TicketPriority,
    TicketStatus,
    User,
)
from storefront.shell.hooks.audit_hooks import AuditAction, AuditHooks, EntityType

user_router = APIRouter()
admin_router = APIRouter()

owner = require_permission("support:own")
manage = require_permission("support:manage")

ticket_params = list_params(SQLiteSupportTicketRepo.sort_columns)


class TicketCreateRequest(BaseModel):
    subject: str
    description: str
    category: str
    priority: str = "MEDIUM"
    related_order_number: str | None = None
    related_product_id: UUID | None = None
    tags: list[str] = Field(default_factory=list)


class TicketUpdateRequest(BaseModel):
    subject: str | None = None
    description: str | None = None


class MessageRequest(BaseModel):
    message: str
    attachments: list[str] = Field(default_factory=list)


class AdminMessageRequest(MessageRequest):
    is_internal: bool = False


class RatingRequest(BaseModel):
    rating: int
    feedback: str | None = None


class AdminTicketUpdateRequest(BaseModel):
    status: str | None = None
    priority: str | None = None
    category: str | None = None
    tags: list[str] | None = None
    resolution_note: str | None = None
    resolution_type: str | None = None


class AssignRequest(BaseModel):
    assigned_to: UUID


def ticket_view(ticket: SupportTicket, clock: SystemClock) -> dict[str, Any]:
    data = dump(ticket)
    data["is_sla_breached"] = is_sla_breached(ticket, clock.now_utc())
    return data


# --- My tickets ---


@user_router.post("", status_code=status.HTTP_201_CREATED)
def create_ticket(
    body: TicketCreateRequest,
    user: User = Depends(owner),
    service: SupportService = Depends(get_support_service),
    clock: SystemClock = Depends(get_clock),
) -> dict[str, Any]:
    ticket, errors = service.create(user, **body.model_dump())
    if ticket is None:
        raise_for_errors(errors)
    return ok(ticket_view(ticket, clock), message="Support ticket created successfully")


@user_router.get("")
def my_tickets(
    params: ListParams = Depends(ticket_params),
    ticket_status: TicketStatus | None = Query(default=None, alias="status"),
    category: TicketCategory | None = None,
    user: User = Depends(owner),
    service: SupportService = Depends(get_support_service),
    clock: SystemClock = Depends(get_clock),
) -> dict[str, Any]:
    tickets, total = service.list_for_user(
        user.id, params, status=ticket_status, category=category
    )
    return ok(
        [ticket_view(t, clock) for t in tickets], pagination=Pagination.build(params, total)
    )


@user_router.get("/{ticket_id}")
def my_ticket(
    ticket_id: UUID,
    user: User = Depends(owner),
    service: SupportService = Depends(get_support_service),
    clock: SystemClock = Depends(get_clock),
) -> dict[str, Any]:
    ticket = service.get_for_user(user.id, ticket_id)
    if ticket is None:
        raise not_found("Support ticket not found")
    return ok(ticket_view(ticket, clock))


@user_router.post("/{ticket_id}/messages")
def add_my_message(
    ticket_id: UUID,
    body: MessageRequest,
    user: User = Depends(owner),
    service: SupportService = Depends(get_support_service),
    clock: SystemClock = Depends(get_clock),
) -> dict[str, Any]:
    ticket, errors = service.add_user_message(user, ticket_id, body.message, body.attachments)
    if ticket is None:
        raise_for_errors(errors)
    return ok(ticket_view(ticket, clock), message="Message added")


@user_router.patch("/{ticket_id}")
def update_my_ticket(
    ticket_id: UUID,
    body: TicketUpdateRequest,
    user: User = Depends(owner),
    service: SupportService = Depends(get_support_service),
    clock: SystemClock = Depends(get_clock),
) -> dict[str, Any]:
    ticket, errors = service.update_own(user.id, ticket_id, body.model_dump(exclude_unset=True))
    if ticket is None:
        raise_for_errors(errors)
    return ok(ticket_view(ticket, clock), message="Support ticket updated successfully")


@user_router.post("/{ticket_id}/close")
def close_my_ticket(
    ticket_id: UUID,
    user: User = Depends(owner),
    service: SupportService = Depends(get_support_service),
    clock: SystemClock = Depends(get_clock),
) -> dict[str, Any]:
    ticket, errors = service.close_own(user.id, ticket_id)
    if ticket is None:
        raise_for_errors(errors)
    return ok(ticket_view(ticket, clock), message="Support ticket closed")


@user_router.post("/{ticket_id}/rate")
def rate_my_ticket(
    ticket_id: UUID,
    body: RatingRequest,
    user: User = Depends(owner),
    service: SupportService = Depends(get_support_service),
    clock: SystemClock = Depends(get_clock),
) -> dict[str, Any]:
    ticket, errors = service.rate(user.id, ticket_id, body.rating, body.feedback)
    if ticket is None:
        raise_for_errors(errors)
    return ok(ticket_view(ticket, clock), message="Thank you for your feedback")


# --- Admin ---


@admin_router.get("")
def list_tickets(
    params: ListParams = Depends(ticket_params),
    ticket_status: TicketStatus | None = Query(default=None, alias="status"),
    priority: TicketPriority | None = None,
    category: TicketCategory | None = None,
    assigned_to: UUID | None = None,
    overdue: bool | None = None,
    _: User = Depends(manage),
    service: SupportService = Depends(get_support_service),
    clock: SystemClock = Depends(get_clock),
) -> dict[str, Any]:
    tickets, total = service.list(
        params,
        status=ticket_status,
        priority=priority,
        category=category,
        assigned_to=assigned_to,
        overdue=overdue,
    )
    return ok(
        [ticket_view(t, clock) for t in tickets], pagination=Pagination.build(params, total)
    )


@admin_router.get("/stats")
def ticket_stats(
    _: User = Depends(manage),
    service: SupportService = Depends(get_support_service),
) -> dict[str, Any]:
    return ok(asdict(service.stats()))


@admin_router.get("/{ticket_id}")
def get_ticket(
    ticket_id: UUID,
    _: User = Depends(manage),
    service: SupportService = Depends(get_support_service),
    clock: SystemClock = Depends(get_clock),
) -> dict[str, Any]:
    ticket = service.get(ticket_id)
    if ticket is None:
        raise not_found("Support ticket not found")
    return ok(ticket_view(ticket, clock))


@admin_router.patch("/{ticket_id}")
def update_ticket(
    request: Request,
    ticket_id: UUID,
    body: AdminTicketUpdateRequest,
    user: User = Depends(manage),
    service: SupportService = Depends(get_support_service),
    clock: SystemClock = Depends(get_clock),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    changes = body.model_dump(exclude_unset=True)
    ticket, errors = service.update(ticket_id, changes, actor_id=user.id)
    if ticket is None:
        raise_for_errors(errors)
    hooks.log_update(EntityType.SUPPORT_TICKET, ticket_id, changes, actor_context(request, user))
    return ok(ticket_view(ticket, clock), message="Support ticket updated successfully")


@admin_router.post("/{ticket_id}/assign")
def assign_ticket(
    request: Request,
    ticket_id: UUID,
    body: AssignRequest,
    user: User = Depends(manage),
    service: SupportService = Depends(get_support_service),
    clock: SystemClock = Depends(get_clock),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    ticket, errors = service.assign(ticket_id, body.assigned_to)
    if ticket is None:
        raise_for_errors(errors)
    hooks.log(
        AuditAction.ASSIGN,
        EntityType.SUPPORT_TICKET,
        ticket_id,
        actor_context(request, user),
        metadata={"assigned_to": str(body.assigned_to)},
    )
    return ok(ticket_view(ticket, clock), message="Support ticket assigned")


@admin_router.post("/{ticket_id}/messages")
def add_admin_message(
    ticket_id: UUID,
    body: AdminMessageRequest,
    user: User = Depends(manage),
    service: SupportService = Depends(get_support_service),
    clock: SystemClock = Depends(get_clock),
) -> dict[str, Any]:
    ticket, errors = service.add_admin_message(
        user, ticket_id, body.message, is_internal=body.is_internal, attachments=body.attachments
    )
    if ticket is None:
        raise_for_errors(errors)
    return ok(ticket_view(ticket, clock), message="Message added")


@admin_router.post("/{ticket_id}/escalate")
def escalate_ticket(
    request: Request,
    ticket_id: UUID,
    user: User = Depends(manage),
    service: SupportService = Depends(get_support_service),
    clock: SystemClock = Depends(get_clock),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    ticket, errors = service.escalate(ticket_id)
    if ticket is None:
        raise_for_errors(errors)
    hooks.log(
        AuditAction.UPDATE,
        EntityType.SUPPORT_TICKET,
        ticket_id,
        actor_context(request, user),
        metadata={"priority": ticket.priority},
    )
    return ok(ticket_view(ticket, clock), message=f"Ticket escalated to {ticket.priority}")


@admin_router.delete("/{ticket_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_ticket(
    request: Request,
    ticket_id: UUID,
    user: User = Depends(manage),
    service: SupportService = Depends(get_support_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> Response:
    deleted, errors = service.delete(ticket_id)
    if not deleted:
        raise_for_errors(errors)
    hooks.log(
        AuditAction.DELETE, EntityType.SUPPORT_TICKET, ticket_id, actor_context(request, user)
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
