from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel

from storefront.adapters.sqlite.repos import SQLiteOptionRepo
from storefront.api.deps import (
    actor_context,
    get_audit_hooks,
    get_option_service,
    get_optional_user,
    get_policy,
    is_admin,
    list_params,
    require_permission,
)
from storefront.api.schemas import dump, not_found, ok, page, raise_for_errors
from storefront.components.options import OptionService
from storefront.core.services.listing import ListParams
from storefront.domain.entities import User
from storefront.domain.policy import PolicyEngine
from storefront.shell.hooks.audit_hooks import AuditAction, AuditHooks, EntityType

router = APIRouter()

manage = require_permission("catalog:manage")


class OptionCreateRequest(BaseModel):
    option_type: str
    option_value: str
    name: str | None = None
    sort_order: int = 0
    is_active: bool = True


class OptionUpdateRequest(BaseModel):
    option_type: str | None = None
    option_value: str | None = None
    name: str | None = None
    sort_order: int | None = None
    is_active: bool | None = None


@router.get("")
def list_options(
    params: ListParams = Depends(
        list_params(SQLiteOptionRepo.sort_columns, default_sort="created_at")
    ),
    option_type: str | None = None,
    is_active: bool | None = None,
    user: User | None = Depends(get_optional_user),
    policy: PolicyEngine = Depends(get_policy),
    service: OptionService = Depends(get_option_service),
) -> dict[str, Any]:
    active = is_active if is_admin(user, policy) else True
    options, total = service.list(params, option_type=option_type, is_active=active)
    return page(options, total, params)


@router.get("/types")
def option_types(service: OptionService = Depends(get_option_service)) -> dict[str, Any]:
    """Active options grouped by type."""
    return ok(
        [{"option_type": g.option_type, "values": list(g.values)} for g in service.types()]
    )


@router.get("/stats")
def option_stats(
    _: User = Depends(manage),
    service: OptionService = Depends(get_option_service),
) -> dict[str, Any]:
    return ok(service.stats())


@router.get("/{identifier}")
def get_option(
    identifier: str,
    user: User | None = Depends(get_optional_user),
    policy: PolicyEngine = Depends(get_policy),
    service: OptionService = Depends(get_option_service),
) -> dict[str, Any]:
    option = service.get(identifier)
    if option is None or (not option.is_active and not is_admin(user, policy)):
        raise not_found("Option not found")
    return ok(dump(option))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_option(
    request: Request,
    body: OptionCreateRequest,
    user: User = Depends(manage),
    service: OptionService = Depends(get_option_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    option, errors = service.create(**body.model_dump())
    if option is None:
        raise_for_errors(errors)
    hooks.log(AuditAction.CREATE, EntityType.OPTION, option.id, actor_context(request, user))
    return ok(dump(option), message="Option created successfully")


@router.put("/{option_id}")
def update_option(
    request: Request,
    option_id: UUID,
    body: OptionUpdateRequest,
    user: User = Depends(manage),
    service: OptionService = Depends(get_option_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    changes = body.model_dump(exclude_unset=True)
    option, errors = service.update(option_id, changes)
    if option is None:
        raise_for_errors(errors)
    hooks.log_update(EntityType.OPTION, option_id, changes, actor_context(request, user))
    return ok(dump(option), message="Option updated successfully")


@router.delete("/{option_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_option(
    request: Request,
    option_id: UUID,
    user: User = Depends(manage),
    service: OptionService = Depends(get_option_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> Response:
    option, errors = service.set_active(option_id, False)
    if option is None:
        raise_for_errors(errors)
    hooks.log(AuditAction.DELETE, EntityType.OPTION, option_id, actor_context(request, user))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{option_id}/activate")
def activate_option(
    request: Request,
    option_id: UUID,
    user: User = Depends(manage),
    service: OptionService = Depends(get_option_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    option, errors = service.set_active(option_id, True)
    if option is None:
        raise_for_errors(errors)
    hooks.log(AuditAction.ACTIVATE, EntityType.OPTION, option_id, actor_context(request, user))
    return ok(dump(option), message="Option activated successfully")


@router.patch("/{option_id}/deactivate")
def deactivate_option(
    request: Request,
    option_id: UUID,
    user: User = Depends(manage),
    service: OptionService = Depends(get_option_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    option, errors = service.set_active(option_id, False)
    if option is None:
        raise_for_errors(errors)
    hooks.log(AuditAction.DEACTIVATE, EntityType.OPTION, option_id, actor_context(request, user))
    return ok(dump(option), message="Option deactivated successfully")
