from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel

from storefront.adapters.sqlite.repos import SQLiteBrandRepo
from storefront.api.deps import (
    actor_context,
    get_audit_hooks,
    get_brand_service,
    get_optional_user,
    get_policy,
    is_admin,
    list_params,
    require_permission,
)
from storefront.api.schemas import dump, ok, page, raise_for_errors
from storefront.components.brands import (
    BrandService,
    CreateBrandInput,
    GetBrandInput,
    ListBrandsInput,
    SetBrandActiveInput,
    UpdateBrandInput,
    run_create,
    run_get,
    run_list,
    run_set_active,
    run_update,
)
from storefront.core.services.listing import ListParams
from storefront.domain.entities import User
from storefront.domain.policy import PolicyEngine
from storefront.shell.hooks.audit_hooks import AuditAction, AuditHooks, EntityType

router = APIRouter()

manage = require_permission("catalog:manage")


class BrandCreateRequest(BaseModel):
    name: str
    description: str | None = None
    logo_url: str | None = None
    website: str | None = None
    contact_email: str | None = None
    is_active: bool = True


class BrandUpdateRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    logo_url: str | None = None
    website: str | None = None
    contact_email: str | None = None
    is_active: bool | None = None


@router.get("")
def list_brands(
    params: ListParams = Depends(list_params(SQLiteBrandRepo.sort_columns)),
    is_active: bool | None = None,
    user: User | None = Depends(get_optional_user),
    policy: PolicyEngine = Depends(get_policy),
    service: BrandService = Depends(get_brand_service),
) -> dict[str, Any]:
    # Visitors only ever see active brands
    active = is_active if is_admin(user, policy) else True
    result = run_list(ListBrandsInput(params=params, is_active=active), service)
    return page(result.brands, result.total, params)


@router.get("/stats")
def brand_stats(
    _: User = Depends(manage),
    service: BrandService = Depends(get_brand_service),
) -> dict[str, Any]:
    return ok(service.stats())


@router.get("/{identifier}")
def get_brand(
    identifier: str,
    user: User | None = Depends(get_optional_user),
    policy: PolicyEngine = Depends(get_policy),
    service: BrandService = Depends(get_brand_service),
) -> dict[str, Any]:
    result = run_get(
        GetBrandInput(identifier=identifier, include_inactive=is_admin(user, policy)), service
    )
    if not result.success:
        raise_for_errors(result.errors)
    return ok(dump(result.brand))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_brand(
    request: Request,
    body: BrandCreateRequest,
    user: User = Depends(manage),
    service: BrandService = Depends(get_brand_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    result = run_create(CreateBrandInput(**body.model_dump()), service)
    if not result.success or result.brand is None:
        raise_for_errors(result.errors)
    hooks.log(AuditAction.CREATE, EntityType.BRAND, result.brand.id, actor_context(request, user))
    return ok(dump(result.brand), message="Brand created successfully")


@router.put("/{brand_id}")
def update_brand(
    request: Request,
    brand_id: UUID,
    body: BrandUpdateRequest,
    user: User = Depends(manage),
    service: BrandService = Depends(get_brand_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    changes = body.model_dump(exclude_unset=True)
    result = run_update(UpdateBrandInput(brand_id=brand_id, changes=changes), service)
    if not result.success:
        raise_for_errors(result.errors)
    hooks.log_update(EntityType.BRAND, brand_id, changes, actor_context(request, user))
    return ok(dump(result.brand), message="Brand updated successfully")


@router.delete("/{brand_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_brand(
    request: Request,
    brand_id: UUID,
    user: User = Depends(manage),
    service: BrandService = Depends(get_brand_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> Response:
    deleted, errors = service.delete(brand_id)
    if not deleted:
        raise_for_errors(errors)
    hooks.log(AuditAction.DELETE, EntityType.BRAND, brand_id, actor_context(request, user))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _toggle(
    request: Request,
    brand_id: UUID,
    is_active: bool,
    user: User,
    service: BrandService,
    hooks: AuditHooks,
) -> dict[str, Any]:
    result = run_set_active(SetBrandActiveInput(brand_id=brand_id, is_active=is_active), service)
    if not result.success:
        raise_for_errors(result.errors)
    action = AuditAction.ACTIVATE if is_active else AuditAction.DEACTIVATE
    hooks.log(action, EntityType.BRAND, brand_id, actor_context(request, user))
    state = "activated" if is_active else "deactivated"
    return ok(dump(result.brand), message=f"Brand {state} successfully")


@router.patch("/{brand_id}/activate")
def activate_brand(
    request: Request,
    brand_id: UUID,
    user: User = Depends(manage),
    service: BrandService = Depends(get_brand_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    return _toggle(request, brand_id, True, user, service, hooks)


@router.patch("/{brand_id}/deactivate")
def deactivate_brand(
    request: Request,
    brand_id: UUID,
    user: User = Depends(manage),
    service: BrandService = Depends(get_brand_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    return _toggle(request, brand_id, False, user, service, hooks)
