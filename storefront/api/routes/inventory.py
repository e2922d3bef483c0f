from dataclasses import asdict
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel

from storefront.adapters.sqlite.repos import SQLiteInventoryRepo
from storefront.api.deps import (
    actor_context,
    get_audit_hooks,
    get_inventory_service,
    list_params,
    require_permission,
)
from storefront.api.schemas import dump, not_found, ok, page, raise_for_errors
from storefront.components.inventory import (
    AdjustStockInput,
    CreateInventoryInput,
    InventoryService,
    ListInventoryInput,
    UpdateInventoryInput,
    run_adjust,
    run_create,
    run_list,
    run_update,
)
from storefront.core.services.listing import ListParams
from storefront.domain.entities import User
from storefront.domain.stock import StockStatus
from storefront.shell.hooks.audit_hooks import AuditAction, AuditHooks, EntityType

router = APIRouter()

manage = require_permission("inventory:manage")


class InventoryCreateRequest(BaseModel):
    product_variant_id: UUID
    stock_quantity: int = 0
    min_stock_level: int = 0
    location: str | None = None
    notes: str | None = None
    is_active: bool = True


class InventoryUpdateRequest(BaseModel):
    stock_quantity: int | None = None
    min_stock_level: int | None = None
    location: str | None = None
    notes: str | None = None
    is_active: bool | None = None


class StockAdjustRequest(BaseModel):
    quantity: int
    notes: str | None = None


@router.get("")
def list_inventory(
    params: ListParams = Depends(list_params(SQLiteInventoryRepo.sort_columns)),
    is_active: bool | None = None,
    stock_status: StockStatus | None = None,
    location: str | None = None,
    product_id: UUID | None = None,
    _: User = Depends(manage),
    service: InventoryService = Depends(get_inventory_service),
) -> dict[str, Any]:
    result = run_list(
        ListInventoryInput(
            params=params,
            is_active=is_active,
            stock_status=stock_status,
            location=location,
            product_id=product_id,
        ),
        service,
    )
    return page(result.records, result.total, params)


@router.get("/summary")
def inventory_summary(
    _: User = Depends(manage),
    service: InventoryService = Depends(get_inventory_service),
) -> dict[str, Any]:
    return ok(asdict(service.summary()))


@router.get("/variant/{variant_id}")
def get_inventory_by_variant(
    variant_id: UUID,
    _: User = Depends(manage),
    service: InventoryService = Depends(get_inventory_service),
) -> dict[str, Any]:
    record = service.get_by_variant(variant_id)
    if record is None:
        raise not_found("Inventory record not found")
    return ok(dump(record))


@router.get("/{record_id}")
def get_inventory(
    record_id: UUID,
    _: User = Depends(manage),
    service: InventoryService = Depends(get_inventory_service),
) -> dict[str, Any]:
    record = service.get(record_id)
    if record is None:
        raise not_found("Inventory record not found")
    return ok(dump(record))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_inventory(
    request: Request,
    body: InventoryCreateRequest,
    user: User = Depends(manage),
    service: InventoryService = Depends(get_inventory_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    result = run_create(CreateInventoryInput(**body.model_dump()), service)
    if result.record is None:
        raise_for_errors(result.errors)
    hooks.log(
        AuditAction.CREATE, EntityType.INVENTORY, result.record.id, actor_context(request, user)
    )
    return ok(dump(result.record), message="Inventory record created successfully")


@router.put("/{record_id}")
def update_inventory(
    request: Request,
    record_id: UUID,
    body: InventoryUpdateRequest,
    user: User = Depends(manage),
    service: InventoryService = Depends(get_inventory_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    changes = body.model_dump(exclude_unset=True)
    result = run_update(UpdateInventoryInput(inventory_id=record_id, changes=changes), service)
    if result.record is None:
        raise_for_errors(result.errors)
    hooks.log_update(EntityType.INVENTORY, record_id, changes, actor_context(request, user))
    return ok(dump(result.record), message="Inventory record updated successfully")


@router.patch("/{record_id}/adjust")
def adjust_stock(
    request: Request,
    record_id: UUID,
    body: StockAdjustRequest,
    user: User = Depends(manage),
    service: InventoryService = Depends(get_inventory_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    result = run_adjust(
        AdjustStockInput(inventory_id=record_id, quantity=body.quantity, notes=body.notes),
        service,
    )
    if result.record is None:
        raise_for_errors(result.errors)
    hooks.log(
        AuditAction.ADJUST,
        EntityType.INVENTORY,
        record_id,
        actor_context(request, user),
        metadata={"quantity": body.quantity, "stock_quantity": result.record.stock_quantity},
    )
    return ok(dump(result.record), message="Stock adjusted successfully")


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_inventory(
    request: Request,
    record_id: UUID,
    user: User = Depends(manage),
    service: InventoryService = Depends(get_inventory_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> Response:
    record, errors = service.set_active(record_id, False)
    if record is None:
        raise_for_errors(errors)
    hooks.log(AuditAction.DELETE, EntityType.INVENTORY, record_id, actor_context(request, user))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{record_id}/activate")
def activate_inventory(
    request: Request,
    record_id: UUID,
    user: User = Depends(manage),
    service: InventoryService = Depends(get_inventory_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    record, errors = service.set_active(record_id, True)
    if record is None:
        raise_for_errors(errors)
    hooks.log(AuditAction.ACTIVATE, EntityType.INVENTORY, record_id, actor_context(request, user))
    return ok(dump(record), message="Inventory record activated successfully")


@router.patch("/{record_id}/deactivate")
def deactivate_inventory(
    request: Request,
    record_id: UUID,
    user: User = Depends(manage),
    service: InventoryService = Depends(get_inventory_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    record, errors = service.set_active(record_id, False)
    if record is None:
        raise_for_errors(errors)
    hooks.log(
        AuditAction.DEACTIVATE, EntityType.INVENTORY, record_id, actor_context(request, user)
    )
    return ok(dump(record), message="Inventory record deactivated successfully")
