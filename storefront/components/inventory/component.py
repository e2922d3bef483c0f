"""
Inventory component - Shell Layer.
"""

from __future__ import annotations

from storefront.domain.entities import InventoryRecord

from ._impl import InventoryService
from .models import (
    AdjustStockInput,
    CreateInventoryInput,
    InventoryListOutput,
    InventoryOperationOutput,
    InventoryValidationError,
    ListInventoryInput,
    UpdateInventoryInput,
)


def _output(
    record: InventoryRecord | None, errors: list[InventoryValidationError]
) -> InventoryOperationOutput:
    return InventoryOperationOutput(record=record, errors=tuple(errors), success=record is not None)


def run_list(input_data: ListInventoryInput, service: InventoryService) -> InventoryListOutput:
    records, total = service.list(
        input_data.params,
        is_active=input_data.is_active,
        stock_status=input_data.stock_status,
        location=input_data.location,
        product_id=input_data.product_id,
    )
    return InventoryListOutput(records=tuple(records), total=total)


def run_create(
    input_data: CreateInventoryInput, service: InventoryService
) -> InventoryOperationOutput:
    return _output(
        *service.create(
            product_variant_id=input_data.product_variant_id,
            stock_quantity=input_data.stock_quantity,
            min_stock_level=input_data.min_stock_level,
            location=input_data.location,
            notes=input_data.notes,
            is_active=input_data.is_active,
        )
    )


def run_update(
    input_data: UpdateInventoryInput, service: InventoryService
) -> InventoryOperationOutput:
    return _output(*service.update(input_data.inventory_id, dict(input_data.changes)))


def run_adjust(input_data: AdjustStockInput, service: InventoryService) -> InventoryOperationOutput:
    return _output(*service.adjust(input_data.inventory_id, input_data.quantity, input_data.notes))
