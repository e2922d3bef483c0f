"""
Inventory component - stock records for base-unit variants.
"""

from ._impl import InventoryService, validate_inventory_data
from .component import run_adjust, run_create, run_list, run_update
from .models import (
    AdjustStockInput,
    CreateInventoryInput,
    InventoryListOutput,
    InventoryOperationOutput,
    InventorySummary,
    InventoryValidationError,
    ListInventoryInput,
    UpdateInventoryInput,
)

__all__ = [
    "AdjustStockInput",
    "CreateInventoryInput",
    "InventoryListOutput",
    "InventoryOperationOutput",
    "InventoryService",
    "InventorySummary",
    "InventoryValidationError",
    "ListInventoryInput",
    "UpdateInventoryInput",
    "run_adjust",
    "run_create",
    "run_list",
    "run_update",
    "validate_inventory_data",
]
