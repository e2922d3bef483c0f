"""
Inventory component - Data models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from storefront.core.services.listing import ListParams
from storefront.domain.entities import InventoryRecord
from storefront.domain.stock import StockStatus


@dataclass(frozen=True)
class InventoryValidationError:
    code: str
    message: str
    field: str | None = None


# --- Input Models ---


@dataclass(frozen=True)
class CreateInventoryInput:
    product_variant_id: UUID
    stock_quantity: int = 0
    min_stock_level: int = 0
    location: str | None = None
    notes: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class UpdateInventoryInput:
    inventory_id: UUID
    changes: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AdjustStockInput:
    """Positive `quantity` restocks, negative records a sale."""

    inventory_id: UUID
    quantity: int
    notes: str | None = None


@dataclass(frozen=True)
class ListInventoryInput:
    params: ListParams
    is_active: bool | None = None
    stock_status: StockStatus | None = None
    location: str | None = None
    product_id: UUID | None = None


# --- Output Models ---


@dataclass(frozen=True)
class InventoryOperationOutput:
    record: InventoryRecord | None
    errors: tuple[InventoryValidationError, ...]
    success: bool


@dataclass(frozen=True)
class InventoryListOutput:
    records: tuple[InventoryRecord, ...]
    total: int


@dataclass(frozen=True)
class InventorySummary:
    total: int
    in_stock: int
    low_stock: int
    out_of_stock: int
