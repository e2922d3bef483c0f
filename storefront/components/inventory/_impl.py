"""
InventoryService - physical stock per base-unit variant.

Pack variants ("Pack: 6") hold no stock of their own; they draw on the
base-unit record, so records may only be created for variants whose pack
multiplier is 1.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID, uuid4

from storefront.core.services.listing import ListParams
from storefront.domain.entities import InventoryRecord
from storefront.domain.stock import StockStatus

from .models import InventorySummary, InventoryValidationError
from .ports import InventoryRepoPort, TimePort, VariantLookupPort

logger = logging.getLogger(__name__)

LOCATION_MAX = 200
NOTES_MAX = 1000


def validate_inventory_data(
    stock_quantity: int | None = None,
    min_stock_level: int | None = None,
    location: str | None = None,
    notes: str | None = None,
    max_min_stock_level: int = 10000,
) -> list[InventoryValidationError]:
    errors: list[InventoryValidationError] = []

    if stock_quantity is not None and stock_quantity < 0:
        errors.append(
            InventoryValidationError(
                code="stock_quantity_negative",
                message="Stock quantity cannot be negative",
                field="stock_quantity",
            )
        )

    if min_stock_level is not None and not 0 <= min_stock_level <= max_min_stock_level:
        errors.append(
            InventoryValidationError(
                code="min_stock_level_range",
                message=f"Minimum stock level must be between 0 and {max_min_stock_level}",
                field="min_stock_level",
            )
        )

    if location is not None and len(location.strip()) > LOCATION_MAX:
        errors.append(
            InventoryValidationError(
                code="location_too_long",
                message=f"Location cannot exceed {LOCATION_MAX} characters",
                field="location",
            )
        )

    if notes is not None and len(notes.strip()) > NOTES_MAX:
        errors.append(
            InventoryValidationError(
                code="notes_too_long",
                message=f"Notes cannot exceed {NOTES_MAX} characters",
                field="notes",
            )
        )

    return errors


class InventoryService:
    def __init__(
        self,
        repo: InventoryRepoPort,
        variants: VariantLookupPort,
        clock: TimePort,
        max_min_stock_level: int = 10000,
    ) -> None:
        self._repo = repo
        self._variants = variants
        self._clock = clock
        self._max_min_level = max_min_stock_level

    # --- Queries ---

    def list(
        self,
        params: ListParams,
        is_active: bool | None = None,
        stock_status: StockStatus | None = None,
        location: str | None = None,
        product_id: UUID | None = None,
    ) -> tuple[list[InventoryRecord], int]:
        return self._repo.list(
            params,
            is_active=is_active,
            stock_status=stock_status,
            location=location,
            product_id=product_id,
        )

    def get(self, record_id: UUID) -> InventoryRecord | None:
        return self._repo.get_by_id(record_id)

    def get_by_variant(self, variant_id: UUID) -> InventoryRecord | None:
        return self._repo.get_by_variant(variant_id)

    def available(self, variant_id: UUID) -> int:
        """Units on hand for an active record; 0 when there is none."""
        record = self._repo.get_by_variant(variant_id)
        if record is None or not record.is_active:
            return 0
        return max(record.stock_quantity, 0)

    def summary(self) -> InventorySummary:
        counts = self._repo.count_by_status()
        in_stock = counts.get("in_stock", 0)
        low_stock = counts.get("low_stock", 0)
        out_of_stock = counts.get("out_of_stock", 0)
        return InventorySummary(
            total=in_stock + low_stock + out_of_stock,
            in_stock=in_stock,
            low_stock=low_stock,
            out_of_stock=out_of_stock,
        )

    # --- Commands ---

    def create(
        self,
        product_variant_id: UUID,
        stock_quantity: int = 0,
        min_stock_level: int = 0,
        location: str | None = None,
        notes: str | None = None,
        is_active: bool = True,
    ) -> tuple[InventoryRecord | None, list[InventoryValidationError]]:
        errors = validate_inventory_data(
            stock_quantity, min_stock_level, location, notes, self._max_min_level
        )
        if errors:
            return None, errors

        variant = self._variants.get_by_id(product_variant_id)
        if variant is None:
            return None, [
                InventoryValidationError(
                    code="variant_invalid",
                    message="Product variant does not exist",
                    field="product_variant_id",
                )
            ]
        if self._variants.pack_multiplier(variant) != 1:
            return None, [_pack_variant()]

        if self._repo.get_by_variant(product_variant_id) is not None:
            return None, [
                InventoryValidationError(
                    code="inventory_duplicate",
                    message="Inventory record already exists for this product variant",
                    field="product_variant_id",
                )
            ]

        now = self._clock.now_utc()
        record = InventoryRecord(
            id=uuid4(),
            product_variant_id=product_variant_id,
            stock_quantity=stock_quantity,
            min_stock_level=min_stock_level,
            location=_clean(location),
            notes=_clean(notes),
            last_restock_date=now if stock_quantity > 0 else None,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        return self._repo.save(record), []

    def update(
        self, record_id: UUID, updates: dict[str, Any]
    ) -> tuple[InventoryRecord | None, list[InventoryValidationError]]:
        record = self._repo.get_by_id(record_id)
        if not record:
            return None, [_not_found()]

        errors = validate_inventory_data(
            updates.get("stock_quantity"),
            updates.get("min_stock_level"),
            updates.get("location"),
            updates.get("notes"),
            self._max_min_level,
        )
        if errors:
            return None, errors

        variant = self._variants.get_by_id(record.product_variant_id)
        if variant is not None and self._variants.pack_multiplier(variant) != 1:
            return None, [_pack_variant()]

        now = self._clock.now_utc()
        new_quantity = updates.get("stock_quantity")
        if new_quantity is not None:
            if new_quantity > record.stock_quantity:
                record.last_restock_date = now
            record.stock_quantity = new_quantity
        if updates.get("min_stock_level") is not None:
            record.min_stock_level = updates["min_stock_level"]
        for key in ("location", "notes"):
            if key in updates:
                setattr(record, key, _clean(updates[key]))
        if updates.get("is_active") is not None:
            record.is_active = bool(updates["is_active"])

        record.updated_at = now
        return self._repo.save(record), []

    def adjust(
        self, record_id: UUID, quantity: int, notes: str | None = None
    ) -> tuple[InventoryRecord | None, list[InventoryValidationError]]:
        record = self._repo.get_by_id(record_id)
        if not record:
            return None, [_not_found()]

        if quantity == 0:
            return None, [
                InventoryValidationError(
                    code="adjustment_zero",
                    message="Adjustment quantity must be non-zero",
                    field="quantity",
                )
            ]
        if record.stock_quantity + quantity < 0:
            return None, [
                InventoryValidationError(
                    code="insufficient_stock",
                    message="Insufficient stock available",
                    field="quantity",
                )
            ]
        errors = validate_inventory_data(notes=notes)
        if errors:
            return None, errors

        now = self._clock.now_utc()
        record.stock_quantity += quantity
        if quantity > 0:
            record.last_restock_date = now
        else:
            record.last_sold_date = now
        if notes is not None:
            record.notes = _clean(notes)
        record.updated_at = now

        logger.info(
            "Stock adjusted for variant %s by %+d to %d",
            record.product_variant_id,
            quantity,
            record.stock_quantity,
        )
        return self._repo.save(record), []

    def set_active(
        self, record_id: UUID, is_active: bool
    ) -> tuple[InventoryRecord | None, list[InventoryValidationError]]:
        record = self._repo.get_by_id(record_id)
        if not record:
            return None, [_not_found()]
        record.is_active = is_active
        record.updated_at = self._clock.now_utc()
        return self._repo.save(record), []


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def _not_found() -> InventoryValidationError:
    return InventoryValidationError(
        code="inventory_not_found", message="Inventory record not found"
    )


def _pack_variant() -> InventoryValidationError:
    return InventoryValidationError(
        code="variant_not_base_unit",
        message="Only base-unit variants track physical stock",
        field="product_variant_id",
    )
