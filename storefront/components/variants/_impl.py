"""
VariantService - sellable variants of a product.

A variant is a product plus a set of options ("Size: XL", "Pack: 6") with
its own SKU and price. SKUs are stored upper-cased.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from storefront.core.services.listing import ListParams
from storefront.domain.entities import ProductVariant
from storefront.domain.money import has_at_most_two_decimals, to_money
from storefront.domain.stock import pack_multiplier
from storefront.domain.text import is_http_url, parse_uuid

from .models import VariantValidationError
from .ports import OptionLookupPort, ProductLookupPort, TimePort, VariantRepoPort

SKU_MIN, SKU_MAX = 3, 50


def validate_variant_data(
    sku_code: str | None = None,
    price: Decimal | None = None,
    discount_price: Decimal | None = None,
    images: Sequence[str] | None = None,
    sort_order: int | None = None,
) -> list[VariantValidationError]:
    errors: list[VariantValidationError] = []

    if sku_code is not None and not SKU_MIN <= len(sku_code.strip()) <= SKU_MAX:
        errors.append(
            VariantValidationError(
                code="sku_length",
                message=f"SKU code must be between {SKU_MIN} and {SKU_MAX} characters",
                field="sku_code",
            )
        )

    if price is not None and (price < 0 or not has_at_most_two_decimals(price)):
        errors.append(
            VariantValidationError(
                code="price_invalid",
                message="Price must be a non-negative amount with at most 2 decimals",
                field="price",
            )
        )

    if discount_price is not None:
        if discount_price < 0 or not has_at_most_two_decimals(discount_price):
            errors.append(
                VariantValidationError(
                    code="discount_price_invalid",
                    message="Discount price must be a non-negative amount with at most 2 decimals",
                    field="discount_price",
                )
            )
        elif price is not None and discount_price > price:
            errors.append(
                VariantValidationError(
                    code="discount_price_above_price",
                    message="Discount price cannot exceed price",
                    field="discount_price",
                )
            )

    if images is not None and any(not is_http_url(url.strip()) for url in images):
        errors.append(
            VariantValidationError(
                code="image_url_invalid",
                message="Images must be valid http(s) URLs",
                field="images",
            )
        )

    if sort_order is not None and sort_order < 0:
        errors.append(
            VariantValidationError(
                code="sort_order_negative",
                message="Sort order must be a non-negative integer",
                field="sort_order",
            )
        )

    return errors


class VariantService:
    def __init__(
        self,
        repo: VariantRepoPort,
        products: ProductLookupPort,
        options: OptionLookupPort,
        clock: TimePort,
        pack_option_type: str = "pack",
    ) -> None:
        self._repo = repo
        self._products = products
        self._options = options
        self._clock = clock
        self._pack_type = pack_option_type

    def list(
        self,
        params: ListParams,
        product_id: UUID | None = None,
        is_active: bool | None = None,
        is_on_sale: bool | None = None,
    ) -> tuple[list[ProductVariant], int]:
        return self._repo.list(
            params, product_id=product_id, is_active=is_active, is_on_sale=is_on_sale
        )

    def get_by_id(self, variant_id: UUID) -> ProductVariant | None:
        return self._repo.get_by_id(variant_id)

    def get_many(self, ids: Sequence[UUID]) -> list[ProductVariant]:
        return self._repo.get_many(ids)

    def get(self, identifier: str, include_inactive: bool = False) -> ProductVariant | None:
        """Resolve an id or SKU code."""
        variant_id = parse_uuid(identifier)
        variant = (
            self._repo.get_by_id(variant_id) if variant_id else self._repo.get_by_sku(identifier)
        )
        if variant is None or (not variant.is_active and not include_inactive):
            return None
        return variant

    def pack_multiplier(self, variant: ProductVariant) -> int:
        return self._describe(variant)[1]

    def stock_source(self, variant: ProductVariant) -> tuple[ProductVariant, int]:
        """
        The variant whose inventory backs `variant`, and how many of its units
        one unit of `variant` consumes.

        A pack variant draws on the active base-unit variant of the same
        product with the same non-pack options; a base unit is its own source.
        """
        non_pack, multiplier = self._describe(variant)
        if multiplier == 1:
            return variant, 1
        for candidate in self._repo.list_by_product(variant.product_id, active_only=True):
            if candidate.id == variant.id:
                continue
            candidate_options, candidate_multiplier = self._describe(candidate)
            if candidate_multiplier == 1 and candidate_options == non_pack:
                return candidate, multiplier
        return variant, multiplier

    def _describe(self, variant: ProductVariant) -> tuple[frozenset[UUID], int]:
        options = self._options.get_many(variant.option_ids)
        non_pack = frozenset(
            o.id for o in options if o.option_type.strip().lower() != self._pack_type
        )
        multiplier = pack_multiplier(
            ((o.option_type, o.option_value) for o in options), self._pack_type
        )
        return non_pack, multiplier

    def create(
        self,
        product_id: UUID,
        sku_code: str,
        price: Decimal | int | str,
        option_ids: Sequence[UUID] = (),
        discount_price: Decimal | int | str | None = None,
        is_on_sale: bool = False,
        images: Sequence[str] = (),
        sort_order: int = 0,
        is_active: bool = True,
    ) -> tuple[ProductVariant | None, list[VariantValidationError]]:
        price_value = to_money(price)
        discount_value = to_money(discount_price) if discount_price is not None else None

        errors = validate_variant_data(sku_code, price_value, discount_value, images, sort_order)
        errors.extend(self._check_references(product_id, option_ids))
        if errors:
            return None, errors

        sku = sku_code.strip().upper()
        if self._repo.sku_exists(sku):
            return None, [_sku_duplicate()]

        now = self._clock.now_utc()
        variant = ProductVariant(
            id=uuid4(),
            product_id=product_id,
            option_ids=list(dict.fromkeys(option_ids)),
            sku_code=sku,
            price=price_value,
            discount_price=discount_value,
            is_on_sale=is_on_sale,
            images=[url.strip() for url in images],
            sort_order=sort_order,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        return self._repo.save(variant), []

    def update(
        self, variant_id: UUID, updates: dict[str, Any]
    ) -> tuple[ProductVariant | None, list[VariantValidationError]]:
        variant = self._repo.get_by_id(variant_id)
        if not variant:
            return None, [_not_found()]

        price = to_money(updates["price"]) if updates.get("price") is not None else variant.price
        if "discount_price" in updates:
            raw = updates["discount_price"]
            discount = to_money(raw) if raw is not None else None
        else:
            discount = variant.discount_price

        errors = validate_variant_data(
            updates.get("sku_code"),
            price,
            discount,
            updates.get("images"),
            updates.get("sort_order"),
        )
        if updates.get("product_id") is not None or updates.get("option_ids") is not None:
            errors.extend(
                self._check_references(
                    updates.get("product_id") or variant.product_id,
                    updates.get("option_ids") or (),
                )
            )
        if errors:
            return None, errors

        new_sku = updates.get("sku_code")
        if new_sku is not None and new_sku.strip().upper() != variant.sku_code:
            if self._repo.sku_exists(new_sku.strip().upper()):
                return None, [_sku_duplicate()]
            variant.sku_code = new_sku.strip().upper()

        variant.price = price
        variant.discount_price = discount
        if updates.get("product_id") is not None:
            variant.product_id = updates["product_id"]
        if updates.get("option_ids") is not None:
            variant.option_ids = list(dict.fromkeys(updates["option_ids"]))
        if updates.get("images") is not None:
            variant.images = [url.strip() for url in updates["images"]]
        for key in ("is_on_sale", "sort_order", "is_active"):
            if updates.get(key) is not None:
                setattr(variant, key, updates[key])

        variant.updated_at = self._clock.now_utc()
        return self._repo.save(variant), []

    def set_active(
        self, variant_id: UUID, is_active: bool
    ) -> tuple[ProductVariant | None, list[VariantValidationError]]:
        variant = self._repo.get_by_id(variant_id)
        if not variant:
            return None, [_not_found()]
        variant.is_active = is_active
        variant.updated_at = self._clock.now_utc()
        return self._repo.save(variant), []

    def _check_references(
        self, product_id: UUID, option_ids: Sequence[UUID]
    ) -> list[VariantValidationError]:
        errors: list[VariantValidationError] = []
        if self._products.get_by_id(product_id) is None:
            errors.append(
                VariantValidationError(
                    code="product_invalid", message="Product does not exist", field="product_id"
                )
            )
        wanted = set(option_ids)
        if wanted:
            found = {o.id for o in self._options.get_many(list(wanted))}
            if wanted - found:
                errors.append(
                    VariantValidationError(
                        code="option_invalid",
                        message="One or more options do not exist",
                        field="option_ids",
                    )
                )
        return errors


def _not_found() -> VariantValidationError:
    return VariantValidationError(code="variant_not_found", message="Product variant not found")


def _sku_duplicate() -> VariantValidationError:
    return VariantValidationError(
        code="sku_duplicate", message="Variant with this SKU already exists", field="sku_code"
    )
