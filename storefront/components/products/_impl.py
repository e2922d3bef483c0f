"""
ProductService - product catalogue.

Visibility rule: anyone who is not an admin only ever sees active products,
and an inactive product looks exactly like a missing one (404).
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from storefront.core.services.listing import ListParams
from storefront.domain.entities import Product, ProductVariant, SeoMeta
from storefront.domain.text import is_http_url, parse_uuid, slugify, truncate, unique_slug

from .models import ProductDetail, ProductListing, ProductValidationError
from .ports import BrandLookupPort, ProductRepoPort, TimePort, VariantLookupPort

NAME_MIN, NAME_MAX = 2, 200
DESCRIPTION_MAX = 2000
SHORT_DESCRIPTION_MAX = 500
META_TITLE_MAX = 60
META_DESCRIPTION_MAX = 160


def validate_product_data(
    name: str | None = None,
    description: str | None = None,
    short_description: str | None = None,
    images: Sequence[str] | None = None,
    category_id: str | None = None,
    seo: dict[str, Any] | None = None,
    require_all: bool = False,
) -> list[ProductValidationError]:
    errors: list[ProductValidationError] = []

    if name is not None or require_all:
        stripped = (name or "").strip()
        if not NAME_MIN <= len(stripped) <= NAME_MAX:
            errors.append(
                ProductValidationError(
                    code="name_length",
                    message=f"Product name must be between {NAME_MIN} and {NAME_MAX} characters",
                    field="name",
                )
            )

    if description is not None or require_all:
        stripped = (description or "").strip()
        if not stripped:
            errors.append(
                ProductValidationError(
                    code="description_required",
                    message="Product description is required",
                    field="description",
                )
            )
        elif len(stripped) > DESCRIPTION_MAX:
            errors.append(
                ProductValidationError(
                    code="description_too_long",
                    message=f"Description cannot exceed {DESCRIPTION_MAX} characters",
                    field="description",
                )
            )

    if short_description is not None and len(short_description.strip()) > SHORT_DESCRIPTION_MAX:
        errors.append(
            ProductValidationError(
                code="short_description_too_long",
                message=f"Short description cannot exceed {SHORT_DESCRIPTION_MAX} characters",
                field="short_description",
            )
        )

    if images is not None:
        for index, url in enumerate(images):
            if not is_http_url(url.strip()):
                errors.append(
                    ProductValidationError(
                        code="image_url_invalid",
                        message=f"Image {index + 1} must be a valid http(s) URL",
                        field="images",
                    )
                )

    if (category_id is not None or require_all) and not (category_id or "").strip():
        errors.append(
            ProductValidationError(
                code="category_required", message="Category is required", field="category_id"
            )
        )

    if seo:
        if len(seo.get("meta_title") or "") > META_TITLE_MAX:
            errors.append(
                ProductValidationError(
                    code="meta_title_too_long",
                    message=f"Meta title cannot exceed {META_TITLE_MAX} characters",
                    field="seo.meta_title",
                )
            )
        if len(seo.get("meta_description") or "") > META_DESCRIPTION_MAX:
            errors.append(
                ProductValidationError(
                    code="meta_description_too_long",
                    message=f"Meta description cannot exceed {META_DESCRIPTION_MAX} characters",
                    field="seo.meta_description",
                )
            )

    return errors


def fill_seo(seo: SeoMeta, name: str, description: str, short_description: str | None) -> SeoMeta:
    """Derive missing meta fields from the product copy."""
    return SeoMeta(
        meta_title=seo.meta_title or truncate(name, META_TITLE_MAX),
        meta_description=seo.meta_description
        or truncate(short_description or description, META_DESCRIPTION_MAX),
        keywords=seo.keywords,
    )


def min_active_price(variants: Sequence[ProductVariant]) -> Decimal | None:
    prices = [v.effective_price for v in variants if v.is_active]
    return min(prices) if prices else None


class ProductService:
    def __init__(
        self,
        repo: ProductRepoPort,
        variants: VariantLookupPort,
        brands: BrandLookupPort,
        clock: TimePort,
    ) -> None:
        self._repo = repo
        self._variants = variants
        self._brands = brands
        self._clock = clock

    # --- Queries ---

    def list(
        self,
        params: ListParams,
        is_admin: bool = False,
        include_inactive: bool = False,
        is_active: bool | None = None,
        category_ids: Sequence[str] = (),
        brand_ids: Sequence[str] = (),
    ) -> tuple[list[ProductListing], int]:
        """Visibility filters and search run before pagination."""
        if not is_admin:
            active_filter: bool | None = True
        elif is_active is not None:
            active_filter = is_active
        else:
            active_filter = None if include_inactive else True

        products, total = self._repo.list(
            params,
            is_active=active_filter,
            category_ids=category_ids,
            brand_ids=brand_ids,
        )

        by_product: dict[UUID, list[ProductVariant]] = {}
        for variant in self._variants.list_active_for_products([p.id for p in products]):
            by_product.setdefault(variant.product_id, []).append(variant)

        listings = [
            ProductListing(product=p, min_price=min_active_price(by_product.get(p.id, [])))
            for p in products
        ]
        return listings, total

    def get(self, identifier: str, is_admin: bool = False) -> ProductDetail | None:
        product_id = parse_uuid(identifier)
        product = (
            self._repo.get_by_id(product_id) if product_id else self._repo.get_by_slug(identifier)
        )
        if product is None or (not product.is_active and not is_admin):
            return None
        variants = self._variants.list_by_product(product.id, active_only=not is_admin)
        return ProductDetail(product=product, variants=tuple(variants))

    def stats(self) -> dict[str, int]:
        counts = self._repo.count_by_active()
        active, inactive = counts.get("1", 0), counts.get("0", 0)
        return {"total": active + inactive, "active": active, "inactive": inactive}

    # --- Commands ---

    def create(
        self,
        name: str,
        description: str,
        category_id: str,
        short_description: str | None = None,
        images: Sequence[str] = (),
        brand_id: UUID | None = None,
        seo: dict[str, Any] | None = None,
        is_active: bool = True,
    ) -> tuple[Product | None, list[ProductValidationError]]:
        errors = validate_product_data(
            name, description, short_description, images, category_id, seo, require_all=True
        )
        errors.extend(self._check_brand(brand_id))
        if errors:
            return None, errors

        if self._repo.get_by_name(name):
            return None, [_name_duplicate()]

        now = self._clock.now_utc()
        product = Product(
            id=uuid4(),
            name=name.strip(),
            slug=unique_slug(slugify(name), self._repo.slug_exists),
            description=description.strip(),
            short_description=(short_description or "").strip() or None,
            images=[url.strip() for url in images],
            category_id=category_id.strip(),
            brand_id=brand_id,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        product.seo = fill_seo(
            SeoMeta.model_validate(seo or {}),
            product.name,
            product.description,
            product.short_description,
        )
        return self._repo.save(product), []

    def update(
        self, product_id: UUID, updates: dict[str, Any]
    ) -> tuple[Product | None, list[ProductValidationError]]:
        product = self._repo.get_by_id(product_id)
        if not product:
            return None, [
                ProductValidationError(code="product_not_found", message="Product not found")
            ]

        errors = validate_product_data(
            updates.get("name"),
            updates.get("description"),
            updates.get("short_description"),
            updates.get("images"),
            updates.get("category_id"),
            updates.get("seo"),
        )
        if "brand_id" in updates:
            errors.extend(self._check_brand(updates["brand_id"]))
        if errors:
            return None, errors

        new_name = updates.get("name")
        if new_name is not None and new_name.strip().lower() != product.name.lower():
            existing = self._repo.get_by_name(new_name)
            if existing and existing.id != product.id:
                return None, [_name_duplicate()]
            product.name = new_name.strip()
            product.slug = unique_slug(slugify(new_name), self._repo.slug_exists)

        if updates.get("description") is not None:
            product.description = updates["description"].strip()
        if "short_description" in updates:
            product.short_description = (updates["short_description"] or "").strip() or None
        if updates.get("images") is not None:
            product.images = [url.strip() for url in updates["images"]]
        if updates.get("category_id") is not None:
            product.category_id = updates["category_id"].strip()
        if "brand_id" in updates:
            product.brand_id = updates["brand_id"]
        if updates.get("is_active") is not None:
            product.is_active = bool(updates["is_active"])

        # Explicit SEO wins; otherwise regenerate from the current copy
        if updates.get("seo"):
            seo = SeoMeta.model_validate(updates["seo"])
        else:
            seo = SeoMeta(keywords=product.seo.keywords)
        product.seo = fill_seo(seo, product.name, product.description, product.short_description)

        product.updated_at = self._clock.now_utc()
        return self._repo.save(product), []

    def set_active(
        self, product_id: UUID, is_active: bool
    ) -> tuple[Product | None, list[ProductValidationError]]:
        product = self._repo.get_by_id(product_id)
        if not product:
            return None, [
                ProductValidationError(code="product_not_found", message="Product not found")
            ]
        product.is_active = is_active
        product.updated_at = self._clock.now_utc()
        return self._repo.save(product), []

    def _check_brand(self, brand_id: UUID | None) -> list[ProductValidationError]:
        if brand_id is None or self._brands.get_by_id(brand_id) is not None:
            return []
        return [
            ProductValidationError(
                code="brand_invalid", message="Brand does not exist", field="brand_id"
            )
        ]


def _name_duplicate() -> ProductValidationError:
    return ProductValidationError(
        code="name_duplicate", message="Product with this name already exists", field="name"
    )
