"""
BrandService - brand catalogue management.

Functional Core - validation and slug rules; persistence goes through the port.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID, uuid4

from storefront.core.services.listing import ListParams
from storefront.domain.entities import Brand
from storefront.domain.text import (
    is_email,
    is_http_url,
    is_image_url,
    parse_uuid,
    slugify,
    unique_slug,
)

from .models import BrandValidationError
from .ports import BrandRepoPort, TimePort

NAME_MIN, NAME_MAX = 2, 100
DESCRIPTION_MAX = 1000
UPDATABLE_FIELDS = ("name", "description", "logo_url", "website", "contact_email", "is_active")

# --- Validation Functions ---


def validate_brand_data(
    name: str | None = None,
    description: str | None = None,
    logo_url: str | None = None,
    website: str | None = None,
    contact_email: str | None = None,
) -> list[BrandValidationError]:
    """Validate the fields that were provided; None means not provided."""
    errors: list[BrandValidationError] = []

    if name is not None:
        stripped = name.strip()
        if not stripped:
            errors.append(
                BrandValidationError(
                    code="name_required", message="Brand name is required", field="name"
                )
            )
        elif not NAME_MIN <= len(stripped) <= NAME_MAX:
            errors.append(
                BrandValidationError(
                    code="name_length",
                    message=f"Brand name must be between {NAME_MIN} and {NAME_MAX} characters",
                    field="name",
                )
            )

    if description is not None and len(description.strip()) > DESCRIPTION_MAX:
        errors.append(
            BrandValidationError(
                code="description_too_long",
                message=f"Description cannot exceed {DESCRIPTION_MAX} characters",
                field="description",
            )
        )

    if logo_url and not is_image_url(logo_url.strip()):
        errors.append(
            BrandValidationError(
                code="logo_url_invalid",
                message="Logo URL must be a valid image URL (jpg, jpeg, png, gif, webp, svg)",
                field="logo_url",
            )
        )

    if website and not is_http_url(website.strip()):
        errors.append(
            BrandValidationError(
                code="website_invalid",
                message="Website must be a valid URL starting with http:// or https://",
                field="website",
            )
        )

    if contact_email and not is_email(contact_email.strip()):
        errors.append(
            BrandValidationError(
                code="contact_email_invalid",
                message="Please provide a valid contact email",
                field="contact_email",
            )
        )

    return errors


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


# --- Brand Service ---


class BrandService:
    """Manages brands. Deletion is soft: the brand is deactivated."""

    def __init__(self, repo: BrandRepoPort, clock: TimePort) -> None:
        self._repo = repo
        self._clock = clock

    def list(self, params: ListParams, is_active: bool | None = True) -> tuple[list[Brand], int]:
        return self._repo.list(params, is_active=is_active)

    def get_by_id(self, brand_id: UUID) -> Brand | None:
        return self._repo.get_by_id(brand_id)

    def get(self, identifier: str, include_inactive: bool = False) -> Brand | None:
        """Resolve an id or slug. Inactive brands are hidden unless asked for."""
        brand_id = parse_uuid(identifier)
        brand = self._repo.get_by_id(brand_id) if brand_id else self._repo.get_by_slug(identifier)
        if brand is None or (not brand.is_active and not include_inactive):
            return None
        return brand

    def create(
        self,
        name: str,
        description: str | None = None,
        logo_url: str | None = None,
        website: str | None = None,
        contact_email: str | None = None,
        is_active: bool = True,
    ) -> tuple[Brand | None, list[BrandValidationError]]:
        errors = validate_brand_data(name, description, logo_url, website, contact_email)
        if errors:
            return None, errors

        if self._repo.get_by_name(name):
            return None, [
                BrandValidationError(
                    code="name_duplicate",
                    message="Brand with this name already exists",
                    field="name",
                )
            ]

        now = self._clock.now_utc()
        brand = Brand(
            id=uuid4(),
            name=name.strip(),
            slug=unique_slug(slugify(name), self._repo.slug_exists),
            description=_clean(description),
            logo_url=_clean(logo_url),
            website=_clean(website),
            contact_email=_clean(contact_email.lower()) if contact_email else None,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        return self._repo.save(brand), []

    def update(
        self, brand_id: UUID, updates: dict[str, Any]
    ) -> tuple[Brand | None, list[BrandValidationError]]:
        brand = self._repo.get_by_id(brand_id)
        if not brand:
            return None, [_not_found(brand_id)]

        errors = validate_brand_data(
            name=updates.get("name"),
            description=updates.get("description"),
            logo_url=updates.get("logo_url"),
            website=updates.get("website"),
            contact_email=updates.get("contact_email"),
        )
        if errors:
            return None, errors

        new_name = updates.get("name")
        if new_name is not None and new_name.strip().lower() != brand.name.lower():
            existing = self._repo.get_by_name(new_name)
            if existing and existing.id != brand_id:
                return None, [
                    BrandValidationError(
                        code="name_duplicate",
                        message="Brand with this name already exists",
                        field="name",
                    )
                ]
            brand.name = new_name.strip()
            brand.slug = unique_slug(slugify(new_name), self._repo.slug_exists)

        for key in ("description", "logo_url", "website"):
            if key in updates:
                setattr(brand, key, _clean(updates[key]))
        if "contact_email" in updates:
            email = updates["contact_email"]
            brand.contact_email = _clean(email.lower()) if email else None
        if updates.get("is_active") is not None:
            brand.is_active = bool(updates["is_active"])

        brand.updated_at = self._clock.now_utc()
        return self._repo.save(brand), []

    def set_active(
        self, brand_id: UUID, is_active: bool
    ) -> tuple[Brand | None, list[BrandValidationError]]:
        brand = self._repo.get_by_id(brand_id)
        if not brand:
            return None, [_not_found(brand_id)]
        brand.is_active = is_active
        brand.updated_at = self._clock.now_utc()
        return self._repo.save(brand), []

    def delete(self, brand_id: UUID) -> tuple[bool, list[BrandValidationError]]:
        brand, errors = self.set_active(brand_id, False)
        return brand is not None, errors

    def stats(self) -> dict[str, int]:
        counts = self._repo.count_by_active()
        active = counts.get("1", 0)
        inactive = counts.get("0", 0)
        return {"total": active + inactive, "active": active, "inactive": inactive}


def _not_found(brand_id: UUID) -> BrandValidationError:
    return BrandValidationError(
        code="brand_not_found", message=f"Brand with ID {brand_id} not found"
    )
