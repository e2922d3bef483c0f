"""
Brands component - Data models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from storefront.core.services.listing import ListParams
from storefront.domain.entities import Brand

# --- Validation Errors ---


@dataclass(frozen=True)
class BrandValidationError:
    """Brand validation error."""

    code: str
    message: str
    field: str | None = None


# --- Input Models ---


@dataclass(frozen=True)
class CreateBrandInput:
    name: str
    description: str | None = None
    logo_url: str | None = None
    website: str | None = None
    contact_email: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class UpdateBrandInput:
    """Only keys present in `changes` are applied."""

    brand_id: UUID
    changes: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class GetBrandInput:
    """Lookup by id or slug."""

    identifier: str
    include_inactive: bool = False


@dataclass(frozen=True)
class ListBrandsInput:
    params: ListParams
    is_active: bool | None = True


@dataclass(frozen=True)
class SetBrandActiveInput:
    brand_id: UUID
    is_active: bool


# --- Output Models ---


@dataclass(frozen=True)
class BrandOperationOutput:
    brand: Brand | None
    errors: tuple[BrandValidationError, ...]
    success: bool


@dataclass(frozen=True)
class BrandListOutput:
    brands: tuple[Brand, ...]
    total: int
