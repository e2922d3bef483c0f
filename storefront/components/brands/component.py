"""
Brands component - Shell Layer.

Wraps BrandService calls into input/output models for the HTTP routes.
"""

from __future__ import annotations

from ._impl import BrandService
from .models import (
    BrandListOutput,
    BrandOperationOutput,
    BrandValidationError,
    CreateBrandInput,
    GetBrandInput,
    ListBrandsInput,
    SetBrandActiveInput,
    UpdateBrandInput,
)


def run_list(input_data: ListBrandsInput, service: BrandService) -> BrandListOutput:
    brands, total = service.list(input_data.params, is_active=input_data.is_active)
    return BrandListOutput(brands=tuple(brands), total=total)


def run_get(input_data: GetBrandInput, service: BrandService) -> BrandOperationOutput:
    brand = service.get(input_data.identifier, include_inactive=input_data.include_inactive)
    if brand is None:
        return BrandOperationOutput(
            brand=None,
            errors=(BrandValidationError(code="brand_not_found", message="Brand not found"),),
            success=False,
        )
    return BrandOperationOutput(brand=brand, errors=(), success=True)


def run_create(input_data: CreateBrandInput, service: BrandService) -> BrandOperationOutput:
    brand, errors = service.create(
        name=input_data.name,
        description=input_data.description,
        logo_url=input_data.logo_url,
        website=input_data.website,
        contact_email=input_data.contact_email,
        is_active=input_data.is_active,
    )
    return BrandOperationOutput(brand=brand, errors=tuple(errors), success=brand is not None)


def run_update(input_data: UpdateBrandInput, service: BrandService) -> BrandOperationOutput:
    brand, errors = service.update(input_data.brand_id, dict(input_data.changes))
    return BrandOperationOutput(brand=brand, errors=tuple(errors), success=brand is not None)


def run_set_active(input_data: SetBrandActiveInput, service: BrandService) -> BrandOperationOutput:
    brand, errors = service.set_active(input_data.brand_id, input_data.is_active)
    return BrandOperationOutput(brand=brand, errors=tuple(errors), success=brand is not None)
