"""
Brands component - brand catalogue management.
"""

from ._impl import BrandService, validate_brand_data
from .component import run_create, run_get, run_list, run_set_active, run_update
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
from .ports import BrandRepoPort

__all__ = [
    # Entry points
    "run_create",
    "run_get",
    "run_list",
    "run_set_active",
    "run_update",
    # Input models
    "CreateBrandInput",
    "GetBrandInput",
    "ListBrandsInput",
    "SetBrandActiveInput",
    "UpdateBrandInput",
    # Output models
    "BrandListOutput",
    "BrandOperationOutput",
    "BrandValidationError",
    # Ports
    "BrandRepoPort",
    # Service
    "BrandService",
    "validate_brand_data",
]
