"""
Products component - product catalogue with visibility rules.
"""

from ._impl import ProductService, fill_seo, min_active_price, validate_product_data
from .models import ProductDetail, ProductListing, ProductValidationError
from .ports import BrandLookupPort, ProductRepoPort, VariantLookupPort

__all__ = [
    "BrandLookupPort",
    "ProductDetail",
    "ProductListing",
    "ProductRepoPort",
    "ProductService",
    "ProductValidationError",
    "VariantLookupPort",
    "fill_seo",
    "min_active_price",
    "validate_product_data",
]
