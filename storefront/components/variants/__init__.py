"""
Product variants component.
"""

from ._impl import VariantService, validate_variant_data
from .models import VariantValidationError

__all__ = ["VariantService", "VariantValidationError", "validate_variant_data"]
