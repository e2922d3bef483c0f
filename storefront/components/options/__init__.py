"""
Options component - variant option management.
"""

from ._impl import OptionService, validate_option_data
from .models import OptionTypeGroup, OptionValidationError
from .ports import OptionRepoPort

__all__ = [
    "OptionRepoPort",
    "OptionService",
    "OptionTypeGroup",
    "OptionValidationError",
    "validate_option_data",
]
