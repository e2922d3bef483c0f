"""
Auth component - Customer registration and login.
"""

from .component import run_login, run_register, validate_registration
from .models import AuthOutput, AuthValidationError, LoginInput, RegisterInput
from .ports import AuthAdapterPort, TimePort, UserRepoPort

__all__ = [
    # Entry points
    "run_login",
    "run_register",
    "validate_registration",
    # Models
    "AuthOutput",
    "AuthValidationError",
    "LoginInput",
    "RegisterInput",
    # Ports
    "AuthAdapterPort",
    "TimePort",
    "UserRepoPort",
]
