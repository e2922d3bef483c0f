"""Bootstrap component for Day 0 system initialization.

Creates the initial admin account when the store is first deployed and
has no users.
"""

from .component import run_bootstrap, run_create_admin
from .models import BootstrapInput, BootstrapOutput, BootstrapValidationError
from .ports import AuthAdapterPort, UserRepoPort

__all__ = [
    "run_bootstrap",
    "run_create_admin",
    "BootstrapInput",
    "BootstrapOutput",
    "BootstrapValidationError",
    "AuthAdapterPort",
    "UserRepoPort",
]
