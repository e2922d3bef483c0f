"""Bootstrap component implementation.

Creates the first admin account when the users table is empty and
bootstrap credentials are configured. The CLI uses `run_create_admin`
to add admins at any time.
"""

from __future__ import annotations

from uuid import uuid4

from storefront.domain.entities import User
from storefront.domain.text import is_email
from storefront.rules.models import AdminBootstrapRules

from .models import BootstrapInput, BootstrapOutput, BootstrapValidationError
from .ports import AuthAdapterPort, TimePort, UserRepoPort

MIN_PASSWORD_LENGTH = 8


def _validate_input(
    bootstrap_input: BootstrapInput,
) -> tuple[BootstrapValidationError, ...]:
    errors: list[BootstrapValidationError] = []

    if not bootstrap_input.bootstrap_email or not is_email(bootstrap_input.bootstrap_email):
        errors.append(
            BootstrapValidationError(
                code="INVALID_EMAIL",
                message="A valid bootstrap email is required",
                field="bootstrap_email",
            )
        )

    password = bootstrap_input.bootstrap_password or ""
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(
            BootstrapValidationError(
                code="WEAK_PASSWORD",
                message=f"Bootstrap password must be at least {MIN_PASSWORD_LENGTH} characters",
                field="bootstrap_password",
            )
        )

    return tuple(errors)


def run_create_admin(
    bootstrap_input: BootstrapInput,
    user_repo: UserRepoPort,
    auth_adapter: AuthAdapterPort,
    time: TimePort,
) -> BootstrapOutput:
    """Create an admin account regardless of existing users."""
    validation_errors = _validate_input(bootstrap_input)
    if validation_errors:
        return BootstrapOutput.failed(validation_errors)

    assert bootstrap_input.bootstrap_email is not None
    assert bootstrap_input.bootstrap_password is not None
    email = bootstrap_input.bootstrap_email.strip().lower()

    if user_repo.get_by_email(email):
        return BootstrapOutput.failed(
            (
                BootstrapValidationError(
                    code="EMAIL_EXISTS",
                    message="A user with this email already exists",
                    field="bootstrap_email",
                ),
            )
        )

    now = time.now_utc()
    admin = User(
        id=uuid4(),
        name=bootstrap_input.bootstrap_name,
        email=email,
        password_hash=auth_adapter.hash_password(bootstrap_input.bootstrap_password),
        roles=["admin"],
        status="active",
        created_at=now,
        updated_at=now,
    )
    user_repo.save(admin)
    return BootstrapOutput.created_user(admin)


def run_bootstrap(
    bootstrap_input: BootstrapInput,
    user_repo: UserRepoPort,
    auth_adapter: AuthAdapterPort,
    rules: AdminBootstrapRules,
    time: TimePort,
) -> BootstrapOutput:
    """Execute the startup bootstrap.

    Args:
        bootstrap_input: Email and password for the admin account.
        user_repo: Repository for user operations.
        auth_adapter: Adapter for password hashing.
        rules: Bootstrap section of the rules file.
        time: Time provider for deterministic timestamps.

    Returns:
        BootstrapOutput with the result of the operation.
    """
    if not rules.enabled_if_no_users:
        return BootstrapOutput.skipped("Bootstrap is not enabled in rules")

    if user_repo.list_all():
        return BootstrapOutput.skipped("Users already exist in the system")

    if not bootstrap_input.bootstrap_email or not bootstrap_input.bootstrap_password:
        return BootstrapOutput.skipped(
            "Bootstrap email and/or password not provided. "
            "Set STORE_BOOTSTRAP_EMAIL and STORE_BOOTSTRAP_PASSWORD environment variables."
        )

    return run_create_admin(bootstrap_input, user_repo, auth_adapter, time)
