from uuid import uuid4

from storefront.domain.entities import User
from storefront.domain.text import is_email

from .models import AuthOutput, AuthValidationError, LoginInput, RegisterInput
from .ports import AuthAdapterPort, TimePort, UserRepoPort

NAME_MIN, NAME_MAX = 2, 50


def validate_registration(
    inp: RegisterInput, password_min_length: int
) -> list[AuthValidationError]:
    errors: list[AuthValidationError] = []

    name = inp.name.strip()
    if not NAME_MIN <= len(name) <= NAME_MAX:
        errors.append(
            AuthValidationError(
                code="name_length",
                message=f"Name must be between {NAME_MIN} and {NAME_MAX} characters",
                field="name",
            )
        )

    if not is_email(inp.email.strip()):
        errors.append(
            AuthValidationError(
                code="email_invalid", message="Please provide a valid email", field="email"
            )
        )

    if len(inp.password) < password_min_length:
        errors.append(
            AuthValidationError(
                code="password_too_short",
                message=f"Password must be at least {password_min_length} characters",
                field="password",
            )
        )

    return errors


def run_register(
    inp: RegisterInput,
    user_repo: UserRepoPort,
    auth_adapter: AuthAdapterPort,
    time: TimePort,
    password_min_length: int,
    token_ttl_minutes: int,
) -> AuthOutput:
    errors = validate_registration(inp, password_min_length)
    if errors:
        return AuthOutput(success=False, error="Validation errors", errors=errors)

    email = inp.email.strip().lower()
    if user_repo.get_by_email(email):
        return AuthOutput(
            success=False,
            error="Email already registered",
            errors=[
                AuthValidationError(
                    code="email_duplicate", message="Email already registered", field="email"
                )
            ],
        )

    now = time.now_utc()
    user = User(
        id=uuid4(),
        name=inp.name.strip(),
        email=email,
        password_hash=auth_adapter.hash_password(inp.password),
        roles=["customer"],
        status="active",
        created_at=now,
        updated_at=now,
    )
    user_repo.save(user)

    token = auth_adapter.create_token(user.id, token_ttl_minutes)
    return AuthOutput(user=user, token_raw=token, success=True)


def run_login(
    inp: LoginInput,
    user_repo: UserRepoPort,
    auth_adapter: AuthAdapterPort,
    token_ttl_minutes: int,
) -> AuthOutput:
    user = user_repo.get_by_email(inp.email.strip().lower())
    if not user:
        return AuthOutput(success=False, error="Invalid credentials")

    if not auth_adapter.verify_password(inp.password, user.password_hash):
        return AuthOutput(success=False, error="Invalid credentials")

    if user.status != "active":
        return AuthOutput(
            success=False,
            error="User account is disabled",
            errors=[
                AuthValidationError(code="account_disabled", message="User account is disabled")
            ],
        )

    token = auth_adapter.create_token(user.id, token_ttl_minutes)
    return AuthOutput(user=user, token_raw=token, success=True)
