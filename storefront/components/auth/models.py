from dataclasses import dataclass, field

from storefront.domain.entities import User


@dataclass(frozen=True)
class AuthValidationError:
    code: str
    message: str
    field: str | None = None


@dataclass
class RegisterInput:
    name: str
    email: str
    password: str


@dataclass
class LoginInput:
    email: str
    password: str


@dataclass
class AuthOutput:
    user: User | None = None
    token_raw: str | None = None
    success: bool = False
    error: str | None = None
    errors: list[AuthValidationError] = field(default_factory=list)
