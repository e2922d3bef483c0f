from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel

from storefront.adapters.auth.crypto import JWTAuthAdapter
from storefront.adapters.clock import SystemClock
from storefront.adapters.sqlite.repos import SQLiteUserRepo
from storefront.api.deps import (
    get_auth_adapter,
    get_clock,
    get_current_user,
    get_rate_limiter,
    get_rules,
    get_user_repo,
)
from storefront.api.schemas import ok, raise_for_errors, user_view
from storefront.app_shell.rate_limit import RateLimiter
from storefront.components.auth import LoginInput, RegisterInput, run_login, run_register
from storefront.domain.entities import User
from storefront.rules.models import Rules

router = APIRouter()


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str


class LoginRequest(BaseModel):
    email: str
    password: str


def verify_csrf(request: Request, rules: Rules = Depends(get_rules)) -> None:
    """
    Optional double-submit check.

    A request that sends the CSRF header must send the cookie value with it;
    requests without the header pass.
    """
    csrf = rules.security.csrf
    if not csrf.enabled:
        return
    sent = request.headers.get(csrf.header_name)
    if sent is None:
        return
    if sent != request.cookies.get(csrf.cookie_name):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid CSRF token")


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _set_token_cookie(response: Response, token: str, rules: Rules) -> None:
    cookie = rules.auth.cookie
    max_age = rules.auth.access_token_ttl_minutes * 60
    response.set_cookie(
        key="access_token",
        value=f"Bearer {token}",
        httponly=cookie.http_only,
        max_age=max_age,
        expires=max_age,
        samesite=cookie.same_site,  # type: ignore[arg-type]
        secure=cookie.secure,
    )


@router.get("/csrf-token")
def csrf_token(
    response: Response,
    rules: Rules = Depends(get_rules),
    auth_adapter: JWTAuthAdapter = Depends(get_auth_adapter),
) -> dict[str, Any]:
    """Issue a CSRF token as both a cookie and a response value."""
    token = auth_adapter.new_csrf_token()
    response.set_cookie(
        key=rules.security.csrf.cookie_name,
        value=token,
        httponly=False,
        samesite=rules.auth.cookie.same_site,  # type: ignore[arg-type]
        secure=rules.auth.cookie.secure,
    )
    return ok({"csrf_token": token}, message="CSRF token issued")


@router.post(
    "/register", status_code=status.HTTP_201_CREATED, dependencies=[Depends(verify_csrf)]
)
def register(
    request: Request,
    response: Response,
    body: RegisterRequest,
    rules: Rules = Depends(get_rules),
    user_repo: SQLiteUserRepo = Depends(get_user_repo),
    auth_adapter: JWTAuthAdapter = Depends(get_auth_adapter),
    clock: SystemClock = Depends(get_clock),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> dict[str, Any]:
    if not limiter.check_register(_client_ip(request)):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many registration attempts, please try again later",
        )

    result = run_register(
        RegisterInput(name=body.name, email=body.email, password=body.password),
        user_repo,
        auth_adapter,
        clock,
        password_min_length=rules.auth.password_hashing.min_length,
        token_ttl_minutes=rules.auth.access_token_ttl_minutes,
    )
    if not result.success or result.user is None or result.token_raw is None:
        raise_for_errors(result.errors)

    _set_token_cookie(response, result.token_raw, rules)
    return ok(
        {
            "user": user_view(result.user),
            "access_token": result.token_raw,
            "token_type": "bearer",
        },
        message="Registration successful",
    )


def _authenticate(
    request: Request,
    email: str,
    password: str,
    rules: Rules,
    user_repo: SQLiteUserRepo,
    auth_adapter: JWTAuthAdapter,
    limiter: RateLimiter,
) -> tuple[User, str]:
    if not limiter.check_login(_client_ip(request)):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts, please try again later",
        )

    result = run_login(
        LoginInput(email=email.strip().lower(), password=password),
        user_repo,
        auth_adapter,
        token_ttl_minutes=rules.auth.access_token_ttl_minutes,
    )
    if any(e.code == "account_disabled" for e in result.errors):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=result.error)
    if not result.success or result.user is None or result.token_raw is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return result.user, result.token_raw


@router.post("/login", dependencies=[Depends(verify_csrf)])
def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    rules: Rules = Depends(get_rules),
    user_repo: SQLiteUserRepo = Depends(get_user_repo),
    auth_adapter: JWTAuthAdapter = Depends(get_auth_adapter),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> dict[str, Any]:
    user, token = _authenticate(
        request, body.email, body.password, rules, user_repo, auth_adapter, limiter
    )
    _set_token_cookie(response, token, rules)
    return ok(
        {"user": user_view(user), "access_token": token, "token_type": "bearer"},
        message="Login successful",
    )


@router.post("/token")
def token(
    request: Request,
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    rules: Rules = Depends(get_rules),
    user_repo: SQLiteUserRepo = Depends(get_user_repo),
    auth_adapter: JWTAuthAdapter = Depends(get_auth_adapter),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> dict[str, str]:
    """OAuth2 password flow for API docs and scripts; the username field carries the email."""
    _, access_token = _authenticate(
        request, form_data.username, form_data.password, rules, user_repo, auth_adapter, limiter
    )
    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/logout", dependencies=[Depends(verify_csrf)])
def logout(response: Response) -> dict[str, Any]:
    """Log out user by clearing cookie."""
    response.delete_cookie(key="access_token")
    return ok(message="Logged out")


@router.get("/profile")
def profile(current_user: User = Depends(get_current_user)) -> dict[str, Any]:
    return ok(user_view(current_user))
