from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from storefront.adapters.auth.crypto import JWTAuthAdapter
from storefront.adapters.clock import FixedClock
from storefront.adapters.sqlite.migrator import SQLiteMigrator
from storefront.adapters.sqlite.repos import SQLiteUserRepo
from storefront.api.deps import Settings, get_rate_limiter, get_settings
from storefront.api.main import app
from storefront.app_shell.rate_limit import RateLimiter
from storefront.domain.entities import User
from storefront.rules.loader import load_rules
from storefront.rules.models import Rules

AuthHeaders = dict[str, str]


@pytest.fixture
def test_db_path(tmp_path: Path) -> str:
    """Fresh migrated database per test."""
    db_path = str(tmp_path / "store.db")
    SQLiteMigrator(db_path, "migrations").run_migrations()
    return db_path


@pytest.fixture
def rules() -> Rules:
    return load_rules(Path("rules.yaml").resolve())


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


@pytest.fixture
def clock(fixed_now: datetime) -> FixedClock:
    return FixedClock(fixed_now)


@pytest.fixture
def auth_adapter() -> JWTAuthAdapter:
    return JWTAuthAdapter()


# --- API fixtures ---


@pytest.fixture
def settings(tmp_path: Path, test_db_path: str) -> Settings:
    return Settings(data_dir=str(tmp_path))


@pytest.fixture
def client(settings: Settings, rules: Rules) -> Iterator[TestClient]:
    limiter = RateLimiter(rules.rate_limits)
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(
    test_db_path: str, auth_adapter: JWTAuthAdapter
) -> Callable[..., tuple[User, AuthHeaders]]:
    """Create a user directly in the DB and return it with a bearer header."""
    repo = SQLiteUserRepo(test_db_path)

    def _make(
        email: str = "shopper@example.com",
        roles: list[str] | None = None,
        name: str = "Test Shopper",
        password: str = "password123",
        status: str = "active",
    ) -> tuple[User, AuthHeaders]:
        user = User(
            name=name,
            email=email,
            password_hash=auth_adapter.hash_password(password),
            roles=roles if roles is not None else ["customer"],  # type: ignore[arg-type]
            status=status,  # type: ignore[arg-type]
        )
        repo.save(user)
        token = auth_adapter.create_token(user.id, 60)
        return user, {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def admin_headers(make_user: Callable[..., tuple[User, AuthHeaders]]) -> AuthHeaders:
    _, headers = make_user(email="admin@example.com", roles=["admin"], name="Store Admin")
    return headers


@pytest.fixture
def customer(make_user: Callable[..., tuple[User, AuthHeaders]]) -> tuple[User, AuthHeaders]:
    return make_user()


@pytest.fixture
def customer_headers(customer: tuple[User, AuthHeaders]) -> AuthHeaders:
    return customer[1]
