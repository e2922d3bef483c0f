from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest

from storefront.components.bootstrap import BootstrapInput, run_bootstrap, run_create_admin
from storefront.domain.entities import User
from storefront.rules.models import AdminBootstrapRules


class FakeTime:
    def now_utc(self):
        return datetime(2026, 3, 10, 12, 0, 0, tzinfo=UTC)


def _rules(enabled: bool = True) -> AdminBootstrapRules:
    return AdminBootstrapRules(
        enabled_if_no_users=enabled,
        required_env_when_enabled=["STORE_BOOTSTRAP_EMAIL", "STORE_BOOTSTRAP_PASSWORD"],
    )


@pytest.fixture
def mock_user_repo():
    repo = MagicMock()
    repo.list_all.return_value = []  # Empty DB
    repo.get_by_email.return_value = None
    return repo


@pytest.fixture
def mock_auth_adapter():
    adapter = MagicMock()
    adapter.hash_password.return_value = "hashed_password"
    return adapter


def test_bootstrap_success(mock_user_repo, mock_auth_adapter):
    """Should create an admin if DB is empty and credentials provided."""
    inp = BootstrapInput(
        bootstrap_email="Owner@Example.com",
        bootstrap_password="long-enough",
    )

    result = run_bootstrap(
        inp,
        user_repo=mock_user_repo,
        auth_adapter=mock_auth_adapter,
        rules=_rules(enabled=True),
        time=FakeTime(),
    )

    assert result.success is True
    assert result.created is True
    assert result.user.email == "owner@example.com"
    assert result.user.roles == ["admin"]
    assert result.user.password_hash == "hashed_password"

    mock_user_repo.save.assert_called_once()


def test_bootstrap_no_credentials(mock_user_repo):
    """Should skip if credentials missing."""
    result = run_bootstrap(
        BootstrapInput(bootstrap_email=None, bootstrap_password=None),
        user_repo=mock_user_repo,
        auth_adapter=MagicMock(),
        rules=_rules(enabled=True),
        time=FakeTime(),
    )

    assert result.success is True
    assert result.created is False
    assert "not provided" in result.skipped_reason
    mock_user_repo.save.assert_not_called()


def test_bootstrap_users_exist(mock_user_repo):
    """Should skip if the store already has users."""
    mock_user_repo.list_all.return_value = [
        User(name="Someone", email="someone@example.com", password_hash="x")
    ]

    result = run_bootstrap(
        BootstrapInput(bootstrap_email="admin@example.com", bootstrap_password="long-enough"),
        user_repo=mock_user_repo,
        auth_adapter=MagicMock(),
        rules=_rules(enabled=True),
        time=FakeTime(),
    )

    assert result.created is False
    assert result.skipped_reason == "Users already exist in the system"
    mock_user_repo.save.assert_not_called()


def test_bootstrap_disabled(mock_user_repo):
    result = run_bootstrap(
        BootstrapInput(bootstrap_email="admin@example.com", bootstrap_password="long-enough"),
        user_repo=mock_user_repo,
        auth_adapter=MagicMock(),
        rules=_rules(enabled=False),
        time=FakeTime(),
    )

    assert result.created is False
    assert result.skipped_reason == "Bootstrap is not enabled in rules"


def test_create_admin_validates_input(mock_user_repo, mock_auth_adapter):
    result = run_create_admin(
        BootstrapInput(bootstrap_email="not-an-email", bootstrap_password="short"),
        user_repo=mock_user_repo,
        auth_adapter=mock_auth_adapter,
        time=FakeTime(),
    )

    assert result.success is False
    assert {e.code for e in result.errors} == {"INVALID_EMAIL", "WEAK_PASSWORD"}


def test_create_admin_rejects_existing_email(mock_user_repo, mock_auth_adapter):
    mock_user_repo.get_by_email.return_value = User(
        name="Taken", email="admin@example.com", password_hash="x"
    )

    result = run_create_admin(
        BootstrapInput(bootstrap_email="admin@example.com", bootstrap_password="long-enough"),
        user_repo=mock_user_repo,
        auth_adapter=mock_auth_adapter,
        time=FakeTime(),
    )

    assert result.success is False
    assert result.errors[0].code == "EMAIL_EXISTS"


def test_create_admin_ignores_existing_users(mock_user_repo, mock_auth_adapter):
    mock_user_repo.list_all.return_value = [
        User(name="Someone", email="someone@example.com", password_hash="x")
    ]

    result = run_create_admin(
        BootstrapInput(
            bootstrap_email="second@example.com",
            bootstrap_password="long-enough",
            bootstrap_name="Second Admin",
        ),
        user_repo=mock_user_repo,
        auth_adapter=mock_auth_adapter,
        time=FakeTime(),
    )

    assert result.created is True
    assert result.user.name == "Second Admin"
