from datetime import UTC, datetime
from unittest.mock import Mock
from uuid import uuid4

import pytest

from storefront.components.auth import (
    LoginInput,
    RegisterInput,
    run_login,
    run_register,
    validate_registration,
)
from storefront.domain.entities import User


@pytest.fixture
def mock_repo():
    repo = Mock()
    repo.get_by_email.return_value = None
    return repo


@pytest.fixture
def mock_auth_adapter():
    adapter = Mock()
    adapter.hash_password.return_value = "hash"
    adapter.create_token.return_value = "jwt-token"
    return adapter


@pytest.fixture
def mock_time():
    """Mock time port that returns a fixed time."""
    time = Mock()
    time.now_utc.return_value = datetime(2026, 3, 10, 12, 0, 0, tzinfo=UTC)
    return time


def _user(status: str = "active") -> User:
    return User(
        id=uuid4(),
        name="Test",
        email="test@example.com",
        password_hash="hash",
        roles=["customer"],
        status=status,
    )


# --- Register ---


def test_register_success(mock_repo, mock_auth_adapter, mock_time):
    inp = RegisterInput(name=" Test User ", email="Test@Example.com", password="password123")
    result = run_register(inp, mock_repo, mock_auth_adapter, mock_time, 8, 60)

    assert result.success is True
    assert result.token_raw == "jwt-token"
    assert result.user.email == "test@example.com"
    assert result.user.name == "Test User"
    assert result.user.roles == ["customer"]
    assert result.user.created_at == mock_time.now_utc.return_value
    mock_repo.save.assert_called_once()
    mock_auth_adapter.create_token.assert_called_with(result.user.id, 60)


def test_register_duplicate_email(mock_repo, mock_auth_adapter, mock_time):
    mock_repo.get_by_email.return_value = _user()
    inp = RegisterInput(name="Test", email="test@example.com", password="password123")
    result = run_register(inp, mock_repo, mock_auth_adapter, mock_time, 8, 60)

    assert result.success is False
    assert result.errors[0].code == "email_duplicate"
    mock_repo.save.assert_not_called()


def test_registration_validation():
    errors = validate_registration(RegisterInput(name="T", email="nope", password="short"), 8)
    assert {e.code for e in errors} == {"name_length", "email_invalid", "password_too_short"}


# --- Login ---


def test_login_success(mock_repo, mock_auth_adapter):
    user = _user()
    mock_repo.get_by_email.return_value = user
    mock_auth_adapter.verify_password.return_value = True

    inp = LoginInput(email=" TEST@example.com", password="password")
    result = run_login(inp, mock_repo, mock_auth_adapter, 60)

    assert result.success is True
    assert result.user == user
    assert result.token_raw == "jwt-token"
    mock_repo.get_by_email.assert_called_with("test@example.com")
    mock_auth_adapter.verify_password.assert_called_with("password", "hash")


def test_login_failed_password(mock_repo, mock_auth_adapter):
    mock_repo.get_by_email.return_value = _user()
    mock_auth_adapter.verify_password.return_value = False

    result = run_login(
        LoginInput(email="test@example.com", password="wrong"), mock_repo, mock_auth_adapter, 60
    )

    assert result.success is False
    assert result.error == "Invalid credentials"
    assert result.errors == []


def test_login_unknown_user(mock_repo, mock_auth_adapter):
    result = run_login(
        LoginInput(email="ghost@example.com", password="x"), mock_repo, mock_auth_adapter, 60
    )
    assert result.success is False
    mock_auth_adapter.verify_password.assert_not_called()


def test_login_disabled_user(mock_repo, mock_auth_adapter):
    mock_repo.get_by_email.return_value = _user(status="disabled")
    mock_auth_adapter.verify_password.return_value = True

    result = run_login(
        LoginInput(email="test@example.com", password="password"), mock_repo, mock_auth_adapter, 60
    )

    assert result.success is False
    assert result.errors[0].code == "account_disabled"
    mock_auth_adapter.create_token.assert_not_called()
