"""
Registration, login and session routes.
"""

from __future__ import annotations

AUTH = "/api/v1/auth"


def _register(client, email="new@example.com", password="password123", name="New Shopper"):
    return client.post(
        f"{AUTH}/register", json={"name": name, "email": email, "password": password}
    )


def test_register_returns_token_and_cookie(client):
    response = _register(client, email="New@Example.com")

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["token_type"] == "bearer"
    assert body["data"]["user"]["email"] == "new@example.com"
    assert body["data"]["user"]["roles"] == ["customer"]
    assert "password_hash" not in body["data"]["user"]
    assert response.cookies.get("access_token")


def test_register_duplicate_email(client):
    _register(client)
    response = _register(client)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["errors"][0]["code"] == "email_duplicate"


def test_register_validation_envelope(client):
    response = _register(client, email="nope", password="short", name="X")

    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Validation errors"
    assert {e["code"] for e in body["errors"]} == {
        "name_length",
        "email_invalid",
        "password_too_short",
    }


def test_missing_body_fields_use_error_envelope(client):
    response = client.post(f"{AUTH}/register", json={"email": "x@example.com"})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert {e["field"] for e in body["errors"]} == {"name", "password"}


def test_login_and_profile(client, customer):
    user, _ = customer
    response = client.post(
        f"{AUTH}/login", json={"email": user.email, "password": "password123"}
    )
    assert response.status_code == 200
    token = response.json()["data"]["access_token"]

    client.cookies.clear()
    profile = client.get(f"{AUTH}/profile", headers={"Authorization": f"Bearer {token}"})
    assert profile.status_code == 200
    assert profile.json()["data"]["id"] == str(user.id)


def test_profile_from_cookie(client, customer):
    user, _ = customer
    client.post(f"{AUTH}/login", json={"email": user.email, "password": "password123"})

    profile = client.get(f"{AUTH}/profile")
    assert profile.status_code == 200
    assert profile.json()["data"]["email"] == user.email


def test_token_form_login(client, customer):
    user, _ = customer
    response = client.post(
        f"{AUTH}/token", data={"username": user.email, "password": "password123"}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"

    client.cookies.clear()
    profile = client.get(
        f"{AUTH}/profile", headers={"Authorization": f"Bearer {body['access_token']}"}
    )
    assert profile.json()["data"]["email"] == user.email


def test_token_form_wrong_password(client, customer):
    user, _ = customer
    response = client.post(f"{AUTH}/token", data={"username": user.email, "password": "nope"})
    assert response.status_code == 401


def test_login_wrong_password(client, customer):
    user, _ = customer
    response = client.post(f"{AUTH}/login", json={"email": user.email, "password": "wrong"})

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Incorrect email or password"}


def test_login_disabled_account(client, make_user):
    make_user(email="gone@example.com", status="disabled")
    response = client.post(
        f"{AUTH}/login", json={"email": "gone@example.com", "password": "password123"}
    )
    assert response.status_code == 403


def test_login_rate_limited(client, customer):
    user, _ = customer
    for _ in range(10):
        client.post(f"{AUTH}/login", json={"email": user.email, "password": "wrong"})

    response = client.post(
        f"{AUTH}/login", json={"email": user.email, "password": "password123"}
    )
    assert response.status_code == 429


def test_profile_requires_auth(client):
    response = client.get(f"{AUTH}/profile")
    assert response.status_code == 401
    assert response.json()["success"] is False


def test_invalid_token_rejected(client):
    response = client.get(f"{AUTH}/profile", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_csrf_header_must_match_cookie(client, customer):
    user, _ = customer
    issued = client.get(f"{AUTH}/csrf-token")
    token = issued.json()["data"]["csrf_token"]

    mismatch = client.post(
        f"{AUTH}/login",
        json={"email": user.email, "password": "password123"},
        headers={"X-CSRF-Token": "forged"},
    )
    assert mismatch.status_code == 403

    match = client.post(
        f"{AUTH}/login",
        json={"email": user.email, "password": "password123"},
        headers={"X-CSRF-Token": token},
    )
    assert match.status_code == 200


def test_logout_clears_cookie(client, customer):
    user, _ = customer
    client.post(f"{AUTH}/login", json={"email": user.email, "password": "password123"})

    response = client.post(f"{AUTH}/logout")
    assert response.status_code == 200
    assert client.get(f"{AUTH}/profile").status_code == 401
