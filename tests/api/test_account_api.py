"""
Payment methods, support tickets, reviews and health over HTTP.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

API = "/api/v1"


def _card_details(last4="4242", token="tok_visa_4242"):
    return {
        "card_brand": "Visa",
        "last4": last4,
        "expiry_month": "12",
        "expiry_year": str(datetime.now(UTC).year + 3),
        "card_holder_name": "Asha Rao",
        "token": token,
    }


@pytest.fixture
def active_variant(client, admin_headers):
    product = client.post(
        f"{API}/products",
        json={"name": "Rain Jacket", "description": "Waterproof", "category_id": "outerwear"},
        headers=admin_headers,
    ).json()["data"]
    return client.post(
        f"{API}/product-variants",
        json={"product_id": product["id"], "sku_code": "JACKET-M", "price": "120.00"},
        headers=admin_headers,
    ).json()["data"]


def _open_ticket(client, headers, **extra):
    body = {
        "subject": "Order missing",
        "description": "Parcel never arrived",
        "category": "ORDER_ISSUE",
        **extra,
    }
    response = client.post(f"{API}/user/support-tickets", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


# --- Payment methods ---


def test_card_saved_without_fingerprint(client, customer_headers):
    response = client.post(
        f"{API}/user/payment-methods",
        json={"method_type": "CREDIT_CARD", "details": _card_details(), "is_default": True},
        headers=customer_headers,
    )
    assert response.status_code == 201
    method = response.json()["data"]
    assert "token_fingerprint" not in method
    assert method["last4"] == "4242"
    assert method["display_name"] == "Visa ****4242"

    default = client.get(f"{API}/user/payment-methods/default", headers=customer_headers)
    assert default.json()["data"]["id"] == method["id"]


def test_upi_id_masked(client, customer_headers):
    response = client.post(
        f"{API}/user/payment-methods",
        json={
            "method_type": "UPI",
            "details": {"upi_id": "asha.rao@okbank", "account_holder_name": "Asha Rao"},
        },
        headers=customer_headers,
    )
    assert response.status_code == 201
    assert response.json()["data"]["upi_id"] == "as****@okbank"

    listed = client.get(f"{API}/user/payment-methods", headers=customer_headers).json()["data"]
    assert [m["upi_id"] for m in listed] == ["as****@okbank"]


def test_duplicate_card_rejected(client, customer_headers):
    body = {"method_type": "CREDIT_CARD", "details": _card_details()}
    client.post(f"{API}/user/payment-methods", json=body, headers=customer_headers)
    response = client.post(f"{API}/user/payment-methods", json=body, headers=customer_headers)
    assert response.status_code == 400


def test_no_default_is_404(client, customer_headers):
    response = client.get(f"{API}/user/payment-methods/default", headers=customer_headers)
    assert response.status_code == 404


def test_delete_own_payment_method(client, customer_headers):
    method = client.post(
        f"{API}/user/payment-methods",
        json={"method_type": "CREDIT_CARD", "details": _card_details()},
        headers=customer_headers,
    ).json()["data"]

    response = client.delete(
        f"{API}/user/payment-methods/{method['id']}", headers=customer_headers
    )
    assert response.status_code == 204
    remaining = client.get(f"{API}/user/payment-methods", headers=customer_headers)
    assert remaining.json()["data"] == []


def test_admin_payment_method_listing(client, admin_headers, customer_headers):
    client.post(
        f"{API}/user/payment-methods",
        json={"method_type": "CREDIT_CARD", "details": _card_details()},
        headers=customer_headers,
    )
    assert client.get(f"{API}/payment-methods", headers=customer_headers).status_code == 403

    response = client.get(f"{API}/payment-methods", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["pagination"]["total_items"] == 1
    assert "token_fingerprint" not in response.json()["data"][0]


# --- Support ---


def test_ticket_created_with_number_and_sla_flag(client, customer_headers):
    ticket = _open_ticket(client, customer_headers)
    year = datetime.now(UTC).year
    assert ticket["ticket_number"] == f"TKT-{year}-000001"
    assert ticket["status"] == "OPEN"
    assert ticket["priority"] == "MEDIUM"
    assert ticket["is_sla_breached"] is False


def test_ticket_validation(client, customer_headers):
    response = client.post(
        f"{API}/user/support-tickets",
        json={"subject": " ", "description": "x", "category": "NOPE"},
        headers=customer_headers,
    )
    assert response.status_code == 400
    codes = {e["code"] for e in response.json()["errors"]}
    assert {"subject_invalid", "category_invalid"} <= codes


def test_admin_reply_and_internal_note(client, admin_headers, customer_headers):
    ticket = _open_ticket(client, customer_headers)

    client.post(
        f"{API}/support-tickets/{ticket['id']}/messages",
        json={"message": "Checking courier", "is_internal": True},
        headers=admin_headers,
    )
    replied = client.post(
        f"{API}/support-tickets/{ticket['id']}/messages",
        json={"message": "We are on it"},
        headers=admin_headers,
    )
    assert replied.status_code == 200
    assert len(replied.json()["data"]["messages"]) == 2

    mine = client.get(f"{API}/user/support-tickets/{ticket['id']}", headers=customer_headers)
    assert [m["message"] for m in mine.json()["data"]["messages"]] == ["We are on it"]


def test_escalate_ticket(client, admin_headers, customer_headers):
    ticket = _open_ticket(client, customer_headers, priority="HIGH")

    escalated = client.post(
        f"{API}/support-tickets/{ticket['id']}/escalate", headers=admin_headers
    )
    assert escalated.status_code == 200
    assert escalated.json()["data"]["priority"] == "URGENT"

    again = client.post(f"{API}/support-tickets/{ticket['id']}/escalate", headers=admin_headers)
    assert again.status_code == 400


def test_other_users_ticket_is_404(client, customer_headers, make_user):
    ticket = _open_ticket(client, customer_headers)
    _, other_headers = make_user(email="other@example.com")

    response = client.get(f"{API}/user/support-tickets/{ticket['id']}", headers=other_headers)
    assert response.status_code == 404


def test_ticket_admin_routes_forbidden_for_customer(client, customer_headers):
    assert client.get(f"{API}/support-tickets", headers=customer_headers).status_code == 403


# --- Reviews ---


def test_review_moderation_flow(client, admin_headers, customer_headers, active_variant):
    variant_id = active_variant["id"]
    submitted = client.post(
        f"{API}/user/reviews",
        json={"product_variant_id": variant_id, "rating": 4, "title": "Keeps me dry"},
        headers=customer_headers,
    )
    assert submitted.status_code == 201
    review = submitted.json()["data"]
    assert review["status"] == "PENDING_APPROVAL"

    public = client.get(f"{API}/product-variants/{variant_id}/reviews")
    assert public.json()["data"] == []

    approved = client.patch(
        f"{API}/reviews/{review['id']}/status",
        json={"status": "APPROVED"},
        headers=admin_headers,
    )
    assert approved.status_code == 200

    public = client.get(f"{API}/product-variants/{variant_id}/reviews").json()
    assert [r["title"] for r in public["data"]] == ["Keeps me dry"]

    summary = client.get(f"{API}/product-variants/{variant_id}/rating-summary").json()["data"]
    assert summary["total_reviews"] == 1
    assert summary["average_rating"] == 4.0


def test_duplicate_review_rejected(client, customer_headers, active_variant):
    body = {"product_variant_id": active_variant["id"], "rating": 5}
    client.post(f"{API}/user/reviews", json=body, headers=customer_headers)
    response = client.post(f"{API}/user/reviews", json=body, headers=customer_headers)
    assert response.status_code == 400


def test_review_moderation_requires_admin(client, customer_headers, active_variant):
    review = client.post(
        f"{API}/user/reviews",
        json={"product_variant_id": active_variant["id"], "rating": 5},
        headers=customer_headers,
    ).json()["data"]
    response = client.patch(
        f"{API}/reviews/{review['id']}/status",
        json={"status": "APPROVED"},
        headers=customer_headers,
    )
    assert response.status_code == 403


def test_reviews_of_unknown_variant_is_404(client):
    response = client.get(f"{API}/product-variants/00000000-0000-0000-0000-000000000000/reviews")
    assert response.status_code == 404


# --- Health ---


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "api"}
