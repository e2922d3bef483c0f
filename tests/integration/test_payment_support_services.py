"""
Saved payment methods and support tickets against a real SQLite database.
"""

from __future__ import annotations

from uuid import uuid4

import pytest

from storefront.adapters.sqlite.commerce_repos import (
    SQLitePaymentMethodRepo,
    SQLiteSupportTicketRepo,
)
from storefront.adapters.sqlite.repos import SQLiteUserRepo
from storefront.components.payment_methods import (
    PaymentMethodService,
    mask_upi,
    public_view,
)
from storefront.components.support import (
    SupportService,
    can_transition,
    format_ticket_number,
    next_priority,
)
from storefront.core.services.listing import ListParams
from storefront.domain.entities import User

RESPONSE_HOURS = {"URGENT": 1, "HIGH": 4, "MEDIUM": 24, "LOW": 48}
RESOLUTION_HOURS = {"URGENT": 8, "HIGH": 24, "MEDIUM": 72, "LOW": 168}


def _card(**overrides):
    details = {
        "card_brand": "Visa",
        "last4": "4242",
        "expiry_month": "7",
        "expiry_year": "2028",
        "card_holder_name": "Asha Rao",
        "token": "tok_visa_4242",
    }
    details.update(overrides)
    return details


@pytest.fixture
def users(test_db_path) -> SQLiteUserRepo:
    return SQLiteUserRepo(test_db_path)


@pytest.fixture
def owner(users) -> User:
    return users.save(User(name="Asha", email="asha@example.com", password_hash="x"))


@pytest.fixture
def agent(users) -> User:
    return users.save(
        User(name="Agent", email="agent@example.com", password_hash="x", roles=["admin"])
    )


@pytest.fixture
def methods(test_db_path, auth_adapter, clock) -> PaymentMethodService:
    return PaymentMethodService(SQLitePaymentMethodRepo(test_db_path), auth_adapter, clock)


@pytest.fixture
def support(test_db_path, clock) -> SupportService:
    return SupportService(
        SQLiteSupportTicketRepo(test_db_path), clock, RESPONSE_HOURS, RESOLUTION_HOURS
    )


# --- Payment methods ---


def test_mask_upi():
    assert mask_upi("john.doe@okbank") == "jo****@okbank"
    assert mask_upi("ab@ybl") == "a****@ybl"


class TestPaymentMethods:
    def test_card_saved_without_token(self, methods, owner, auth_adapter):
        method, errors = methods.add(owner.id, "CREDIT_CARD", _card())
        assert errors == []
        assert method.expiry_month == "07"
        assert method.token_fingerprint == auth_adapter.hash_token("tok_visa_4242")
        assert method.is_default is True

        view = public_view(method)
        assert "token_fingerprint" not in view
        assert "token" not in view
        assert view["display_name"] == "Visa ****4242"

    def test_card_validation(self, methods, owner):
        method, errors = methods.add(
            owner.id,
            "DEBIT_CARD",
            _card(card_brand="DINERS", last4="42", expiry_month="13", token=""),
        )
        assert method is None
        assert {e.code for e in errors} == {
            "card_brand_invalid",
            "last4_invalid",
            "expiry_month_invalid",
            "token_required",
        }

    def test_expired_card(self, methods, owner):
        _, errors = methods.add(
            owner.id, "CREDIT_CARD", _card(expiry_month="02", expiry_year="2026")
        )
        assert errors[0].code == "card_expired"

    def test_duplicate_by_fingerprint(self, methods, owner):
        methods.add(owner.id, "CREDIT_CARD", _card())
        method, errors = methods.add(owner.id, "CREDIT_CARD", _card(last4="1111"))
        assert method is None
        assert errors[0].code == "payment_method_duplicate"

    def test_upi_masked_in_view(self, methods, owner):
        method, errors = methods.add(
            owner.id, "UPI", {"upi_id": "asha.rao@okbank", "account_holder_name": "Asha Rao"}
        )
        assert errors == []
        assert public_view(method)["upi_id"] == "as****@okbank"

    def test_single_default(self, methods, owner):
        card, _ = methods.add(owner.id, "CREDIT_CARD", _card())
        wallet, _ = methods.add(owner.id, "WALLET", {"wallet_provider": "Paytm"}, is_default=True)

        assert methods.get_default(owner.id).id == wallet.id
        stored = {m.id: m for m in methods.list_for_user(owner.id)}
        assert stored[card.id].is_default is False

        methods.set_default_own(owner.id, card.id)
        assert methods.get_default(owner.id).id == card.id

    def test_deleting_default_promotes_newest(self, methods, owner, clock):
        card, _ = methods.add(owner.id, "CREDIT_CARD", _card())
        clock.advance(minutes=1)
        upi, _ = methods.add(
            owner.id, "UPI", {"upi_id": "asha@ybl", "account_holder_name": "Asha Rao"}
        )

        deleted, errors = methods.delete_own(owner.id, card.id)
        assert deleted is True
        assert methods.get_default(owner.id).id == upi.id
        assert methods.get(card.id).is_active is False
        assert [m.id for m in methods.list_for_user(owner.id)] == [upi.id]

    def test_other_users_method_not_found(self, methods, owner, users):
        method, _ = methods.add(owner.id, "CREDIT_CARD", _card())
        stranger = users.save(User(name="S", email="s@example.com", password_hash="x"))
        updated, errors = methods.update_own(stranger.id, method.id, {"alias": "Mine"})
        assert updated is None
        assert errors[0].code == "payment_method_not_found"

    def test_update_ignores_protected_fields(self, methods, owner):
        method, _ = methods.add(owner.id, "CREDIT_CARD", _card())
        updated, errors = methods.update_own(
            owner.id, method.id, {"alias": "Work card", "last4": "0000"}
        )
        assert errors == []
        assert updated.alias == "Work card"
        assert updated.last4 == "4242"

    def test_admin_list_filters(self, methods, owner):
        methods.add(owner.id, "CREDIT_CARD", _card())
        methods.add(owner.id, "WALLET", {"wallet_provider": "Paytm"})
        items, total = methods.list(ListParams(), method_type="WALLET")
        assert total == 1
        assert items[0].wallet_provider == "Paytm"


# --- Support tickets ---


def test_transition_graph():
    assert can_transition("OPEN", "IN_PROGRESS")
    assert can_transition("RESOLVED", "IN_PROGRESS")
    assert not can_transition("CLOSED", "OPEN")
    assert not can_transition("IN_PROGRESS", "CANCELLED")


def test_priority_ladder():
    assert next_priority("LOW") == "MEDIUM"
    assert next_priority("URGENT") is None


def test_ticket_number_format():
    assert format_ticket_number(2026, 7) == "TKT-2026-000007"


class TestSupport:
    def _open(self, support, owner, **kwargs):
        ticket, errors = support.create(
            owner, "Order missing", "Parcel never arrived", "ORDER_ISSUE", **kwargs
        )
        assert errors == []
        return ticket

    def test_create_numbers_and_sla(self, support, owner, fixed_now):
        first = self._open(support, owner)
        second = self._open(support, owner, priority="URGENT")

        assert first.ticket_number == "TKT-2026-000001"
        assert second.ticket_number == "TKT-2026-000002"
        assert first.user_email == owner.email
        assert (first.response_due - fixed_now).total_seconds() == 24 * 3600
        assert (second.resolution_due - fixed_now).total_seconds() == 8 * 3600

    def test_create_validation(self, support, owner):
        ticket, errors = support.create(owner, " ", "x", "NOPE", priority="SOMEDAY")
        assert ticket is None
        assert {e.code for e in errors} == {
            "subject_invalid",
            "category_invalid",
            "priority_invalid",
        }

    def test_internal_notes_hidden_from_owner(self, support, owner, agent, fixed_now):
        ticket = self._open(support, owner)
        support.add_admin_message(agent, ticket.id, "Checking courier", is_internal=True)
        replied, _ = support.add_admin_message(agent, ticket.id, "We are on it")

        assert replied.first_response_at == fixed_now
        assert len(replied.messages) == 2
        visible = support.get_for_user(owner.id, ticket.id)
        assert [m.message for m in visible.messages] == ["We are on it"]

    def test_assign_moves_to_in_progress(self, support, owner, agent):
        ticket = self._open(support, owner)
        assigned, errors = support.assign(ticket.id, agent.id)
        assert errors == []
        assert assigned.status == "IN_PROGRESS"
        assert assigned.assigned_to == agent.id

    def test_user_reply_reopens_pending(self, support, owner, agent):
        ticket = self._open(support, owner)
        support.update(ticket.id, {"status": "PENDING_USER"}, agent.id)
        replied, _ = support.add_user_message(owner, ticket.id, "Here is the photo")
        assert replied.status == "IN_PROGRESS"

    def test_invalid_transition(self, support, owner, agent):
        ticket = self._open(support, owner)
        support.update(ticket.id, {"status": "CLOSED"}, agent.id)
        updated, errors = support.update(ticket.id, {"status": "IN_PROGRESS"}, agent.id)
        assert updated is None
        assert errors[0].code == "status_transition_invalid"

        _, errors = support.add_user_message(owner, ticket.id, "Hello?")
        assert errors[0].code == "ticket_closed"

    def test_resolve_then_rate(self, support, owner, agent, fixed_now):
        ticket = self._open(support, owner)
        _, errors = support.rate(owner.id, ticket.id, 5)
        assert errors[0].code == "ticket_not_resolved"

        resolved, _ = support.update(
            ticket.id, {"status": "RESOLVED", "resolution_type": "REFUNDED"}, agent.id
        )
        assert resolved.resolved_at == fixed_now
        assert resolved.resolved_by == agent.id

        rated, errors = support.rate(owner.id, ticket.id, 4, "Quick help")
        assert errors == []
        assert rated.satisfaction_rating == 4

    def test_escalate_recomputes_sla(self, support, owner, fixed_now):
        ticket = self._open(support, owner, priority="HIGH")
        escalated, _ = support.escalate(ticket.id)
        assert escalated.priority == "URGENT"
        assert (escalated.response_due - fixed_now).total_seconds() == 3600

        _, errors = support.escalate(ticket.id)
        assert errors[0].code == "priority_at_maximum"

    def test_overdue_listing_and_stats(self, support, owner, clock):
        urgent = self._open(support, owner, priority="URGENT")
        self._open(support, owner, priority="LOW")
        clock.advance(hours=2)

        overdue, total = support.list(ListParams(), overdue=True)
        assert total == 1
        assert overdue[0].id == urgent.id

        stats = support.stats()
        assert stats.total == 2
        assert stats.overdue == 1
        assert stats.by_status["OPEN"] == 2
        assert stats.by_priority["LOW"] == 1

    def test_owner_scoping(self, support, owner, users):
        ticket = self._open(support, owner)
        stranger = users.save(User(name="S", email="s@example.com", password_hash="x"))
        assert support.get_for_user(stranger.id, ticket.id) is None
        _, errors = support.close_own(stranger.id, ticket.id)
        assert errors[0].code == "ticket_not_found"

    def test_delete(self, support, owner):
        ticket = self._open(support, owner)
        deleted, _ = support.delete(ticket.id)
        assert deleted is True
        _, errors = support.delete(uuid4())
        assert errors[0].code == "ticket_not_found"
