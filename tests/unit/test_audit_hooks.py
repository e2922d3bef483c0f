"""
Tests for AuditHooks.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from uuid import uuid4

import pytest

from storefront.shell.hooks.audit_hooks import (
    ActorContext,
    AuditAction,
    AuditHooks,
    EntityType,
    HooksConfig,
)


@pytest.fixture
def audit_log() -> logging.Logger:
    return logging.getLogger("tests.audit")


def _records(caplog: pytest.LogCaptureFixture) -> list[dict]:
    return [r.audit for r in caplog.records if hasattr(r, "audit")]


def test_log_writes_structured_record(audit_log, caplog):
    hooks = AuditHooks(logger=audit_log)
    actor = ActorContext(actor_id=uuid4(), actor_email="admin@example.com", ip_address="1.2.3.4")
    brand_id = uuid4()

    with caplog.at_level(logging.INFO, logger="tests.audit"):
        hooks.log(AuditAction.CREATE, EntityType.BRAND, brand_id, actor, metadata={"name": "Acme"})

    (record,) = _records(caplog)
    assert record["action"] == "create"
    assert record["entity_type"] == "brand"
    assert record["entity_id"] == str(brand_id)
    assert record["actor_email"] == "admin@example.com"
    assert record["metadata"] == {"name": "Acme"}
    assert "create brand" in caplog.text


def test_log_without_actor_is_system(audit_log, caplog):
    hooks = AuditHooks(logger=audit_log)
    with caplog.at_level(logging.INFO, logger="tests.audit"):
        hooks.log(AuditAction.DELETE, EntityType.REVIEW, "abc")
    (record,) = _records(caplog)
    assert record["actor_id"] is None
    assert "by system" in caplog.text


def test_log_update_stringifies_values(audit_log, caplog):
    hooks = AuditHooks(logger=audit_log)
    option_id = uuid4()
    with caplog.at_level(logging.INFO, logger="tests.audit"):
        hooks.log_update(
            EntityType.PRODUCT_VARIANT,
            uuid4(),
            {"price": Decimal("9.99"), "option_ids": [option_id], "is_on_sale": True},
        )
    (record,) = _records(caplog)
    assert record["action"] == "update"
    assert record["metadata"]["changes"] == {
        "price": "9.99",
        "option_ids": [str(option_id)],
        "is_on_sale": True,
    }


def test_disabled_hooks_write_nothing(audit_log, caplog):
    hooks = AuditHooks(logger=audit_log, config=HooksConfig(enabled=False))
    with caplog.at_level(logging.INFO, logger="tests.audit"):
        hooks.log(AuditAction.CREATE, EntityType.BRAND, uuid4())
    assert _records(caplog) == []
