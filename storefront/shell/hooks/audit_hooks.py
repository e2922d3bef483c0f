"""
AuditHooks - audit trail for admin mutations.

Each admin create/update/delete/status change is written as one structured
record on the `storefront.audit` logger. Deployments route that logger to
whatever sink they keep audit history in.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any
from uuid import UUID

audit_logger = logging.getLogger("storefront.audit")


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    STATUS_CHANGE = "status_change"
    ADJUST = "adjust"
    ASSIGN = "assign"
    GENERATE = "generate"


class EntityType(str, Enum):
    BRAND = "brand"
    OPTION = "option"
    PRODUCT = "product"
    PRODUCT_VARIANT = "product_variant"
    INVENTORY = "inventory"
    COUPON_CAMPAIGN = "coupon_campaign"
    USER_COUPON = "user_coupon"
    REVIEW = "review"
    WALLET = "wallet"
    PAYMENT_METHOD = "payment_method"
    SUPPORT_TICKET = "support_ticket"
    USER = "user"


# --- Actor Context ---


@dataclass
class ActorContext:
    """Context for the actor performing an action."""

    actor_id: UUID | None = None
    actor_email: str | None = None
    ip_address: str | None = None


@dataclass
class HooksConfig:
    enabled: bool = True


class AuditHooks:
    """Writes audit records for admin actions."""

    def __init__(
        self,
        logger: logging.Logger | None = None,
        config: HooksConfig | None = None,
    ) -> None:
        self._logger = logger or audit_logger
        self._config = config or HooksConfig()

    def log(
        self,
        action: AuditAction,
        entity_type: EntityType,
        entity_id: UUID | str | None = None,
        actor: ActorContext | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        if not self._config.enabled:
            return

        record = {
            "action": action.value,
            "entity_type": entity_type.value,
            "entity_id": str(entity_id) if entity_id is not None else None,
            "actor_id": str(actor.actor_id) if actor and actor.actor_id else None,
            "actor_email": actor.actor_email if actor else None,
            "ip_address": actor.ip_address if actor else None,
            "metadata": metadata or {},
        }
        self._logger.info(
            "%s %s %s by %s",
            record["action"],
            record["entity_type"],
            record["entity_id"],
            record["actor_email"] or "system",
            extra={"audit": record},
        )

    def log_update(
        self,
        entity_type: EntityType,
        entity_id: UUID | str,
        changes: dict[str, Any],
        actor: ActorContext | None = None,
    ) -> None:
        """Log an update with the fields that were sent."""
        self.log(
            AuditAction.UPDATE,
            entity_type,
            entity_id,
            actor=actor,
            metadata={"changes": {k: _plain(v) for k, v in changes.items()}},
        )


def _plain(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if isinstance(value, str | int | float | bool) or value is None:
        return value
    return str(value)
