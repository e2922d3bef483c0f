"""
PaymentMethodService - saved payment instruments per user.

Card tokens are never stored; only their SHA-256 fingerprint is kept, for
duplicate detection. A user has at most one default method, and the first
active method they save becomes it.
"""

from __future__ import annotations

import logging
import re
from typing import Any, get_args
from uuid import UUID, uuid4

from storefront.core.services.listing import ListParams
from storefront.domain.entities import (
    CardBrand,
    PaymentMethod,
    PaymentMethodType,
    WalletProvider,
)

from .models import PaymentMethodValidationError
from .ports import PaymentMethodRepoPort, TimePort, TokenHasherPort

logger = logging.getLogger(__name__)

ALIAS_MAX = 50
HOLDER_NAME_MAX = 100
BANK_NAME_MAX = 100
EXPIRY_YEARS_AHEAD = 20
CARD_TYPES = ("CREDIT_CARD", "DEBIT_CARD")
METHOD_TYPES: tuple[str, ...] = get_args(PaymentMethodType)
CARD_BRANDS: tuple[str, ...] = get_args(CardBrand)
WALLET_PROVIDERS: tuple[str, ...] = get_args(WalletProvider)
LAST4_PATTERN = re.compile(r"^\d{4}$")
UPI_PATTERN = re.compile(r"^[\w.-]+@[\w.-]+$")
USER_EDITABLE = ("alias", "expiry_month", "expiry_year", "card_holder_name", "account_holder_name")


def mask_upi(upi_id: str) -> str:
    """'john.doe@okbank' -> 'jo****@okbank'"""
    local, _, handle = upi_id.partition("@")
    visible = local[:2] if len(local) > 2 else local[:1]
    return f"{visible}****@{handle}"


def display_name(method: PaymentMethod) -> str:
    if method.alias:
        return method.alias
    if method.method_type in CARD_TYPES:
        return f"{method.card_brand} ****{method.last4}"
    if method.method_type == "UPI" and method.upi_id:
        return mask_upi(method.upi_id)
    if method.method_type == "WALLET":
        return f"{method.wallet_provider} Wallet"
    if method.method_type == "NETBANKING":
        return f"{method.bank_name} Net Banking"
    return method.method_type


def public_view(method: PaymentMethod) -> dict[str, Any]:
    """JSON-ready form without the fingerprint and with the UPI id masked."""
    data = method.model_dump(mode="json", exclude={"token_fingerprint"})
    if method.upi_id:
        data["upi_id"] = mask_upi(method.upi_id)
    data["display_name"] = display_name(method)
    return data


def _normalise_month(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text.zfill(2) if text.isdigit() else text


def _error(code: str, message: str, field: str) -> PaymentMethodValidationError:
    return PaymentMethodValidationError(code=code, message=message, field=field)


def validate_expiry(
    month: str | None, year: str | None, current_year: int, current_month: int
) -> list[PaymentMethodValidationError]:
    errors: list[PaymentMethodValidationError] = []
    month_ok = month is not None and month.isdigit() and 1 <= int(month) <= 12
    if not month_ok:
        errors.append(
            _error("expiry_month_invalid", "Expiry month must be 01 to 12", "details.expiry_month")
        )
    year_ok = (
        year is not None
        and year.isdigit()
        and current_year <= int(year) <= current_year + EXPIRY_YEARS_AHEAD
    )
    if not year_ok:
        errors.append(
            _error(
                "expiry_year_invalid",
                f"Expiry year must be between {current_year} and "
                f"{current_year + EXPIRY_YEARS_AHEAD}",
                "details.expiry_year",
            )
        )
    if month_ok and year_ok and int(year or 0) == current_year and int(month or 0) < current_month:
        errors.append(_error("card_expired", "Card has expired", "details.expiry_month"))
    return errors


def validate_details(
    method_type: str,
    details: dict[str, Any],
    current_year: int,
    current_month: int,
) -> list[PaymentMethodValidationError]:
    """Check the detail fields required by each method type."""
    errors: list[PaymentMethodValidationError] = []

    if method_type in CARD_TYPES:
        if details.get("card_brand") not in CARD_BRANDS:
            errors.append(
                _error(
                    "card_brand_invalid",
                    f"Card brand must be one of {', '.join(CARD_BRANDS)}",
                    "details.card_brand",
                )
            )
        if not LAST4_PATTERN.match(str(details.get("last4") or "")):
            errors.append(
                _error("last4_invalid", "Last 4 digits must be exactly 4 digits", "details.last4")
            )
        errors.extend(
            validate_expiry(
                _normalise_month(details.get("expiry_month")),
                str(details["expiry_year"]).strip() if details.get("expiry_year") else None,
                current_year,
                current_month,
            )
        )
        holder = (details.get("card_holder_name") or "").strip()
        if not holder or len(holder) > HOLDER_NAME_MAX:
            errors.append(
                _error(
                    "card_holder_name_invalid",
                    f"Card holder name is required (max {HOLDER_NAME_MAX} characters)",
                    "details.card_holder_name",
                )
            )
        if not (details.get("token") or "").strip():
            errors.append(_error("token_required", "Card token is required", "details.token"))

    elif method_type == "UPI":
        if not UPI_PATTERN.match((details.get("upi_id") or "").strip()):
            errors.append(_error("upi_id_invalid", "Invalid UPI ID format", "details.upi_id"))
        if not (details.get("account_holder_name") or "").strip():
            errors.append(
                _error(
                    "account_holder_name_required",
                    "Account holder name is required",
                    "details.account_holder_name",
                )
            )

    elif method_type == "WALLET":
        if details.get("wallet_provider") not in WALLET_PROVIDERS:
            errors.append(
                _error(
                    "wallet_provider_invalid",
                    f"Wallet provider must be one of {', '.join(WALLET_PROVIDERS)}",
                    "details.wallet_provider",
                )
            )

    elif method_type == "NETBANKING":
        bank = (details.get("bank_name") or "").strip()
        if not bank or len(bank) > BANK_NAME_MAX:
            errors.append(
                _error("bank_name_invalid", "Bank name is required", "details.bank_name")
            )
        if not (details.get("account_holder_name") or "").strip():
            errors.append(
                _error(
                    "account_holder_name_required",
                    "Account holder name is required",
                    "details.account_holder_name",
                )
            )

    return errors


def same_instrument(a: PaymentMethod, b: PaymentMethod) -> bool:
    if a.method_type != b.method_type:
        return False
    if a.method_type in CARD_TYPES:
        if a.token_fingerprint and a.token_fingerprint == b.token_fingerprint:
            return True
        return (a.card_brand, a.last4, a.expiry_month, a.expiry_year) == (
            b.card_brand,
            b.last4,
            b.expiry_month,
            b.expiry_year,
        )
    if a.method_type == "UPI":
        return (a.upi_id or "").lower() == (b.upi_id or "").lower()
    if a.method_type == "WALLET":
        return a.wallet_provider == b.wallet_provider
    if a.method_type == "NETBANKING":
        return (a.bank_name or "").lower() == (b.bank_name or "").lower() and (
            a.account_holder_name or ""
        ).lower() == (b.account_holder_name or "").lower()
    return False


class PaymentMethodService:
    def __init__(
        self,
        repo: PaymentMethodRepoPort,
        hasher: TokenHasherPort,
        clock: TimePort,
    ) -> None:
        self._repo = repo
        self._hasher = hasher
        self._clock = clock

    # --- User ---

    def add(
        self,
        user_id: UUID,
        method_type: str,
        details: dict[str, Any],
        alias: str | None = None,
        is_default: bool = False,
    ) -> tuple[PaymentMethod | None, list[PaymentMethodValidationError]]:
        if method_type not in METHOD_TYPES:
            return None, [
                _error(
                    "method_type_invalid",
                    f"Method type must be one of {', '.join(METHOD_TYPES)}",
                    "method_type",
                )
            ]

        now = self._clock.now_utc()
        errors = _validate_alias(alias)
        errors.extend(validate_details(method_type, details, now.year, now.month))
        if errors:
            return None, errors

        token = (details.get("token") or "").strip()
        method = PaymentMethod(
            id=uuid4(),
            user_id=user_id,
            method_type=method_type,  # type: ignore[arg-type]
            alias=_clean(alias),
            created_at=now,
            updated_at=now,
        )
        if method_type in CARD_TYPES:
            method.card_brand = details["card_brand"]
            method.last4 = str(details["last4"])
            method.expiry_month = _normalise_month(details["expiry_month"])
            method.expiry_year = str(details["expiry_year"]).strip()
            method.card_holder_name = details["card_holder_name"].strip()
            method.token_fingerprint = self._hasher.hash_token(token)
        elif method_type == "UPI":
            method.upi_id = details["upi_id"].strip()
            method.account_holder_name = details["account_holder_name"].strip()
        elif method_type == "WALLET":
            method.wallet_provider = details["wallet_provider"]
        elif method_type == "NETBANKING":
            method.bank_name = details["bank_name"].strip()
            method.account_holder_name = details["account_holder_name"].strip()

        existing = self._repo.list_for_user(user_id, method.method_type)
        if any(same_instrument(method, other) for other in existing):
            return None, [
                PaymentMethodValidationError(
                    code="payment_method_duplicate",
                    message="This payment method is already saved",
                )
            ]

        self._repo.save(method)
        if is_default or self._repo.get_default(user_id) is None:
            self._repo.set_default(user_id, method.id, now)
            method.is_default = True
        logger.info("Saved %s payment method %s for user %s", method_type, method.id, user_id)
        return method, []

    def list_for_user(
        self, user_id: UUID, method_type: PaymentMethodType | None = None
    ) -> list[PaymentMethod]:
        return self._repo.list_for_user(user_id, method_type)

    def get_for_user(self, user_id: UUID, method_id: UUID) -> PaymentMethod | None:
        method = self._repo.get_by_id(method_id)
        if method is None or method.user_id != user_id or not method.is_active:
            return None
        return method

    def get_default(self, user_id: UUID) -> PaymentMethod | None:
        return self._repo.get_default(user_id)

    def update_own(
        self, user_id: UUID, method_id: UUID, updates: dict[str, Any]
    ) -> tuple[PaymentMethod | None, list[PaymentMethodValidationError]]:
        method = self.get_for_user(user_id, method_id)
        if method is None:
            return None, [_not_found()]

        changes = {k: v for k, v in updates.items() if k in USER_EDITABLE}
        now = self._clock.now_utc()
        errors = _validate_alias(changes.get("alias"))
        if "expiry_month" in changes or "expiry_year" in changes:
            if method.method_type not in CARD_TYPES:
                errors.append(
                    _error("expiry_not_applicable", "Only cards have an expiry", "expiry_month")
                )
            else:
                errors.extend(
                    validate_expiry(
                        _normalise_month(changes.get("expiry_month", method.expiry_month)),
                        str(changes.get("expiry_year", method.expiry_year) or "").strip() or None,
                        now.year,
                        now.month,
                    )
                )
        for key in ("card_holder_name", "account_holder_name"):
            if key in changes:
                name = (changes[key] or "").strip()
                if not name or len(name) > HOLDER_NAME_MAX:
                    errors.append(
                        _error(
                            f"{key}_invalid",
                            f"Holder name is required (max {HOLDER_NAME_MAX} characters)",
                            key,
                        )
                    )
        if errors:
            return None, errors

        if "alias" in changes:
            method.alias = _clean(changes["alias"])
        if "expiry_month" in changes:
            method.expiry_month = _normalise_month(changes["expiry_month"])
        if "expiry_year" in changes:
            method.expiry_year = str(changes["expiry_year"]).strip()
        for key in ("card_holder_name", "account_holder_name"):
            if key in changes:
                setattr(method, key, changes[key].strip())
        method.updated_at = now
        return self._repo.save(method), []

    def set_default_own(
        self, user_id: UUID, method_id: UUID
    ) -> tuple[PaymentMethod | None, list[PaymentMethodValidationError]]:
        method = self.get_for_user(user_id, method_id)
        if method is None:
            return None, [_not_found()]
        self._repo.set_default(user_id, method.id, self._clock.now_utc())
        return self._repo.get_by_id(method.id), []

    def delete_own(
        self, user_id: UUID, method_id: UUID
    ) -> tuple[bool, list[PaymentMethodValidationError]]:
        method = self.get_for_user(user_id, method_id)
        if method is None:
            return False, [_not_found()]
        self._deactivate(method)
        return True, []

    # --- Admin ---

    def list(
        self,
        params: ListParams,
        user_id: UUID | None = None,
        method_type: PaymentMethodType | None = None,
        is_active: bool | None = None,
    ) -> tuple[list[PaymentMethod], int]:
        return self._repo.list(
            params, user_id=user_id, method_type=method_type, is_active=is_active
        )

    def get(self, method_id: UUID) -> PaymentMethod | None:
        return self._repo.get_by_id(method_id)

    def admin_update(
        self, method_id: UUID, updates: dict[str, Any]
    ) -> tuple[PaymentMethod | None, list[PaymentMethodValidationError]]:
        method = self._repo.get_by_id(method_id)
        if method is None:
            return None, [_not_found()]
        errors = _validate_alias(updates.get("alias"))
        if errors:
            return None, errors

        if "alias" in updates:
            method.alias = _clean(updates["alias"])
        if updates.get("is_active") is False and method.is_active:
            self._deactivate(method)
            method = self._repo.get_by_id(method_id) or method
        elif updates.get("is_active") is True and not method.is_active:
            method.is_active = True
            if self._repo.get_default(method.user_id) is None:
                method.is_default = True
        method.updated_at = self._clock.now_utc()
        return self._repo.save(method), []

    def delete(self, method_id: UUID) -> tuple[bool, list[PaymentMethodValidationError]]:
        method = self._repo.get_by_id(method_id)
        if method is None:
            return False, [_not_found()]
        self._deactivate(method)
        return True, []

    def _deactivate(self, method: PaymentMethod) -> None:
        """Soft delete; a removed default hands over to the most recent remaining method."""
        now = self._clock.now_utc()
        was_default = method.is_default
        method.is_active = False
        method.is_default = False
        method.updated_at = now
        self._repo.save(method)
        if was_default:
            remaining = self._repo.list_for_user(method.user_id)
            successor = max(remaining, key=lambda m: m.created_at, default=None)
            self._repo.set_default(method.user_id, successor.id if successor else None, now)


def _validate_alias(alias: str | None) -> list[PaymentMethodValidationError]:
    if alias is not None and len(alias.strip()) > ALIAS_MAX:
        return [_error("alias_too_long", f"Alias cannot exceed {ALIAS_MAX} characters", "alias")]
    return []


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def _not_found() -> PaymentMethodValidationError:
    return PaymentMethodValidationError(
        code="payment_method_not_found", message="Payment method not found"
    )
