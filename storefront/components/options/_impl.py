"""
OptionService - variant option management (size, colour, pack, ...).

An option is a (type, value) pair such as ("Size", "XL"). Pairs are unique
regardless of case.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID, uuid4

from storefront.core.services.listing import ListParams
from storefront.domain.entities import Option
from storefront.domain.text import parse_uuid, slugify, unique_slug

from .models import OptionTypeGroup, OptionValidationError
from .ports import OptionRepoPort, TimePort

TYPE_MIN, TYPE_MAX = 2, 50
VALUE_MIN, VALUE_MAX = 1, 100
NAME_MAX = 150


def validate_option_data(
    option_type: str | None = None,
    option_value: str | None = None,
    name: str | None = None,
    sort_order: int | None = None,
) -> list[OptionValidationError]:
    errors: list[OptionValidationError] = []

    if option_type is not None and not TYPE_MIN <= len(option_type.strip()) <= TYPE_MAX:
        errors.append(
            OptionValidationError(
                code="option_type_length",
                message=f"Option type must be between {TYPE_MIN} and {TYPE_MAX} characters",
                field="option_type",
            )
        )

    if option_value is not None and not VALUE_MIN <= len(option_value.strip()) <= VALUE_MAX:
        errors.append(
            OptionValidationError(
                code="option_value_length",
                message=f"Option value must be between {VALUE_MIN} and {VALUE_MAX} characters",
                field="option_value",
            )
        )

    if name is not None and len(name.strip()) > NAME_MAX:
        errors.append(
            OptionValidationError(
                code="name_too_long",
                message=f"Name cannot exceed {NAME_MAX} characters",
                field="name",
            )
        )

    if sort_order is not None and sort_order < 0:
        errors.append(
            OptionValidationError(
                code="sort_order_negative",
                message="Sort order must be a non-negative integer",
                field="sort_order",
            )
        )

    return errors


class OptionService:
    def __init__(self, repo: OptionRepoPort, clock: TimePort) -> None:
        self._repo = repo
        self._clock = clock

    def list(
        self,
        params: ListParams,
        option_type: str | None = None,
        is_active: bool | None = None,
    ) -> tuple[list[Option], int]:
        return self._repo.list(params, option_type=option_type, is_active=is_active)

    def get(self, identifier: str) -> Option | None:
        option_id = parse_uuid(identifier)
        if option_id:
            return self._repo.get_by_id(option_id)
        return self._repo.get_by_slug(identifier)

    def create(
        self,
        option_type: str,
        option_value: str,
        name: str | None = None,
        sort_order: int = 0,
        is_active: bool = True,
    ) -> tuple[Option | None, list[OptionValidationError]]:
        errors = validate_option_data(option_type, option_value, name, sort_order)
        if errors:
            return None, errors

        if self._repo.get_by_type_value(option_type, option_value):
            return None, [_duplicate()]

        now = self._clock.now_utc()
        option = Option(
            id=uuid4(),
            option_type=option_type.strip(),
            option_value=option_value.strip(),
            name=(name or "").strip() or option_value.strip(),
            slug=unique_slug(slugify(f"{option_type}-{option_value}"), self._repo.slug_exists),
            sort_order=sort_order,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        return self._repo.save(option), []

    def update(
        self, option_id: UUID, updates: dict[str, Any]
    ) -> tuple[Option | None, list[OptionValidationError]]:
        option = self._repo.get_by_id(option_id)
        if not option:
            return None, [
                OptionValidationError(code="option_not_found", message="Option not found")
            ]

        errors = validate_option_data(
            updates.get("option_type"),
            updates.get("option_value"),
            updates.get("name"),
            updates.get("sort_order"),
        )
        if errors:
            return None, errors

        new_type = (updates.get("option_type") or option.option_type).strip()
        new_value = (updates.get("option_value") or option.option_value).strip()
        pair_changed = (new_type.lower(), new_value.lower()) != (
            option.option_type.lower(),
            option.option_value.lower(),
        )
        if pair_changed:
            existing = self._repo.get_by_type_value(new_type, new_value)
            if existing and existing.id != option.id:
                return None, [_duplicate()]
            option.slug = unique_slug(slugify(f"{new_type}-{new_value}"), self._repo.slug_exists)

        option.option_type = new_type
        option.option_value = new_value
        if updates.get("name") is not None:
            option.name = updates["name"].strip() or new_value
        if updates.get("sort_order") is not None:
            option.sort_order = updates["sort_order"]
        if updates.get("is_active") is not None:
            option.is_active = bool(updates["is_active"])

        option.updated_at = self._clock.now_utc()
        return self._repo.save(option), []

    def set_active(
        self, option_id: UUID, is_active: bool
    ) -> tuple[Option | None, list[OptionValidationError]]:
        return self.update(option_id, {"is_active": is_active})

    def types(self) -> list[OptionTypeGroup]:
        """Group active options by type."""
        groups: dict[str, list[dict[str, object]]] = {}
        for option in self._repo.list_active():
            groups.setdefault(option.option_type, []).append(
                {
                    "id": str(option.id),
                    "option_value": option.option_value,
                    "name": option.name,
                    "slug": option.slug,
                    "sort_order": option.sort_order,
                }
            )
        return [OptionTypeGroup(option_type=t, values=tuple(v)) for t, v in groups.items()]

    def stats(self) -> dict[str, int]:
        counts = self._repo.count_by_active()
        active, inactive = counts.get("1", 0), counts.get("0", 0)
        return {
            "total": active + inactive,
            "active": active,
            "inactive": inactive,
            "types": len(self.types()),
        }


def _duplicate() -> OptionValidationError:
    return OptionValidationError(
        code="option_duplicate",
        message="Option with this type and value already exists",
        field="option_value",
    )
