"""
Response envelope shared by every /api/v1 route.

Success: {"success": true, "message": ..., "data": ..., "pagination"?: {...}}
Failure bodies are rendered by storefront.api.errors.
"""

from collections.abc import Sequence
from typing import Any, NoReturn, Protocol

from fastapi import HTTPException, status
from pydantic import BaseModel

from storefront.core.services.listing import ListParams, Pagination
from storefront.domain.entities import User


class ErrorLike(Protocol):
    code: str
    message: str
    field: str | None


def ok(data: Any = None, message: str = "", pagination: Pagination | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": True, "message": message, "data": data}
    if pagination is not None:
        body["pagination"] = pagination.as_dict()
    return body


def page(
    items: Sequence[Any], total: int, params: ListParams, message: str = ""
) -> dict[str, Any]:
    return ok(
        [dump(item) for item in items],
        message=message,
        pagination=Pagination.build(params, total),
    )


def dump(item: Any) -> Any:
    if isinstance(item, BaseModel):
        return item.model_dump(mode="json")
    return item


def user_view(user: User) -> dict[str, Any]:
    return user.model_dump(mode="json", exclude={"password_hash"})


def status_for(errors: Sequence[ErrorLike]) -> int:
    """Not-found wins over forbidden, which wins over plain validation."""
    codes = [e.code for e in errors]
    if any(code.endswith("_not_found") for code in codes):
        return status.HTTP_404_NOT_FOUND
    if any(code.endswith("_forbidden") for code in codes):
        return status.HTTP_403_FORBIDDEN
    return status.HTTP_400_BAD_REQUEST


def raise_for_errors(errors: Sequence[ErrorLike]) -> NoReturn:
    raise HTTPException(
        status_code=status_for(errors),
        detail=[{"code": e.code, "message": e.message, "field": e.field} for e in errors],
    )


def not_found(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=message)
