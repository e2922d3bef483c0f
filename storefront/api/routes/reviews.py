from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status
from pydantic import BaseModel, Field

from storefront.adapters.sqlite.commerce_repos import SQLiteReviewRepo
from storefront.api.deps import (
    actor_context,
    get_audit_hooks,
    get_review_service,
    list_params,
    require_permission,
)
from storefront.api.schemas import dump, not_found, ok, page, raise_for_errors
from storefront.components.reviews import ReviewService
from storefront.core.services.listing import ListParams
from storefront.domain.entities import ReviewStatus, User
from storefront.shell.hooks.audit_hooks import AuditAction, AuditHooks, EntityType

user_router = APIRouter()
admin_router = APIRouter()

author = require_permission("reviews:write")
moderate = require_permission("reviews:moderate")


class ReviewCreateRequest(BaseModel):
    product_variant_id: UUID
    rating: int
    title: str | None = None
    review_text: str | None = None
    image_urls: list[str] = Field(default_factory=list)
    video_url: str | None = None


class ReviewUpdateRequest(BaseModel):
    rating: int | None = None
    title: str | None = None
    review_text: str | None = None
    image_urls: list[str] | None = None
    video_url: str | None = None


class VoteRequest(BaseModel):
    helpful: bool


class ReportRequest(BaseModel):
    reason: str
    custom_reason: str | None = None


class ReviewStatusRequest(BaseModel):
    status: str


# --- My reviews ---


@user_router.post("", status_code=status.HTTP_201_CREATED)
def submit_review(
    body: ReviewCreateRequest,
    user: User = Depends(author),
    service: ReviewService = Depends(get_review_service),
) -> dict[str, Any]:
    review, errors = service.submit(user.id, **body.model_dump())
    if review is None:
        raise_for_errors(errors)
    return ok(dump(review), message="Review submitted for moderation")


@user_router.get("")
def my_reviews(
    params: ListParams = Depends(list_params(SQLiteReviewRepo.sort_columns)),
    review_status: ReviewStatus | None = Query(default=None, alias="status"),
    user: User = Depends(author),
    service: ReviewService = Depends(get_review_service),
) -> dict[str, Any]:
    reviews, total = service.list_for_user(user.id, params, status=review_status)
    return page(reviews, total, params)


@user_router.put("/{review_id}")
def update_my_review(
    review_id: UUID,
    body: ReviewUpdateRequest,
    user: User = Depends(author),
    service: ReviewService = Depends(get_review_service),
) -> dict[str, Any]:
    review, errors = service.update_own(user.id, review_id, body.model_dump(exclude_unset=True))
    if review is None:
        raise_for_errors(errors)
    return ok(dump(review), message="Review updated successfully")


@user_router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_my_review(
    review_id: UUID,
    user: User = Depends(author),
    service: ReviewService = Depends(get_review_service),
) -> Response:
    deleted, errors = service.delete_own(user.id, review_id)
    if not deleted:
        raise_for_errors(errors)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@user_router.post("/{review_id}/vote")
def vote_review(
    review_id: UUID,
    body: VoteRequest,
    user: User = Depends(author),
    service: ReviewService = Depends(get_review_service),
) -> dict[str, Any]:
    review, errors = service.vote(user.id, review_id, body.helpful)
    if review is None:
        raise_for_errors(errors)
    return ok(dump(review), message="Vote recorded")


@user_router.post("/{review_id}/report")
def report_review(
    review_id: UUID,
    body: ReportRequest,
    user: User = Depends(author),
    service: ReviewService = Depends(get_review_service),
) -> dict[str, Any]:
    review, errors = service.report(user.id, review_id, body.reason, body.custom_reason)
    if review is None:
        raise_for_errors(errors)
    return ok(message="Review reported")


# --- Moderation ---


@admin_router.get("")
def list_reviews(
    params: ListParams = Depends(list_params(SQLiteReviewRepo.sort_columns)),
    review_status: ReviewStatus | None = Query(default=None, alias="status"),
    product_variant_id: UUID | None = None,
    user_id: UUID | None = None,
    rating: int | None = None,
    _: User = Depends(moderate),
    service: ReviewService = Depends(get_review_service),
) -> dict[str, Any]:
    reviews, total = service.list(
        params,
        status=review_status,
        product_variant_id=product_variant_id,
        user_id=user_id,
        rating=rating,
    )
    return page(reviews, total, params)


@admin_router.get("/{review_id}")
def get_review(
    review_id: UUID,
    _: User = Depends(moderate),
    service: ReviewService = Depends(get_review_service),
) -> dict[str, Any]:
    review = service.get(review_id)
    if review is None:
        raise not_found("Review not found")
    return ok(dump(review))


@admin_router.patch("/{review_id}/status")
def update_review_status(
    request: Request,
    review_id: UUID,
    body: ReviewStatusRequest,
    user: User = Depends(moderate),
    service: ReviewService = Depends(get_review_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> dict[str, Any]:
    review, errors = service.set_status(review_id, body.status, user.id)
    if review is None:
        raise_for_errors(errors)
    hooks.log(
        AuditAction.STATUS_CHANGE,
        EntityType.REVIEW,
        review_id,
        actor_context(request, user),
        metadata={"status": body.status},
    )
    return ok(dump(review), message="Review status updated")


@admin_router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_review(
    request: Request,
    review_id: UUID,
    user: User = Depends(moderate),
    service: ReviewService = Depends(get_review_service),
    hooks: AuditHooks = Depends(get_audit_hooks),
) -> Response:
    deleted, errors = service.delete(review_id)
    if not deleted:
        raise_for_errors(errors)
    hooks.log(AuditAction.DELETE, EntityType.REVIEW, review_id, actor_context(request, user))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
