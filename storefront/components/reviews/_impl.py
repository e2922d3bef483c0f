"""
ReviewService - product variant reviews and their moderation.

New and edited reviews wait in PENDING_APPROVAL; only APPROVED reviews are
public and count towards the rating aggregates kept on the variant and its
product. Aggregates are recomputed whenever the approved set may change.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, get_args
from uuid import UUID, uuid4

from storefront.core.services.listing import ListParams
from storefront.domain.entities import RatingSummary, Review, ReviewStatus, empty_distribution
from storefront.domain.text import is_http_url

from .models import ReviewValidationError
from .ports import ProductStorePort, ReviewRepoPort, TimePort, VariantStorePort

logger = logging.getLogger(__name__)

TITLE_MAX = 100
TEXT_MAX = 2000
REASON_MAX = 500
EDITABLE_STATUSES = ("PENDING_APPROVAL", "APPROVED")
REVIEW_STATUSES: tuple[str, ...] = get_args(ReviewStatus)
REPORT_REASONS = (
    "SPAM",
    "ABUSIVE_LANGUAGE",
    "OFFENSIVE_CONTENT",
    "FAKE_REVIEW",
    "INAPPROPRIATE_CONTENT",
    "HARASSMENT",
    "MISLEADING_INFORMATION",
    "COPYRIGHT_VIOLATION",
    "OTHER",
)


def summarize_ratings(ratings: Sequence[int]) -> RatingSummary:
    """Average rounded to one decimal, plus a 1..5 star histogram."""
    distribution = empty_distribution()
    for rating in ratings:
        distribution[str(rating)] += 1
    average = round(sum(ratings) / len(ratings), 1) if ratings else 0.0
    return RatingSummary(
        average_rating=average,
        total_reviews=len(ratings),
        rating_distribution=distribution,
    )


def validate_review_data(
    rating: int | None = None,
    title: str | None = None,
    review_text: str | None = None,
    image_urls: Sequence[str] | None = None,
    video_url: str | None = None,
    max_images: int = 10,
) -> list[ReviewValidationError]:
    errors: list[ReviewValidationError] = []

    if rating is not None and not 1 <= rating <= 5:
        errors.append(
            ReviewValidationError(
                code="rating_range", message="Rating must be between 1 and 5", field="rating"
            )
        )
    if title is not None and len(title.strip()) > TITLE_MAX:
        errors.append(
            ReviewValidationError(
                code="title_too_long",
                message=f"Title cannot exceed {TITLE_MAX} characters",
                field="title",
            )
        )
    if review_text is not None and len(review_text.strip()) > TEXT_MAX:
        errors.append(
            ReviewValidationError(
                code="review_text_too_long",
                message=f"Review text cannot exceed {TEXT_MAX} characters",
                field="review_text",
            )
        )
    if image_urls is not None:
        if len(image_urls) > max_images:
            errors.append(
                ReviewValidationError(
                    code="too_many_images",
                    message=f"A review can have at most {max_images} images",
                    field="image_urls",
                )
            )
        elif any(not is_http_url(url.strip()) for url in image_urls):
            errors.append(
                ReviewValidationError(
                    code="image_url_invalid",
                    message="Image URLs must be valid http(s) URLs",
                    field="image_urls",
                )
            )
    if video_url and not is_http_url(video_url.strip()):
        errors.append(
            ReviewValidationError(
                code="video_url_invalid",
                message="Video URL must be a valid http(s) URL",
                field="video_url",
            )
        )
    return errors


class ReviewService:
    def __init__(
        self,
        repo: ReviewRepoPort,
        variants: VariantStorePort,
        products: ProductStorePort,
        clock: TimePort,
        flag_threshold: int = 3,
        max_images: int = 10,
    ) -> None:
        self._repo = repo
        self._variants = variants
        self._products = products
        self._clock = clock
        self._flag_threshold = flag_threshold
        self._max_images = max_images

    # --- Public ---

    def list_approved(
        self,
        variant_id: UUID,
        params: ListParams,
        min_rating: int | None = None,
        max_rating: int | None = None,
    ) -> tuple[tuple[list[Review], int] | None, list[ReviewValidationError]]:
        if not self._variant_visible(variant_id):
            return None, [_variant_not_found()]
        page = self._repo.list(
            params,
            status="APPROVED",
            product_variant_id=variant_id,
            min_rating=min_rating,
            max_rating=max_rating,
        )
        return page, []

    def rating_summary(
        self, variant_id: UUID
    ) -> tuple[RatingSummary | None, list[ReviewValidationError]]:
        if not self._variant_visible(variant_id):
            return None, [_variant_not_found()]
        return summarize_ratings(self._repo.approved_ratings_for_variant(variant_id)), []

    def _variant_visible(self, variant_id: UUID) -> bool:
        variant = self._variants.get_by_id(variant_id)
        return variant is not None and variant.is_active

    # --- User ---

    def submit(
        self,
        user_id: UUID,
        product_variant_id: UUID,
        rating: int,
        title: str | None = None,
        review_text: str | None = None,
        image_urls: Sequence[str] = (),
        video_url: str | None = None,
    ) -> tuple[Review | None, list[ReviewValidationError]]:
        errors = validate_review_data(
            rating, title, review_text, image_urls, video_url, self._max_images
        )
        if errors:
            return None, errors

        if not self._variant_visible(product_variant_id):
            return None, [_variant_not_found()]
        if self._repo.get_by_user_variant(user_id, product_variant_id):
            return None, [
                ReviewValidationError(
                    code="review_duplicate",
                    message="You have already reviewed this product variant",
                    field="product_variant_id",
                )
            ]

        now = self._clock.now_utc()
        review = Review(
            id=uuid4(),
            user_id=user_id,
            product_variant_id=product_variant_id,
            rating=rating,
            title=_clean(title),
            review_text=_clean(review_text),
            image_urls=[url.strip() for url in image_urls],
            video_url=_clean(video_url),
            created_at=now,
            updated_at=now,
        )
        return self._repo.save(review), []

    def list_for_user(
        self, user_id: UUID, params: ListParams, status: ReviewStatus | None = None
    ) -> tuple[list[Review], int]:
        return self._repo.list(params, status=status, user_id=user_id)

    def update_own(
        self, user_id: UUID, review_id: UUID, updates: dict[str, Any]
    ) -> tuple[Review | None, list[ReviewValidationError]]:
        """Edit a pending or approved review; it goes back to moderation."""
        review = self._repo.get_by_id(review_id)
        if review is None:
            return None, [_not_found()]
        if review.user_id != user_id or review.status not in EDITABLE_STATUSES:
            return None, [
                ReviewValidationError(
                    code="review_forbidden",
                    message="You can only edit your own reviews that are pending or approved",
                )
            ]

        errors = validate_review_data(
            updates.get("rating"),
            updates.get("title"),
            updates.get("review_text"),
            updates.get("image_urls"),
            updates.get("video_url"),
            self._max_images,
        )
        if errors:
            return None, errors

        was_approved = review.status == "APPROVED"
        if updates.get("rating") is not None:
            review.rating = updates["rating"]
        for key in ("title", "review_text", "video_url"):
            if key in updates:
                setattr(review, key, _clean(updates[key]))
        if updates.get("image_urls") is not None:
            review.image_urls = [url.strip() for url in updates["image_urls"]]

        review.status = "PENDING_APPROVAL"
        review.updated_at = self._clock.now_utc()
        saved = self._repo.save(review)
        if was_approved:
            self._refresh_ratings(review.product_variant_id)
        return saved, []

    def delete_own(
        self, user_id: UUID, review_id: UUID
    ) -> tuple[bool, list[ReviewValidationError]]:
        review = self._repo.get_by_id(review_id)
        if review is None:
            return False, [_not_found()]
        if review.user_id != user_id:
            return False, [
                ReviewValidationError(
                    code="review_forbidden", message="You can only delete your own reviews"
                )
            ]
        self._remove(review)
        return True, []

    def vote(
        self, user_id: UUID, review_id: UUID, helpful: bool
    ) -> tuple[Review | None, list[ReviewValidationError]]:
        review = self._repo.get_by_id(review_id)
        if review is None or review.status != "APPROVED":
            return None, [_not_found()]
        if review.user_id == user_id:
            return None, [
                ReviewValidationError(
                    code="own_review", message="You cannot vote on your own review"
                )
            ]
        if not self._repo.record_vote(review.id, user_id, helpful, self._clock.now_utc()):
            return None, [
                ReviewValidationError(
                    code="vote_duplicate", message="You have already voted on this review"
                )
            ]
        return self._repo.get_by_id(review_id), []

    def report(
        self,
        user_id: UUID,
        review_id: UUID,
        reason: str,
        custom_reason: str | None = None,
    ) -> tuple[Review | None, list[ReviewValidationError]]:
        """Record a report; the review is flagged once reports reach the threshold."""
        review = self._repo.get_by_id(review_id)
        if review is None:
            return None, [_not_found()]
        if review.user_id == user_id:
            return None, [
                ReviewValidationError(
                    code="own_review", message="You cannot report your own review"
                )
            ]
        if reason not in REPORT_REASONS:
            return None, [
                ReviewValidationError(
                    code="reason_invalid", message="Invalid report reason", field="reason"
                )
            ]
        if custom_reason is not None and len(custom_reason.strip()) > REASON_MAX:
            return None, [
                ReviewValidationError(
                    code="custom_reason_too_long",
                    message=f"Reason cannot exceed {REASON_MAX} characters",
                    field="custom_reason",
                )
            ]

        now = self._clock.now_utc()
        count = self._repo.record_report(review.id, user_id, reason, _clean(custom_reason), now)
        if count is None:
            return None, [
                ReviewValidationError(
                    code="report_duplicate", message="You have already reported this review"
                )
            ]

        review = self._repo.get_by_id(review_id)
        if review is None:
            return None, [_not_found()]
        if count >= self._flag_threshold and review.status != "FLAGGED":
            was_approved = review.status == "APPROVED"
            review.status = "FLAGGED"
            review.updated_at = now
            self._repo.save(review)
            logger.warning("Review %s flagged after %d reports", review.id, count)
            if was_approved:
                self._refresh_ratings(review.product_variant_id)
        return review, []

    # --- Admin ---

    def list(
        self,
        params: ListParams,
        status: ReviewStatus | None = None,
        product_variant_id: UUID | None = None,
        user_id: UUID | None = None,
        rating: int | None = None,
    ) -> tuple[list[Review], int]:
        return self._repo.list(
            params,
            status=status,
            product_variant_id=product_variant_id,
            user_id=user_id,
            rating=rating,
        )

    def get(self, review_id: UUID) -> Review | None:
        return self._repo.get_by_id(review_id)

    def set_status(
        self, review_id: UUID, status: str, moderator_id: UUID
    ) -> tuple[Review | None, list[ReviewValidationError]]:
        if status not in REVIEW_STATUSES:
            return None, [
                ReviewValidationError(
                    code="status_invalid", message="Invalid review status", field="status"
                )
            ]
        review = self._repo.get_by_id(review_id)
        if review is None:
            return None, [_not_found()]

        previous = review.status
        now = self._clock.now_utc()
        review.status = status  # type: ignore[assignment]
        review.moderated_by = moderator_id
        review.moderated_at = now
        review.updated_at = now
        saved = self._repo.save(review)
        if "APPROVED" in (previous, status) and previous != status:
            self._refresh_ratings(review.product_variant_id)
        return saved, []

    def delete(self, review_id: UUID) -> tuple[bool, list[ReviewValidationError]]:
        review = self._repo.get_by_id(review_id)
        if review is None:
            return False, [_not_found()]
        self._remove(review)
        return True, []

    # --- Aggregates ---

    def _remove(self, review: Review) -> None:
        self._repo.delete(review.id)
        if review.status == "APPROVED":
            self._refresh_ratings(review.product_variant_id)

    def _refresh_ratings(self, variant_id: UUID) -> None:
        variant = self._variants.get_by_id(variant_id)
        if variant is None:
            return
        now = self._clock.now_utc()

        summary = summarize_ratings(self._repo.approved_ratings_for_variant(variant.id))
        variant.average_rating = summary.average_rating
        variant.reviews_count = summary.total_reviews
        variant.rating_distribution = summary.rating_distribution
        variant.updated_at = now
        self._variants.save(variant)

        product = self._products.get_by_id(variant.product_id)
        if product is None:
            return
        summary = summarize_ratings(self._repo.approved_ratings_for_product(product.id))
        product.average_rating = summary.average_rating
        product.reviews_count = summary.total_reviews
        product.rating_distribution = summary.rating_distribution
        product.updated_at = now
        self._products.save(product)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def _not_found() -> ReviewValidationError:
    return ReviewValidationError(code="review_not_found", message="Review not found")


def _variant_not_found() -> ReviewValidationError:
    return ReviewValidationError(
        code="variant_not_found", message="Product variant not found", field="product_variant_id"
    )
