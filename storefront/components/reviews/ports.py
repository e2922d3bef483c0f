from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from storefront.core.services.listing import ListParams
from storefront.domain.entities import Product, ProductVariant, Review, ReviewStatus


class ReviewRepoPort(Protocol):
    def save(self, review: Review) -> Review: ...
    def get_by_id(self, review_id: UUID) -> Review | None: ...
    def get_by_user_variant(self, user_id: UUID, variant_id: UUID) -> Review | None: ...
    def delete(self, review_id: UUID) -> None: ...
    def list(
        self,
        params: ListParams,
        status: ReviewStatus | None = None,
        product_variant_id: UUID | None = None,
        user_id: UUID | None = None,
        rating: int | None = None,
        min_rating: int | None = None,
        max_rating: int | None = None,
    ) -> tuple[list[Review], int]: ...
    def approved_ratings_for_variant(self, variant_id: UUID) -> list[int]: ...
    def approved_ratings_for_product(self, product_id: UUID) -> list[int]: ...
    def record_vote(self, review_id: UUID, user_id: UUID, helpful: bool, at: datetime) -> bool: ...
    def record_report(
        self,
        review_id: UUID,
        user_id: UUID,
        reason: str,
        custom_reason: str | None,
        at: datetime,
    ) -> int | None: ...


class VariantStorePort(Protocol):
    def get_by_id(self, variant_id: UUID) -> ProductVariant | None: ...
    def save(self, variant: ProductVariant) -> ProductVariant: ...


class ProductStorePort(Protocol):
    def get_by_id(self, product_id: UUID) -> Product | None: ...
    def save(self, product: Product) -> Product: ...


class TimePort(Protocol):
    def now_utc(self) -> datetime: ...
