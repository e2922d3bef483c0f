from ._impl import ReviewService, summarize_ratings, validate_review_data
from .models import ReviewValidationError

__all__ = ["ReviewService", "ReviewValidationError", "summarize_ratings", "validate_review_data"]
