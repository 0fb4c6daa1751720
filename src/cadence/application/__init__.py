# Application Package
from .due_classifier import classify_cards, latest_reviews_by_card
from .review_service import ReviewService, SubmittedReview, format_next_review_in
from .scheduler import schedule

__all__ = [
    "schedule",
    "classify_cards",
    "latest_reviews_by_card",
    "ReviewService",
    "SubmittedReview",
    "format_next_review_in",
]
