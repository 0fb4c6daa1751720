# Domain Package
from .errors import AuthorizationError, CadenceError, PersistenceError, ValidationError
from .models import (
    AuthenticatedUser,
    Card,
    CardStatus,
    ClassifiedCard,
    Deck,
    DueSet,
    GuestSession,
    Rating,
    ReviewOutcome,
    Reviewer,
    ReviewRecord,
    resolve_reviewer,
    validate_rating,
)
from .ports import CardCatalog, CardOwnershipGuard, ReviewHistoryStore

__all__ = [
    "CadenceError",
    "ValidationError",
    "AuthorizationError",
    "PersistenceError",
    "Rating",
    "AuthenticatedUser",
    "GuestSession",
    "Reviewer",
    "resolve_reviewer",
    "validate_rating",
    "ReviewOutcome",
    "ReviewRecord",
    "Deck",
    "Card",
    "CardStatus",
    "ClassifiedCard",
    "DueSet",
    "ReviewHistoryStore",
    "CardOwnershipGuard",
    "CardCatalog",
]
