"""
Domain models for spaced-repetition review.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any

from .constants import MAX_RATING, MIN_RATING
from .errors import ValidationError


class Rating(IntEnum):
    """Learner's self-assessed recall quality."""

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4
    PERFECT = 5


def validate_rating(value: Any) -> Rating:
    """
    Coerce a caller-supplied rating into a Rating.

    Only real integers in [1, 5] are accepted; bools, floats and strings are
    rejected even when they look numeric.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"Rating must be an integer between 1 and 5, got {value!r}")
    if value < MIN_RATING or value > MAX_RATING:
        raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}, got {value}")
    return Rating(value)


def validate_identifier(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} must be a non-empty string")
    return value


@dataclass(frozen=True)
class AuthenticatedUser:
    """A signed-in reviewer. Reviews are keyed by user id."""

    user_id: str

    def __post_init__(self):
        validate_identifier(self.user_id, "user_id")

    @property
    def key(self) -> str:
        return f"user:{self.user_id}"


@dataclass(frozen=True)
class GuestSession:
    """An anonymous reviewer. Reviews are keyed by the ephemeral session id."""

    session_id: str

    def __post_init__(self):
        validate_identifier(self.session_id, "session_id")

    @property
    def key(self) -> str:
        return f"session:{self.session_id}"


Reviewer = AuthenticatedUser | GuestSession


def resolve_reviewer(user_id: str | None = None, session_id: str | None = None) -> Reviewer:
    """
    Build a Reviewer from the two optional identities an interface receives.

    An authenticated user takes precedence over a guest session, so a
    signed-in learner who still carries a session header is keyed by user.
    """
    if user_id:
        return AuthenticatedUser(user_id)
    if session_id:
        return GuestSession(session_id)
    raise ValidationError("A user id or a session id is required")


@dataclass(frozen=True)
class ReviewOutcome:
    """
    Result of one scheduling computation.

    Attributes:
        ease_factor: Updated ease factor, always within [1.3, 2.5].
        interval_days: Days until the next review, always >= 1.
        next_review_at: Absolute time of the next review.
    """

    ease_factor: float
    interval_days: int
    next_review_at: datetime


@dataclass(frozen=True)
class ReviewRecord:
    """
    One persisted review. Append-only: a card's current state is the most
    recent record by reviewed_at, never a mutated row.
    """

    id: str
    card_id: str
    reviewer: Reviewer
    rating: int
    ease_factor: float
    interval_days: int
    next_review_at: datetime
    reviewed_at: datetime

    @property
    def user_id(self) -> str | None:
        return self.reviewer.user_id if isinstance(self.reviewer, AuthenticatedUser) else None

    @property
    def session_id(self) -> str | None:
        return self.reviewer.session_id if isinstance(self.reviewer, GuestSession) else None


@dataclass(frozen=True)
class CardSchedulingState:
    """Scheduler input derived from the most recent review (or defaults)."""

    ease_factor: float
    interval_days: int
    last_reviewed_at: datetime | None = None


@dataclass(frozen=True)
class Deck:
    id: str
    name: str
    owner: Reviewer
    description: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class Card:
    id: str
    deck_id: str
    front: str
    back: str
    hint: str | None = None
    created_at: datetime | None = None


class CardStatus(str, Enum):
    NEW = "new"
    DUE = "due"
    UPCOMING = "upcoming"


@dataclass(frozen=True)
class ClassifiedCard:
    """A card annotated with its derived review status."""

    card: Card
    status: CardStatus
    latest_review: ReviewRecord | None = None

    @property
    def next_review_at(self) -> datetime | None:
        return self.latest_review.next_review_at if self.latest_review else None


@dataclass
class DueSet:
    """Partition of a card collection into new / due / upcoming."""

    new: list[ClassifiedCard] = field(default_factory=list)
    due: list[ClassifiedCard] = field(default_factory=list)
    upcoming: list[ClassifiedCard] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.new) + len(self.due) + len(self.upcoming)

    @property
    def stats(self) -> dict[str, int]:
        return {
            "total": self.total,
            "new": len(self.new),
            "due": len(self.due),
            "upcoming": len(self.upcoming),
        }
