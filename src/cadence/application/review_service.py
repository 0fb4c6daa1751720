"""
Review Service — Application layer orchestrator.

Sandwiches the pure scheduler between the ownership check, the history lookup
and the history append. Collaborator failures are never caught here: any
failure aborts the operation before anything is persisted.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from cadence.domain.constants import (
    DEFAULT_EASE_FACTOR,
    DEFAULT_INTERVAL_DAYS,
    REVIEWED_AT_STEP_MICROSECONDS,
)
from cadence.domain.errors import AuthorizationError
from cadence.domain.models import (
    CardSchedulingState,
    DueSet,
    Reviewer,
    ReviewRecord,
    validate_identifier,
    validate_rating,
)
from cadence.domain.ports import CardCatalog, CardOwnershipGuard, ReviewHistoryStore

from .due_classifier import classify_cards, latest_reviews_by_card
from .id_service import generate_review_id
from .scheduler import schedule

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_next_review_in(interval_days: int) -> str:
    """Human-readable interval: "1 day", "6 days"."""
    return f"{interval_days} day{'s' if interval_days != 1 else ''}"


def scheduling_state(latest: ReviewRecord | None) -> CardSchedulingState:
    """
    Derive the scheduler input from a card's latest review.

    Only the single most recent record matters; a card without one uses the
    new-card defaults.
    """
    if latest is None:
        return CardSchedulingState(
            ease_factor=DEFAULT_EASE_FACTOR,
            interval_days=DEFAULT_INTERVAL_DAYS,
        )
    return CardSchedulingState(
        ease_factor=latest.ease_factor,
        interval_days=latest.interval_days,
        last_reviewed_at=latest.reviewed_at,
    )


@dataclass(frozen=True)
class SubmittedReview:
    record: ReviewRecord
    next_review_in: str


class ReviewService:
    """
    Application service for submitting reviews and listing due cards.

    Depends on the store, guard and catalog ports, not on concrete adapters.
    A single adapter usually implements all three.
    """

    def __init__(
        self,
        history: ReviewHistoryStore,
        guard: CardOwnershipGuard,
        catalog: CardCatalog,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Args:
            history: Append-only review history.
            guard: Ownership check for cards.
            catalog: Source of the reviewer's cards.
            clock: Returns the current time; injectable for tests.
        """
        self._history = history
        self._guard = guard
        self._catalog = catalog
        self._clock = clock or utc_now

    async def submit_review(self, card_id: str, rating: Any, reviewer: Reviewer) -> SubmittedReview:
        """
        Record a review and schedule the card's next one.

        Raises:
            ValidationError: Invalid rating or card id. Raised before any store access.
            AuthorizationError: The reviewer does not own the card.
            PersistenceError: The store failed; nothing was recorded.
        """
        checked = validate_rating(rating)
        validate_identifier(card_id, "card_id")

        if not await self._guard.owns_card(card_id, reviewer):
            logger.info(f"Rejected review of {card_id} by {reviewer.key}: not owned")
            raise AuthorizationError(card_id)

        latest = await self._history.most_recent_review(card_id, reviewer)
        state = scheduling_state(latest)
        reviewed_at = self._next_reviewed_at(state)

        outcome = schedule(
            checked,
            state.ease_factor,
            state.interval_days,
            now=reviewed_at,
        )

        record = ReviewRecord(
            id=generate_review_id(),
            card_id=card_id,
            reviewer=reviewer,
            rating=int(checked),
            ease_factor=outcome.ease_factor,
            interval_days=outcome.interval_days,
            next_review_at=outcome.next_review_at,
            reviewed_at=reviewed_at,
        )
        stored = await self._history.append(record)

        logger.info(
            f"Reviewed {card_id} rating={int(checked)} "
            f"ease={outcome.ease_factor:.2f} interval={outcome.interval_days}d"
        )
        return SubmittedReview(
            record=stored,
            next_review_in=format_next_review_in(outcome.interval_days),
        )

    async def list_due_cards(self, reviewer: Reviewer, deck_id: str | None = None) -> DueSet:
        """
        Classify the reviewer's cards (optionally one deck) into new / due / upcoming.
        """
        cards = await self._catalog.cards_for_reviewer(reviewer, deck_id=deck_id)
        if not cards:
            return DueSet()

        records = await self._history.reviews_for_cards([c.id for c in cards], reviewer)
        latest = latest_reviews_by_card(records)
        return classify_cards(cards, latest, self._clock())

    async def review_history(self, card_id: str, reviewer: Reviewer) -> list[ReviewRecord]:
        """
        The reviewer's own reviews of a card, newest first.
        """
        validate_identifier(card_id, "card_id")
        return await self._history.review_history(card_id, reviewer)

    def _next_reviewed_at(self, state: CardSchedulingState) -> datetime:
        """
        Current time, nudged forward when it would not sort after the card's
        latest review, so "most recent by reviewed_at" is never ambiguous for
        reviews written through this service.
        """
        now = self._clock()
        last = state.last_reviewed_at
        if last is not None and now <= last:
            return last + timedelta(microseconds=REVIEWED_AT_STEP_MICROSECONDS)
        return now
