"""
Due-set classification.

Partitions a card collection into new / due / upcoming using the most recent
review of each card. Both helpers make a single pass over their input, so the
same code serves "one deck" and "every card the reviewer owns".
"""

import logging
from collections.abc import Iterable
from datetime import datetime

from cadence.domain.models import Card, CardStatus, ClassifiedCard, DueSet, ReviewRecord

logger = logging.getLogger(__name__)


def is_more_recent(candidate: ReviewRecord, current: ReviewRecord) -> bool:
    """
    Ordering used to pick a card's latest review.

    Greater reviewed_at wins. Identical timestamps (possible with concurrent
    submissions) fall back to the greater id; ULIDs sort by creation time.
    """
    if candidate.reviewed_at != current.reviewed_at:
        return candidate.reviewed_at > current.reviewed_at
    return candidate.id > current.id


def latest_reviews_by_card(records: Iterable[ReviewRecord]) -> dict[str, ReviewRecord]:
    """Reduce a review history to the latest record per card."""
    latest: dict[str, ReviewRecord] = {}
    for record in records:
        existing = latest.get(record.card_id)
        if existing is None or is_more_recent(record, existing):
            latest[record.card_id] = record
    return latest


def classify_cards(
    cards: Iterable[Card],
    latest_reviews: dict[str, ReviewRecord],
    now: datetime,
) -> DueSet:
    """
    Split cards into new / due / upcoming.

    A card with no review is new. A card whose latest next_review_at is at or
    before `now` is due (the boundary is inclusive). Everything else is upcoming.
    """
    result = DueSet()

    for card in cards:
        review = latest_reviews.get(card.id)

        if review is None:
            result.new.append(ClassifiedCard(card=card, status=CardStatus.NEW))
        elif review.next_review_at <= now:
            result.due.append(ClassifiedCard(card=card, status=CardStatus.DUE, latest_review=review))
        else:
            result.upcoming.append(
                ClassifiedCard(card=card, status=CardStatus.UPCOMING, latest_review=review)
            )

    logger.debug(f"Classified cards: {result.stats}")
    return result
