"""
SM-2 variant review scheduler.

This is a pure computation module with no I/O. Given the same rating, prior
state and base time it always produces the same outcome.

The branches below are deliberately asymmetric (a first Good review jumps to
6 days while a first Easy review jumps to 4) and must not be normalized:
every stored schedule was derived from them.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Any

from cadence.domain.constants import (
    DEFAULT_EASE_FACTOR,
    DEFAULT_INTERVAL_DAYS,
    EASE_BONUS,
    EASE_LINEAR_PENALTY,
    EASE_QUADRATIC_PENALTY,
    EASY_INTERVAL_BONUS,
    FAILURE_EASE_PENALTY,
    FIRST_EASY_INTERVAL_DAYS,
    FIRST_GOOD_INTERVAL_DAYS,
    HARD_INTERVAL_MULTIPLIER,
    MAX_EASE_FACTOR,
    MAX_RATING,
    MIN_EASE_FACTOR,
    SUCCESS_RATING,
)
from cadence.domain.models import Rating, ReviewOutcome, validate_rating


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer, halves upward.

    Python's round() uses banker's rounding (round(32.5) == 32); schedules
    are pinned to half-up so that round_half_up(32.5) == 33.
    """
    return math.floor(value + 0.5)


def clamp_ease_factor(ease_factor: float) -> float:
    return max(MIN_EASE_FACTOR, min(MAX_EASE_FACTOR, ease_factor))


def next_ease_factor(rating: Rating, prior_ease_factor: float) -> float:
    """
    Step 1: update the ease factor.

    Successful ratings get the SM-2 quadratic adjustment (+0.1 for Perfect,
    -0.14 for Good); failures get a flat 0.2 penalty regardless of how bad.
    """
    if rating >= SUCCESS_RATING:
        distance = MAX_RATING - rating
        ease_factor = prior_ease_factor + (
            EASE_BONUS - distance * (EASE_LINEAR_PENALTY + distance * EASE_QUADRATIC_PENALTY)
        )
    else:
        ease_factor = max(MIN_EASE_FACTOR, prior_ease_factor - FAILURE_EASE_PENALTY)

    # Re-clamp on every branch so corrupted history cannot compound
    return clamp_ease_factor(ease_factor)


def next_interval_days(rating: Rating, prior_interval_days: int, ease_factor: float) -> int:
    """
    Step 2: compute the new interval from the *new* ease factor.
    """
    if rating == Rating.AGAIN:
        interval = 1
    elif rating == Rating.HARD:
        interval = math.floor(prior_interval_days * HARD_INTERVAL_MULTIPLIER)
    elif rating == Rating.GOOD:
        if prior_interval_days == 1:
            interval = FIRST_GOOD_INTERVAL_DAYS
        else:
            interval = round_half_up(prior_interval_days * ease_factor)
    else:
        if prior_interval_days == 1:
            interval = FIRST_EASY_INTERVAL_DAYS
        else:
            interval = round_half_up(prior_interval_days * ease_factor * EASY_INTERVAL_BONUS)

    return max(1, interval)


def advance_days(now: datetime, days: int) -> datetime:
    """
    Step 3: move forward by whole calendar days.

    Aware datetimes keep their wall-clock time of day, including across DST
    transitions, and month/year rollover is handled by datetime itself.
    """
    return now + timedelta(days=days)


def schedule(
    rating: Any,
    prior_ease_factor: float = DEFAULT_EASE_FACTOR,
    prior_interval_days: int = DEFAULT_INTERVAL_DAYS,
    *,
    now: datetime | None = None,
) -> ReviewOutcome:
    """
    Compute the next review for a card.

    Args:
        rating: Recall quality, an integer in [1, 5].
        prior_ease_factor: Ease factor from the most recent review (2.5 for a new card).
        prior_interval_days: Interval from the most recent review (1 for a new card).
        now: Base time for next_review_at. Defaults to the current UTC time.

    Returns:
        ReviewOutcome with the clamped ease factor, interval and due time.

    Raises:
        ValidationError: If rating is not an integer in [1, 5].
    """
    checked = validate_rating(rating)
    if now is None:
        now = datetime.now(timezone.utc)

    ease_factor = next_ease_factor(checked, prior_ease_factor)
    interval = next_interval_days(checked, prior_interval_days, ease_factor)

    return ReviewOutcome(
        ease_factor=ease_factor,
        interval_days=interval,
        next_review_at=advance_days(now, interval),
    )
