"""Identifier generation for reviews, decks and cards."""

from ulid import ULID


def generate_review_id() -> str:
    """
    Generate a review id using ULID.

    ULIDs sort by creation time, which the due-set classifier relies on to
    order two reviews stamped with the same reviewed_at.
    """
    return f"rev_{ULID()}"


def generate_deck_id() -> str:
    return f"deck_{ULID()}"


def generate_card_id() -> str:
    return f"card_{ULID()}"
