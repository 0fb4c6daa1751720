"""
In-Memory Store — Infrastructure adapter backed by process-local dictionaries.

Implements the history, ownership and catalog ports. Data lives only as long
as the process; used by the `memory` backend and throughout the tests.
"""

import logging
from collections import defaultdict
from datetime import datetime, timezone

from cadence.application.due_classifier import latest_reviews_by_card
from cadence.application.id_service import generate_card_id, generate_deck_id
from cadence.domain.errors import ValidationError
from cadence.domain.models import Card, Deck, Reviewer, ReviewRecord
from cadence.domain.ports import CardCatalog, CardOwnershipGuard, ReviewHistoryStore

logger = logging.getLogger(__name__)


class InMemoryStore(ReviewHistoryStore, CardOwnershipGuard, CardCatalog):
    def __init__(self):
        self.decks: dict[str, Deck] = {}
        self.cards: dict[str, Card] = {}
        self.records: list[ReviewRecord] = []
        # (card_id, reviewer key) -> that reviewer's records for the card
        self.history_index: defaultdict[tuple[str, str], list[ReviewRecord]] = (
            defaultdict(list)
        )

    # ---------- Catalog ----------

    async def create_deck(
        self, name: str, owner: Reviewer, description: str | None = None
    ) -> Deck:
        deck = Deck(
            id=generate_deck_id(),
            name=name,
            owner=owner,
            description=description,
            created_at=datetime.now(timezone.utc),
        )
        self.decks[deck.id] = deck
        return deck

    async def add_card(
        self, deck_id: str, front: str, back: str, hint: str | None = None
    ) -> Card:
        if deck_id not in self.decks:
            raise ValidationError(f"Unknown deck: {deck_id}")
        card = Card(
            id=generate_card_id(),
            deck_id=deck_id,
            front=front,
            back=back,
            hint=hint,
            created_at=datetime.now(timezone.utc),
        )
        self.cards[card.id] = card
        return card

    async def cards_for_reviewer(self, reviewer: Reviewer, deck_id: str | None = None) -> list[Card]:
        return [
            card
            for card in self.cards.values()
            if self.decks[card.deck_id].owner == reviewer
            and (deck_id is None or card.deck_id == deck_id)
        ]

    # ---------- Ownership ----------

    async def owns_card(self, card_id: str, reviewer: Reviewer) -> bool:
        card = self.cards.get(card_id)
        if card is None:
            return False
        return self.decks[card.deck_id].owner == reviewer

    # ---------- History ----------

    def _history_for(self, card_id: str, reviewer: Reviewer) -> list[ReviewRecord]:
        return self.history_index.get((card_id, reviewer.key), [])

    async def most_recent_review(self, card_id: str, reviewer: Reviewer) -> ReviewRecord | None:
        return latest_reviews_by_card(self._history_for(card_id, reviewer)).get(card_id)

    async def append(self, record: ReviewRecord) -> ReviewRecord:
        self.records.append(record)
        self.history_index[(record.card_id, record.reviewer.key)].append(record)
        logger.debug(f"Appended review {record.id} for {record.card_id}")
        return record

    async def reviews_for_cards(self, card_ids: list[str], reviewer: Reviewer) -> list[ReviewRecord]:
        return [
            record
            for card_id in dict.fromkeys(card_ids)
            for record in self._history_for(card_id, reviewer)
        ]

    async def review_history(self, card_id: str, reviewer: Reviewer) -> list[ReviewRecord]:
        mine = self._history_for(card_id, reviewer)
        return sorted(mine, key=lambda r: (r.reviewed_at, r.id), reverse=True)
