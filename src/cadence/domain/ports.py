"""
Ports (interfaces) for review persistence and ownership.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod

from .models import Card, Deck, Reviewer, ReviewRecord


class ReviewHistoryStore(ABC):
    """
    Port for the append-only review history.

    Implementations:
        - InMemoryStore: Process-local dictionaries.
        - SqliteStore: A SQLite database file.

    Every method may raise PersistenceError.
    """

    @abstractmethod
    async def most_recent_review(self, card_id: str, reviewer: Reviewer) -> ReviewRecord | None:
        """
        Return the reviewer's latest record for a card, or None if never reviewed.

        Latest means greatest reviewed_at; ties are broken by the greater id.
        """
        pass

    @abstractmethod
    async def append(self, record: ReviewRecord) -> ReviewRecord:
        """
        Persist a new record. Either the record is fully stored or a
        PersistenceError is raised and nothing is stored.
        """
        pass

    @abstractmethod
    async def reviews_for_cards(self, card_ids: list[str], reviewer: Reviewer) -> list[ReviewRecord]:
        """
        Fetch every record the reviewer has for the given cards, in no particular order.
        """
        pass

    @abstractmethod
    async def review_history(self, card_id: str, reviewer: Reviewer) -> list[ReviewRecord]:
        """
        Fetch the reviewer's records for one card, newest first.
        """
        pass


class CardOwnershipGuard(ABC):
    """Port answering whether a reviewer may act on a card."""

    @abstractmethod
    async def owns_card(self, card_id: str, reviewer: Reviewer) -> bool:
        """True when the card exists and its deck belongs to the reviewer."""
        pass


class CardCatalog(ABC):
    """Port for the decks and cards a reviewer owns."""

    @abstractmethod
    async def cards_for_reviewer(self, reviewer: Reviewer, deck_id: str | None = None) -> list[Card]:
        """
        List every card in the reviewer's decks, optionally limited to one deck.
        """
        pass

    @abstractmethod
    async def create_deck(
        self, name: str, owner: Reviewer, description: str | None = None
    ) -> Deck:
        pass

    @abstractmethod
    async def add_card(
        self, deck_id: str, front: str, back: str, hint: str | None = None
    ) -> Card:
        pass
