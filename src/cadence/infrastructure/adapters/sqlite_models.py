"""
SQLAlchemy ORM models for the SQLite store.

Timestamps are stored as fixed-width UTC ISO strings so that text ordering
matches time ordering.
"""

from sqlalchemy import CheckConstraint, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Exactly one of user_id / session_id identifies the owner
ONE_OWNER = "(user_id IS NULL) <> (session_id IS NULL)"


class Base(DeclarativeBase):
    pass


class DeckRow(Base):
    __tablename__ = "decks"
    __table_args__ = (CheckConstraint(ONE_OWNER, name="ck_decks_one_owner"),)

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    session_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    created_at: Mapped[str] = mapped_column(String, nullable=False)


class CardRow(Base):
    __tablename__ = "cards"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    deck_id: Mapped[str] = mapped_column(
        String, ForeignKey("decks.id"), nullable=False, index=True
    )
    front: Mapped[str] = mapped_column(Text, nullable=False)
    back: Mapped[str] = mapped_column(Text, nullable=False)
    hint: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[str] = mapped_column(String, nullable=False)


class ReviewRow(Base):
    """One immutable scheduling decision; rows are only ever inserted."""

    __tablename__ = "reviews"
    __table_args__ = (
        CheckConstraint(ONE_OWNER, name="ck_reviews_one_owner"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating"),
        CheckConstraint("interval_days >= 1", name="ck_reviews_interval"),
        Index("idx_reviews_card", "card_id", "reviewed_at"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    card_id: Mapped[str] = mapped_column(String, ForeignKey("cards.id"), nullable=False)
    user_id: Mapped[str | None] = mapped_column(String, nullable=True)
    session_id: Mapped[str | None] = mapped_column(String, nullable=True)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    ease_factor: Mapped[float] = mapped_column(Float, nullable=False)
    interval_days: Mapped[int] = mapped_column(Integer, nullable=False)
    next_review_at: Mapped[str] = mapped_column(String, nullable=False)
    reviewed_at: Mapped[str] = mapped_column(String, nullable=False)
