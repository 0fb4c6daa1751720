"""
SQLite Store: infrastructure adapter for a local SQLite database.

Implements the history, ownership and catalog ports on a SQLAlchemy async
engine (aiosqlite). Every SQLAlchemy failure is re-raised as
PersistenceError; each write commits in its own session, so a failed append
leaves no partial row.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import event, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from cadence.application.id_service import generate_card_id, generate_deck_id
from cadence.domain.constants import SQLITE_CHUNK_SIZE
from cadence.domain.errors import PersistenceError, ValidationError
from cadence.domain.models import (
    AuthenticatedUser,
    Card,
    Deck,
    GuestSession,
    Reviewer,
    ReviewRecord,
)
from cadence.domain.ports import CardCatalog, CardOwnershipGuard, ReviewHistoryStore
from cadence.infrastructure.adapters.sqlite_models import Base, CardRow, DeckRow, ReviewRow

logger = logging.getLogger(__name__)


def to_db_time(value: datetime) -> str:
    """UTC, fixed width, so that text ordering matches time ordering."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_time(value: str) -> datetime:
    return datetime.fromisoformat(value)


def owner_values(reviewer: Reviewer) -> tuple[str | None, str | None]:
    """(user_id, session_id) with exactly one of them set."""
    if isinstance(reviewer, AuthenticatedUser):
        return reviewer.user_id, None
    return None, reviewer.session_id


def owned_by(model: type[DeckRow] | type[ReviewRow], reviewer: Reviewer):
    if isinstance(reviewer, AuthenticatedUser):
        return model.user_id == reviewer.user_id
    return model.session_id == reviewer.session_id


def reviewer_from_row(user_id: str | None, session_id: str | None) -> Reviewer:
    if user_id is not None:
        return AuthenticatedUser(user_id)
    return GuestSession(session_id)


def _row_to_record(row: ReviewRow) -> ReviewRecord:
    return ReviewRecord(
        id=row.id,
        card_id=row.card_id,
        reviewer=reviewer_from_row(row.user_id, row.session_id),
        rating=row.rating,
        ease_factor=row.ease_factor,
        interval_days=row.interval_days,
        next_review_at=from_db_time(row.next_review_at),
        reviewed_at=from_db_time(row.reviewed_at),
    )


def _row_to_card(row: CardRow) -> Card:
    return Card(
        id=row.id,
        deck_id=row.deck_id,
        front=row.front,
        back=row.back,
        hint=row.hint,
        created_at=from_db_time(row.created_at),
    )


def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class SqliteStore(ReviewHistoryStore, CardOwnershipGuard, CardCatalog):
    """
    Stores decks, cards and the review history in one SQLite file.

    Connections are not pooled; the schema is created on first use.
    `timeout` is how long a call waits on a locked database before failing.
    """

    def __init__(self, database_path: Path | str, timeout: float = 5.0):
        self.database_path = Path(database_path)
        self._engine = create_async_engine(
            f"sqlite+aiosqlite:///{self.database_path}",
            echo=False,
            poolclass=NullPool,
            connect_args={"timeout": timeout},
        )
        event.listen(self._engine.sync_engine, "connect", _enable_foreign_keys)
        self._session_factory = async_sessionmaker(
            self._engine, class_=AsyncSession, expire_on_commit=False
        )
        self._schema_ready = False

    async def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self._schema_ready = True
        logger.debug(f"SQLite schema ready at {self.database_path}")

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            await self._ensure_schema()
            async with self._session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"SQLite operation failed on {self.database_path}: {e}")
            raise PersistenceError(str(e)) from e

    async def close(self) -> None:
        await self._engine.dispose()

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
        user_id, session_id = owner_values(owner)
        async with self._session() as session:
            session.add(
                DeckRow(
                    id=deck.id,
                    name=deck.name,
                    description=deck.description,
                    user_id=user_id,
                    session_id=session_id,
                    created_at=to_db_time(deck.created_at),
                )
            )
            await session.commit()
        return deck

    async def add_card(
        self, deck_id: str, front: str, back: str, hint: str | None = None
    ) -> Card:
        card = Card(
            id=generate_card_id(),
            deck_id=deck_id,
            front=front,
            back=back,
            hint=hint,
            created_at=datetime.now(timezone.utc),
        )
        async with self._session() as session:
            if await session.get(DeckRow, deck_id) is None:
                raise ValidationError(f"Unknown deck: {deck_id}")
            session.add(
                CardRow(
                    id=card.id,
                    deck_id=deck_id,
                    front=front,
                    back=back,
                    hint=hint,
                    created_at=to_db_time(card.created_at),
                )
            )
            await session.commit()
        return card

    async def cards_for_reviewer(self, reviewer: Reviewer, deck_id: str | None = None) -> list[Card]:
        query = (
            select(CardRow)
            .join(DeckRow, CardRow.deck_id == DeckRow.id)
            .where(owned_by(DeckRow, reviewer))
        )
        if deck_id is not None:
            query = query.where(CardRow.deck_id == deck_id)
        query = query.order_by(CardRow.created_at, CardRow.id)

        async with self._session() as session:
            result = await session.scalars(query)
            return [_row_to_card(row) for row in result]

    # ---------- Ownership ----------

    async def owns_card(self, card_id: str, reviewer: Reviewer) -> bool:
        query = (
            select(CardRow.id)
            .join(DeckRow, CardRow.deck_id == DeckRow.id)
            .where(CardRow.id == card_id, owned_by(DeckRow, reviewer))
        )
        async with self._session() as session:
            found = await session.scalar(query)
        return found is not None

    # ---------- History ----------

    async def most_recent_review(self, card_id: str, reviewer: Reviewer) -> ReviewRecord | None:
        query = (
            select(ReviewRow)
            .where(ReviewRow.card_id == card_id, owned_by(ReviewRow, reviewer))
            .order_by(ReviewRow.reviewed_at.desc(), ReviewRow.id.desc())
            .limit(1)
        )
        async with self._session() as session:
            row = await session.scalar(query)
        return _row_to_record(row) if row else None

    async def append(self, record: ReviewRecord) -> ReviewRecord:
        async with self._session() as session:
            session.add(
                ReviewRow(
                    id=record.id,
                    card_id=record.card_id,
                    user_id=record.user_id,
                    session_id=record.session_id,
                    rating=record.rating,
                    ease_factor=record.ease_factor,
                    interval_days=record.interval_days,
                    next_review_at=to_db_time(record.next_review_at),
                    reviewed_at=to_db_time(record.reviewed_at),
                )
            )
            await session.commit()
        logger.debug(f"Appended review {record.id} for {record.card_id}")
        return record

    async def reviews_for_cards(self, card_ids: list[str], reviewer: Reviewer) -> list[ReviewRecord]:
        if not card_ids:
            return []

        records: list[ReviewRecord] = []

        async with self._session() as session:
            for i in range(0, len(card_ids), SQLITE_CHUNK_SIZE):
                chunk = card_ids[i : i + SQLITE_CHUNK_SIZE]
                result = await session.scalars(
                    select(ReviewRow).where(
                        ReviewRow.card_id.in_(chunk), owned_by(ReviewRow, reviewer)
                    )
                )
                records.extend(_row_to_record(row) for row in result)

        return records

    async def review_history(self, card_id: str, reviewer: Reviewer) -> list[ReviewRecord]:
        query = (
            select(ReviewRow)
            .where(ReviewRow.card_id == card_id, owned_by(ReviewRow, reviewer))
            .order_by(ReviewRow.reviewed_at.desc(), ReviewRow.id.desc())
        )
        async with self._session() as session:
            result = await session.scalars(query)
            return [_row_to_record(row) for row in result]
