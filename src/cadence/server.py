import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from fastapi import Depends, FastAPI, Header, HTTPException, Response
from pydantic import BaseModel, field_validator

from cadence.application.config import resolve_config
from cadence.application.review_service import ReviewService
from cadence.consts import VERSION
from cadence.domain.errors import (
    AuthorizationError,
    CadenceError,
    PersistenceError,
    ValidationError,
)
from cadence.domain.models import (
    ClassifiedCard,
    GuestSession,
    Reviewer,
    ReviewRecord,
    resolve_reviewer,
)
from cadence.infrastructure.logging_config import setup_logging

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cadence.server")

SESSION_HEADER = "x-studybuddy-session"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    config = resolve_config()
    setup_logging(config.log_dir, config.verbose)
    logger.info(f"Cadence Server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("Cadence Server shutting down...")


app = FastAPI(
    title="Cadence Server",
    description="Spaced-repetition review scheduling for flashcards.",
    version=VERSION,
    lifespan=lifespan,
)

start_time = time.time()


def get_service() -> ReviewService:
    from cadence.application.factory import get_review_service

    return get_review_service(resolve_config())


def get_reviewer(
    x_user_id: str | None = Header(default=None),
    x_studybuddy_session: str | None = Header(default=None),
) -> Reviewer:
    try:
        return resolve_reviewer(user_id=x_user_id, session_id=x_studybuddy_session)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


def to_http_error(e: CadenceError) -> HTTPException:
    """
    Validation and authorization failures are final (4xx); persistence
    failures are reported as 503 so clients know a retry may succeed.
    """
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, AuthorizationError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, PersistenceError):
        return HTTPException(status_code=503, detail=f"Storage unavailable: {e}")
    return HTTPException(status_code=500, detail=str(e))


# ---------- Response models ----------


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class ReviewOut(BaseModel):
    id: str
    card_id: str
    user_id: str | None
    session_id: str | None
    rating: int
    ease_factor: float
    interval_days: int
    next_review_at: datetime
    reviewed_at: datetime

    @classmethod
    def from_record(cls, record: ReviewRecord) -> "ReviewOut":
        return cls(
            id=record.id,
            card_id=record.card_id,
            user_id=record.user_id,
            session_id=record.session_id,
            rating=record.rating,
            ease_factor=record.ease_factor,
            interval_days=record.interval_days,
            next_review_at=record.next_review_at,
            reviewed_at=record.reviewed_at,
        )


class CardOut(BaseModel):
    id: str
    deck_id: str
    front: str
    back: str
    hint: str | None = None
    created_at: datetime | None = None
    status: str
    next_review_at: datetime | None = None

    @classmethod
    def from_classified(cls, item: ClassifiedCard) -> "CardOut":
        card = item.card
        return cls(
            id=card.id,
            deck_id=card.deck_id,
            front=card.front,
            back=card.back,
            hint=card.hint,
            created_at=card.created_at,
            status=item.status.value,
            next_review_at=item.next_review_at,
        )


class SubmitReviewRequest(BaseModel):
    # Validated by the domain so that bad ratings get a 400, not a 422
    rating: Any = None

    @field_validator("rating", mode="before")
    @classmethod
    def integral_float_to_int(cls, v: Any) -> Any:
        # JSON clients may send 3.0 for 3
        if isinstance(v, float) and v.is_integer():
            return int(v)
        return v


class SubmitReviewResponse(BaseModel):
    review: ReviewOut
    nextReviewIn: str


class ReviewHistoryResponse(BaseModel):
    reviews: list[ReviewOut]


class DueCardsResponse(BaseModel):
    cards: int
    new_cards: list[CardOut]
    due_cards: list[CardOut]
    upcoming_cards: list[CardOut]
    stats: dict[str, int]


# ---------- Endpoints ----------


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


@app.post(
    "/flashcards/cards/{card_id}/review",
    response_model=SubmitReviewResponse,
    status_code=201,
)
async def submit_review(
    card_id: str,
    req: SubmitReviewRequest,
    response: Response,
    reviewer: Reviewer = Depends(get_reviewer),
    service: ReviewService = Depends(get_service),
):
    """Record a review and schedule the card's next one."""
    if isinstance(reviewer, GuestSession):
        response.headers[SESSION_HEADER] = reviewer.session_id

    try:
        submitted = await service.submit_review(card_id, req.rating, reviewer)
    except CadenceError as e:
        logger.warning(f"Review of {card_id} failed: {e}")
        raise to_http_error(e) from e

    return SubmitReviewResponse(
        review=ReviewOut.from_record(submitted.record),
        nextReviewIn=submitted.next_review_in,
    )


@app.get("/flashcards/cards/{card_id}/review", response_model=ReviewHistoryResponse)
async def get_review_history(
    card_id: str,
    reviewer: Reviewer = Depends(get_reviewer),
    service: ReviewService = Depends(get_service),
):
    """The caller's review history for one card, newest first."""
    try:
        records = await service.review_history(card_id, reviewer)
    except CadenceError as e:
        logger.error(f"Loading reviews for {card_id} failed: {e}")
        raise to_http_error(e) from e

    return ReviewHistoryResponse(reviews=[ReviewOut.from_record(r) for r in records])


@app.get("/flashcards/due", response_model=DueCardsResponse)
async def list_due_cards(
    deck_id: str | None = None,
    reviewer: Reviewer = Depends(get_reviewer),
    service: ReviewService = Depends(get_service),
):
    """
    Classify the caller's cards into new / due / upcoming, optionally for one deck.
    """
    try:
        due_set = await service.list_due_cards(reviewer, deck_id=deck_id)
    except CadenceError as e:
        logger.error(f"Loading due cards failed: {e}")
        raise to_http_error(e) from e

    return DueCardsResponse(
        cards=due_set.total,
        new_cards=[CardOut.from_classified(c) for c in due_set.new],
        due_cards=[CardOut.from_classified(c) for c in due_set.due],
        upcoming_cards=[CardOut.from_classified(c) for c in due_set.upcoming],
        stats=due_set.stats,
    )
