import asyncio
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from cadence.application.review_service import ReviewService
from cadence.consts import VERSION
from cadence.domain.errors import PersistenceError
from cadence.domain.models import AuthenticatedUser, GuestSession
from cadence.infrastructure.adapters.memory_store import InMemoryStore
from cadence.server import app, get_service

client = TestClient(app)

ALICE = {"x-user-id": "alice"}


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def card_id(memory_store):
    deck = asyncio.run(memory_store.create_deck("Biology", AuthenticatedUser("alice")))
    card = asyncio.run(memory_store.add_card(deck.id, "Mitochondria?", "Powerhouse"))
    return card.id


@pytest.fixture(autouse=True)
def override_service(memory_store, clock):
    service = ReviewService(
        history=memory_store, guard=memory_store, catalog=memory_store, clock=clock
    )
    app.dependency_overrides[get_service] = lambda: service
    yield service
    app.dependency_overrides.clear()


def test_health_check():
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == VERSION


def test_get_version():
    response = client.get("/version")
    assert response.status_code == 200
    assert response.json() == {"version": VERSION}


def test_submit_review(card_id):
    response = client.post(f"/flashcards/cards/{card_id}/review", json={"rating": 3}, headers=ALICE)

    assert response.status_code == 201
    data = response.json()
    assert data["nextReviewIn"] == "6 days"
    assert data["review"]["ease_factor"] == pytest.approx(2.36)
    assert data["review"]["interval_days"] == 6
    assert data["review"]["user_id"] == "alice"
    assert data["review"]["session_id"] is None


def test_submit_review_as_guest_echoes_session(memory_store):
    deck = asyncio.run(memory_store.create_deck("Guest", GuestSession("sess-9")))
    card = asyncio.run(memory_store.add_card(deck.id, "Q", "A"))

    response = client.post(
        f"/flashcards/cards/{card.id}/review",
        json={"rating": 1},
        headers={"x-studybuddy-session": "sess-9"},
    )

    assert response.status_code == 201
    assert response.headers["x-studybuddy-session"] == "sess-9"
    assert response.json()["nextReviewIn"] == "1 day"


@pytest.mark.parametrize(
    "body", [{"rating": 0}, {"rating": 6}, {"rating": "good"}, {"rating": 2.5}, {}]
)
def test_submit_review_invalid_rating(card_id, body):
    response = client.post(f"/flashcards/cards/{card_id}/review", json=body, headers=ALICE)
    assert response.status_code == 400


def test_submit_review_accepts_integral_float_rating(card_id):
    response = client.post(
        f"/flashcards/cards/{card_id}/review", json={"rating": 3.0}, headers=ALICE
    )

    assert response.status_code == 201
    assert response.json()["review"]["rating"] == 3
    assert response.json()["review"]["interval_days"] == 6


def test_submit_review_not_owned_is_not_found(card_id):
    response = client.post(
        f"/flashcards/cards/{card_id}/review",
        json={"rating": 3},
        headers={"x-user-id": "mallory"},
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Card not found or unauthorized"


def test_submit_review_requires_identity(card_id):
    response = client.post(f"/flashcards/cards/{card_id}/review", json={"rating": 3})
    assert response.status_code == 400


def test_submit_review_storage_failure_is_retryable():
    failing = AsyncMock()
    failing.submit_review.side_effect = PersistenceError("database is locked")
    app.dependency_overrides[get_service] = lambda: failing

    response = client.post("/flashcards/cards/card_1/review", json={"rating": 3}, headers=ALICE)

    assert response.status_code == 503
    assert "database is locked" in response.json()["detail"]


def test_review_history(card_id, clock):
    client.post(f"/flashcards/cards/{card_id}/review", json={"rating": 3}, headers=ALICE)
    client.post(f"/flashcards/cards/{card_id}/review", json={"rating": 5}, headers=ALICE)

    response = client.get(f"/flashcards/cards/{card_id}/review", headers=ALICE)

    assert response.status_code == 200
    assert [r["rating"] for r in response.json()["reviews"]] == [5, 3]


def test_due_cards(memory_store, card_id):
    deck = next(iter(memory_store.decks.values()))
    other = asyncio.run(memory_store.add_card(deck.id, "ATP?", "Energy"))
    client.post(f"/flashcards/cards/{other.id}/review", json={"rating": 4}, headers=ALICE)

    response = client.get("/flashcards/due", headers=ALICE)

    assert response.status_code == 200
    data = response.json()
    assert data["cards"] == 2
    assert data["stats"] == {"total": 2, "new": 1, "due": 0, "upcoming": 1}
    assert data["new_cards"][0]["id"] == card_id
    assert data["new_cards"][0]["status"] == "new"
    assert data["new_cards"][0]["next_review_at"] is None
    assert data["upcoming_cards"][0]["id"] == other.id
    assert data["upcoming_cards"][0]["next_review_at"] is not None


def test_due_cards_deck_filter(memory_store, card_id):
    other_deck = asyncio.run(memory_store.create_deck("Chemistry", AuthenticatedUser("alice")))

    response = client.get("/flashcards/due", params={"deck_id": other_deck.id}, headers=ALICE)

    assert response.status_code == 200
    assert response.json()["stats"]["total"] == 0


def test_due_cards_storage_failure():
    failing = AsyncMock()
    failing.list_due_cards.side_effect = PersistenceError("disk I/O error")
    app.dependency_overrides[get_service] = lambda: failing

    response = client.get("/flashcards/due", headers=ALICE)

    assert response.status_code == 503


def test_startup_attaches_file_logging(mock_home):
    with TestClient(app) as lifespan_client:
        assert lifespan_client.get("/health").status_code == 200

    assert (mock_home / ".config/cadence/logs/cadence.log").exists()
