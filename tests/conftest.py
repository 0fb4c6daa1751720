import logging
from datetime import datetime, timezone

import pytest

from cadence.application.review_service import ReviewService
from cadence.domain.models import AuthenticatedUser, GuestSession
from cadence.infrastructure.adapters.memory_store import InMemoryStore

FIXED_NOW = datetime(2024, 3, 10, 9, 30, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock; tests move it forward explicitly."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def alice():
    return AuthenticatedUser("alice")


@pytest.fixture
def guest():
    return GuestSession("sess-123")


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def service(store, clock):
    return ReviewService(history=store, guard=store, catalog=store, clock=clock)


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Isolate config and database files from the real home directory
    monkeypatch.setenv("HOME", str(home))
    for var in (
        "CADENCE_BACKEND",
        "CADENCE_DATABASE_PATH",
        "CADENCE_LOG_DIR",
        "CADENCE_VERBOSE",
        "CADENCE_USER",
        "CADENCE_SESSION",
    ):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture(autouse=True)
def restore_root_logging():
    """Entry points attach file handlers to the root logger; undo that per test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
