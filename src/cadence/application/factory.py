"""
Store Factory
Centralizes the logic for selecting the storage adapter and wiring the service.
"""

import logging
from functools import lru_cache
from pathlib import Path

from cadence.application.config import AppConfig
from cadence.application.review_service import ReviewService
from cadence.infrastructure.adapters.memory_store import InMemoryStore
from cadence.infrastructure.adapters.sqlite_store import SqliteStore

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _shared_memory_store() -> InMemoryStore:
    # One store per process, so the memory backend survives across requests
    return InMemoryStore()


@lru_cache(maxsize=8)
def _sqlite_store(database_path: Path) -> SqliteStore:
    # One engine per database file
    return SqliteStore(database_path)


def get_store(config: AppConfig) -> InMemoryStore | SqliteStore:
    """
    Returns the storage adapter selected by config.backend.
    """
    if config.backend == "memory":
        logger.debug("Backend: memory")
        return _shared_memory_store()

    logger.debug(f"Backend: sqlite ({config.database_path})")
    return _sqlite_store(config.database_path)


def get_review_service(config: AppConfig) -> ReviewService:
    store = get_store(config)
    return ReviewService(history=store, guard=store, catalog=store)
