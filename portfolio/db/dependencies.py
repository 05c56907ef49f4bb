"""Database and snapshot dependencies for FastAPI endpoints."""

from collections.abc import Generator
from functools import lru_cache

from sqlalchemy.orm import Session

from portfolio.core.config import get_settings
from portfolio.db.session import SessionLocal
from portfolio.services.dashboard_layout import (
    DashboardLayoutRepository,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
)
from portfolio.services.data_loader import PortfolioDataLoader


def get_db_session() -> Generator[Session, None, None]:
    """Yield a transactional SQLAlchemy session."""

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@lru_cache
def get_data_loader() -> PortfolioDataLoader:
    """Process-wide loader holding the current portfolio snapshot."""

    return PortfolioDataLoader()


@lru_cache
def get_layout_repository() -> DashboardLayoutRepository:
    settings = get_settings()
    store: KeyValueStore
    if settings.dashboard_layout_path:
        store = JsonFileKeyValueStore(settings.dashboard_layout_path)
    else:
        store = InMemoryKeyValueStore()
    return DashboardLayoutRepository(store)
