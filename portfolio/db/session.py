"""Engine and session factory bound to the configured database."""

from __future__ import annotations

from functools import lru_cache

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from portfolio.core.config import get_settings


@lru_cache
def get_engine() -> Engine:
    """Create the process-wide engine on first use."""

    settings = get_settings()
    return create_engine(settings.database_url, pool_pre_ping=True, future=True)


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    return sessionmaker(bind=get_engine(), autoflush=False, autocommit=False, future=True)


def SessionLocal() -> Session:
    """Open a new session on the configured engine."""

    return get_session_factory()()
