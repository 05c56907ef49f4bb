from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from portfolio.db.base import Base
from portfolio.db.dependencies import get_data_loader, get_db_session, get_layout_repository
import portfolio.models.entities  # noqa: F401
from portfolio.main import create_app
from portfolio.services.dashboard_layout import DashboardLayoutRepository, InMemoryKeyValueStore
from portfolio.services.data_loader import PortfolioDataLoader


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def loader() -> PortfolioDataLoader:
    return PortfolioDataLoader()


@pytest.fixture()
def layout_repository() -> DashboardLayoutRepository:
    return DashboardLayoutRepository(InMemoryKeyValueStore())


@pytest.fixture()
def client(
    db_session: Session,
    loader: PortfolioDataLoader,
    layout_repository: DashboardLayoutRepository,
) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    app.dependency_overrides[get_data_loader] = lambda: loader
    app.dependency_overrides[get_layout_repository] = lambda: layout_repository
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
