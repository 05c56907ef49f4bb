"""Loads the full portfolio into an immutable snapshot."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portfolio.core.exceptions import DataSourceUnavailableError
from portfolio.models.entities import Milestone, MilestoneStatus, MilestoneUpdate, Project, User
from portfolio.models.snapshots import (
    ZERO,
    Lookup,
    Lookups,
    MilestoneSnapshot,
    MilestoneUpdateSnapshot,
    Person,
    PortfolioSnapshot,
    ProjectSnapshot,
)
from portfolio.repositories.portfolio_repository import PortfolioRepository
from portfolio.services.lookup_resolver import resolve_projects

logger = logging.getLogger(__name__)


def _lookup(row: object) -> Lookup:
    return Lookup(id=row.id, name=row.name)


def _person(row: User) -> Person:
    return Person(id=row.id, name=row.name, avatar_url=row.avatar_url)


def _project(row: Project) -> ProjectSnapshot:
    return ProjectSnapshot(
        id=row.id,
        name=row.name,
        project_code=row.project_code or "",
        description=row.description or "",
        country_id=row.country_id,
        category_id=row.category_id,
        team_id=row.team_id,
        product_id=row.product_id,
        status_id=row.status_id,
        project_manager_id=row.project_manager_id,
        customer_id=row.customer_id,
        launch_date=row.launch_date,
        actual_start_date=row.actual_start_date,
        expected_closure_date=row.expected_closure_date,
        progress=row.progress or 0,
        revenue_impact=row.revenue_impact,
        strategic_value=row.strategic_value,
        delivery_risk=row.delivery_risk,
        customer_pressure=row.customer_pressure,
        resource_load=row.resource_load,
    )


def _milestone(row: Milestone) -> MilestoneSnapshot:
    return MilestoneSnapshot(
        id=row.id,
        title=row.title,
        description=row.description or "",
        project_id=row.project_id,
        team_id=row.team_id,
        due_date=row.due_date,
        status=row.status or MilestoneStatus.PENDING,
        has_payment=bool(row.has_payment),
        payment_amount=Decimal(row.payment_amount) if row.payment_amount is not None else ZERO,
        payment_status=row.payment_status,
    )


def _update(row: MilestoneUpdate) -> MilestoneUpdateSnapshot:
    return MilestoneUpdateSnapshot(
        id=row.id,
        milestone_id=row.milestone_id,
        user_id=row.user_id,
        update_text=row.update_text,
        created_at=row.created_at,
    )


class PortfolioDataLoader:
    """Holds the current snapshot and refreshes it from the database.

    Overlapping reloads collapse: while one fetch is running, other callers
    get the current snapshot back without touching the database. Before the
    first successful load there is nothing to serve, so those callers wait for
    the running fetch instead.
    """

    def __init__(self) -> None:
        self._lock = threading.Condition()
        self._in_flight = False
        self._snapshot = PortfolioSnapshot()
        self._loaded = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def current(self, db: Session) -> PortfolioSnapshot:
        """Current snapshot, loading it on first use."""

        if not self._loaded:
            return self.reload(db)
        return self._snapshot

    def reload(self, db: Session) -> PortfolioSnapshot:
        with self._lock:
            waited = False
            while self._in_flight and not self._loaded:
                logger.info("Waiting for the initial portfolio load")
                waited = True
                self._lock.wait()
            if waited and self._loaded:
                return self._snapshot
            if self._in_flight:
                logger.info("Portfolio reload already in flight, serving version %s", self._snapshot.version)
                return self._snapshot
            self._in_flight = True
            next_version = self._snapshot.version + 1

        try:
            logger.info("Reloading portfolio data (version %s)", next_version)
            snapshot = self.fetch(db, version=next_version)
            with self._lock:
                self._snapshot = snapshot
                self._loaded = True
        except SQLAlchemyError as exc:
            logger.exception("Portfolio reload failed")
            raise DataSourceUnavailableError(DataSourceUnavailableError.public_message) from exc
        finally:
            with self._lock:
                self._in_flight = False
                self._lock.notify_all()

        logger.info(
            "Loaded %s projects and %s milestones (version %s)",
            len(snapshot.projects),
            len(snapshot.milestones),
            snapshot.version,
        )
        return snapshot

    @staticmethod
    def fetch(db: Session, *, version: int = 0) -> PortfolioSnapshot:
        repo = PortfolioRepository(db)
        users = tuple(_person(row) for row in repo.list_users())
        lookups = Lookups(
            countries=tuple(_lookup(row) for row in repo.list_countries()),
            categories=tuple(_lookup(row) for row in repo.list_categories()),
            teams=tuple(_lookup(row) for row in repo.list_teams()),
            products=tuple(_lookup(row) for row in repo.list_products()),
            project_statuses=tuple(_lookup(row) for row in repo.list_project_statuses()),
            project_managers=users,
            customers=tuple(_lookup(row) for row in repo.list_customers()),
        )
        projects = resolve_projects((_project(row) for row in repo.list_projects()), lookups)

        return PortfolioSnapshot(
            projects=tuple(projects),
            milestones=tuple(_milestone(row) for row in repo.list_milestones()),
            users=users,
            updates=tuple(_update(row) for row in repo.list_milestone_updates()),
            lookups=lookups,
            version=version,
            loaded_at=datetime.now(timezone.utc),
        )
