"""Request-scoped dependencies shared by the analytics routes."""

from __future__ import annotations

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from portfolio.db.dependencies import get_data_loader, get_db_session
from portfolio.models.entities import PaymentStatus
from portfolio.models.snapshots import PortfolioSnapshot
from portfolio.services.analytics_service import AnalyticsService
from portfolio.services.data_loader import PortfolioDataLoader
from portfolio.services.filter_engine import FilterCriteria
from portfolio.services.periods import parse_month_key


def get_snapshot(
    db: Session = Depends(get_db_session),
    loader: PortfolioDataLoader = Depends(get_data_loader),
) -> PortfolioSnapshot:
    return loader.current(db)


def get_analytics_service(
    locale: str | None = Query(default=None, pattern="^(en|ar)$"),
    snapshot: PortfolioSnapshot = Depends(get_snapshot),
) -> AnalyticsService:
    return AnalyticsService(snapshot, locale)


def get_filter_criteria(
    project_id: str | None = Query(default=None),
    manager_id: str | None = Query(default=None),
    customer_id: str | None = Query(default=None),
    status_id: str | None = Query(default=None),
    country_id: str | None = Query(default=None),
    payment_status: PaymentStatus | None = Query(default=None),
    has_payment: bool | None = Query(default=None),
    month: str | None = Query(default=None, description="Due month as YYYY-MM."),
    search: str | None = Query(default=None, max_length=255),
) -> FilterCriteria:
    return FilterCriteria(
        project_id=project_id,
        manager_id=manager_id,
        customer_id=customer_id,
        status_id=status_id,
        country_id=country_id,
        payment_status=payment_status,
        has_payment=has_payment,
        month=parse_month_key(month),
        search=search,
    )
