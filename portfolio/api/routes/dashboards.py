"""Dashboard KPI and layout endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from portfolio.api.dependencies import get_analytics_service, get_filter_criteria
from portfolio.db.dependencies import get_layout_repository
from portfolio.services.analytics_service import AnalyticsService
from portfolio.services.dashboard_layout import DashboardLayout, DashboardLayoutRepository
from portfolio.services.filter_engine import FilterCriteria

router = APIRouter(prefix="/dashboards", tags=["dashboards"])


class LayoutPayload(BaseModel):
    visible: list[str] = Field(default_factory=list, max_length=64)


@router.get("/summary")
def get_dashboard_summary(
    criteria: FilterCriteria = Depends(get_filter_criteria),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, object]:
    return service.dashboard_summary(criteria)


@router.get("/widgets")
def list_widgets() -> list[dict[str, object]]:
    return AnalyticsService.widgets()


@router.get("/layout")
def get_layout(repo: DashboardLayoutRepository = Depends(get_layout_repository)) -> dict[str, object]:
    return AnalyticsService.serialize_layout(repo.load())


@router.put("/layout")
def save_layout(
    payload: LayoutPayload,
    repo: DashboardLayoutRepository = Depends(get_layout_repository),
) -> dict[str, object]:
    layout = repo.save(DashboardLayout.from_ids(payload.visible))
    return AnalyticsService.serialize_layout(layout)
