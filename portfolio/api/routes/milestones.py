"""Filtered milestone views."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from portfolio.api.dependencies import get_analytics_service, get_filter_criteria
from portfolio.services.analytics_service import AnalyticsService
from portfolio.services.filter_engine import FilterCriteria

router = APIRouter(prefix="/milestones", tags=["milestones"])


@router.get("")
def list_milestones(
    criteria: FilterCriteria = Depends(get_filter_criteria),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, object]:
    return service.list_milestones(criteria)


@router.get("/filter-options")
def get_filter_options(
    criteria: FilterCriteria = Depends(get_filter_criteria),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, object]:
    return service.filter_options(criteria)
