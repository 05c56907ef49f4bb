"""Chart series and period drill-down endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from portfolio.api.dependencies import get_analytics_service, get_filter_criteria
from portfolio.services.aggregation import Dimension, Measure
from portfolio.services.analytics_service import AnalyticsService
from portfolio.services.filter_engine import FilterCriteria

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/chart")
def get_chart(
    dimension: Dimension = Query(default=Dimension.STATUS),
    measure: Measure = Query(default=Measure.PROJECT_COUNT),
    criteria: FilterCriteria = Depends(get_filter_criteria),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, object]:
    return service.chart(criteria, dimension, measure)


@router.get("/drilldown")
def get_drilldown(
    criteria: FilterCriteria = Depends(get_filter_criteria),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, object]:
    return service.drilldown(criteria)
