"""Report builder endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from portfolio.api.dependencies import get_analytics_service, get_filter_criteria
from portfolio.services.analytics_service import AnalyticsService, ReportRequest
from portfolio.services.filter_engine import FilterCriteria
from portfolio.services.report_builder import DEFAULT_GROUP_FIELD, ReportMeasure, ReportMode

router = APIRouter(prefix="/reports", tags=["reports"])


class ReportPayload(BaseModel):
    selected_fields: list[str] = Field(default_factory=list, max_length=64)
    mode: ReportMode = ReportMode.DETAILED
    group_field: str | None = DEFAULT_GROUP_FIELD
    measure: ReportMeasure = ReportMeasure.SUM
    column_filters: dict[str, str] = Field(default_factory=dict)

    def to_request(self) -> ReportRequest:
        return ReportRequest(
            selected_fields=list(self.selected_fields),
            mode=self.mode,
            group_field=self.group_field,
            measure=self.measure,
            column_filters=dict(self.column_filters),
        )


@router.get("/fields")
def list_report_fields(service: AnalyticsService = Depends(get_analytics_service)) -> dict[str, object]:
    return service.report_fields()


@router.post("/build")
def build_report(
    payload: ReportPayload,
    criteria: FilterCriteria = Depends(get_filter_criteria),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, object]:
    return service.build_report(criteria, payload.to_request())
