"""File export endpoints."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, Response

from portfolio.api.dependencies import get_analytics_service, get_filter_criteria
from portfolio.api.routes.reports import ReportPayload
from portfolio.services.analytics_service import AnalyticsService
from portfolio.services.exports import ExportFilePayload
from portfolio.services.filter_engine import FilterCriteria

router = APIRouter(prefix="/exports", tags=["exports"])


def _file_response(exported: ExportFilePayload) -> Response:
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )


@router.post("/report")
def export_report(
    payload: ReportPayload,
    format: str = Query(default="csv"),
    criteria: FilterCriteria = Depends(get_filter_criteria),
    service: AnalyticsService = Depends(get_analytics_service),
) -> Response:
    return _file_response(service.export_report(criteria, payload.to_request(), format_name=format))


@router.get("/milestones")
def export_milestones(
    format: str = Query(default="csv"),
    criteria: FilterCriteria = Depends(get_filter_criteria),
    service: AnalyticsService = Depends(get_analytics_service),
) -> Response:
    return _file_response(service.export_milestones(criteria, format_name=format))


@router.get("/milestones/{milestone_id}/updates")
def export_milestone_updates(
    milestone_id: str,
    start: date | None = None,
    end: date | None = None,
    format: str = Query(default="csv"),
    service: AnalyticsService = Depends(get_analytics_service),
) -> Response:
    return _file_response(service.export_updates(milestone_id, start=start, end=end, format_name=format))
