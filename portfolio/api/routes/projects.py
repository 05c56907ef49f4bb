"""Project list and Gantt endpoints."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Response, status

from portfolio.api.dependencies import get_analytics_service, get_filter_criteria
from portfolio.services.analytics_service import AnalyticsService
from portfolio.services.filter_engine import FilterCriteria

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("")
def list_projects(
    criteria: FilterCriteria = Depends(get_filter_criteria),
    service: AnalyticsService = Depends(get_analytics_service),
) -> dict[str, object]:
    return service.list_projects(criteria)


@router.get("/{project_id}/gantt")
def get_project_gantt(
    project_id: str,
    today: date | None = None,
    service: AnalyticsService = Depends(get_analytics_service),
) -> Response:
    exported = service.gantt_svg(project_id, today=today)
    if exported is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
