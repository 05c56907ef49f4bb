"""Service binding a portfolio snapshot to the analytics engines."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from fastapi import HTTPException, status

from portfolio.core.config import get_settings
from portfolio.models.entities import PaymentStatus
from portfolio.models.snapshots import MilestoneSnapshot, PortfolioSnapshot, ProjectSnapshot
from portfolio.services.aggregation import (
    CountRow,
    Dimension,
    DrilldownPeriod,
    GroupRow,
    Measure,
    ProjectDimension,
    build_drilldown,
    chart_series,
    group_projects_by,
    projects_with_milestones,
    team_workload,
)
from portfolio.services.dashboard_layout import WIDGETS, DashboardLayout
from portfolio.services.display import milestone_status_meta, payment_status_meta
from portfolio.services.exports import (
    EXPORT_FORMATS,
    ExportFilePayload,
    filter_updates,
    milestones_table,
    render_table,
    report_filename,
    report_table,
    safe_filename,
    updates_table,
)
from portfolio.services.filter_engine import (
    FilterCriteria,
    filter_milestones,
    filter_projects,
    month_year_options,
    project_options,
    reconcile_filters,
)
from portfolio.services.gantt import GanttGeometry, gantt_filename, layout_gantt, render_gantt_svg
from portfolio.services.kpi import stats_overview, summarize
from portfolio.services.localization import Locale, format_month_year, resolve_locale
from portfolio.services.lookup_resolver import display_name, index_by_id
from portfolio.services.report_builder import (
    DEFAULT_GROUP_FIELD,
    REPORT_FIELDS,
    AggregateRow,
    DetailedRow,
    ReportField,
    ReportMeasure,
    ReportMode,
    ReportRow,
    build_report,
    groupable_fields,
    resolve_fields,
    resolve_group_field,
)

Q2 = Decimal("0.01")
SVG_MEDIA_TYPE = "image/svg+xml; charset=utf-8"


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2)


@dataclass(slots=True)
class ReportRequest:
    selected_fields: list[str]
    mode: ReportMode = ReportMode.DETAILED
    group_field: str | None = DEFAULT_GROUP_FIELD
    measure: ReportMeasure = ReportMeasure.SUM
    column_filters: dict[str, str] | None = None


class AnalyticsService:
    """Read-only analytics over one snapshot, serialized for the HTTP API."""

    def __init__(self, snapshot: PortfolioSnapshot, locale: str | Locale | None = None) -> None:
        self.snapshot = snapshot
        self.settings = get_settings()
        self.locale = resolve_locale(locale, resolve_locale(self.settings.default_locale))

    # ---------- Filtering ----------
    def reconcile(self, criteria: FilterCriteria) -> FilterCriteria:
        return reconcile_filters(None, criteria, self.snapshot.projects)

    def _scope(self, criteria: FilterCriteria) -> tuple[list[ProjectSnapshot], list[MilestoneSnapshot]]:
        projects = filter_projects(self.snapshot.projects, criteria)
        milestones = filter_milestones(self.snapshot.milestones, self.snapshot.projects, criteria)
        return projects, milestones

    def _require_project(self, project_id: str) -> ProjectSnapshot:
        project = self.snapshot.project(project_id)
        if project is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
        return project

    # ---------- Serialization ----------
    @staticmethod
    def serialize_criteria(criteria: FilterCriteria) -> dict[str, object]:
        return {
            "project_id": criteria.project_id,
            "manager_id": criteria.manager_id,
            "customer_id": criteria.customer_id,
            "status_id": criteria.status_id,
            "country_id": criteria.country_id,
            "payment_status": criteria.payment_status.value if criteria.payment_status else None,
            "has_payment": criteria.has_payment,
            "month": f"{criteria.month[0]:04d}-{criteria.month[1]:02d}" if criteria.month else None,
            "search": criteria.search_term,
        }

    @staticmethod
    def serialize_project(project: ProjectSnapshot) -> dict[str, object]:
        return {
            "id": project.id,
            "project_code": project.project_code,
            "name": project.name,
            "description": project.description,
            "country": display_name(project.country, "") or None,
            "category": display_name(project.category, "") or None,
            "team": display_name(project.team, "") or None,
            "product": display_name(project.product, "") or None,
            "status": display_name(project.status, "") or None,
            "project_manager": display_name(project.project_manager, "") or None,
            "customer": display_name(project.customer, "") or None,
            "launch_date": project.launch_date.isoformat() if project.launch_date else None,
            "actual_start_date": project.actual_start_date.isoformat() if project.actual_start_date else None,
            "expected_closure_date": (
                project.expected_closure_date.isoformat() if project.expected_closure_date else None
            ),
            "progress": project.progress,
            "priority_score": project.priority_score,
        }

    def serialize_milestone(self, milestone: MilestoneSnapshot) -> dict[str, object]:
        due = milestone.due
        payment_status = milestone.effective_payment_status
        return {
            "id": milestone.id,
            "title": milestone.title,
            "description": milestone.description,
            "project_id": milestone.project_id,
            "team_id": milestone.team_id,
            "due_date": due.isoformat() if due else None,
            "month_year": format_month_year(due.year, due.month, self.locale) if due else None,
            "status": milestone.status.value,
            "status_label": milestone_status_meta(milestone.status).label(self.locale),
            "has_payment": milestone.has_payment,
            "payment_amount": str(_q2(milestone.payment_amount)) if milestone.has_payment else None,
            "payment_status": payment_status.value if payment_status else None,
            "payment_status_label": (
                payment_status_meta(payment_status).label(self.locale) if payment_status else None
            ),
        }

    @staticmethod
    def serialize_group_row(row: GroupRow, measure: Measure) -> dict[str, object]:
        value = row.value(measure)
        return {
            "label": row.label,
            "value": str(_q2(value)) if isinstance(value, Decimal) else value,
            "project_count": row.project_count,
            "milestone_count": row.milestone_count,
            "total": str(_q2(row.total)),
            "average": str(_q2(row.average)),
        }

    @staticmethod
    def serialize_count_rows(rows: list[CountRow]) -> list[dict[str, object]]:
        return [{"label": row.label, "count": row.count} for row in rows]

    def serialize_period(self, period: DrilldownPeriod) -> dict[str, object]:
        return {
            "key": f"{period.key[0]:04d}-{period.key[1]:02d}" if period.key else None,
            "label": period.label,
            "total": str(_q2(period.total)),
            "milestone_count": period.milestone_count,
            "projects": [
                {
                    "project_id": bucket.project_id,
                    "project_name": bucket.project_name,
                    "total": str(_q2(bucket.total)),
                    "completed_count": bucket.completed_count,
                    "status_counts": {key.value: count for key, count in bucket.status_counts.items()},
                    "milestones": [self.serialize_milestone(milestone) for milestone in bucket.milestones],
                }
                for bucket in period.projects
            ],
        }

    def serialize_report_field(self, item: ReportField) -> dict[str, object]:
        return {"id": item.id, "label": item.label(self.locale), "scope": item.scope.value}

    @staticmethod
    def serialize_report_row(row: ReportRow) -> dict[str, object]:
        match row:
            case DetailedRow(values=values):
                return {"kind": "detailed", "values": dict(values)}
            case AggregateRow():
                return {
                    "kind": "aggregate",
                    "label": row.label,
                    "count": row.count,
                    "sum": str(_q2(row.sum)),
                    "avg": str(_q2(row.avg)),
                }
        raise TypeError(f"Unsupported report row: {row!r}")

    # ---------- Lists ----------
    def list_projects(self, criteria: FilterCriteria) -> dict[str, object]:
        criteria = self.reconcile(criteria)
        projects = filter_projects(self.snapshot.projects, criteria)
        return {
            "criteria": self.serialize_criteria(criteria),
            "total": len(projects),
            "items": [self.serialize_project(project) for project in projects],
        }

    def list_milestones(self, criteria: FilterCriteria) -> dict[str, object]:
        criteria = self.reconcile(criteria)
        projects, milestones = self._scope(criteria)
        groups = projects_with_milestones(projects, milestones)
        return {
            "criteria": self.serialize_criteria(criteria),
            "milestone_count": sum(len(group.milestones) for group in groups),
            "projects": [
                {
                    "project": self.serialize_project(group.project),
                    "total": str(_q2(group.total)),
                    "milestones": [self.serialize_milestone(milestone) for milestone in group.milestones],
                }
                for group in groups
            ],
        }

    def filter_options(self, criteria: FilterCriteria) -> dict[str, object]:
        lookups = self.snapshot.lookups
        criteria = self.reconcile(criteria)
        return {
            "criteria": self.serialize_criteria(criteria),
            "customers": [{"id": row.id, "name": row.name} for row in lookups.customers],
            "managers": [{"id": row.id, "name": row.name} for row in lookups.project_managers],
            "statuses": [{"id": row.id, "name": row.name} for row in lookups.project_statuses],
            "countries": [{"id": row.id, "name": row.name} for row in lookups.countries],
            "projects": [
                {"id": project.id, "name": project.name}
                for project in project_options(self.snapshot.projects, criteria)
            ],
            "months": [
                {"value": option.value, "label": option.label}
                for option in month_year_options(self.snapshot.milestones, self.locale, descending=True)
            ],
            "payment_statuses": [
                {"value": item.value, "label": payment_status_meta(item).label(self.locale)} for item in PaymentStatus
            ],
        }

    # ---------- Dashboards ----------
    def dashboard_summary(self, criteria: FilterCriteria) -> dict[str, object]:
        criteria = self.reconcile(criteria)
        projects, milestones = self._scope(criteria)
        kpis = summarize(projects, milestones)
        stats = stats_overview(projects, milestones)
        return {
            "criteria": self.serialize_criteria(criteria),
            "kpis": {
                "project_count": kpis.project_count,
                "pending_total": str(_q2(kpis.pending_total)),
                "sent_total": str(_q2(kpis.sent_total)),
                "paid_total": str(_q2(kpis.paid_total)),
            },
            "stats": {
                "total_projects": stats.total_projects,
                "total_milestones": stats.total_milestones,
                "in_progress_milestones": stats.in_progress_milestones,
                "completed_milestones": stats.completed_milestones,
            },
            "project_status": self.serialize_count_rows(
                group_projects_by(projects, ProjectDimension.STATUS, self.locale)
            ),
            "team_workload": self.serialize_count_rows(team_workload(milestones, self.snapshot.lookups.teams)),
            "projects_by_year": self.serialize_count_rows(
                group_projects_by(projects, ProjectDimension.LAUNCH_YEAR, self.locale)
            ),
            "projects_by_country": self.serialize_count_rows(
                group_projects_by(projects, ProjectDimension.COUNTRY, self.locale)
            ),
            "projects_by_product": self.serialize_count_rows(
                group_projects_by(projects, ProjectDimension.PRODUCT, self.locale)
            ),
        }

    @staticmethod
    def serialize_layout(layout: DashboardLayout) -> dict[str, object]:
        return {"visible": list(layout.visible), "hidden": list(layout.hidden)}

    @staticmethod
    def widgets() -> list[dict[str, object]]:
        return [
            {"id": widget.id, "name": widget.name, "default": widget.default, "col_span": widget.col_span}
            for widget in WIDGETS
        ]

    # ---------- Analytics ----------
    def chart(self, criteria: FilterCriteria, dimension: Dimension, measure: Measure) -> dict[str, object]:
        criteria = self.reconcile(criteria)
        _, milestones = self._scope(criteria)
        rows = chart_series(self.snapshot.projects, milestones, dimension, measure, self.locale)
        return {
            "dimension": dimension.value,
            "measure": measure.value,
            "rows": [self.serialize_group_row(row, measure) for row in rows],
        }

    def drilldown(self, criteria: FilterCriteria) -> dict[str, object]:
        criteria = self.reconcile(criteria)
        _, milestones = self._scope(criteria)
        periods = build_drilldown(self.snapshot.projects, milestones, self.locale)
        return {
            "criteria": self.serialize_criteria(criteria),
            "periods": [self.serialize_period(period) for period in periods],
        }

    # ---------- Reports ----------
    def report_fields(self) -> dict[str, object]:
        return {
            "fields": [self.serialize_report_field(item) for item in REPORT_FIELDS.values()],
            "group_fields": [self.serialize_report_field(item) for item in groupable_fields()],
            "default_group_field": DEFAULT_GROUP_FIELD,
        }

    def _report_rows(self, criteria: FilterCriteria, request: ReportRequest) -> list[ReportRow]:
        criteria = self.reconcile(criteria)
        projects, milestones = self._scope(criteria)
        return build_report(
            projects,
            milestones,
            request.selected_fields,
            mode=request.mode,
            group_field=request.group_field,
            measure=request.measure,
            column_filters=request.column_filters,
            locale=self.locale,
            teams=self.snapshot.lookups.teams,
        )

    def build_report(self, criteria: FilterCriteria, request: ReportRequest) -> dict[str, object]:
        rows = self._report_rows(criteria, request)
        return {
            "mode": request.mode.value,
            "fields": [self.serialize_report_field(item) for item in resolve_fields(request.selected_fields)],
            "rows": [self.serialize_report_row(row) for row in rows],
        }

    # ---------- Exports ----------
    @staticmethod
    def _normalize_format(format_name: str) -> str:
        normalized = format_name.strip().lower()
        if normalized not in EXPORT_FORMATS:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="format must be one of: csv, xlsx.",
            )
        return normalized

    def export_report(
        self,
        criteria: FilterCriteria,
        request: ReportRequest,
        format_name: str = "csv",
        today: date | None = None,
    ) -> ExportFilePayload:
        normalized_format = self._normalize_format(format_name)
        rows = self._report_rows(criteria, request)
        group_field = resolve_group_field(request.group_field) if request.mode is ReportMode.AGGREGATE else None
        table = report_table(rows, resolve_fields(request.selected_fields), self.locale, group_field)
        return render_table(table, normalized_format, report_filename(today or date.today()))

    def export_milestones(self, criteria: FilterCriteria, format_name: str = "csv") -> ExportFilePayload:
        normalized_format = self._normalize_format(format_name)
        criteria = self.reconcile(criteria)
        projects, milestones = self._scope(criteria)
        groups = projects_with_milestones(projects, milestones)
        table = milestones_table(groups, index_by_id(self.snapshot.lookups.teams), self.locale)
        return render_table(table, normalized_format, "project_milestones")

    def export_updates(
        self,
        milestone_id: str,
        start: date | None = None,
        end: date | None = None,
        format_name: str = "csv",
    ) -> ExportFilePayload:
        normalized_format = self._normalize_format(format_name)
        milestone = self.snapshot.milestone(milestone_id)
        if milestone is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Milestone not found.")
        if start is not None and end is not None and end < start:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="end must be greater than or equal to start.",
            )
        updates = filter_updates(self.snapshot.updates, milestone_id, start, end)
        table = updates_table(updates, index_by_id(self.snapshot.users), self.locale)
        return render_table(table, normalized_format, f"{safe_filename(milestone.title)}_updates")

    def gantt_svg(self, project_id: str, today: date | None = None) -> ExportFilePayload | None:
        """SVG timeline for one project, or ``None`` when it has no dated milestone."""

        project = self._require_project(project_id)
        geometry = GanttGeometry(
            px_per_day=self.settings.gantt_px_per_day,
            row_height=self.settings.gantt_row_height,
            header_height=self.settings.gantt_header_height,
        )
        milestones = [m for m in self.snapshot.milestones if m.project_id == project.id]
        layout = layout_gantt(project, milestones, self.locale, today=today or date.today(), geometry=geometry)
        if layout is None:
            return None
        return ExportFilePayload(
            media_type=SVG_MEDIA_TYPE,
            filename=gantt_filename(project.name),
            content=render_gantt_svg(layout).encode("utf-8"),
        )
