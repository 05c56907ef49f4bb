"""User-composable pivot over projects and their milestones."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from portfolio.models.snapshots import ZERO, Lookup, MilestoneSnapshot, ProjectSnapshot
from portfolio.services.aggregation import safe_div
from portfolio.services.display import milestone_status_meta, payment_status_meta
from portfolio.services.localization import Locale, format_amount, format_date, format_month_year
from portfolio.services.lookup_resolver import PLACEHOLDER, display_name, index_by_id, resolve_team

logger = logging.getLogger(__name__)


class ReportMode(str, Enum):
    DETAILED = "detailed"
    AGGREGATE = "aggregate"


class ReportMeasure(str, Enum):
    COUNT = "count"
    SUM = "sum"
    AVG = "avg"


class FieldScope(str, Enum):
    PROJECT = "project"
    MILESTONE = "milestone"


@dataclass(frozen=True, slots=True)
class ReportContext:
    locale: Locale = Locale.EN
    teams: Mapping[str, Lookup] = field(default_factory=dict)


Accessor = Callable[[ProjectSnapshot, MilestoneSnapshot | None, ReportContext], str]


@dataclass(frozen=True, slots=True)
class ReportField:
    id: str
    label_en: str
    label_ar: str
    scope: FieldScope
    accessor: Accessor

    def label(self, locale: Locale) -> str:
        return self.label_ar if locale is Locale.AR else self.label_en

    def value(self, project: ProjectSnapshot, milestone: MilestoneSnapshot | None, context: ReportContext) -> str:
        return self.accessor(project, milestone, context)


@dataclass(frozen=True, slots=True)
class DetailedRow:
    values: dict[str, str]


@dataclass(frozen=True, slots=True)
class AggregateRow:
    label: str
    count: int
    sum: Decimal
    avg: Decimal

    def measure(self, measure: ReportMeasure) -> Decimal | int:
        match measure:
            case ReportMeasure.COUNT:
                return self.count
            case ReportMeasure.SUM:
                return self.sum
            case ReportMeasure.AVG:
                return self.avg
        raise ValueError(f"Unsupported measure: {measure}")


ReportRow = DetailedRow | AggregateRow


# ---------- Field accessors ----------


def _milestone_title(_: ProjectSnapshot, m: MilestoneSnapshot | None, __: ReportContext) -> str:
    return m.title if m is not None and m.title else PLACEHOLDER


def _milestone_status(_: ProjectSnapshot, m: MilestoneSnapshot | None, ctx: ReportContext) -> str:
    return milestone_status_meta(m.status).label(ctx.locale) if m is not None else PLACEHOLDER


def _milestone_amount(_: ProjectSnapshot, m: MilestoneSnapshot | None, __: ReportContext) -> str:
    return format_amount(m.payment_amount) if m is not None and m.has_payment else PLACEHOLDER


def _milestone_month_year(_: ProjectSnapshot, m: MilestoneSnapshot | None, ctx: ReportContext) -> str:
    due = m.due if m is not None else None
    return format_month_year(due.year, due.month, ctx.locale) if due is not None else PLACEHOLDER


def _milestone_team(p: ProjectSnapshot, m: MilestoneSnapshot | None, ctx: ReportContext) -> str:
    return display_name(resolve_team(m, p, ctx.teams))


def _milestone_payment_status(_: ProjectSnapshot, m: MilestoneSnapshot | None, ctx: ReportContext) -> str:
    status = m.effective_payment_status if m is not None else None
    return payment_status_meta(status).label(ctx.locale) if status is not None else PLACEHOLDER


def _milestone_due(_: ProjectSnapshot, m: MilestoneSnapshot | None, ctx: ReportContext) -> str:
    due = m.due if m is not None else None
    return format_date(due, ctx.locale) if due is not None else PLACEHOLDER


REPORT_FIELDS: dict[str, ReportField] = {
    item.id: item
    for item in (
        ReportField("proj_name", "Project Name", "اسم المشروع", FieldScope.PROJECT, lambda p, m, ctx: p.name),
        ReportField(
            "proj_code",
            "Project Code",
            "كود المشروع",
            FieldScope.PROJECT,
            lambda p, m, ctx: p.project_code or PLACEHOLDER,
        ),
        ReportField(
            "proj_pm",
            "Project Manager",
            "مدير المشروع",
            FieldScope.PROJECT,
            lambda p, m, ctx: display_name(p.project_manager),
        ),
        ReportField(
            "proj_customer", "Customer", "العميل", FieldScope.PROJECT, lambda p, m, ctx: display_name(p.customer)
        ),
        ReportField(
            "proj_status",
            "Project Status",
            "حالة المشروع",
            FieldScope.PROJECT,
            lambda p, m, ctx: display_name(p.status),
        ),
        ReportField("proj_progress", "Progress", "التقدم", FieldScope.PROJECT, lambda p, m, ctx: f"{p.progress}%"),
        ReportField("proj_country", "Country", "البلد", FieldScope.PROJECT, lambda p, m, ctx: display_name(p.country)),
        ReportField(
            "proj_priority",
            "Priority Score",
            "درجة الأولوية",
            FieldScope.PROJECT,
            lambda p, m, ctx: str(p.priority_score),
        ),
        ReportField("mile_title", "Milestone Title", "اسم الدفعة", FieldScope.MILESTONE, _milestone_title),
        ReportField("mile_status", "Milestone Status", "حالة المعلم", FieldScope.MILESTONE, _milestone_status),
        ReportField("mile_amount", "Milestone Value", "قيمة الدفعة", FieldScope.MILESTONE, _milestone_amount),
        ReportField("mile_month_year", "Month-Year", "شهر وسنة المعلم", FieldScope.MILESTONE, _milestone_month_year),
        ReportField("team_name", "Team", "الفريق المسؤول", FieldScope.MILESTONE, _milestone_team),
        ReportField("mile_pay_status", "Payment Status", "حالة الدفعة", FieldScope.MILESTONE, _milestone_payment_status),
        ReportField("mile_due", "Due Date", "تاريخ الاستحقاق", FieldScope.MILESTONE, _milestone_due),
    )
}

DEFAULT_GROUP_FIELD = "proj_customer"


def groupable_fields() -> list[ReportField]:
    return [item for item in REPORT_FIELDS.values() if item.scope is FieldScope.PROJECT]


def resolve_fields(field_ids: Iterable[str]) -> list[ReportField]:
    """Known fields in the requested order; duplicates and unknown ids are dropped."""

    resolved: list[ReportField] = []
    seen: set[str] = set()
    for field_id in field_ids:
        if field_id in seen:
            continue
        item = REPORT_FIELDS.get(field_id)
        if item is None:
            logger.warning("Ignoring unknown report field %r", field_id)
            continue
        seen.add(field_id)
        resolved.append(item)
    return resolved


def resolve_group_field(field_id: str | None) -> ReportField:
    item = REPORT_FIELDS.get(field_id) if field_id else None
    if item is None or item.scope is not FieldScope.PROJECT:
        logger.warning("Invalid report grouping field %r, falling back to %s", field_id, DEFAULT_GROUP_FIELD)
        return REPORT_FIELDS[DEFAULT_GROUP_FIELD]
    return item


def _milestones_by_project(milestones: Iterable[MilestoneSnapshot]) -> dict[str, list[MilestoneSnapshot]]:
    grouped: dict[str, list[MilestoneSnapshot]] = {}
    for milestone in milestones:
        if milestone.project_id is not None:
            grouped.setdefault(milestone.project_id, []).append(milestone)
    return grouped


def _matches(row: DetailedRow, column_filters: Mapping[str, str]) -> bool:
    for field_id, needle in column_filters.items():
        if not needle:
            continue
        if needle.lower() not in row.values.get(field_id, "").lower():
            return False
    return True


def build_detailed_rows(
    projects: Sequence[ProjectSnapshot],
    milestones: Iterable[MilestoneSnapshot],
    fields: Sequence[ReportField],
    column_filters: Mapping[str, str],
    context: ReportContext,
) -> list[DetailedRow]:
    if not fields:
        return []

    by_project = _milestones_by_project(milestones)
    rows: list[DetailedRow] = []
    for project in projects:
        members: list[MilestoneSnapshot | None] = list(by_project.get(project.id, [])) or [None]
        for milestone in members:
            rows.append(DetailedRow(values={item.id: item.value(project, milestone, context) for item in fields}))

    return [row for row in rows if _matches(row, column_filters)]


def build_aggregate_rows(
    projects: Sequence[ProjectSnapshot],
    milestones: Iterable[MilestoneSnapshot],
    group_field: ReportField,
    measure: ReportMeasure,
    column_filters: Mapping[str, str],
    context: ReportContext,
) -> list[AggregateRow]:
    """One row per distinct group value; count is milestones, sum covers payable ones."""

    by_project = _milestones_by_project(milestones)
    counts: dict[str, int] = {}
    sums: dict[str, Decimal] = {}
    for project in projects:
        key = group_field.value(project, None, context) or PLACEHOLDER
        members = by_project.get(project.id, [])
        counts[key] = counts.get(key, 0) + len(members)
        sums[key] = sums.get(key, ZERO) + sum((m.payable_amount for m in members), ZERO)

    needle = (column_filters.get(group_field.id) or "").lower()
    rows = [
        AggregateRow(label=key, count=counts[key], sum=sums[key], avg=safe_div(sums[key], counts[key]))
        for key in counts
        if needle in key.lower()
    ]
    return sorted(rows, key=lambda row: row.measure(measure), reverse=True)


def build_report(
    projects: Sequence[ProjectSnapshot],
    milestones: Iterable[MilestoneSnapshot],
    selected_fields: Iterable[str],
    mode: ReportMode | str = ReportMode.DETAILED,
    group_field: str | None = DEFAULT_GROUP_FIELD,
    measure: ReportMeasure | str = ReportMeasure.SUM,
    column_filters: Mapping[str, str] | None = None,
    locale: Locale = Locale.EN,
    teams: Iterable[Lookup] = (),
) -> list[ReportRow]:
    """Rebuild report rows from scratch.

    Detailed mode yields one row per (project, milestone), or a single row for
    a project without milestones, then applies the column filters. Aggregate
    mode groups projects by a project-scoped field and sorts descending by the
    selected measure.
    """

    context = ReportContext(locale=locale, teams=index_by_id(teams))
    filters = dict(column_filters or {})
    if ReportMode(mode) is ReportMode.AGGREGATE:
        return list(
            build_aggregate_rows(
                projects, milestones, resolve_group_field(group_field), ReportMeasure(measure), filters, context
            )
        )
    return list(build_detailed_rows(projects, milestones, resolve_fields(selected_fields), filters, context))
