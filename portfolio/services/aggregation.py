"""Grouping and aggregation over filtered milestone and project collections."""

from __future__ import annotations

from collections.abc import Callable, Collection, Iterable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import TypeVar

from portfolio.models.entities import MilestoneStatus, PaymentStatus
from portfolio.models.snapshots import ZERO, Lookup, MilestoneSnapshot, ProjectSnapshot
from portfolio.services.localization import Locale, format_month_year, label
from portfolio.services.periods import MonthKey, due_sort_key, milestone_month

RecordT = TypeVar("RecordT")


class Dimension(str, Enum):
    STATUS = "status"
    CUSTOMER = "customer"
    MANAGER = "manager"
    COUNTRY = "country"
    TEAM = "team"
    PRODUCT = "product"
    CATEGORY = "category"
    PROJECT = "project"
    MONTH_YEAR = "month_year"


class Measure(str, Enum):
    PROJECT_COUNT = "project_count"
    MILESTONE_COUNT = "milestone_count"
    TOTAL_PAYMENT = "total_payment"
    AVERAGE_PAYMENT = "average_payment"
    AVERAGE_PROJECT_PAYMENT = "average_project_payment"


class ProjectDimension(str, Enum):
    STATUS = "status"
    CUSTOMER = "customer"
    MANAGER = "manager"
    COUNTRY = "country"
    TEAM = "team"
    PRODUCT = "product"
    CATEGORY = "category"
    LAUNCH_YEAR = "launch_year"


def safe_div(numerator: Decimal, denominator: int) -> Decimal:
    if denominator == 0:
        return ZERO
    return numerator / Decimal(denominator)


def total_payment(milestones: Iterable[MilestoneSnapshot]) -> Decimal:
    """Sum of amounts over milestones that carry a payment."""

    return sum((milestone.payable_amount for milestone in milestones), ZERO)


def group_by(
    records: Iterable[RecordT],
    key_fn: Callable[[RecordT], str | None],
    locale: Locale = Locale.EN,
) -> dict[str, list[RecordT]]:
    """Insertion-ordered buckets; records without a label land in "Unassigned"."""

    unassigned = label("unassigned", locale)
    groups: dict[str, list[RecordT]] = {}
    for record in records:
        groups.setdefault(key_fn(record) or unassigned, []).append(record)
    return groups


def project_count(milestones: Iterable[MilestoneSnapshot], known_projects: Collection[str] | None = None) -> int:
    """Distinct owning projects; unset ids, and ids outside ``known_projects`` when given, are not projects."""

    return len(
        {
            milestone.project_id
            for milestone in milestones
            if milestone.project_id is not None
            and (known_projects is None or milestone.project_id in known_projects)
        }
    )


def aggregate(
    milestones: Sequence[MilestoneSnapshot],
    measure: Measure,
    known_projects: Collection[str] | None = None,
) -> Decimal | int:
    projects = project_count(milestones, known_projects)
    match measure:
        case Measure.PROJECT_COUNT:
            return projects
        case Measure.MILESTONE_COUNT:
            return len(milestones)
        case Measure.TOTAL_PAYMENT:
            return total_payment(milestones)
        case Measure.AVERAGE_PAYMENT:
            return safe_div(total_payment(milestones), len(milestones))
        case Measure.AVERAGE_PROJECT_PAYMENT:
            return safe_div(total_payment(milestones), projects)
    raise ValueError(f"Unsupported measure: {measure}")


@dataclass(frozen=True, slots=True)
class GroupRow:
    label: str
    project_count: int
    milestone_count: int
    total: Decimal

    @property
    def average(self) -> Decimal:
        return safe_div(self.total, self.milestone_count)

    @property
    def average_per_project(self) -> Decimal:
        return safe_div(self.total, self.project_count)

    def value(self, measure: Measure) -> Decimal | int:
        match measure:
            case Measure.PROJECT_COUNT:
                return self.project_count
            case Measure.MILESTONE_COUNT:
                return self.milestone_count
            case Measure.TOTAL_PAYMENT:
                return self.total
            case Measure.AVERAGE_PAYMENT:
                return self.average
            case Measure.AVERAGE_PROJECT_PAYMENT:
                return self.average_per_project
        raise ValueError(f"Unsupported measure: {measure}")


def _name(item: Lookup | None) -> str | None:
    return item.name if item is not None else None


def dimension_label(
    dimension: Dimension,
    milestone: MilestoneSnapshot,
    project: ProjectSnapshot | None,
    locale: Locale,
) -> str | None:
    if dimension is Dimension.MONTH_YEAR:
        key = milestone_month(milestone)
        return format_month_year(key[0], key[1], locale) if key is not None else None
    if project is None:
        return None
    match dimension:
        case Dimension.STATUS:
            return _name(project.status)
        case Dimension.CUSTOMER:
            return _name(project.customer)
        case Dimension.MANAGER:
            return _name(project.project_manager)
        case Dimension.COUNTRY:
            return _name(project.country)
        case Dimension.TEAM:
            return _name(project.team)
        case Dimension.PRODUCT:
            return _name(project.product)
        case Dimension.CATEGORY:
            return _name(project.category)
        case Dimension.PROJECT:
            return project.name
    return None


def chart_series(
    projects: Sequence[ProjectSnapshot],
    milestones: Sequence[MilestoneSnapshot],
    dimension: Dimension,
    measure: Measure,
    locale: Locale = Locale.EN,
) -> list[GroupRow]:
    """Group milestones by one dimension, sorted descending by the measure.

    Python's sort is stable, so equal values keep first-seen label order.
    """

    project_index = {project.id: project for project in projects}
    groups = group_by(
        milestones,
        lambda milestone: dimension_label(
            dimension,
            milestone,
            project_index.get(milestone.project_id) if milestone.project_id else None,
            locale,
        ),
        locale,
    )
    rows = [
        GroupRow(
            label=group_label,
            project_count=project_count(members, project_index),
            milestone_count=len(members),
            total=total_payment(members),
        )
        for group_label, members in groups.items()
    ]
    return sorted(rows, key=lambda row: row.value(measure), reverse=True)


@dataclass(frozen=True, slots=True)
class CountRow:
    label: str
    count: int


def project_dimension_label(project: ProjectSnapshot, dimension: ProjectDimension) -> str | None:
    match dimension:
        case ProjectDimension.STATUS:
            return _name(project.status)
        case ProjectDimension.CUSTOMER:
            return _name(project.customer)
        case ProjectDimension.MANAGER:
            return _name(project.project_manager)
        case ProjectDimension.COUNTRY:
            return _name(project.country)
        case ProjectDimension.TEAM:
            return _name(project.team)
        case ProjectDimension.PRODUCT:
            return _name(project.product)
        case ProjectDimension.CATEGORY:
            return _name(project.category)
        case ProjectDimension.LAUNCH_YEAR:
            return str(project.launch_date.year) if project.launch_date else None
    return None


def group_projects_by(
    projects: Iterable[ProjectSnapshot],
    dimension: ProjectDimension,
    locale: Locale = Locale.EN,
) -> list[CountRow]:
    groups = group_by(projects, lambda project: project_dimension_label(project, dimension), locale)
    rows = [CountRow(label=group_label, count=len(members)) for group_label, members in groups.items()]
    if dimension is ProjectDimension.LAUNCH_YEAR:
        return sorted(rows, key=lambda row: row.label)
    return sorted(rows, key=lambda row: row.count, reverse=True)


def team_workload(milestones: Iterable[MilestoneSnapshot], teams: Sequence[Lookup]) -> list[CountRow]:
    """Milestone count per known team, teams without milestones included."""

    counts = {team.id: 0 for team in teams}
    for milestone in milestones:
        if milestone.team_id in counts:
            counts[milestone.team_id] += 1
    rows = [CountRow(label=team.name, count=counts[team.id]) for team in teams]
    return sorted(rows, key=lambda row: row.count, reverse=True)


@dataclass(frozen=True, slots=True)
class ProjectMilestones:
    project: ProjectSnapshot
    milestones: tuple[MilestoneSnapshot, ...]

    @property
    def total(self) -> Decimal:
        return total_payment(self.milestones)


def projects_with_milestones(
    projects: Iterable[ProjectSnapshot],
    milestones: Iterable[MilestoneSnapshot],
) -> list[ProjectMilestones]:
    """Projects in input order with their milestones sorted by due date; empty projects dropped."""

    by_project: dict[str, list[MilestoneSnapshot]] = {}
    for milestone in milestones:
        if milestone.project_id is not None:
            by_project.setdefault(milestone.project_id, []).append(milestone)

    return [
        ProjectMilestones(project=project, milestones=tuple(sorted(by_project[project.id], key=due_sort_key)))
        for project in projects
        if by_project.get(project.id)
    ]


def payment_status_counts(milestones: Iterable[MilestoneSnapshot]) -> dict[PaymentStatus, int]:
    counts = {status: 0 for status in PaymentStatus}
    for milestone in milestones:
        status = milestone.effective_payment_status
        if status is not None:
            counts[status] += 1
    return counts


@dataclass(frozen=True, slots=True)
class DrilldownProject:
    project_id: str | None
    project_name: str
    milestones: tuple[MilestoneSnapshot, ...]
    total: Decimal
    status_counts: dict[PaymentStatus, int] = field(default_factory=dict)

    @property
    def completed_count(self) -> int:
        return sum(1 for milestone in self.milestones if milestone.status is MilestoneStatus.COMPLETED)


@dataclass(frozen=True, slots=True)
class DrilldownPeriod:
    key: MonthKey | None
    label: str
    projects: tuple[DrilldownProject, ...]

    @property
    def total(self) -> Decimal:
        return sum((project.total for project in self.projects), ZERO)

    @property
    def milestone_count(self) -> int:
        return sum(len(project.milestones) for project in self.projects)


def build_drilldown(
    projects: Sequence[ProjectSnapshot],
    milestones: Iterable[MilestoneSnapshot],
    locale: Locale = Locale.EN,
) -> list[DrilldownPeriod]:
    """Period -> project buckets.

    A project is listed once in every period where it has milestones. Periods
    are chronological with the undated bucket last; projects inside a period
    sort descending by total.
    """

    project_index = {project.id: project for project in projects}
    periods: dict[MonthKey | None, dict[str | None, list[MilestoneSnapshot]]] = {}
    for milestone in milestones:
        project_key = milestone.project_id if milestone.project_id in project_index else None
        periods.setdefault(milestone_month(milestone), {}).setdefault(project_key, []).append(milestone)

    dated = sorted(key for key in periods if key is not None)
    ordered_keys: list[MonthKey | None] = [*dated, *([None] if None in periods else [])]

    output: list[DrilldownPeriod] = []
    for period_key in ordered_keys:
        buckets: list[DrilldownProject] = []
        for project_id, members in periods[period_key].items():
            project = project_index.get(project_id) if project_id is not None else None
            buckets.append(
                DrilldownProject(
                    project_id=project_id,
                    project_name=project.name if project is not None else label("unassigned", locale),
                    milestones=tuple(sorted(members, key=due_sort_key)),
                    total=total_payment(members),
                    status_counts=payment_status_counts(members),
                )
            )
        buckets.sort(key=lambda bucket: bucket.total, reverse=True)
        period_label = (
            format_month_year(period_key[0], period_key[1], locale)
            if period_key is not None
            else label("no_due_date", locale)
        )
        output.append(DrilldownPeriod(key=period_key, label=period_label, projects=tuple(buckets)))
    return output
