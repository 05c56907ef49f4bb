"""Conjunctive milestone and project filters plus dependent-filter reconciliation."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace

from portfolio.models.entities import PaymentStatus
from portfolio.models.snapshots import MilestoneSnapshot, ProjectSnapshot
from portfolio.services.localization import Locale, format_month_year
from portfolio.services.periods import MonthKey, milestone_month

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FilterCriteria:
    """Optional, independent predicates. ``None`` always means "all"."""

    project_id: str | None = None
    manager_id: str | None = None
    customer_id: str | None = None
    status_id: str | None = None
    country_id: str | None = None
    payment_status: PaymentStatus | None = None
    has_payment: bool | None = None
    month: MonthKey | None = None
    search: str | None = None

    @property
    def search_term(self) -> str | None:
        if self.search is None:
            return None
        term = self.search.strip().lower()
        return term or None

    @property
    def has_project_scope(self) -> bool:
        return any(
            value is not None
            for value in (
                self.project_id,
                self.manager_id,
                self.customer_id,
                self.status_id,
                self.country_id,
                self.search_term,
            )
        )


@dataclass(frozen=True, slots=True)
class MonthOption:
    key: MonthKey
    label: str

    @property
    def value(self) -> str:
        return f"{self.key[0]:04d}-{self.key[1]:02d}"


def project_options(projects: Iterable[ProjectSnapshot], criteria: FilterCriteria) -> list[ProjectSnapshot]:
    """Projects still selectable under the customer and manager filters."""

    return [
        project
        for project in projects
        if (criteria.customer_id is None or project.customer_id == criteria.customer_id)
        and (criteria.manager_id is None or project.project_manager_id == criteria.manager_id)
    ]


def filter_projects(projects: Iterable[ProjectSnapshot], criteria: FilterCriteria) -> list[ProjectSnapshot]:
    term = criteria.search_term
    selected: list[ProjectSnapshot] = []
    for project in project_options(projects, criteria):
        if term is not None and term not in project.name.lower():
            continue
        if criteria.status_id is not None and project.status_id != criteria.status_id:
            continue
        if criteria.country_id is not None and project.country_id != criteria.country_id:
            continue
        if criteria.project_id is not None and project.id != criteria.project_id:
            continue
        selected.append(project)
    return selected


def milestone_matches(milestone: MilestoneSnapshot, criteria: FilterCriteria) -> bool:
    """Milestone-scoped predicates only; project scope is checked by the caller."""

    if criteria.has_payment is not None and milestone.has_payment != criteria.has_payment:
        return False
    if criteria.payment_status is not None and milestone.effective_payment_status != criteria.payment_status:
        return False
    if criteria.month is not None and milestone_month(milestone) != criteria.month:
        return False
    return True


def filter_milestones(
    milestones: Iterable[MilestoneSnapshot],
    projects: Iterable[ProjectSnapshot],
    criteria: FilterCriteria,
) -> list[MilestoneSnapshot]:
    allowed_project_ids: set[str] | None = None
    if criteria.has_project_scope:
        allowed_project_ids = {project.id for project in filter_projects(projects, criteria)}

    return [
        milestone
        for milestone in milestones
        if (allowed_project_ids is None or milestone.project_id in allowed_project_ids)
        and milestone_matches(milestone, criteria)
    ]


def reconcile_filters(
    previous: FilterCriteria | None,
    new_criteria: FilterCriteria,
    available_projects: Sequence[ProjectSnapshot],
) -> FilterCriteria:
    """Reset the selected project when the upstream filters no longer include it.

    The rule is stateless: the project is dropped whenever it falls outside the
    manager and customer scope of ``new_criteria``, whatever ``previous`` held.
    ``previous`` is accepted so callers can pass the criteria they are replacing.
    """

    if new_criteria.project_id is None:
        return new_criteria

    candidates = project_options(available_projects, new_criteria)
    if any(project.id == new_criteria.project_id for project in candidates):
        return new_criteria

    logger.debug("Resetting project filter %s outside the manager/customer scope", new_criteria.project_id)
    return replace(new_criteria, project_id=None)


def month_year_options(
    milestones: Iterable[MilestoneSnapshot],
    locale: Locale,
    *,
    descending: bool = False,
) -> list[MonthOption]:
    keys = {key for key in (milestone_month(milestone) for milestone in milestones) if key is not None}
    return [
        MonthOption(key=key, label=format_month_year(key[0], key[1], locale))
        for key in sorted(keys, reverse=descending)
    ]
