"""Join foreign-key ids to lookup entities."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import replace
from typing import TypeVar

from portfolio.models.snapshots import Lookup, Lookups, MilestoneSnapshot, Person, ProjectSnapshot

PLACEHOLDER = "--"

LookupT = TypeVar("LookupT", bound=Lookup)


def index_by_id(items: Iterable[LookupT]) -> dict[str, LookupT]:
    return {item.id: item for item in items}


def _get(index: Mapping[str, LookupT], key: str | None) -> LookupT | None:
    if key is None:
        return None
    return index.get(key)


def resolve_projects(projects: Iterable[ProjectSnapshot], lookups: Lookups) -> list[ProjectSnapshot]:
    """Attach lookup objects; unresolved ids stay ``None``."""

    countries = index_by_id(lookups.countries)
    categories = index_by_id(lookups.categories)
    teams = index_by_id(lookups.teams)
    products = index_by_id(lookups.products)
    statuses = index_by_id(lookups.project_statuses)
    managers = index_by_id(lookups.project_managers)
    customers = index_by_id(lookups.customers)

    return [
        replace(
            project,
            country=_get(countries, project.country_id),
            category=_get(categories, project.category_id),
            team=_get(teams, project.team_id),
            product=_get(products, project.product_id),
            status=_get(statuses, project.status_id),
            project_manager=_get(managers, project.project_manager_id),
            customer=_get(customers, project.customer_id),
        )
        for project in projects
    ]


def resolve_team(
    milestone: MilestoneSnapshot | None,
    project: ProjectSnapshot | None,
    teams: Mapping[str, Lookup],
) -> Lookup | None:
    """Milestone team, falling back to the owning project's team."""

    team_id = milestone.team_id if milestone is not None and milestone.team_id else None
    if team_id is None and project is not None:
        team_id = project.team_id
    return _get(teams, team_id)


def resolve_user(users: Mapping[str, Person], user_id: str | None) -> Person | None:
    return _get(users, user_id)


def display_name(item: Lookup | None, fallback: str = PLACEHOLDER) -> str:
    return item.name if item is not None and item.name else fallback
