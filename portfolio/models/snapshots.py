"""Immutable value snapshots consumed by the analytics engines.

The loader converts ORM rows into these frozen dataclasses once per reload.
Engines never mutate them; every transformation returns new collections.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal

from portfolio.models.entities import MilestoneStatus, PaymentStatus

ZERO = Decimal("0.00")


def parse_due_date(value: str | date | datetime | None) -> date | None:
    """Parse an ISO date or date-time into a calendar date.

    Unparseable values are treated as absent. Aware date-times are read in UTC.
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value

    text = value.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


def _weight(value: int | None) -> int:
    # Absent weights count as 1 so the score does not collapse.
    return value or 1


@dataclass(frozen=True, slots=True)
class Lookup:
    id: str
    name: str


@dataclass(frozen=True, slots=True)
class Person(Lookup):
    """A user; doubles as project manager."""

    avatar_url: str | None = None


@dataclass(frozen=True, slots=True)
class Lookups:
    countries: tuple[Lookup, ...] = ()
    categories: tuple[Lookup, ...] = ()
    teams: tuple[Lookup, ...] = ()
    products: tuple[Lookup, ...] = ()
    project_statuses: tuple[Lookup, ...] = ()
    project_managers: tuple[Person, ...] = ()
    customers: tuple[Lookup, ...] = ()


@dataclass(frozen=True, slots=True)
class ProjectSnapshot:
    id: str
    name: str
    project_code: str = ""
    description: str = ""
    country_id: str | None = None
    category_id: str | None = None
    team_id: str | None = None
    product_id: str | None = None
    status_id: str | None = None
    project_manager_id: str | None = None
    customer_id: str | None = None
    launch_date: date | None = None
    actual_start_date: date | None = None
    expected_closure_date: date | None = None
    progress: int = 0
    revenue_impact: int | None = None
    strategic_value: int | None = None
    delivery_risk: int | None = None
    customer_pressure: int | None = None
    resource_load: int | None = None
    # Resolved lookups, attached by the lookup resolver.
    country: Lookup | None = None
    category: Lookup | None = None
    team: Lookup | None = None
    product: Lookup | None = None
    status: Lookup | None = None
    project_manager: Person | None = None
    customer: Lookup | None = None

    @property
    def priority_score(self) -> int:
        """(revenue + strategic + risk + pressure) - resource load, recomputed on every read."""

        return (
            _weight(self.revenue_impact)
            + _weight(self.strategic_value)
            + _weight(self.delivery_risk)
            + _weight(self.customer_pressure)
        ) - _weight(self.resource_load)


@dataclass(frozen=True, slots=True)
class MilestoneSnapshot:
    id: str
    title: str
    description: str = ""
    project_id: str | None = None
    team_id: str | None = None
    due_date: str | None = None
    status: MilestoneStatus = MilestoneStatus.PENDING
    has_payment: bool = False
    payment_amount: Decimal = ZERO
    payment_status: PaymentStatus | None = None

    @property
    def due(self) -> date | None:
        return parse_due_date(self.due_date)

    @property
    def effective_payment_status(self) -> PaymentStatus | None:
        """Payment status with a missing value on a payable milestone read as Pending."""

        if not self.has_payment:
            return None
        return self.payment_status or PaymentStatus.PENDING

    @property
    def payable_amount(self) -> Decimal:
        return self.payment_amount if self.has_payment else ZERO


@dataclass(frozen=True, slots=True)
class MilestoneUpdateSnapshot:
    id: str
    milestone_id: str
    user_id: str
    update_text: str
    created_at: datetime


@dataclass(frozen=True, slots=True)
class PortfolioSnapshot:
    """Everything one render cycle reads, loaded in a single pass."""

    projects: tuple[ProjectSnapshot, ...] = ()
    milestones: tuple[MilestoneSnapshot, ...] = ()
    users: tuple[Person, ...] = ()
    updates: tuple[MilestoneUpdateSnapshot, ...] = ()
    lookups: Lookups = field(default_factory=Lookups)
    version: int = 0
    loaded_at: datetime | None = None

    def project(self, project_id: str) -> ProjectSnapshot | None:
        return next((row for row in self.projects if row.id == project_id), None)

    def milestone(self, milestone_id: str) -> MilestoneSnapshot | None:
        return next((row for row in self.milestones if row.id == milestone_id), None)
