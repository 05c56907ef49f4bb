from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal

from portfolio.models.entities import MilestoneStatus, PaymentStatus
from portfolio.models.snapshots import ZERO, MilestoneSnapshot, ProjectSnapshot


@dataclass(frozen=True, slots=True)
class KpiSummary:
    project_count: int
    pending_total: Decimal = ZERO
    sent_total: Decimal = ZERO
    paid_total: Decimal = ZERO

    @property
    def payment_total(self) -> Decimal:
        return self.pending_total + self.sent_total + self.paid_total


@dataclass(frozen=True, slots=True)
class StatsOverview:
    total_projects: int
    total_milestones: int
    in_progress_milestones: int
    completed_milestones: int


def summarize(projects: Sequence[ProjectSnapshot], milestones: Iterable[MilestoneSnapshot]) -> KpiSummary:
    """Payment totals bucketed by effective payment status.

    Every milestone that carries a payment lands in exactly one bucket, so the
    three totals always add up to the payable amount of the input.
    """

    totals = {status: ZERO for status in PaymentStatus}
    for milestone in milestones:
        status = milestone.effective_payment_status
        if status is None:
            continue
        totals[status] += milestone.payment_amount

    return KpiSummary(
        project_count=len(projects),
        pending_total=totals[PaymentStatus.PENDING],
        sent_total=totals[PaymentStatus.SENT],
        paid_total=totals[PaymentStatus.PAID],
    )


def stats_overview(projects: Sequence[ProjectSnapshot], milestones: Sequence[MilestoneSnapshot]) -> StatsOverview:
    return StatsOverview(
        total_projects=len(projects),
        total_milestones=len(milestones),
        in_progress_milestones=sum(1 for m in milestones if m.status is MilestoneStatus.IN_PROGRESS),
        completed_milestones=sum(1 for m in milestones if m.status is MilestoneStatus.COMPLETED),
    )
