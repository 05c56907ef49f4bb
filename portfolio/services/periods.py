"""Calendar bucketing helpers shared by the filter, grouping and Gantt engines."""

from __future__ import annotations

from datetime import date, timedelta

from portfolio.models.snapshots import MilestoneSnapshot

MonthKey = tuple[int, int]

# Undated milestones sort as if due at the epoch when ordering ascending.
EPOCH = date(1970, 1, 1)


def month_key(value: date) -> MonthKey:
    return (value.year, value.month)


def milestone_month(milestone: MilestoneSnapshot) -> MonthKey | None:
    due = milestone.due
    return month_key(due) if due is not None else None


def due_sort_key(milestone: MilestoneSnapshot) -> date:
    return milestone.due or EPOCH


def parse_month_key(value: str | None) -> MonthKey | None:
    """Parse ``YYYY-MM`` (month 1-12); anything else means no month filter."""

    if not value:
        return None
    year_text, _, month_text = value.strip().partition("-")
    try:
        year, month = int(year_text), int(month_text)
    except ValueError:
        return None
    if not 1 <= month <= 12:
        return None
    return (year, month)


def day_sequence(start: date, end: date) -> list[date]:
    """Every calendar day from ``start`` to ``end`` inclusive."""

    days: list[date] = []
    current = start
    while current <= end:
        days.append(current)
        current += timedelta(days=1)
    return days
