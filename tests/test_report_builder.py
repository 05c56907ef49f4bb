from __future__ import annotations

import logging
from decimal import Decimal

import pytest

from portfolio.models.entities import MilestoneStatus, PaymentStatus
from portfolio.models.snapshots import Lookup, MilestoneSnapshot, Person, ProjectSnapshot
from portfolio.services.localization import Locale
from portfolio.services.report_builder import (
    AggregateRow,
    DetailedRow,
    ReportMeasure,
    ReportMode,
    build_report,
)

ACME = Lookup(id="c1", name="Acme")
GLOBEX = Lookup(id="c2", name="Globex")
TEAMS = [Lookup(id="t1", name="Core"), Lookup(id="t2", name="Field")]


def _payable(milestone_id: str, project_id: str, amount: str, **kwargs: object) -> MilestoneSnapshot:
    return MilestoneSnapshot(
        id=milestone_id,
        title=f"Milestone {milestone_id}",
        project_id=project_id,
        has_payment=True,
        payment_amount=Decimal(amount),
        **kwargs,
    )


def _portfolio() -> tuple[list[ProjectSnapshot], list[MilestoneSnapshot]]:
    projects = [
        ProjectSnapshot(id="a1", name="Acme One", customer_id="c1", customer=ACME, team_id="t1"),
        ProjectSnapshot(id="g1", name="Globex One", customer_id="c2", customer=GLOBEX),
        ProjectSnapshot(id="a2", name="Acme Two", customer_id="c1", customer=ACME),
    ]
    milestones = [
        _payable("m1", "a1", "100.00", payment_status=PaymentStatus.PAID, due_date="2024-03-10"),
        _payable("m2", "a2", "200.00", team_id="t2"),
        _payable("m3", "g1", "50.00", payment_status=PaymentStatus.SENT),
    ]
    return projects, milestones


def test_aggregate_mode_groups_by_customer_and_sorts_by_sum() -> None:
    projects, milestones = _portfolio()

    rows = build_report(
        projects,
        milestones,
        [],
        mode=ReportMode.AGGREGATE,
        group_field="proj_customer",
        measure=ReportMeasure.SUM,
    )

    assert rows == [
        AggregateRow(label="Acme", count=2, sum=Decimal("300.00"), avg=Decimal("150.00")),
        AggregateRow(label="Globex", count=1, sum=Decimal("50.00"), avg=Decimal("50.00")),
    ]


def test_plain_string_mode_and_measure_select_aggregate_report() -> None:
    projects, milestones = _portfolio()

    rows = build_report(projects, milestones, ["proj_name"], mode="aggregate", measure="count")

    assert [(row.label, row.count) for row in rows] == [("Acme", 2), ("Globex", 1)]
    assert all(isinstance(row, AggregateRow) for row in rows)


def test_unknown_mode_string_is_rejected() -> None:
    projects, milestones = _portfolio()

    with pytest.raises(ValueError):
        build_report(projects, milestones, ["proj_name"], mode="pivot")


def test_aggregate_count_and_sum_skip_non_payable_amounts() -> None:
    projects = [ProjectSnapshot(id="p1", name="P1"), ProjectSnapshot(id="p2", name="P2")]
    milestones = [
        MilestoneSnapshot(id="m1", title="x", project_id="p1", has_payment=False, payment_amount=Decimal("70.00")),
        _payable("m2", "p1", "30.00"),
    ]

    rows = build_report(projects, milestones, [], mode=ReportMode.AGGREGATE, measure=ReportMeasure.COUNT)

    assert len(rows) == 1
    row = rows[0]
    assert isinstance(row, AggregateRow)
    assert (row.label, row.count, row.sum, row.avg) == ("--", 2, Decimal("30.00"), Decimal("15.00"))


def test_aggregate_avg_is_zero_for_groups_without_milestones() -> None:
    projects = [ProjectSnapshot(id="p1", name="P1", customer=ACME)]

    rows = build_report(projects, [], [], mode=ReportMode.AGGREGATE)

    assert rows == [AggregateRow(label="Acme", count=0, sum=Decimal("0.00"), avg=Decimal("0.00"))]


def test_invalid_group_field_falls_back_to_customer_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    projects, milestones = _portfolio()

    with caplog.at_level(logging.WARNING, logger="portfolio.services.report_builder"):
        rows = build_report(projects, milestones, [], mode=ReportMode.AGGREGATE, group_field="mile_title")

    assert [row.label for row in rows if isinstance(row, AggregateRow)] == ["Acme", "Globex"]
    assert "falling back to proj_customer" in caplog.text


def test_detailed_mode_emits_one_row_per_milestone_and_one_for_empty_projects() -> None:
    projects, milestones = _portfolio()
    projects.append(ProjectSnapshot(id="e1", name="Empty", team_id="t1"))

    rows = build_report(
        projects,
        milestones,
        ["proj_name", "mile_title", "mile_amount", "team_name", "mile_pay_status", "mile_month_year"],
        teams=TEAMS,
    )

    assert all(isinstance(row, DetailedRow) for row in rows)
    assert [row.values for row in rows] == [
        {
            "proj_name": "Acme One",
            "mile_title": "Milestone m1",
            "mile_amount": "100.00",
            "team_name": "Core",
            "mile_pay_status": "Paid",
            "mile_month_year": "March 2024",
        },
        {
            "proj_name": "Globex One",
            "mile_title": "Milestone m3",
            "mile_amount": "50.00",
            "team_name": "--",
            "mile_pay_status": "Sent",
            "mile_month_year": "--",
        },
        {
            "proj_name": "Acme Two",
            "mile_title": "Milestone m2",
            "mile_amount": "200.00",
            "team_name": "Field",
            "mile_pay_status": "Pending",
            "mile_month_year": "--",
        },
        {
            "proj_name": "Empty",
            "mile_title": "--",
            "mile_amount": "--",
            "team_name": "Core",
            "mile_pay_status": "--",
            "mile_month_year": "--",
        },
    ]


def test_column_filters_are_case_insensitive_and_anded() -> None:
    projects, milestones = _portfolio()
    fields = ["proj_name", "proj_customer", "mile_amount"]

    acme_rows = build_report(projects, milestones, fields, column_filters={"proj_customer": "ACM"})
    narrowed = build_report(
        projects,
        milestones,
        fields,
        column_filters={"proj_customer": "acme", "mile_amount": "200", "proj_name": ""},
    )

    assert [row.values["proj_name"] for row in acme_rows] == ["Acme One", "Acme Two"]
    assert [row.values["proj_name"] for row in narrowed] == ["Acme Two"]


def test_empty_field_selection_yields_empty_report() -> None:
    projects, milestones = _portfolio()

    assert build_report(projects, milestones, []) == []
    assert build_report(projects, milestones, ["not_a_field"]) == []


def test_project_fields_render_placeholders_and_progress() -> None:
    manager = Person(id="u1", name="Mona")
    projects = [
        ProjectSnapshot(id="p1", name="P1", progress=45, project_manager_id="u1", project_manager=manager),
        ProjectSnapshot(id="p2", name="P2"),
    ]

    rows = build_report(projects, [], ["proj_pm", "proj_status", "proj_progress", "proj_priority"])

    assert [row.values for row in rows] == [
        {"proj_pm": "Mona", "proj_status": "--", "proj_progress": "45%", "proj_priority": "3"},
        {"proj_pm": "--", "proj_status": "--", "proj_progress": "0%", "proj_priority": "3"},
    ]


def test_arabic_labels_for_statuses() -> None:
    projects = [ProjectSnapshot(id="p1", name="P1")]
    milestones = [
        MilestoneSnapshot(id="m1", title="T", project_id="p1", status=MilestoneStatus.COMPLETED),
    ]

    rows = build_report(projects, milestones, ["mile_status", "mile_pay_status"], locale=Locale.AR)

    assert rows[0].values == {"mile_status": "مكتمل", "mile_pay_status": "--"}


def test_priority_score_defaults_every_weight_to_one() -> None:
    assert ProjectSnapshot(id="p", name="P").priority_score == 3
    assert (
        ProjectSnapshot(
            id="p",
            name="P",
            revenue_impact=5,
            strategic_value=4,
            delivery_risk=3,
            customer_pressure=2,
            resource_load=4,
        ).priority_score
        == 10
    )
    assert ProjectSnapshot(id="p", name="P", resource_load=0).priority_score == 3
