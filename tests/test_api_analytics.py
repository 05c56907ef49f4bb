from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from portfolio.models.entities import (
    Customer,
    Milestone,
    MilestoneStatus,
    MilestoneUpdate,
    PaymentStatus,
    Project,
    ProjectStatusLookup,
    Team,
    User,
)
from portfolio.models.snapshots import PortfolioSnapshot
from portfolio.services.data_loader import PortfolioDataLoader

BOM = "﻿"


def _seed(db: Session) -> None:
    db.add_all(
        [
            Customer(id="c1", name="Acme, Inc."),
            Customer(id="c2", name="Globex"),
            User(id="u1", name="Mona"),
            User(id="u2", name="Omar"),
            ProjectStatusLookup(id="s1", name="Active"),
            Team(id="t1", name="Core"),
        ]
    )
    db.flush()
    db.add_all(
        [
            Project(
                id="a1",
                project_code="A-1",
                name="Acme One",
                customer_id="c1",
                project_manager_id="u1",
                status_id="s1",
                team_id="t1",
            ),
            Project(id="a2", project_code="A-2", name="Acme Two", customer_id="c1", project_manager_id="u2"),
            Project(id="g1", project_code="G-1", name="Globex One", customer_id="c2", project_manager_id="u1"),
        ]
    )
    db.flush()
    db.add_all(
        [
            Milestone(
                id="m1",
                title="Kickoff",
                project_id="a1",
                due_date="2024-03-10",
                status=MilestoneStatus.COMPLETED,
                has_payment=True,
                payment_amount=Decimal("100.00"),
                payment_status=PaymentStatus.PAID,
            ),
            Milestone(
                id="m2",
                title="Design",
                project_id="a2",
                due_date="2024-03-20",
                has_payment=True,
                payment_amount=Decimal("200.00"),
                payment_status=None,
            ),
            Milestone(
                id="m3",
                title="Support",
                project_id="g1",
                due_date=None,
                has_payment=True,
                payment_amount=Decimal("50.00"),
                payment_status=PaymentStatus.SENT,
            ),
            Milestone(
                id="m4",
                title="Review",
                project_id="a1",
                due_date="2024-04-05",
                status=MilestoneStatus.IN_PROGRESS,
            ),
        ]
    )
    db.flush()
    db.add_all(
        [
            MilestoneUpdate(
                id="up1",
                milestone_id="m1",
                user_id="u1",
                update_text="Signed, sealed",
                created_at=datetime(2024, 3, 9, 15, 30, tzinfo=timezone.utc),
            ),
            MilestoneUpdate(
                id="up2",
                milestone_id="m1",
                user_id="ghost",
                update_text="Late note",
                created_at=datetime(2024, 3, 12, 8, 0, tzinfo=timezone.utc),
            ),
        ]
    )
    db.commit()


def test_dashboard_summary_totals(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.get("/api/v1/dashboards/summary")

    assert response.status_code == 200
    body = response.json()
    assert body["kpis"] == {
        "project_count": 3,
        "pending_total": "200.00",
        "sent_total": "50.00",
        "paid_total": "100.00",
    }
    assert body["stats"] == {
        "total_projects": 3,
        "total_milestones": 4,
        "in_progress_milestones": 1,
        "completed_milestones": 1,
    }
    assert body["team_workload"] == [{"label": "Core", "count": 0}]


def test_project_filter_resets_when_manager_excludes_it(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.get("/api/v1/dashboards/summary", params={"manager_id": "u1", "project_id": "a2"})

    assert response.status_code == 200
    body = response.json()
    assert body["criteria"]["project_id"] is None
    assert body["kpis"]["project_count"] == 2
    assert body["kpis"]["paid_total"] == "100.00"
    assert body["kpis"]["sent_total"] == "50.00"


def test_milestones_grouped_by_project_under_month_filter(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.get("/api/v1/milestones", params={"month": "2024-03"})

    assert response.status_code == 200
    body = response.json()
    assert body["milestone_count"] == 2
    assert [group["project"]["name"] for group in body["projects"]] == ["Acme One", "Acme Two"]
    design = body["projects"][1]["milestones"][0]
    assert design["payment_status"] == "Pending"
    assert design["month_year"] == "March 2024"


def test_filter_options_list_months_descending(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.get("/api/v1/milestones/filter-options", params={"manager_id": "u2", "locale": "ar"})

    assert response.status_code == 200
    body = response.json()
    assert [option["value"] for option in body["months"]] == ["2024-04", "2024-03"]
    assert body["months"][0]["label"] == "أبريل ٢٠٢٤"
    assert body["projects"] == [{"id": "a2", "name": "Acme Two"}]


def test_chart_by_customer(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.get("/api/v1/analytics/chart", params={"dimension": "customer", "measure": "total_payment"})

    assert response.status_code == 200
    rows = response.json()["rows"]
    assert [(row["label"], row["value"], row["milestone_count"]) for row in rows] == [
        ("Acme, Inc.", "300.00", 3),
        ("Globex", "50.00", 1),
    ]


def test_chart_rejects_unknown_dimension(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.get("/api/v1/analytics/chart", params={"dimension": "planet"})

    assert response.status_code == 422


def test_drilldown_periods(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.get("/api/v1/analytics/drilldown")

    assert response.status_code == 200
    periods = response.json()["periods"]
    assert [(period["key"], period["label"]) for period in periods] == [
        ("2024-03", "March 2024"),
        ("2024-04", "April 2024"),
        (None, "No Due Date"),
    ]
    assert [bucket["project_name"] for bucket in periods[0]["projects"]] == ["Acme Two", "Acme One"]
    assert periods[0]["projects"][0]["status_counts"] == {"Pending": 1, "Sent": 0, "Paid": 0}


def test_report_build_aggregate(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.post(
        "/api/v1/reports/build",
        json={"mode": "aggregate", "group_field": "proj_customer", "measure": "sum"},
    )

    assert response.status_code == 200
    assert response.json()["rows"] == [
        {"kind": "aggregate", "label": "Acme, Inc.", "count": 3, "sum": "300.00", "avg": "100.00"},
        {"kind": "aggregate", "label": "Globex", "count": 1, "sum": "50.00", "avg": "50.00"},
    ]


def test_report_build_detailed_with_column_filter(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.post(
        "/api/v1/reports/build",
        json={
            "selected_fields": ["proj_name", "mile_title", "team_name"],
            "column_filters": {"mile_title": "kick"},
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert [field["id"] for field in body["fields"]] == ["proj_name", "mile_title", "team_name"]
    assert body["rows"] == [
        {"kind": "detailed", "values": {"proj_name": "Acme One", "mile_title": "Kickoff", "team_name": "Core"}}
    ]


def test_report_fields_catalogue(client: TestClient) -> None:
    response = client.get("/api/v1/reports/fields")

    assert response.status_code == 200
    body = response.json()
    assert body["default_group_field"] == "proj_customer"
    assert "mile_due" in {field["id"] for field in body["fields"]}
    assert all(field["scope"] == "project" for field in body["group_fields"])


def test_export_report_csv(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.post(
        "/api/v1/exports/report",
        params={"format": "csv", "project_id": "a1"},
        json={"selected_fields": ["proj_name", "proj_customer"]},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "Portfolio_Custom_Report_" in response.headers["content-disposition"]
    text = response.content.decode("utf-8")
    assert text.startswith(BOM)
    assert text[1:] == 'Project Name,Customer\nAcme One,"Acme, Inc."\nAcme One,"Acme, Inc."'


def test_export_rejects_unknown_format(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.post("/api/v1/exports/report", params={"format": "pdf"}, json={"selected_fields": []})

    assert response.status_code == 422
    assert response.json()["detail"] == "format must be one of: csv, xlsx."


def test_export_milestones_xlsx(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.get("/api/v1/exports/milestones", params={"format": "xlsx"})

    assert response.status_code == 200
    assert 'filename="project_milestones.xlsx"' in response.headers["content-disposition"]
    assert response.content[:2] == b"PK"


def test_export_milestone_updates(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.get(
        "/api/v1/exports/milestones/m1/updates",
        params={"start": "2024-03-01", "end": "2024-03-10"},
    )

    assert response.status_code == 200
    assert 'filename="kickoff_updates.csv"' in response.headers["content-disposition"]
    text = response.content.decode("utf-8-sig")
    assert text == 'User,Date,Update\nMona,"3/9/2024, 3:30:00 PM","Signed, sealed"'


def test_export_updates_unknown_milestone(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.get("/api/v1/exports/milestones/nope/updates")

    assert response.status_code == 404


def test_project_gantt_svg_and_empty_state(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    svg = client.get("/api/v1/projects/a1/gantt", params={"today": "2024-03-12"})
    empty = client.get("/api/v1/projects/g1/gantt")
    missing = client.get("/api/v1/projects/zzz/gantt")

    assert svg.status_code == 200
    assert svg.headers["content-type"].startswith("image/svg+xml")
    assert 'filename="acme_one_gantt_chart.svg"' in svg.headers["content-disposition"]
    assert "Today" in svg.text
    assert empty.status_code == 204
    assert missing.status_code == 404


def test_projects_list_with_priority_score(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    response = client.get("/api/v1/projects", params={"search": "acme"})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert [item["priority_score"] for item in body["items"]] == [3, 3]
    assert body["items"][0]["customer"] == "Acme, Inc."


def test_dashboard_layout_round_trip(client: TestClient) -> None:
    initial = client.get("/api/v1/dashboards/layout")
    saved = client.put("/api/v1/dashboards/layout", json={"visible": ["projects_by_country", "bogus", "stats"]})
    reloaded = client.get("/api/v1/dashboards/layout")
    widgets = client.get("/api/v1/dashboards/widgets")

    assert initial.json()["visible"] == ["project_milestones", "stats", "project_status", "team_workload"]
    assert saved.status_code == 200
    assert reloaded.json()["visible"] == ["projects_by_country", "stats"]
    assert "projects_by_year" in reloaded.json()["hidden"]
    assert len(widgets.json()) == 7


def test_reload_endpoint_bumps_snapshot_version(client: TestClient, db_session: Session) -> None:
    _seed(db_session)

    client.get("/api/v1/projects")
    response = client.post("/api/v1/portfolio/reload")

    assert response.status_code == 200
    assert response.json()["version"] == 2
    assert response.json()["milestones"] == 4


def test_data_source_failure_maps_to_503(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_fetch(db: Session, *, version: int = 0) -> PortfolioSnapshot:
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr(PortfolioDataLoader, "fetch", staticmethod(broken_fetch))

    response = client.get("/api/v1/dashboards/summary")

    assert response.status_code == 503
    assert response.json() == {"detail": "Unable to connect to the data source."}


def test_invalid_locale_is_rejected(client: TestClient) -> None:
    response = client.get("/api/v1/reports/fields", params={"locale": "fr"})

    assert response.status_code == 422
