"""CSV and XLSX renderings of reports, milestone lists and update history."""

from __future__ import annotations

import csv
import io
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone
from io import BytesIO

from openpyxl import Workbook

from portfolio.models.snapshots import Lookup, MilestoneUpdateSnapshot, Person
from portfolio.services.aggregation import ProjectMilestones
from portfolio.services.display import milestone_status_meta, payment_status_meta
from portfolio.services.localization import Locale, format_amount, format_date, format_datetime, label
from portfolio.services.lookup_resolver import resolve_user
from portfolio.services.report_builder import AggregateRow, DetailedRow, ReportField, ReportRow

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
EXPORT_FORMATS = frozenset({"csv", "xlsx"})


@dataclass(slots=True)
class ExportFilePayload:
    media_type: str
    filename: str
    content: bytes


@dataclass(slots=True)
class ExportTable:
    header: list[str]
    rows: list[list[str]]


def safe_filename(value: str) -> str:
    return re.sub(r"[^a-z0-9]", "_", value, flags=re.IGNORECASE).lower()


def encode_csv(table: ExportTable) -> bytes:
    """Comma-separated, ``\\n``-joined rows, UTF-8 with a byte-order mark.

    Fields holding a comma, quote or newline are quoted with inner quotes
    doubled.
    """

    sio = io.StringIO()
    writer = csv.writer(sio, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(table.header)
    writer.writerows(table.rows)
    return sio.getvalue().removesuffix("\n").encode("utf-8-sig")


def encode_xlsx(table: ExportTable, sheet_title: str = "report") -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = sheet_title
    sheet.append(table.header)
    for row in table.rows:
        sheet.append(row)

    output = BytesIO()
    workbook.save(output)
    return output.getvalue()


def render_table(table: ExportTable, format_name: str, base_filename: str) -> ExportFilePayload:
    if format_name == "xlsx":
        return ExportFilePayload(
            media_type=XLSX_MEDIA_TYPE,
            filename=f"{base_filename}.xlsx",
            content=encode_xlsx(table),
        )
    return ExportFilePayload(media_type=CSV_MEDIA_TYPE, filename=f"{base_filename}.csv", content=encode_csv(table))


# ---------- Report builder ----------


def report_filename(today: date) -> str:
    return f"Portfolio_Custom_Report_{today.isoformat()}"


def report_table(
    rows: Sequence[ReportRow],
    fields: Sequence[ReportField],
    locale: Locale,
    group_field: ReportField | None = None,
) -> ExportTable:
    """Header row of field labels followed by the report rows."""

    detailed_header = [item.label(locale) for item in fields]
    aggregate_header = [
        group_field.label(locale) if group_field is not None else label("group", locale),
        label("count", locale),
        label("sum", locale),
        label("avg", locale),
    ]

    body: list[list[str]] = []
    is_aggregate = False
    for row in rows:
        match row:
            case DetailedRow(values=values):
                body.append([values.get(item.id, "") for item in fields])
            case AggregateRow(label=group_label, count=count, sum=total, avg=avg):
                is_aggregate = True
                body.append([group_label, str(count), format_amount(total), format_amount(avg)])

    if is_aggregate or (not rows and group_field is not None):
        return ExportTable(header=aggregate_header, rows=body)
    return ExportTable(header=detailed_header, rows=body)


# ---------- Milestone drill-down ----------


def milestones_table(
    groups: Iterable[ProjectMilestones],
    teams: Mapping[str, Lookup],
    locale: Locale,
) -> ExportTable:
    header = [
        label(key, locale)
        for key in (
            "project_name",
            "milestone_title",
            "description",
            "team",
            "due_date",
            "status",
            "has_payment",
            "payment_amount",
            "payment_status",
        )
    ]
    body: list[list[str]] = []
    for group in groups:
        for milestone in group.milestones:
            team = teams.get(milestone.team_id) if milestone.team_id else None
            due = milestone.due
            payment_status = milestone.effective_payment_status
            body.append(
                [
                    group.project.name,
                    milestone.title,
                    milestone.description,
                    team.name if team is not None else "",
                    format_date(due, locale) if due is not None else "",
                    milestone_status_meta(milestone.status).label(locale),
                    label("yes" if milestone.has_payment else "no", locale),
                    format_amount(milestone.payment_amount) if milestone.has_payment else "",
                    payment_status_meta(payment_status).label(locale) if payment_status is not None else "",
                ]
            )
    return ExportTable(header=header, rows=body)


# ---------- Update history ----------


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def filter_updates(
    updates: Iterable[MilestoneUpdateSnapshot],
    milestone_id: str,
    start: date | None = None,
    end: date | None = None,
) -> list[MilestoneUpdateSnapshot]:
    """Updates of one milestone inside ``[start, end]``, newest first.

    ``end`` covers the whole calendar day.
    """

    selected: list[MilestoneUpdateSnapshot] = []
    for update in updates:
        if update.milestone_id != milestone_id:
            continue
        created_on = _as_utc(update.created_at).date()
        if start is not None and created_on < start:
            continue
        if end is not None and created_on > end:
            continue
        selected.append(update)
    return sorted(selected, key=lambda update: _as_utc(update.created_at), reverse=True)


def updates_table(
    updates: Iterable[MilestoneUpdateSnapshot],
    users: Mapping[str, Person],
    locale: Locale,
) -> ExportTable:
    header = [label("user", locale), label("date", locale), label("update", locale)]
    body: list[list[str]] = []
    for update in updates:
        user = resolve_user(users, update.user_id)
        body.append(
            [
                user.name if user is not None else label("unknown_user", locale),
                format_datetime(_as_utc(update.created_at), locale),
                update.update_text,
            ]
        )
    return ExportTable(header=header, rows=body)
