"""Timeline geometry for a project's dated milestones and its SVG rendering."""

from __future__ import annotations

import math
import re
import xml.etree.ElementTree as ET
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta

from portfolio.models.snapshots import MilestoneSnapshot, ProjectSnapshot
from portfolio.services.localization import (
    Locale,
    format_date,
    format_month_year,
    is_weekend,
    label,
    localize_digits,
    text_direction,
)
from portfolio.services.periods import day_sequence, month_key

TASK_SPAN = timedelta(days=7)
WINDOW_MARGIN = timedelta(days=3)
SIDE_LABEL_LIMIT = 35
BAR_TEXT_MIN_WIDTH = 50
BAR_CHAR_WIDTH = 9

SVG_NS = "http://www.w3.org/2000/svg"
FONT_FAMILY = "Tajawal, sans-serif"


@dataclass(frozen=True, slots=True)
class GanttGeometry:
    px_per_day: int = 40
    row_height: int = 50
    header_height: int = 60
    side_width: int = 250
    padding: int = 20
    bar_height: int = 20

    @property
    def bar_offset(self) -> float:
        return (self.row_height - self.bar_height) / 2


@dataclass(frozen=True, slots=True)
class GanttTask:
    milestone_id: str
    name: str
    start: date
    end: date
    row: int
    x: float
    width: float
    side_label: str
    bar_text: str | None


@dataclass(frozen=True, slots=True)
class GanttDay:
    day: date
    x: float
    weekend: bool
    label: str


@dataclass(frozen=True, slots=True)
class MonthBand:
    label: str
    x: float
    width: float

    @property
    def center(self) -> float:
        return self.x + self.width / 2


@dataclass(frozen=True, slots=True)
class GanttLayout:
    project_name: str
    locale: Locale
    geometry: GanttGeometry
    window_start: date
    window_end: date
    tasks: tuple[GanttTask, ...]
    days: tuple[GanttDay, ...]
    months: tuple[MonthBand, ...]
    today: date | None = None

    @property
    def total_days(self) -> int:
        return (self.window_end - self.window_start).days

    @property
    def chart_width(self) -> int:
        return self.total_days * self.geometry.px_per_day

    @property
    def width(self) -> int:
        return self.geometry.side_width + self.chart_width + self.geometry.padding * 2

    @property
    def height(self) -> int:
        return self.geometry.header_height + len(self.tasks) * self.geometry.row_height + self.geometry.padding * 2

    @property
    def today_x(self) -> float | None:
        if self.today is None or not self.window_start <= self.today <= self.window_end:
            return None
        return (self.today - self.window_start).days * self.geometry.px_per_day


def truncate_side_label(name: str) -> str:
    if len(name) > SIDE_LABEL_LIMIT:
        return name[: SIDE_LABEL_LIMIT - 3] + "..."
    return name


def bar_text(name: str, width: float) -> str | None:
    """Text drawn inside a bar, or ``None`` when the bar is too narrow."""

    if width <= BAR_TEXT_MIN_WIDTH:
        return None
    if len(name) > width / BAR_CHAR_WIDTH:
        return name[: max(0, math.floor(width / BAR_CHAR_WIDTH) - 3)] + "..."
    return name


def layout_gantt(
    project: ProjectSnapshot,
    milestones: Iterable[MilestoneSnapshot],
    locale: Locale = Locale.EN,
    today: date | None = None,
    geometry: GanttGeometry | None = None,
) -> GanttLayout | None:
    """Place every dated milestone of ``project`` on a shared day axis.

    Each milestone becomes a seven-day bar ending on its due date. Returns
    ``None`` when no milestone has a usable due date.
    """

    geometry = geometry or GanttGeometry()
    dated = [
        (milestone, due)
        for milestone in milestones
        if milestone.project_id == project.id and (due := milestone.due) is not None
    ]
    if not dated:
        return None

    spans = sorted(((due - TASK_SPAN, due, milestone) for milestone, due in dated), key=lambda item: item[0])
    window_start = min(start for start, _, _ in spans) - WINDOW_MARGIN
    window_end = max(end for _, end, _ in spans) + WINDOW_MARGIN
    px = geometry.px_per_day

    def x_of(value: date) -> float:
        return (value - window_start).days * px

    tasks: list[GanttTask] = []
    for row, (start, end, milestone) in enumerate(spans):
        width = max(1, x_of(end) - x_of(start))
        tasks.append(
            GanttTask(
                milestone_id=milestone.id,
                name=milestone.title,
                start=start,
                end=end,
                row=row,
                x=x_of(start),
                width=width,
                side_label=truncate_side_label(milestone.title),
                bar_text=bar_text(milestone.title, width),
            )
        )

    days = tuple(
        GanttDay(day=day, x=x_of(day), weekend=is_weekend(day, locale), label=localize_digits(str(day.day), locale))
        for day in day_sequence(window_start, window_end)
    )

    # Bands cover [window_start, window_end) so their widths sum to the chart width.
    month_days: dict[tuple[int, int], list[date]] = {}
    for day in day_sequence(window_start, window_end - timedelta(days=1)):
        month_days.setdefault(month_key(day), []).append(day)
    months = tuple(
        MonthBand(label=format_month_year(year, month, locale), x=x_of(members[0]), width=len(members) * px)
        for (year, month), members in month_days.items()
    )

    return GanttLayout(
        project_name=project.name,
        locale=locale,
        geometry=geometry,
        window_start=window_start,
        window_end=window_end,
        tasks=tuple(tasks),
        days=days,
        months=months,
        today=today,
    )


def gantt_filename(project_name: str) -> str:
    safe_name = re.sub(r"[^a-z0-9]", "_", project_name, flags=re.IGNORECASE).lower()
    return f"{safe_name}_gantt_chart.svg"


def _num(value: float) -> str:
    return f"{value:g}"


def _sub(parent: ET.Element, tag: str, text: str | None = None, **attrs: float | str) -> ET.Element:
    element = ET.SubElement(parent, tag, {key.replace("_", "-"): str(val) for key, val in attrs.items()})
    if text is not None:
        element.text = text
    return element


def render_gantt_svg(layout: GanttLayout) -> str:
    """Self-contained SVG document with inline presentation attributes."""

    g = layout.geometry
    locale = layout.locale
    rows_height = len(layout.tasks) * g.row_height
    grid_bottom = layout.height - g.padding * 2
    day_width = g.px_per_day

    svg = ET.Element(
        "svg",
        {
            "xmlns": SVG_NS,
            "width": str(layout.width),
            "height": str(layout.height),
            "font-family": FONT_FAMILY,
            "direction": text_direction(locale),
        },
    )
    defs = _sub(svg, "defs")
    gradient = _sub(defs, "linearGradient", id="barGradient", x1="0%", y1="0%", x2="100%", y2="0%")
    _sub(gradient, "stop", offset="0%", stop_color="#8b5cf6")
    _sub(gradient, "stop", offset="100%", stop_color="#6366f1")
    _sub(svg, "rect", x=0, y=0, width=layout.width, height=layout.height, fill="#f8fafc")

    canvas = _sub(svg, "g", transform=f"translate({g.padding}, {g.padding})")
    _sub(canvas, "text", layout.project_name, x=0, y=25, font_size=24, font_weight=700, fill="#1e293b")

    header = _sub(canvas, "g", transform=f"translate({g.side_width}, 0)")
    for day in layout.days:
        if day.weekend and day.day < layout.window_end:
            _sub(
                header,
                "rect",
                x=_num(day.x),
                y=g.header_height,
                width=day_width,
                height=rows_height,
                fill="#f1f5f9",
            )
    for day in layout.days:
        _sub(
            header,
            "text",
            day.label,
            x=_num(day.x + day_width / 2),
            y=g.header_height - 10,
            text_anchor="middle",
            font_size=12,
            fill="#64748b",
        )
        _sub(
            header,
            "line",
            x1=_num(day.x),
            y1=g.header_height,
            x2=_num(day.x),
            y2=grid_bottom,
            stroke="#e2e8f0",
            stroke_width=1,
        )
    for band in layout.months:
        _sub(
            header,
            "text",
            band.label,
            x=_num(band.center),
            y=g.header_height - 35,
            text_anchor="middle",
            font_size=14,
            font_weight="bold",
            fill="#334155",
        )

    start_label = label("start", locale)
    end_label = label("end", locale)
    rows = _sub(canvas, "g", transform=f"translate(0, {g.header_height})")
    for task in layout.tasks:
        y = task.row * g.row_height
        _sub(
            rows,
            "text",
            task.side_label,
            x=10,
            y=_num(y + g.row_height / 2),
            dominant_baseline="middle",
            font_size=14,
            font_weight=500,
            fill="#1e293b",
        )
        _sub(
            rows,
            "line",
            x1=0,
            y1=y + g.row_height,
            x2=g.side_width + layout.chart_width,
            y2=y + g.row_height,
            stroke="#e2e8f0",
            stroke_width=1,
        )
        bar = _sub(rows, "g", transform=f"translate({_num(g.side_width + task.x)}, {_num(y + g.bar_offset)})")
        rect = _sub(
            bar, "rect", x=0, y=0, width=_num(task.width), height=g.bar_height, rx=5, ry=5, fill="url(#barGradient)"
        )
        _sub(
            rect,
            "title",
            f"{task.name}\n{start_label}: {format_date(task.start, locale)}\n"
            f"{end_label}: {format_date(task.end, locale)}",
        )
        if task.bar_text is not None:
            _sub(
                bar,
                "text",
                task.bar_text,
                x=10,
                y=_num(g.bar_height / 2),
                dominant_baseline="middle",
                font_size=12,
                font_weight="bold",
                fill="white",
            )

    today_x = layout.today_x
    if today_x is not None:
        marker = _sub(canvas, "g", transform=f"translate({g.side_width}, 0)")
        _sub(
            marker,
            "line",
            x1=_num(today_x),
            y1=g.header_height - 20,
            x2=_num(today_x),
            y2=grid_bottom,
            stroke="#ef4444",
            stroke_width=2,
            stroke_dasharray="6 4",
        )
        _sub(
            marker,
            "text",
            label("today", locale),
            x=_num(today_x),
            y=g.header_height - 25,
            text_anchor="middle",
            font_size=12,
            font_weight="bold",
            fill="#ef4444",
        )

    return ET.tostring(svg, encoding="unicode")
