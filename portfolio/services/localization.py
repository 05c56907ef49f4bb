"""Locale-explicit formatting helpers.

Nothing here reads process locale state: the language can be switched per
request, so every formatter takes the locale as an argument.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum


class Locale(str, Enum):
    EN = "en"
    AR = "ar"


MONTH_NAMES: dict[Locale, tuple[str, ...]] = {
    Locale.EN: (
        "January",
        "February",
        "March",
        "April",
        "May",
        "June",
        "July",
        "August",
        "September",
        "October",
        "November",
        "December",
    ),
    Locale.AR: (
        "يناير",
        "فبراير",
        "مارس",
        "أبريل",
        "مايو",
        "يونيو",
        "يوليو",
        "أغسطس",
        "سبتمبر",
        "أكتوبر",
        "نوفمبر",
        "ديسمبر",
    ),
}

# date.weekday(): Monday == 0 ... Sunday == 6
WEEKEND_DAYS: dict[Locale, frozenset[int]] = {
    Locale.EN: frozenset({5, 6}),
    Locale.AR: frozenset({4, 5}),
}

_ARABIC_INDIC_DIGITS = str.maketrans("0123456789", "٠١٢٣٤٥٦٧٨٩")

LABELS: dict[Locale, dict[str, str]] = {
    Locale.EN: {
        "unassigned": "Unassigned",
        "no_due_date": "No Due Date",
        "today": "Today",
        "start": "Start",
        "end": "End",
        "yes": "Yes",
        "no": "No",
        "unknown_user": "Unknown User",
        "project_name": "Project Name",
        "milestone_title": "Milestone Title",
        "description": "Description",
        "team": "Team",
        "due_date": "Due Date",
        "status": "Status",
        "has_payment": "Has Payment",
        "payment_amount": "Payment Amount",
        "payment_status": "Payment Status",
        "user": "User",
        "date": "Date",
        "update": "Update",
        "group": "Group",
        "count": "Count",
        "sum": "Sum",
        "avg": "Average",
    },
    Locale.AR: {
        "unassigned": "غير معين",
        "no_due_date": "لا يوجد تاريخ استحقاق",
        "today": "اليوم",
        "start": "البداية",
        "end": "النهاية",
        "yes": "نعم",
        "no": "لا",
        "unknown_user": "مستخدم غير معروف",
        "project_name": "اسم المشروع",
        "milestone_title": "عنوان المعلم",
        "description": "الوصف",
        "team": "الفريق",
        "due_date": "تاريخ الاستحقاق",
        "status": "الحالة",
        "has_payment": "عليه دفعة",
        "payment_amount": "قيمة الدفعة",
        "payment_status": "حالة الدفعة",
        "user": "المستخدم",
        "date": "التاريخ",
        "update": "التحديث",
        "group": "المجموعة",
        "count": "العدد",
        "sum": "المجموع",
        "avg": "المتوسط",
    },
}


def resolve_locale(value: str | Locale | None, default: Locale = Locale.EN) -> Locale:
    if isinstance(value, Locale):
        return value
    if value is None:
        return default
    try:
        return Locale(value.strip().lower())
    except ValueError:
        return default


def label(key: str, locale: Locale) -> str:
    return LABELS[locale][key]


def localize_digits(text: str, locale: Locale) -> str:
    if locale is Locale.AR:
        return text.translate(_ARABIC_INDIC_DIGITS)
    return text


def text_direction(locale: Locale) -> str:
    return "rtl" if locale is Locale.AR else "ltr"


def is_weekend(day: date, locale: Locale) -> bool:
    return day.weekday() in WEEKEND_DAYS[locale]


def month_name(month: int, locale: Locale) -> str:
    return MONTH_NAMES[locale][month - 1]


def format_month_year(year: int, month: int, locale: Locale) -> str:
    """Long month name and numeric year, e.g. ``March 2024``."""

    return f"{month_name(month, locale)} {localize_digits(str(year), locale)}"


def format_date(value: date, locale: Locale) -> str:
    if locale is Locale.AR:
        return localize_digits(f"{value.day}/{value.month}/{value.year}", locale)
    return f"{value.month}/{value.day}/{value.year}"


def format_datetime(value: datetime, locale: Locale) -> str:
    hour = value.hour % 12 or 12
    clock = f"{hour}:{value.minute:02d}:{value.second:02d}"
    if locale is Locale.AR:
        suffix = "م" if value.hour >= 12 else "ص"
        return f"{format_date(value.date(), locale)}، {localize_digits(clock, locale)} {suffix}"
    suffix = "PM" if value.hour >= 12 else "AM"
    return f"{format_date(value.date(), locale)}, {clock} {suffix}"


def format_amount(value: Decimal) -> str:
    """Plain two-decimal rendering used in exports."""

    return f"{value.quantize(Decimal('0.01'))}"
