"""Label and colour metadata for milestone and payment statuses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import assert_never

from portfolio.models.entities import MilestoneStatus, PaymentStatus
from portfolio.services.localization import Locale


@dataclass(frozen=True, slots=True)
class DisplayMeta:
    label_en: str
    label_ar: str
    color: str

    def label(self, locale: Locale) -> str:
        return self.label_ar if locale is Locale.AR else self.label_en


def milestone_status_meta(status: MilestoneStatus) -> DisplayMeta:
    match status:
        case MilestoneStatus.PENDING:
            return DisplayMeta("Pending", "قيد الانتظار", "slate")
        case MilestoneStatus.IN_PROGRESS:
            return DisplayMeta("In Progress", "قيد التنفيذ", "blue")
        case MilestoneStatus.COMPLETED:
            return DisplayMeta("Completed", "مكتمل", "green")
        case _:
            assert_never(status)


def payment_status_meta(status: PaymentStatus) -> DisplayMeta:
    match status:
        case PaymentStatus.PENDING:
            return DisplayMeta("Pending", "قيد الانتظار", "yellow")
        case PaymentStatus.SENT:
            return DisplayMeta("Sent", "مرسلة", "blue")
        case PaymentStatus.PAID:
            return DisplayMeta("Paid", "مدفوعة", "green")
        case _:
            assert_never(status)
