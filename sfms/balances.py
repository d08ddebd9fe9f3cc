"""Read-side projections over the receipt ledger.

The academic year is always passed in. Callers compute it once (usually with
``current_academic_year``) so one screen never mixes two different "current" years.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable

from .constants import STATUS_LATE, STATUS_PAID, STATUS_PENDING
from .models import ClassFeeSchedule, PaymentReceipt, Student


def current_academic_year(today: date | None = None) -> str:
    today = today or date.today()
    return f"{today.year}-{today.year + 1}"


def _latest(receipts: list[PaymentReceipt]) -> PaymentReceipt | None:
    if not receipts:
        return None
    # ISO dates sort as text. Same-day payments fall back to created_at, then insertion order.
    _, last = max(enumerate(receipts), key=lambda p: (p[1].payment_date, p[1].created_at, p[0]))
    return last


@dataclass(frozen=True)
class BalanceSummary:
    student_id: str
    academic_year: str
    total_paid: float
    total_due: float
    has_late_payments: bool
    has_pending_payments: bool
    last_payment: PaymentReceipt | None = None

    @property
    def is_account_settled(self) -> bool:
        return self.total_due == 0 and self.total_paid > 0


def summarize_student(student_id: str, receipts: Iterable[PaymentReceipt], academic_year: str) -> BalanceSummary:
    """Paid and due totals for one student in ``academic_year``.

    ``total_due`` is the remaining balance written on the student's most recent receipt of
    that year. The late and pending flags look at every year.
    """
    mine = [r for r in receipts if r.student_id == student_id]
    this_year = [r for r in mine if r.academic_year == academic_year]
    last = _latest(this_year)
    return BalanceSummary(
        student_id=student_id,
        academic_year=academic_year,
        total_paid=sum(r.amount for r in this_year if r.status == STATUS_PAID),
        total_due=last.remaining_balance if last else 0.0,
        has_late_payments=any(r.status == STATUS_LATE for r in mine),
        has_pending_payments=any(r.status == STATUS_PENDING for r in mine),
        last_payment=_latest(mine),
    )


@dataclass(frozen=True)
class UnpaidBalance:
    student_id: str
    student_name: str
    class_name: str
    total_fees: float
    total_paid: float

    @property
    def remaining_balance(self) -> float:
        return self.total_fees - self.total_paid


def unpaid_balances(
    students: Iterable[Student],
    schedules: Iterable[ClassFeeSchedule],
    receipts: Iterable[PaymentReceipt],
    academic_year: str,
    class_name: str | None = None,
    search: str = "",
) -> list[UnpaidBalance]:
    """Students who still owe part of their class's yearly fees, in student order."""
    receipts = list(receipts)

    # Same pick as FeeScheduleService.find_for_class: first schedule of the year, else first.
    fees_by_class: dict[str, float] = {}
    exact: set[str] = set()
    for s in schedules:
        if s.class_name in exact:
            continue
        if s.academic_year == academic_year:
            fees_by_class[s.class_name] = s.yearly_amount
            exact.add(s.class_name)
        elif s.class_name not in fees_by_class:
            fees_by_class[s.class_name] = s.yearly_amount

    needle = search.strip().lower()
    rows: list[UnpaidBalance] = []
    for st in students:
        if class_name and st.class_name != class_name:
            continue
        if needle and needle not in st.name.lower() and needle not in st.class_name.lower():
            continue
        paid = sum(
            r.amount
            for r in receipts
            if r.student_id == st.student_id and r.status == STATUS_PAID and r.academic_year == academic_year
        )
        row = UnpaidBalance(st.student_id, st.name, st.class_name, fees_by_class.get(st.class_name, 0.0), paid)
        if row.remaining_balance > 0:
            rows.append(row)
    return rows
