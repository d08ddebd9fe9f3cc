"""Class fee schedules and the payment plan catalog."""
from __future__ import annotations

import math
from typing import Any

from .constants import CLASS_FEES_SHEET, PAYMENT_PLANS_SHEET, PLAN_FLEXIBLE, PLAN_FULL, PLAN_TRIMESTRAL, TERMS_PER_YEAR
from .errors import NotFoundError, ValidationError
from .ids import next_id
from .models import ClassFeeSchedule, PaymentPlan
from .storage import ExcelStore

FEE_ID_PREFIX = "FEE-"

DEFAULT_PLANS = [
    PaymentPlan(PLAN_FULL, "full", "All fees paid at once", 1),
    PaymentPlan(PLAN_TRIMESTRAL, "trimestral", "Fees paid in three term installments", 3),
    PaymentPlan(PLAN_FLEXIBLE, "flexible", "Any amount, at any time", 0),
]


def parse_amount(value: Any) -> float | None:
    """Read a currency amount typed by an operator (``"150 000"`` is accepted)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    text = "".join(str(value).split())
    if not text:
        return None
    try:
        amount = float(text)
    except ValueError:
        return None
    return amount if math.isfinite(amount) else None


def derive_term_amount(yearly_amount: float) -> int:
    # Rounded up so three terms never add up to less than the yearly amount.
    return math.ceil(yearly_amount / TERMS_PER_YEAR)


def validate_fee_schedule(data: dict[str, Any]) -> list[str]:
    """Messages for everything wrong with a schedule form; empty when it can be saved."""
    errors: list[str] = []
    if not str(data.get("class_id") or "").strip():
        errors.append("Please select a class.")

    raw_yearly = data.get("yearly_amount")
    if raw_yearly is None or str(raw_yearly).strip() == "":
        errors.append("Yearly amount is required.")
    else:
        yearly = parse_amount(raw_yearly)
        if yearly is None or yearly < 0:
            errors.append("Yearly amount must be a positive number.")

    raw_fee = data.get("registration_fee", 0)
    if raw_fee is not None and str(raw_fee).strip() != "":
        fee = parse_amount(raw_fee)
        if fee is None or fee < 0:
            errors.append("Registration fee must be a positive number.")
    return errors


class FeeScheduleService:
    """Per-class yearly tuition. ``term_amount`` is always derived, never taken from input."""

    def __init__(self, store: ExcelStore):
        self.store = store
        self.table = store.table(CLASS_FEES_SHEET)

    def _build(self, fee_id: str, data: dict[str, Any]) -> ClassFeeSchedule:
        errors = validate_fee_schedule(data)
        if errors:
            raise ValidationError(errors)
        yearly = parse_amount(data["yearly_amount"]) or 0.0
        reg = parse_amount(data.get("registration_fee")) or 0.0
        return ClassFeeSchedule(
            fee_id=fee_id,
            class_id=str(data["class_id"]),
            class_name=str(data.get("class_name") or ""),
            yearly_amount=yearly,
            registration_fee=reg,
            term_amount=derive_term_amount(yearly),
            academic_year=str(data.get("academic_year") or ""),
        )

    def list_all(self) -> list[ClassFeeSchedule]:
        return [ClassFeeSchedule.from_dict(r) for r in self.table.all()]

    def get(self, fee_id: str) -> ClassFeeSchedule | None:
        row = self.table.get(fee_id)
        return ClassFeeSchedule.from_dict(row) if row else None

    def create(self, data: dict[str, Any]) -> ClassFeeSchedule:
        existing = [str(r.get("fee_id", "")) for r in self.table.all()]
        schedule = self._build(next_id(FEE_ID_PREFIX, existing), data)
        stored = self.table.add(schedule.to_dict())
        return ClassFeeSchedule.from_dict(stored)

    def update(self, fee_id: str, data: dict[str, Any]) -> ClassFeeSchedule:
        if self.table.get(fee_id) is None:
            raise NotFoundError("Fee schedule", fee_id)
        schedule = self._build(fee_id, data)
        changes = schedule.to_dict()
        del changes["created_at"], changes["updated_at"]
        self.table.update(fee_id, changes)
        return self.get(fee_id) or schedule

    def delete(self, fee_id: str) -> bool:
        return self.table.delete(fee_id)

    def delete_for_class(self, class_id: str) -> int:
        doomed = [s.fee_id for s in self.list_all() if s.class_id == class_id]
        with self.store.batch():
            for fee_id in doomed:
                self.table.delete(fee_id)
        return len(doomed)

    def find_for_class(self, *, class_id: str = "", class_name: str = "", academic_year: str = "") -> ClassFeeSchedule | None:
        """Schedule of a class, preferring the one for ``academic_year``.

        Nothing stops two schedules for the same class and year; the first stored wins.
        """
        matches = [
            s
            for s in self.list_all()
            if (class_id and s.class_id == class_id) or (class_name and s.class_name == class_name)
        ]
        if not matches:
            return None
        if academic_year:
            for s in matches:
                if s.academic_year == academic_year:
                    return s
        return matches[0]

    def rename_class(self, class_id: str, new_name: str) -> int:
        n = 0
        for s in self.list_all():
            if s.class_id == class_id:
                self.table.update(s.fee_id, {"class_name": new_name})
                n += 1
        return n


def seed_payment_plans(store: ExcelStore) -> int:
    """Write the default plans when the plans table is empty; returns how many were added."""
    table = store.table(PAYMENT_PLANS_SHEET)
    if table.count() > 0:
        return 0
    return len(table.bulk_add(p.to_dict() for p in DEFAULT_PLANS))


def list_plans(store: ExcelStore) -> list[PaymentPlan]:
    return [PaymentPlan.from_dict(r) for r in store.table(PAYMENT_PLANS_SHEET).all()]


def get_plan(store: ExcelStore, plan_id: str) -> PaymentPlan | None:
    row = store.table(PAYMENT_PLANS_SHEET).get(plan_id)
    return PaymentPlan.from_dict(row) if row else None
