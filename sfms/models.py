"""Record types stored in the workbook, one sheet per type.

Each record converts to and from the plain dict rows that the storage layer reads and
writes. Conversions are tolerant: empty cells come back as ``None`` and numbers may come
back as int or float, so every field is coerced on the way in.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any

from .constants import (
    CLASS_FEES_SHEET,
    CLASSES_SHEET,
    PAYMENT_PLANS_SHEET,
    RECEIPTS_SHEET,
    STATUS_PENDING,
    STUDENTS_SHEET,
)


def _str(value: Any) -> str:
    return "" if value is None else str(value)


def _float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y"}
    return bool(value)


class _Row:
    """Shared dict conversion for the record dataclasses."""

    @classmethod
    def headers(cls) -> list[str]:
        return [f.name for f in fields(cls)]  # type: ignore[arg-type]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)  # type: ignore[call-overload]


@dataclass
class SchoolClass(_Row):
    class_id: str
    name: str
    level: str = ""
    description: str = ""
    created_at: str = ""
    updated_at: str = ""

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "SchoolClass":
        return SchoolClass(
            class_id=_str(d.get("class_id")),
            name=_str(d.get("name")),
            level=_str(d.get("level")),
            description=_str(d.get("description")),
            created_at=_str(d.get("created_at")),
            updated_at=_str(d.get("updated_at")),
        )


@dataclass
class Student(_Row):
    student_id: str
    first_name: str
    last_name: str
    class_name: str = ""
    section: str = ""
    primary_contact: str = ""
    secondary_contact: str = ""
    created_at: str = ""
    updated_at: str = ""

    @property
    def name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "Student":
        return Student(
            student_id=_str(d.get("student_id")),
            first_name=_str(d.get("first_name")),
            last_name=_str(d.get("last_name")),
            class_name=_str(d.get("class_name")),
            section=_str(d.get("section")),
            primary_contact=_str(d.get("primary_contact")),
            secondary_contact=_str(d.get("secondary_contact")),
            created_at=_str(d.get("created_at")),
            updated_at=_str(d.get("updated_at")),
        )


@dataclass
class ClassFeeSchedule(_Row):
    fee_id: str
    class_id: str
    class_name: str
    yearly_amount: float
    registration_fee: float
    term_amount: int
    academic_year: str
    created_at: str = ""
    updated_at: str = ""

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "ClassFeeSchedule":
        return ClassFeeSchedule(
            fee_id=_str(d.get("fee_id")),
            class_id=_str(d.get("class_id")),
            class_name=_str(d.get("class_name")),
            yearly_amount=_float(d.get("yearly_amount")),
            registration_fee=_float(d.get("registration_fee")),
            term_amount=_int(d.get("term_amount")),
            academic_year=_str(d.get("academic_year")),
            created_at=_str(d.get("created_at")),
            updated_at=_str(d.get("updated_at")),
        )


@dataclass
class PaymentPlan(_Row):
    plan_id: str
    name: str
    description: str
    installments: int

    @property
    def is_full(self) -> bool:
        return self.installments == 1

    @property
    def is_trimestral(self) -> bool:
        return self.installments == 3

    @property
    def is_flexible(self) -> bool:
        return self.installments == 0

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "PaymentPlan":
        return PaymentPlan(
            plan_id=_str(d.get("plan_id")),
            name=_str(d.get("name")),
            description=_str(d.get("description")),
            installments=_int(d.get("installments")),
        )


@dataclass
class PaymentReceipt(_Row):
    receipt_id: str
    transaction_id: str
    receipt_number: str
    student_id: str
    student_name: str
    class_name: str
    original_amount: float
    discount_percentage: float
    final_amount: float
    amount: float
    remaining_balance: float
    payment_method: str
    payment_date: str
    academic_year: str
    plan_id: str
    term_number: int | None = None
    status: str = STATUS_PENDING
    is_full_payment: bool = False
    created_at: str = ""
    updated_at: str = ""

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "PaymentReceipt":
        return PaymentReceipt(
            receipt_id=_str(d.get("receipt_id")),
            transaction_id=_str(d.get("transaction_id")),
            receipt_number=_str(d.get("receipt_number")),
            student_id=_str(d.get("student_id")),
            student_name=_str(d.get("student_name")),
            class_name=_str(d.get("class_name")),
            original_amount=_float(d.get("original_amount")),
            discount_percentage=_float(d.get("discount_percentage")),
            final_amount=_float(d.get("final_amount")),
            amount=_float(d.get("amount")),
            remaining_balance=_float(d.get("remaining_balance")),
            payment_method=_str(d.get("payment_method")),
            payment_date=_str(d.get("payment_date")),
            academic_year=_str(d.get("academic_year")),
            plan_id=_str(d.get("plan_id")),
            term_number=_optional_int(d.get("term_number")),
            status=_str(d.get("status")) or STATUS_PENDING,
            is_full_payment=_bool(d.get("is_full_payment")),
            created_at=_str(d.get("created_at")),
            updated_at=_str(d.get("updated_at")),
        )


@dataclass
class ReceiptDraft:
    """Everything a receipt carries before the ledger numbers it."""

    student_id: str
    student_name: str
    class_name: str
    original_amount: float
    discount_percentage: float
    final_amount: float
    amount: float
    remaining_balance: float
    payment_method: str
    payment_date: str
    academic_year: str
    plan_id: str
    term_number: int | None = None
    status: str = STATUS_PENDING
    is_full_payment: bool = False


TABLES: dict[str, list[str]] = {
    CLASSES_SHEET: SchoolClass.headers(),
    STUDENTS_SHEET: Student.headers(),
    CLASS_FEES_SHEET: ClassFeeSchedule.headers(),
    PAYMENT_PLANS_SHEET: PaymentPlan.headers(),
    RECEIPTS_SHEET: PaymentReceipt.headers(),
}
