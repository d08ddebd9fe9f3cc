"""Payment computation: plan amounts, discounts and remaining balances.

Everything here is pure. The same inputs always give the same quote, and nothing is
written until the caller hands the resulting draft to the ledger.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .constants import PAYMENT_METHODS, PAYMENT_STATUSES, STATUS_PENDING, TERMS_PER_YEAR
from .errors import ValidationError
from .fees import parse_amount
from .models import ClassFeeSchedule, PaymentPlan, ReceiptDraft, Student


@dataclass(frozen=True)
class PaymentQuote:
    original_amount: float
    discount_amount: float
    final_amount: float
    amount_due: float
    remaining_balance: float

    @property
    def is_full_payment(self) -> bool:
        return self.remaining_balance == 0


@dataclass
class PaymentRequest:
    """Raw payment form input. Amount and remaining balance are only read for the flexible plan."""

    student_id: str
    plan_id: str
    discount_percentage: Any = 0
    term_number: Any = None
    amount: Any = None
    remaining_balance: Any = None
    payment_method: str = "cash"
    payment_date: str = ""
    academic_year: str = ""
    status: str = STATUS_PENDING


def parse_term(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        term = int(str(value).strip())
    except ValueError:
        return None
    return term if 1 <= term <= TERMS_PER_YEAR else None


def parse_discount(value: Any, max_percentage: float = 100.0) -> float | None:
    if value is None or str(value).strip() == "":
        return 0.0
    pct = parse_amount(value)
    if pct is None or pct < 0 or pct > max_percentage:
        return None
    return pct


def apply_discount(original_amount: float, discount_percentage: float) -> tuple[float, float]:
    """Returns ``(discount_amount, final_amount)``."""
    discount = original_amount * discount_percentage / 100
    return discount, original_amount - discount


def suggest_flexible_balance(yearly_amount: float, total_paid: float, amount: float) -> float:
    return max(0.0, yearly_amount - (total_paid + amount))


def compute_payment(
    schedule: ClassFeeSchedule,
    plan: PaymentPlan,
    discount_percentage: float = 0.0,
    term_number: int | None = None,
    amount: float | None = None,
    remaining_balance: float | None = None,
    total_paid: float = 0.0,
) -> PaymentQuote:
    """Quote one payment of ``plan`` against ``schedule``.

    Full plan: the whole yearly amount, nothing left. Trimestral plan: one term, the
    remaining terms are left. Flexible plan: the operator's amount; the remaining balance is
    the operator's too, or when missing whatever is left of the yearly amount once
    ``total_paid`` and this payment are counted.
    """
    if plan.is_full:
        original = schedule.yearly_amount
    elif plan.is_trimestral:
        if term_number is None or not 1 <= term_number <= TERMS_PER_YEAR:
            raise ValidationError("Please select a valid term (1, 2 or 3).")
        original = float(schedule.term_amount)
    elif plan.is_flexible:
        if amount is None:
            raise ValidationError("Amount is required.")
        original = amount
    else:
        raise ValidationError(f"Unsupported payment plan: {plan.name}")

    discount, final = apply_discount(original, discount_percentage)

    if plan.is_full:
        return PaymentQuote(original, discount, final, final, 0.0)
    if plan.is_trimestral:
        left = max(0.0, float(schedule.term_amount * (TERMS_PER_YEAR - term_number)))
        return PaymentQuote(original, discount, final, final, left)

    if remaining_balance is None:
        remaining_balance = suggest_flexible_balance(schedule.yearly_amount, total_paid, amount)
    return PaymentQuote(original, discount, final, amount, remaining_balance)


def validate_payment(
    request: PaymentRequest,
    student: Student | None,
    plan: PaymentPlan | None,
    schedule: ClassFeeSchedule | None,
    max_discount: float = 100.0,
) -> list[str]:
    """Messages for everything wrong with a payment form; empty when it can be saved."""
    errors: list[str] = []
    if not str(request.student_id or "").strip():
        errors.append("Please select a student.")
    elif student is None:
        errors.append("Student not found.")

    if plan is None:
        errors.append("Invalid payment plan.")
    elif plan.is_trimestral and parse_term(request.term_number) is None:
        errors.append("Please select a valid term (1, 2 or 3).")
    elif plan.is_flexible:
        if request.amount is None or str(request.amount).strip() == "":
            errors.append("Amount is required.")
        else:
            amount = parse_amount(request.amount)
            if amount is None or amount <= 0:
                errors.append("Amount must be a positive number.")
        if request.remaining_balance is not None and str(request.remaining_balance).strip() != "":
            left = parse_amount(request.remaining_balance)
            if left is None or left < 0:
                errors.append("Remaining balance must be a positive number.")

    discount = parse_discount(request.discount_percentage, max_discount)
    if discount is None:
        errors.append(f"Discount must be between 0 and {max_discount:g}%.")

    if student is not None and schedule is None:
        errors.append(f"No fees are defined for class '{student.class_name or '-'}'.")

    if request.payment_method not in PAYMENT_METHODS:
        errors.append("Invalid payment method.")
    if request.status not in PAYMENT_STATUSES:
        errors.append("Invalid payment status.")

    # A fully discounted installment leaves nothing to pay.
    if not errors and plan is not None and not plan.is_flexible and schedule is not None:
        quote = compute_payment(schedule, plan, discount or 0.0, parse_term(request.term_number))
        if quote.amount_due <= 0:
            errors.append("Amount must be a positive number.")
    return errors


def build_receipt_draft(
    request: PaymentRequest,
    student: Student,
    plan: PaymentPlan,
    quote: PaymentQuote,
    discount_percentage: float,
) -> ReceiptDraft:
    # Names are copied as they are today; later renames do not touch issued receipts.
    return ReceiptDraft(
        student_id=student.student_id,
        student_name=student.name,
        class_name=student.class_name,
        original_amount=quote.original_amount,
        discount_percentage=discount_percentage,
        final_amount=quote.final_amount,
        amount=quote.amount_due,
        remaining_balance=quote.remaining_balance,
        payment_method=request.payment_method,
        payment_date=request.payment_date,
        academic_year=request.academic_year,
        plan_id=plan.plan_id,
        term_number=parse_term(request.term_number) if plan.is_trimestral else None,
        status=request.status,
        is_full_payment=quote.is_full_payment,
    )


def prepare_payment(
    request: PaymentRequest,
    student: Student | None,
    plan: PaymentPlan | None,
    schedule: ClassFeeSchedule | None,
    total_paid: float = 0.0,
    max_discount: float = 100.0,
) -> tuple[ReceiptDraft | None, list[str]]:
    """Validate and quote a payment form in one go.

    Returns ``(draft, [])`` when the payment can be saved and ``(None, messages)`` otherwise.
    """
    errors = validate_payment(request, student, plan, schedule, max_discount)
    if errors:
        return None, errors

    discount = parse_discount(request.discount_percentage, max_discount) or 0.0
    left = None
    if request.remaining_balance is not None and str(request.remaining_balance).strip() != "":
        left = parse_amount(request.remaining_balance)
    quote = compute_payment(
        schedule,
        plan,
        discount,
        term_number=parse_term(request.term_number),
        amount=parse_amount(request.amount) if plan.is_flexible else None,
        remaining_balance=left if plan.is_flexible else None,
        total_paid=total_paid,
    )
    return build_receipt_draft(request, student, plan, quote, discount), []
