"""Receipt ledger: one immutable receipt per payment event.

Receipt numbers come from the current receipt count, so two writers could hand out the
same number. The store is single-user, which is what makes that acceptable.
"""
from __future__ import annotations

import random
from dataclasses import asdict
from datetime import datetime

from .constants import PAYMENT_STATUSES, RECEIPTS_SHEET, STATUS_LATE, STATUS_PAID, STATUS_PENDING
from .errors import InvalidStatusTransition, NotFoundError, ValidationError
from .ids import next_id
from .models import PaymentReceipt, ReceiptDraft
from .storage import ExcelStore

RECEIPT_ID_PREFIX = "RCP-"

# Receipts start pending, late or paid; paid is final.
STATUS_TRANSITIONS: dict[str, set[str]] = {
    STATUS_PENDING: {STATUS_PAID, STATUS_LATE},
    STATUS_LATE: {STATUS_PAID},
    STATUS_PAID: set(),
}


class ReceiptLedger:
    def __init__(self, store: ExcelStore, receipt_prefix: str = "RECU", transaction_prefix: str = "TRX"):
        self.store = store
        self.table = store.table(RECEIPTS_SHEET)
        self.receipt_prefix = receipt_prefix
        self.transaction_prefix = transaction_prefix

    def generate_receipt_number(self, now: datetime | None = None) -> str:
        """``RECU-{YY}{MM}-{n:04d}`` where ``n`` is one more than the receipts stored so far."""
        now = now or datetime.now()
        count = self.table.count()
        return f"{self.receipt_prefix}-{now:%y%m}-{count + 1:04d}"

    def generate_transaction_id(self, now: datetime | None = None, rng: random.Random | None = None) -> str:
        now = now or datetime.now()
        millis = int(now.timestamp() * 1000)
        suffix = (rng or random).randint(0, 9999)
        return f"{self.transaction_prefix}-{millis}-{suffix}"

    def add_receipt(self, draft: ReceiptDraft, now: datetime | None = None) -> PaymentReceipt:
        """Number and store ``draft``. No business rule is checked here."""
        existing = [str(r.get("receipt_id", "")) for r in self.table.all()]
        receipt = PaymentReceipt(
            receipt_id=next_id(RECEIPT_ID_PREFIX, existing),
            transaction_id=self.generate_transaction_id(now),
            receipt_number=self.generate_receipt_number(now),
            **asdict(draft),
        )
        stored = self.table.add(receipt.to_dict())
        return PaymentReceipt.from_dict(stored)

    def get_receipt(self, receipt_id: str) -> PaymentReceipt | None:
        row = self.table.get(receipt_id)
        return PaymentReceipt.from_dict(row) if row else None

    def list_receipts(self) -> list[PaymentReceipt]:
        return [PaymentReceipt.from_dict(r) for r in self.table.all()]

    def get_receipts_by_student_id(self, student_id: str) -> list[PaymentReceipt]:
        # Insertion order; sort by payment_date where chronology matters.
        rows = self.table.filter(lambda r: str(r.get("student_id") or "") == student_id)
        return [PaymentReceipt.from_dict(r) for r in rows]

    def update_receipt_status(self, receipt_id: str, status: str) -> PaymentReceipt:
        if status not in PAYMENT_STATUSES:
            raise ValidationError(f"Invalid payment status: {status}")
        receipt = self.get_receipt(receipt_id)
        if receipt is None:
            raise NotFoundError("Receipt", receipt_id)
        if receipt.status == status:
            return receipt
        if status not in STATUS_TRANSITIONS.get(receipt.status, set()):
            raise InvalidStatusTransition(f"Cannot change a {receipt.status} receipt to {status}.")
        self.table.update(receipt_id, {"status": status})
        return self.get_receipt(receipt_id) or receipt

    def amount_paid(self, student_id: str, academic_year: str | None = None) -> float:
        return sum(
            r.amount
            for r in self.get_receipts_by_student_id(student_id)
            if r.status == STATUS_PAID and (academic_year is None or r.academic_year == academic_year)
        )

    def status_totals(self) -> dict[str, float]:
        totals = {s: 0.0 for s in PAYMENT_STATUSES}
        for r in self.list_receipts():
            if r.status in totals:
                totals[r.status] += r.amount
        return totals

    def search_receipts(self, search: str = "", status: str | None = None) -> list[PaymentReceipt]:
        """Receipts matching ``search`` on student name, class or receipt number, optionally one status."""
        needle = search.strip().lower()
        out: list[PaymentReceipt] = []
        for r in self.list_receipts():
            if status and r.status != status:
                continue
            if needle and not any(needle in v.lower() for v in (r.student_name, r.class_name, r.receipt_number)):
                continue
            out.append(r)
        return out
