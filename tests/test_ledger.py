import random
import re
from datetime import datetime

import pytest

from sfms.errors import InvalidStatusTransition, NotFoundError, ValidationError
from sfms.ledger import ReceiptLedger
from sfms.models import ReceiptDraft


def draft(student_id="STU-0001", amount=150000.0, status="paid", year="2026-2027", date="2026-10-01", **kw):
    values = dict(
        student_id=student_id,
        student_name=f"Student {student_id}",
        class_name="Seconde A",
        original_amount=amount,
        discount_percentage=0.0,
        final_amount=amount,
        amount=amount,
        remaining_balance=0.0,
        payment_method="cash",
        payment_date=date,
        academic_year=year,
        plan_id="plan-3",
        status=status,
    )
    values.update(kw)
    return ReceiptDraft(**values)


def test_receipt_numbers_are_one_global_sequence(ledger):
    now = datetime(2026, 10, 5, 9, 30)
    numbers = [
        ledger.add_receipt(draft(student_id=sid), now=now).receipt_number
        for sid in ("STU-0001", "STU-0002", "STU-0001")
    ]
    assert numbers == ["RECU-2610-0001", "RECU-2610-0002", "RECU-2610-0003"]
    assert ledger.generate_receipt_number(datetime(2027, 1, 2)) == "RECU-2701-0004"


def test_receipt_prefix_is_configurable(seeded_store):
    ledger = ReceiptLedger(seeded_store, receipt_prefix="REC", transaction_prefix="TX")
    r = ledger.add_receipt(draft(), now=datetime(2026, 3, 1))
    assert r.receipt_number == "REC-2603-0001"
    assert r.transaction_id.startswith("TX-")


def test_transaction_id_shape(ledger):
    now = datetime(2026, 10, 5, 9, 30)
    tid = ledger.generate_transaction_id(now, rng=random.Random(7))
    m = re.fullmatch(r"TRX-(\d+)-(\d+)", tid)
    assert m
    assert int(m.group(1)) == int(now.timestamp() * 1000)
    assert 0 <= int(m.group(2)) <= 9999


def test_add_receipt_persists_every_field(ledger):
    r = ledger.add_receipt(draft(plan_id="plan-2", term_number=2, remaining_balance=150000.0, is_full_payment=False))
    assert r.receipt_id == "RCP-0001"
    again = ledger.get_receipt(r.receipt_id)
    assert again == r
    assert again.term_number == 2
    assert again.remaining_balance == 150000
    assert again.is_full_payment is False


def test_receipts_by_student_keep_insertion_order(ledger):
    a = ledger.add_receipt(draft("STU-0001", date="2026-12-01"))
    ledger.add_receipt(draft("STU-0002"))
    b = ledger.add_receipt(draft("STU-0001", date="2026-09-01"))
    assert [r.receipt_id for r in ledger.get_receipts_by_student_id("STU-0001")] == [a.receipt_id, b.receipt_id]
    assert ledger.get_receipts_by_student_id("STU-0404") == []


def test_status_update_touches_only_status(ledger):
    r = ledger.add_receipt(draft(status="pending"))
    late = ledger.update_receipt_status(r.receipt_id, "late")
    assert late.status == "late"
    paid = ledger.update_receipt_status(r.receipt_id, "paid")
    assert paid.status == "paid"
    assert (paid.amount, paid.final_amount, paid.receipt_number) == (r.amount, r.final_amount, r.receipt_number)


def test_status_update_rules(ledger):
    r = ledger.add_receipt(draft(status="paid"))
    assert ledger.update_receipt_status(r.receipt_id, "paid").status == "paid"
    with pytest.raises(InvalidStatusTransition):
        ledger.update_receipt_status(r.receipt_id, "pending")
    with pytest.raises(ValidationError):
        ledger.update_receipt_status(r.receipt_id, "refunded")
    with pytest.raises(NotFoundError):
        ledger.update_receipt_status("RCP-9999", "paid")


def test_amount_paid_and_totals(ledger):
    ledger.add_receipt(draft("STU-0001", amount=100, status="paid"))
    ledger.add_receipt(draft("STU-0001", amount=50, status="pending"))
    ledger.add_receipt(draft("STU-0001", amount=30, status="paid", year="2025-2026"))
    ledger.add_receipt(draft("STU-0002", amount=20, status="late"))
    assert ledger.amount_paid("STU-0001") == 130
    assert ledger.amount_paid("STU-0001", "2026-2027") == 100
    assert ledger.status_totals() == {"paid": 130, "pending": 50, "late": 20}


def test_search_receipts(ledger):
    ledger.add_receipt(draft("STU-0001", status="paid"), now=datetime(2026, 10, 1))
    ledger.add_receipt(draft("STU-0002", status="pending"), now=datetime(2026, 10, 1))
    assert len(ledger.search_receipts()) == 2
    assert [r.student_id for r in ledger.search_receipts("stu-0002")] == ["STU-0002"]
    assert [r.receipt_number for r in ledger.search_receipts("RECU-2610-0001")] == ["RECU-2610-0001"]
    assert [r.status for r in ledger.search_receipts(status="pending")] == ["pending"]
