from datetime import date

from sfms.balances import current_academic_year, summarize_student, unpaid_balances
from sfms.models import ClassFeeSchedule, PaymentReceipt, Student


def receipt(n, student_id="STU-0001", amount=100.0, left=0.0, status="paid", year="2026-2027", day="2026-10-01"):
    return PaymentReceipt(
        receipt_id=f"RCP-{n:04d}",
        transaction_id=f"TRX-{n}",
        receipt_number=f"RECU-2610-{n:04d}",
        student_id=student_id,
        student_name="Emma Martin",
        class_name="Seconde A",
        original_amount=amount,
        discount_percentage=0.0,
        final_amount=amount,
        amount=amount,
        remaining_balance=left,
        payment_method="cash",
        payment_date=day,
        academic_year=year,
        plan_id="plan-2",
        status=status,
        is_full_payment=left == 0,
        created_at="2026-10-01T10:00:00",
    )


def test_current_academic_year():
    assert current_academic_year(date(2026, 10, 19)) == "2026-2027"
    assert current_academic_year(date(2027, 1, 3)) == "2027-2028"


def test_student_without_receipts_is_not_settled():
    s = summarize_student("STU-0001", [], "2026-2027")
    assert (s.total_paid, s.total_due) == (0, 0)
    assert not s.is_account_settled
    assert s.last_payment is None


def test_due_comes_from_latest_receipt_of_the_year():
    receipts = [
        receipt(1, amount=150000, left=300000, day="2026-10-01"),
        receipt(2, amount=150000, left=0, day="2027-04-01"),
        receipt(3, amount=150000, left=150000, day="2027-01-10"),
    ]
    s = summarize_student("STU-0001", receipts, "2026-2027")
    assert s.total_paid == 450000
    assert s.total_due == 0
    assert s.is_account_settled
    assert s.last_payment.receipt_id == "RCP-0002"


def test_same_day_receipts_fall_back_to_insertion_order():
    receipts = [receipt(1, left=200), receipt(2, left=50)]
    assert summarize_student("STU-0001", receipts, "2026-2027").total_due == 50


def test_only_paid_receipts_of_the_year_count():
    receipts = [
        receipt(1, amount=100, status="paid"),
        receipt(2, amount=70, status="pending", left=30),
        receipt(3, amount=999, status="paid", year="2025-2026", day="2026-06-01"),
        receipt(4, student_id="STU-0002", amount=5),
    ]
    s = summarize_student("STU-0001", receipts, "2026-2027")
    assert s.total_paid == 100
    assert s.total_due == 30
    assert s.has_pending_payments
    assert not s.has_late_payments
    assert not s.is_account_settled


def test_late_flag_looks_at_every_year():
    receipts = [receipt(1, status="late", year="2025-2026", left=10)]
    s = summarize_student("STU-0001", receipts, "2026-2027")
    assert s.has_late_payments
    assert s.total_due == 0
    assert s.total_paid == 0
    assert not s.is_account_settled


def test_unpaid_balances_report():
    students = [
        Student("STU-0001", "Emma", "Martin", class_name="Seconde A"),
        Student("STU-0002", "Lucas", "Bernard", class_name="Seconde A"),
        Student("STU-0003", "Lea", "Petit", class_name="Terminale S"),
        Student("STU-0004", "Tom", "Dubois"),
    ]
    schedules = [
        ClassFeeSchedule("FEE-0001", "CLS-0001", "Seconde A", 300000, 0, 100000, "2025-2026"),
        ClassFeeSchedule("FEE-0002", "CLS-0001", "Seconde A", 450000, 0, 150000, "2026-2027"),
        ClassFeeSchedule("FEE-0003", "CLS-0002", "Terminale S", 600000, 0, 200000, "2026-2027"),
    ]
    receipts = [
        receipt(1, student_id="STU-0001", amount=450000),
        receipt(2, student_id="STU-0002", amount=150000),
        receipt(3, student_id="STU-0003", amount=100000, status="pending"),
    ]
    rows = unpaid_balances(students, schedules, receipts, "2026-2027")
    assert [(r.student_id, r.total_fees, r.total_paid, r.remaining_balance) for r in rows] == [
        ("STU-0002", 450000, 150000, 300000),
        ("STU-0003", 600000, 0, 600000),
    ]
    assert [r.student_id for r in unpaid_balances(students, schedules, receipts, "2026-2027", class_name="Terminale S")] == [
        "STU-0003"
    ]
    assert [r.student_name for r in unpaid_balances(students, schedules, receipts, "2026-2027", search="lucas")] == [
        "Lucas Bernard"
    ]
