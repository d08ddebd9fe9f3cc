"""Front desk: the single entry point a UI calls for every fees action.

Actions never raise for bad input or storage trouble. They return an ``Outcome`` whose
``messages`` are ready to show to the operator; storage faults are written to the error
log with their traceback.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable

from .balances import BalanceSummary, UnpaidBalance, current_academic_year, summarize_student, unpaid_balances
from .errors import NotFoundError, StoreError, ValidationError
from .fees import FeeScheduleService, get_plan, list_plans, seed_payment_plans
from .ledger import ReceiptLedger
from .logger import AppEvent, ErrorLogger, now_ts, today_iso
from .models import PaymentPlan
from .payments import PaymentRequest, prepare_payment
from .registry import ClassService, StudentService
from .settings_store import Settings, SettingsStore
from .storage import ExcelStore

STORE_FAILURE = "Could not save changes. See error log."


@dataclass
class Outcome:
    ok: bool
    messages: list[str] = field(default_factory=list)
    record: Any = None


class FeesDesk:
    def __init__(
        self,
        store: ExcelStore | None = None,
        settings_store: SettingsStore | None = None,
        err_logger: ErrorLogger | None = None,
    ):
        self.err_logger = err_logger or ErrorLogger()
        self.settings_store = settings_store or SettingsStore()
        self.settings: Settings = self.settings_store.load()

        self.store = store or ExcelStore()
        self.store.ensure_workbook()
        seed_payment_plans(self.store)

        self.fees = FeeScheduleService(self.store)
        self.classes = ClassService(self.store, self.fees, self.settings.class_id_prefix)
        self.students = StudentService(self.store, self.settings.student_id_prefix)
        self.ledger = ReceiptLedger(self.store, self.settings.receipt_prefix, self.settings.transaction_prefix)

    # ---------------- Plumbing ----------------
    def _emit(self, action: str, entity_type: str, entity_id: str, details: str = "") -> None:
        try:
            self.store.add_event(AppEvent(now_ts(), action, entity_type, entity_id, details))
        except StoreError as e:
            # The action itself was saved; only its activity line is missing.
            self.err_logger.log_exception(e, f"activity:{action}")

    def _run(self, context: str, fn: Callable[[], Any]) -> Outcome:
        try:
            return Outcome(True, record=fn())
        except ValidationError as e:
            return Outcome(False, e.messages)
        except NotFoundError as e:
            return Outcome(False, [str(e)])
        except StoreError as e:
            self.err_logger.log_exception(e, context)
            return Outcome(False, [STORE_FAILURE])

    # ---------------- Classes / students ----------------
    def add_class(self, data: dict[str, Any]) -> Outcome:
        out = self._run("add_class", lambda: self.classes.create(data))
        if out.ok:
            self._emit("add_class", "class", out.record.class_id, out.record.name)
        return out

    def update_class(self, class_id: str, data: dict[str, Any]) -> Outcome:
        out = self._run("update_class", lambda: self.classes.update(class_id, data))
        if out.ok:
            self._emit("update_class", "class", class_id, out.record.name)
        return out

    def delete_class(self, class_id: str) -> Outcome:
        out = self._run("delete_class", lambda: self.classes.delete(class_id))
        if out.ok and not out.record:
            return Outcome(False, [f"Class not found: {class_id}"])
        if out.ok:
            self._emit("delete_class", "class", class_id)
        return out

    def add_student(self, data: dict[str, Any]) -> Outcome:
        out = self._run("add_student", lambda: self.students.create(data))
        if out.ok:
            self._emit("add_student", "student", out.record.student_id, out.record.name)
        return out

    def update_student(self, student_id: str, data: dict[str, Any]) -> Outcome:
        out = self._run("update_student", lambda: self.students.update(student_id, data))
        if out.ok:
            self._emit("update_student", "student", student_id, out.record.name)
        return out

    def delete_student(self, student_id: str) -> Outcome:
        out = self._run("delete_student", lambda: self.students.delete(student_id))
        if out.ok and not out.record:
            return Outcome(False, [f"Student not found: {student_id}"])
        if out.ok:
            self._emit("delete_student", "student", student_id)
        return out

    # ---------------- Fee schedules ----------------
    def save_fee_schedule(self, data: dict[str, Any], fee_id: str | None = None) -> Outcome:
        """Create (no ``fee_id``) or update a class fee schedule."""

        def save():
            payload = dict(data)
            class_id = str(payload.get("class_id") or "")
            if class_id:
                cls = self.classes.get(class_id)
                if cls is None:
                    raise ValidationError("Class not found.")
                payload["class_name"] = cls.name
            if not payload.get("academic_year"):
                payload["academic_year"] = current_academic_year()
            if fee_id:
                return self.fees.update(fee_id, payload)
            return self.fees.create(payload)

        out = self._run("save_fee_schedule", save)
        if out.ok:
            s = out.record
            self._emit(
                "update_fees" if fee_id else "add_fees",
                "class_fees",
                s.fee_id,
                f"{s.class_name} {s.academic_year}: {self.settings.format_amount(s.yearly_amount)}",
            )
        return out

    def delete_fee_schedule(self, fee_id: str) -> Outcome:
        out = self._run("delete_fee_schedule", lambda: self.fees.delete(fee_id))
        if out.ok and not out.record:
            return Outcome(False, [f"Fee schedule not found: {fee_id}"])
        if out.ok:
            self._emit("delete_fees", "class_fees", fee_id)
        return out

    def payment_plans(self) -> list[PaymentPlan]:
        return list_plans(self.store)

    # ---------------- Payments ----------------
    def new_payment_request(self, student_id: str = "") -> PaymentRequest:
        """A blank payment form filled with the configured defaults."""
        return PaymentRequest(
            student_id=student_id,
            plan_id=self.settings.default_plan_id,
            payment_method=self.settings.default_payment_method,
            payment_date=today_iso(),
            academic_year=current_academic_year(),
            status=self.settings.default_status,
        )

    def record_payment(self, request: PaymentRequest) -> Outcome:
        def save():
            form = replace(
                request,
                academic_year=request.academic_year or current_academic_year(),
                payment_date=request.payment_date or today_iso(),
            )
            student = self.students.get(form.student_id) if form.student_id else None
            plan = get_plan(self.store, form.plan_id)
            schedule = None
            cls = self.classes.get_by_name(student.class_name) if student is not None and student.class_name else None
            if cls is not None:
                schedule = self.fees.find_for_class(class_id=cls.class_id, academic_year=form.academic_year)
            paid = self.ledger.amount_paid(form.student_id, form.academic_year) if student else 0.0
            draft, errors = prepare_payment(
                form, student, plan, schedule, total_paid=paid, max_discount=self.settings.max_discount_percentage
            )
            if errors:
                raise ValidationError(errors)
            return self.ledger.add_receipt(draft)

        out = self._run("record_payment", save)
        if out.ok:
            r = out.record
            out.messages.append(f"Payment of {self.settings.format_amount(r.amount)} recorded ({r.receipt_number}).")
            self._emit("add_payment", "receipt", r.receipt_id, f"{r.receipt_number} {r.student_name} {r.amount:g} {r.status}")
        return out

    def set_receipt_status(self, receipt_id: str, status: str) -> Outcome:
        out = self._run("set_receipt_status", lambda: self.ledger.update_receipt_status(receipt_id, status))
        if out.ok:
            self._emit("update_payment_status", "receipt", receipt_id, status)
        return out

    # ---------------- Read side ----------------
    def student_balance(self, student_id: str, academic_year: str | None = None) -> BalanceSummary:
        year = academic_year or current_academic_year()
        return summarize_student(student_id, self.ledger.get_receipts_by_student_id(student_id), year)

    def unpaid_report(
        self, academic_year: str | None = None, class_name: str | None = None, search: str = ""
    ) -> list[UnpaidBalance]:
        year = academic_year or current_academic_year()
        return unpaid_balances(
            self.students.list_all(),
            self.fees.list_all(),
            self.ledger.list_receipts(),
            year,
            class_name=class_name,
            search=search,
        )

    def payments_overview(self) -> dict[str, float]:
        return self.ledger.status_totals()

    def activity(self, limit: int = 500) -> list[AppEvent]:
        return self.store.list_events(limit)
