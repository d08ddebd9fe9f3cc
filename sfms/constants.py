from __future__ import annotations

from pathlib import Path

WORKSPACE_ROOT = Path(__file__).resolve().parents[1]
DATA_XLSX_PATH = WORKSPACE_ROOT / "school_data.xlsx"
SETTINGS_JSON_PATH = WORKSPACE_ROOT / "settings.json"
ERROR_LOG_PATH = WORKSPACE_ROOT / "error_log.txt"

STUDENTS_SHEET = "students"
CLASSES_SHEET = "classes"
CLASS_FEES_SHEET = "class_fees"
PAYMENT_PLANS_SHEET = "payment_plans"
RECEIPTS_SHEET = "receipts"
ACTIVITY_SHEET = "activity_log"

STATUS_PAID = "paid"
STATUS_PENDING = "pending"
STATUS_LATE = "late"
PAYMENT_STATUSES = (STATUS_PAID, STATUS_PENDING, STATUS_LATE)

PAYMENT_METHODS = ("card", "cash", "transfer", "check", "mobile")

PLAN_FULL = "plan-1"
PLAN_TRIMESTRAL = "plan-2"
PLAN_FLEXIBLE = "plan-3"

TERMS_PER_YEAR = 3
