from __future__ import annotations

import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .constants import PAYMENT_METHODS, PAYMENT_STATUSES, PLAN_FLEXIBLE, SETTINGS_JSON_PATH


@dataclass
class Settings:
    school_name: str = "School"
    currency: str = "FCFA"
    receipt_prefix: str = "RECU"
    transaction_prefix: str = "TRX"
    student_id_prefix: str = "STU-"
    class_id_prefix: str = "CLS-"
    default_plan_id: str = PLAN_FLEXIBLE
    default_payment_method: str = "cash"
    default_status: str = "pending"
    max_discount_percentage: float = 100.0

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "Settings":
        defaults = Settings()
        try:
            max_discount = float(d.get("max_discount_percentage", 100.0))
        except (TypeError, ValueError):
            max_discount = 100.0
        if not math.isfinite(max_discount):
            max_discount = 100.0
        # A percentage ceiling outside 0..100 makes no sense for a discount.
        max_discount = min(max(max_discount, 0.0), 100.0)

        method = str(d.get("default_payment_method", defaults.default_payment_method))
        if method not in PAYMENT_METHODS:
            method = defaults.default_payment_method
        status = str(d.get("default_status", defaults.default_status))
        if status not in PAYMENT_STATUSES:
            status = defaults.default_status

        return Settings(
            school_name=str(d.get("school_name", defaults.school_name)),
            currency=str(d.get("currency", defaults.currency)),
            receipt_prefix=str(d.get("receipt_prefix", defaults.receipt_prefix)) or defaults.receipt_prefix,
            transaction_prefix=str(d.get("transaction_prefix", defaults.transaction_prefix)) or defaults.transaction_prefix,
            student_id_prefix=str(d.get("student_id_prefix", defaults.student_id_prefix)),
            class_id_prefix=str(d.get("class_id_prefix", defaults.class_id_prefix)),
            default_plan_id=str(d.get("default_plan_id", defaults.default_plan_id)),
            default_payment_method=method,
            default_status=status,
            max_discount_percentage=max_discount,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "school_name": self.school_name,
            "currency": self.currency,
            "receipt_prefix": self.receipt_prefix,
            "transaction_prefix": self.transaction_prefix,
            "student_id_prefix": self.student_id_prefix,
            "class_id_prefix": self.class_id_prefix,
            "default_plan_id": self.default_plan_id,
            "default_payment_method": self.default_payment_method,
            "default_status": self.default_status,
            "max_discount_percentage": self.max_discount_percentage,
        }

    def format_amount(self, amount: float) -> str:
        """``150000`` -> ``"150 000 FCFA"``."""
        whole = f"{amount:,.0f}" if float(amount).is_integer() else f"{amount:,.2f}"
        return f"{whole.replace(',', ' ')} {self.currency}"


class SettingsStore:
    def __init__(self, path: Path = SETTINGS_JSON_PATH):
        self.path = Path(path)

    def load(self) -> Settings:
        if not self.path.exists():
            settings = Settings()
            self.save(settings)
            return settings

        with self.path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        return Settings.from_dict(data if isinstance(data, dict) else {})

    def save(self, settings: Settings) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as f:
            json.dump(settings.to_dict(), f, indent=2)
            f.write("\n")
