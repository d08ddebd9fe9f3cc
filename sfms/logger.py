from __future__ import annotations

import traceback
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any

from .constants import ERROR_LOG_PATH

EVENT_HEADERS = ["timestamp", "action", "entity_type", "entity_id", "details"]


@dataclass
class AppEvent:
    """One line of the activity log sheet."""

    timestamp: str
    action: str
    entity_type: str
    entity_id: str
    details: str = ""

    def to_row(self) -> list[str]:
        return [self.timestamp, self.action, self.entity_type, self.entity_id, self.details]

    @staticmethod
    def from_dict(d: dict[str, Any]) -> "AppEvent":
        return AppEvent(
            timestamp=str(d.get("timestamp") or ""),
            action=str(d.get("action") or ""),
            entity_type=str(d.get("entity_type") or ""),
            entity_id=str(d.get("entity_id") or ""),
            details=str(d.get("details") or ""),
        )


class ErrorLogger:
    def __init__(self, path: Path = ERROR_LOG_PATH):
        self.path = path

    def log_exception(self, exc: BaseException, context: str = "") -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(f"[{now_ts()}] {context}\n")
            f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
            f.write("\n")


def now_ts() -> str:
    return datetime.now().isoformat(timespec="seconds")


def today_iso() -> str:
    return date.today().isoformat()
