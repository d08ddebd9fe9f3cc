from __future__ import annotations

import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .constants import ACTIVITY_SHEET, DATA_XLSX_PATH
from .errors import StoreError
from .logger import EVENT_HEADERS, AppEvent, now_ts
from .models import TABLES

Record = dict[str, Any]


def _ensure_sheet_headers(ws, headers: list[str]) -> None:
    # Row 1 must hold the headers. A blank row 1 with headers pushed to row 2 makes every
    # key None on read, so repair that case instead of appending a second header row.
    if ws.max_row < 1 or ws.max_column < 1:
        for col, h in enumerate(headers, start=1):
            ws.cell(row=1, column=col, value=h)
        return

    row1_vals = [cell.value for cell in ws[1]]
    if ws["A1"].value is None and all(v is None for v in row1_vals):
        if ws.max_row >= 2:
            row2_vals = [ws.cell(row=2, column=c).value for c in range(1, len(headers) + 1)]
            if row2_vals == headers:
                ws.delete_rows(1, 1)
                return
        for col, h in enumerate(headers, start=1):
            ws.cell(row=1, column=col, value=h)
        return

    existing = [cell.value for cell in ws[1]]
    if existing != headers:
        # Never rewrite existing columns; only append the missing ones.
        for h in headers:
            if h not in existing:
                ws.cell(row=1, column=len(existing) + 1, value=h)
                existing.append(h)


def _cleanup_sheet(ws, headers: list[str]) -> None:
    """Remove empty rows and duplicated header rows after the header."""

    if ws.max_row <= 1:
        return

    # Bottom-up so deletions do not shift rows we have yet to visit.
    for row in range(ws.max_row, 1, -1):
        vals = [ws.cell(row=row, column=c).value for c in range(1, len(headers) + 1)]
        if vals == headers:
            ws.delete_rows(row, 1)
            continue
        if all(v is None or v == "" for v in vals):
            ws.delete_rows(row, 1)


class RecordTable:
    """Keyed view over one sheet. The first header is the record id."""

    def __init__(self, store: "ExcelStore", sheet: str):
        self.store = store
        self.sheet = sheet

    def _ws(self):
        wb = self.store._load()
        if self.sheet not in wb.sheetnames:
            raise StoreError(f"Unknown table: {self.sheet}")
        return wb[self.sheet]

    @staticmethod
    def _headers(ws) -> list[str]:
        return [c.value for c in ws[1]]

    def all(self) -> list[Record]:
        return ExcelStore._sheet_to_dicts(self._ws())

    def count(self) -> int:
        return len(self.all())

    def get(self, record_id: str) -> Record | None:
        ws = self._ws()
        headers = self._headers(ws)
        row = ExcelStore._find_row_by_id(ws, headers[0], str(record_id))
        if row is None:
            return None
        vals = [ws.cell(row=row, column=c).value for c in range(1, len(headers) + 1)]
        return dict(zip(headers, vals))

    def filter(self, predicate: Callable[[Record], bool]) -> list[Record]:
        return [r for r in self.all() if predicate(r)]

    def first(self, predicate: Callable[[Record], bool]) -> Record | None:
        for r in self.all():
            if predicate(r):
                return r
        return None

    def _append(self, ws, headers: list[str], record: Record) -> Record:
        record_id = str(record.get(headers[0]) or "")
        if not record_id:
            raise StoreError(f"{self.sheet}: record has no {headers[0]}")
        if ExcelStore._find_row_by_id(ws, headers[0], record_id) is not None:
            raise StoreError(f"{self.sheet}: duplicate key {record_id}")
        now = now_ts()
        stored = dict(record)
        for h in ("created_at", "updated_at"):
            if h in headers and not stored.get(h):
                stored[h] = now
        ws.append([stored.get(h) for h in headers])
        return stored

    def add(self, record: Record) -> Record:
        ws = self._ws()
        stored = self._append(ws, self._headers(ws), record)
        self.store._commit()
        return stored

    def bulk_add(self, records: Iterable[Record]) -> list[Record]:
        with self.store.batch():
            ws = self._ws()
            headers = self._headers(ws)
            return [self._append(ws, headers, r) for r in records]

    def update(self, record_id: str, changes: Record) -> bool:
        """Write ``changes`` onto an existing row; the id and created_at never change."""

        ws = self._ws()
        headers = self._headers(ws)
        row = ExcelStore._find_row_by_id(ws, headers[0], str(record_id))
        if row is None:
            return False
        for col, h in enumerate(headers, start=1):
            if col == 1 or h == "created_at":
                continue
            if h == "updated_at":
                ws.cell(row=row, column=col, value=now_ts())
                continue
            if h in changes:
                ws.cell(row=row, column=col, value=changes[h])
        self.store._commit()
        return True

    def delete(self, record_id: str) -> bool:
        ws = self._ws()
        row = ExcelStore._find_row_by_id(ws, self._headers(ws)[0], str(record_id))
        if row is None:
            return False
        ws.delete_rows(row, 1)
        self.store._commit()
        return True


class ExcelStore:
    def __init__(self, path: Path = DATA_XLSX_PATH):
        self.path = Path(path)
        self._wb = None
        self._batch_depth = 0

    def invalidate_cache(self) -> None:
        """Force the next operation to re-load the workbook from disk."""
        self._wb = None

    def ensure_workbook(self, tables: dict[str, list[str]] | None = None) -> None:
        tables = TABLES if tables is None else tables
        try:
            if self.path.exists():
                wb = load_workbook(self.path)
            else:
                wb = Workbook()
                wb.remove(wb.active)
        except (OSError, InvalidFileException, zipfile.BadZipFile) as e:
            raise StoreError(f"Cannot open workbook {self.path}: {e}") from e

        for sheet, headers in list(tables.items()) + [(ACTIVITY_SHEET, EVENT_HEADERS)]:
            ws = wb[sheet] if sheet in wb.sheetnames else wb.create_sheet(sheet)
            _ensure_sheet_headers(ws, headers)
            _cleanup_sheet(ws, headers)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._save(wb)

    def _load(self):
        if self._wb is not None:
            return self._wb
        if not self.path.exists():
            raise StoreError(f"Workbook not found: {self.path}")
        try:
            self._wb = load_workbook(self.path)
        except (OSError, InvalidFileException, zipfile.BadZipFile) as e:
            raise StoreError(f"Cannot read workbook {self.path}: {e}") from e
        return self._wb

    def _save(self, wb) -> None:
        try:
            wb.save(self.path)
        except OSError as e:
            # What is in memory no longer matches the disk.
            self._wb = None
            raise StoreError(f"Cannot write workbook {self.path}: {e}") from e
        self._wb = wb

    def _commit(self) -> None:
        if self._batch_depth:
            return
        self._save(self._load())

    @contextmanager
    def batch(self) -> Iterator["ExcelStore"]:
        """Group several writes into one save.

        Nothing reaches the disk until the outermost block exits cleanly; on error the
        in-memory changes are dropped and the workbook is re-read on next access.
        """

        self._load()
        self._batch_depth += 1
        try:
            yield self
        except BaseException:
            self._batch_depth -= 1
            if not self._batch_depth:
                self.invalidate_cache()
            raise
        self._batch_depth -= 1
        if not self._batch_depth:
            self._save(self._load())

    def table(self, sheet: str) -> RecordTable:
        return RecordTable(self, sheet)

    @staticmethod
    def _sheet_to_dicts(ws) -> list[Record]:
        headers = [c.value for c in ws[1]]
        rows: list[Record] = []
        for r in ws.iter_rows(min_row=2, values_only=True):
            if all(v is None for v in r):
                continue
            d = {headers[i]: r[i] for i in range(min(len(headers), len(r)))}
            rows.append(d)
        return rows

    @staticmethod
    def _find_row_by_id(ws, id_header: str, record_id: str) -> int | None:
        headers = [c.value for c in ws[1]]
        try:
            id_idx = headers.index(id_header) + 1
        except ValueError:
            return None
        for row in range(2, ws.max_row + 1):
            value = ws.cell(row=row, column=id_idx).value
            if value is not None and str(value) == record_id:
                return row
        return None

    def add_event(self, event: AppEvent) -> None:
        wb = self._load()
        wb[ACTIVITY_SHEET].append(event.to_row())
        self._commit()

    def list_events(self, limit: int = 500) -> list[AppEvent]:
        wb = self._load()
        rows = self._sheet_to_dicts(wb[ACTIVITY_SHEET])
        return [AppEvent.from_dict(r) for r in rows[-limit:]]
