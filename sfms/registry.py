from __future__ import annotations

from typing import Any

from .constants import CLASSES_SHEET, STUDENTS_SHEET
from .errors import NotFoundError, ValidationError
from .fees import FeeScheduleService
from .ids import next_id
from .models import SchoolClass, Student
from .storage import ExcelStore

STUDENT_FIELDS = ["first_name", "last_name", "class_name", "section", "primary_contact", "secondary_contact"]
CLASS_FIELDS = ["name", "level", "description"]


def _clean(data: dict[str, Any], keys: list[str]) -> dict[str, str]:
    return {k: str(data.get(k) or "").strip() for k in keys if k in data}


class ClassService:
    def __init__(self, store: ExcelStore, fees: FeeScheduleService, id_prefix: str = "CLS-"):
        self.store = store
        self.fees = fees
        self.table = store.table(CLASSES_SHEET)
        self.students = store.table(STUDENTS_SHEET)
        self.id_prefix = id_prefix

    def list_all(self) -> list[SchoolClass]:
        return [SchoolClass.from_dict(r) for r in self.table.all()]

    def get(self, class_id: str) -> SchoolClass | None:
        row = self.table.get(class_id)
        return SchoolClass.from_dict(row) if row else None

    def get_by_name(self, name: str) -> SchoolClass | None:
        row = self.table.first(lambda r: str(r.get("name") or "") == name)
        return SchoolClass.from_dict(row) if row else None

    def validate(self, data: dict[str, Any], class_id: str = "") -> list[str]:
        errors: list[str] = []
        name = str(data.get("name") or "").strip()
        if not name:
            errors.append("Class name is required.")
        else:
            other = self.get_by_name(name)
            if other is not None and other.class_id != class_id:
                errors.append(f"A class named '{name}' already exists.")
        return errors

    def create(self, data: dict[str, Any]) -> SchoolClass:
        errors = self.validate(data)
        if errors:
            raise ValidationError(errors)
        existing = [str(r.get("class_id", "")) for r in self.table.all()]
        record = {"class_id": next_id(self.id_prefix, existing), **_clean(data, CLASS_FIELDS)}
        return SchoolClass.from_dict(self.table.add(record))

    def update(self, class_id: str, data: dict[str, Any]) -> SchoolClass:
        """Save class fields; a new name is carried to its students and fee schedules in the same save."""
        current = self.get(class_id)
        if current is None:
            raise NotFoundError("Class", class_id)
        merged = {**current.to_dict(), **data}
        errors = self.validate(merged, class_id)
        if errors:
            raise ValidationError(errors)
        changes = _clean(merged, CLASS_FIELDS)
        with self.store.batch():
            self.table.update(class_id, changes)
            if changes["name"] != current.name:
                for st in self.students.filter(lambda r: str(r.get("class_name") or "") == current.name):
                    self.students.update(str(st["student_id"]), {"class_name": changes["name"]})
                self.fees.rename_class(class_id, changes["name"])
        return self.get(class_id) or current

    def delete(self, class_id: str) -> bool:
        """Delete a class with its fee schedules and unassign its students, all in one save."""
        current = self.get(class_id)
        if current is None:
            return False
        with self.store.batch():
            for st in self.students.filter(lambda r: str(r.get("class_name") or "") == current.name):
                self.students.update(str(st["student_id"]), {"class_name": ""})
            self.fees.delete_for_class(class_id)
            self.table.delete(class_id)
        return True

    def students_in_class(self, name: str) -> list[Student]:
        rows = self.students.filter(lambda r: str(r.get("class_name") or "") == name)
        return [Student.from_dict(r) for r in rows]


class StudentService:
    def __init__(self, store: ExcelStore, id_prefix: str = "STU-"):
        self.store = store
        self.table = store.table(STUDENTS_SHEET)
        self.classes = store.table(CLASSES_SHEET)
        self.id_prefix = id_prefix

    def list_all(self) -> list[Student]:
        return [Student.from_dict(r) for r in self.table.all()]

    def get(self, student_id: str) -> Student | None:
        row = self.table.get(student_id)
        return Student.from_dict(row) if row else None

    def search(self, term: str) -> list[Student]:
        needle = term.strip().lower()
        if not needle:
            return self.list_all()
        out = []
        for s in self.list_all():
            hay = " ".join([s.student_id, s.name, s.class_name, s.section, s.primary_contact, s.secondary_contact])
            if needle in hay.lower():
                out.append(s)
        return out

    def validate(self, data: dict[str, Any]) -> list[str]:
        errors: list[str] = []
        if not str(data.get("first_name") or "").strip():
            errors.append("First name is required.")
        if not str(data.get("last_name") or "").strip():
            errors.append("Last name is required.")
        class_name = str(data.get("class_name") or "").strip()
        if class_name and self.classes.first(lambda r: str(r.get("name") or "") == class_name) is None:
            errors.append(f"Unknown class '{class_name}'.")
        return errors

    def create(self, data: dict[str, Any]) -> Student:
        errors = self.validate(data)
        if errors:
            raise ValidationError(errors)
        existing = [str(r.get("student_id", "")) for r in self.table.all()]
        record = {"student_id": next_id(self.id_prefix, existing), **_clean(data, STUDENT_FIELDS)}
        return Student.from_dict(self.table.add(record))

    def update(self, student_id: str, data: dict[str, Any]) -> Student:
        current = self.get(student_id)
        if current is None:
            raise NotFoundError("Student", student_id)
        merged = {**current.to_dict(), **data}
        errors = self.validate(merged)
        if errors:
            raise ValidationError(errors)
        self.table.update(student_id, _clean(merged, STUDENT_FIELDS))
        return self.get(student_id) or current

    def delete(self, student_id: str) -> bool:
        return self.table.delete(student_id)
