import pytest

from sfms.errors import NotFoundError, ValidationError
from sfms.registry import ClassService, StudentService
from sfms.storage import ExcelStore


@pytest.fixture
def classes(store, fees):
    return ClassService(store, fees)


@pytest.fixture
def students(store):
    return StudentService(store)


def test_class_ids_are_sequential(classes):
    a = classes.create({"name": "Seconde A", "level": "Lycee"})
    b = classes.create({"name": "Seconde B"})
    assert (a.class_id, b.class_id) == ("CLS-0001", "CLS-0002")
    assert classes.get_by_name("Seconde B").class_id == "CLS-0002"


def test_class_names_are_unique(classes):
    classes.create({"name": "Seconde A"})
    with pytest.raises(ValidationError) as exc:
        classes.create({"name": "Seconde A"})
    assert exc.value.messages == ["A class named 'Seconde A' already exists."]
    with pytest.raises(ValidationError):
        classes.create({"name": "  "})


def test_student_needs_names_and_a_known_class(classes, students):
    with pytest.raises(ValidationError) as exc:
        students.create({"first_name": "", "last_name": "", "class_name": "Nowhere"})
    assert exc.value.messages == ["First name is required.", "Last name is required.", "Unknown class 'Nowhere'."]

    classes.create({"name": "Seconde A"})
    s = students.create({"first_name": "Emma", "last_name": "Martin", "class_name": "Seconde A"})
    assert s.student_id == "STU-0001"
    assert s.name == "Emma Martin"


def test_student_update_and_search(classes, students):
    classes.create({"name": "Seconde A"})
    s = students.create({"first_name": "Emma", "last_name": "Martin", "primary_contact": "+221 77 000"})
    students.update(s.student_id, {"class_name": "Seconde A"})
    assert students.get(s.student_id).class_name == "Seconde A"
    assert students.get(s.student_id).first_name == "Emma"
    assert [x.student_id for x in students.search("77 000")] == [s.student_id]
    assert students.search("zzz") == []
    with pytest.raises(NotFoundError):
        students.update("STU-0404", {"first_name": "x"})


def test_rename_class_carries_over_to_students_and_fees(store, classes, students, fees):
    c = classes.create({"name": "Seconde A"})
    fees.create({"class_id": c.class_id, "class_name": c.name, "yearly_amount": 300000})
    s = students.create({"first_name": "Emma", "last_name": "Martin", "class_name": "Seconde A"})

    classes.update(c.class_id, {"name": "2nde A"})

    fresh = ExcelStore(store.path)
    assert StudentService(fresh).get(s.student_id).class_name == "2nde A"
    assert fees.list_all()[0].class_name == "2nde A"


def test_delete_class_unassigns_students_in_one_save(classes, students):
    c = classes.create({"name": "Seconde A"})
    students.create({"first_name": "Emma", "last_name": "Martin", "class_name": "Seconde A"})
    students.create({"first_name": "Lucas", "last_name": "Bernard", "class_name": "Seconde A"})
    assert len(classes.students_in_class("Seconde A")) == 2

    assert classes.delete(c.class_id)
    assert classes.get(c.class_id) is None
    assert [s.class_name for s in students.list_all()] == ["", ""]
    assert not classes.delete(c.class_id)


def test_delete_class_drops_its_fee_schedules(classes, fees):
    c = classes.create({"name": "Seconde A"})
    other = classes.create({"name": "Seconde B"})
    fees.create({"class_id": c.class_id, "class_name": c.name, "yearly_amount": 900000})
    fees.create({"class_id": other.class_id, "class_name": other.name, "yearly_amount": 300000})

    classes.delete(c.class_id)

    assert [s.class_id for s in fees.list_all()] == [other.class_id]
    again = classes.create({"name": "Seconde A"})
    assert fees.find_for_class(class_id=again.class_id) is None
