# staff/records.py
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

STAFF_COLLECTION = "Staff"
DEPARTMENTS_COLLECTION = "Departments"
COURSES_COLLECTION = "Courses"

GENDERS = ("Male", "Female", "Other")
POSITIONS = ("Teacher", "Course Head", "Department Head", "Registrar", "Admin")

# Stored field name -> StaffRecord attribute
FIELD_MAP = {
    "firstName": "first_name",
    "lastName": "last_name",
    "gender": "gender",
    "address": "address",
    "mobileNumber": "mobile_number",
    "position": "position",
    "department": "department",
    "course": "course",
}
FORM_FIELDS = tuple(FIELD_MAP)


def empty_form() -> dict[str, str]:
    return {name: "" for name in FORM_FIELDS}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


@dataclass(frozen=True)
class StaffRecord:
    id: str
    first_name: str = ""
    last_name: str = ""
    gender: str = ""
    address: str = ""
    mobile_number: str = ""
    position: str = ""
    department: str = ""
    course: str = ""

    @classmethod
    def from_document(cls, doc_id: str, data: Mapping[str, Any]) -> StaffRecord:
        return cls(id=str(doc_id), **{attr: _text(data.get(name)) for name, attr in FIELD_MAP.items()})

    def to_document(self) -> dict[str, str]:
        return {name: getattr(self, attr) for name, attr in FIELD_MAP.items()}

    def form_values(self) -> dict[str, str]:
        return self.to_document()

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class Department:
    id: str
    attributes: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_document(cls, doc_id: str, data: Mapping[str, Any]) -> Department:
        return cls(id=str(doc_id), attributes=MappingProxyType(dict(data)))

    @property
    def name(self) -> str:
        return _text(self.attributes.get("name")) or self.id


@dataclass(frozen=True)
class Course:
    id: str
    department_id: str
    attributes: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_document(cls, doc_id: str, data: Mapping[str, Any], *, department_id: str) -> Course:
        return cls(id=str(doc_id), department_id=department_id, attributes=MappingProxyType(dict(data)))

    @property
    def name(self) -> str:
        return _text(self.attributes.get("name"))


@dataclass(frozen=True)
class StaffSnapshot:
    """Everything one load produced. Replaced whole, never patched."""

    staff: tuple[StaffRecord, ...] = ()
    departments: tuple[Department, ...] = ()
    courses_by_department: Mapping[str, tuple[Course, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def empty(cls) -> StaffSnapshot:
        return cls()

    def find_staff(self, staff_id: str) -> StaffRecord | None:
        for record in self.staff:
            if record.id == staff_id:
                return record
        return None

    def department_ids(self) -> list[str]:
        return [d.id for d in self.departments]


def course_options(snapshot: StaffSnapshot, department_id: str | None) -> list[Course]:
    """Courses the course selector may offer; empty means the selector is disabled."""
    if not department_id:
        return []
    return list(snapshot.courses_by_department.get(department_id, ()))
