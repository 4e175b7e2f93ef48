from __future__ import annotations

from dataclasses import dataclass
import secrets
from typing import Any

from django.contrib.auth import get_user_model

from core.errors import StoreError
from core.store import MemoryDocumentStore, collection_path, get_document_store, reset_document_store


@dataclass(frozen=True)
class SeededStore:
    store: MemoryDocumentStore
    staff_ids: dict[str, str]


DEFAULT_DEPARTMENTS: dict[str, dict[str, dict[str, Any]]] = {
    "Board Courses": {
        "BSN": {"name": "Bachelor of Science in Nursing"},
        "BSCrim": {"name": "Bachelor of Science in Criminology"},
    },
    "Non-Board Courses": {
        "BSIT": {"name": "Bachelor of Science in Information Technology"},
    },
    "Library": {},
}


def staff_fields(**overrides: str) -> dict[str, str]:
    data = {
        "firstName": "A",
        "lastName": "B",
        "gender": "Male",
        "address": "x",
        "mobileNumber": "1",
        "position": "Teacher",
        "department": "Board Courses",
        "course": "BSN",
    }
    data.update(overrides)
    return data


def seed_store(
    store: MemoryDocumentStore,
    *,
    departments: dict[str, dict[str, dict[str, Any]]] | None = None,
    staff: dict[str, dict[str, str]] | None = None,
) -> SeededStore:
    """Write departments (with their Courses) and staff under known keys.

    ``staff`` maps a label to document fields; the store assigns the ids.
    """
    departments = DEFAULT_DEPARTMENTS if departments is None else departments
    for dept_id, courses in departments.items():
        store.set_document("Departments", dept_id, {"name": dept_id})
        for course_id, data in courses.items():
            store.set_document(collection_path("Departments", dept_id, "Courses"), course_id, data)

    staff_ids = {}
    for label, fields in (staff or {}).items():
        staff_ids[label] = store.create_document("Staff", fields)
    return SeededStore(store=store, staff_ids=staff_ids)


def fresh_process_store() -> MemoryDocumentStore:
    """Drop the cached process-wide store and return the new (empty) one."""
    reset_document_store()
    store = get_document_store()
    assert isinstance(store, MemoryDocumentStore), "tests expect DOCUMENT_STORE_BACKEND=memory"
    return store


class FailingStore:
    """Wraps a store and raises StoreError for chosen operations/paths.

    fail_on: {"list_documents": {"Staff"}, "delete_document": None}
    None means every path.
    """

    def __init__(self, inner, fail_on: dict[str, set[str] | None]) -> None:
        self.inner = inner
        self.fail_on = fail_on
        self.backend = getattr(inner, "backend", "memory")
        self.calls: list[tuple[str, str]] = []

    def _check(self, op: str, path: str) -> None:
        self.calls.append((op, path))
        if op in self.fail_on:
            paths = self.fail_on[op]
            if paths is None or path in paths:
                raise StoreError(f"{op} failed for {path}")

    def list_documents(self, path):
        self._check("list_documents", path)
        return self.inner.list_documents(path)

    def create_document(self, path, data):
        self._check("create_document", path)
        return self.inner.create_document(path, data)

    def update_document(self, path, doc_id, data):
        self._check("update_document", path)
        return self.inner.update_document(path, doc_id, data)

    def delete_document(self, path, doc_id):
        self._check("delete_document", path)
        return self.inner.delete_document(path, doc_id)

    def set_document(self, path, doc_id, data):
        self._check("set_document", path)
        return self.inner.set_document(path, doc_id, data)


def make_manager(*, is_staff: bool = True):
    User = get_user_model()
    uid = secrets.token_hex(4)
    return User.objects.create_user(
        username=f"manager-{uid}",
        password="pass-1234-xyz",
        is_staff=is_staff,
    )
