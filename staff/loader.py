# staff/loader.py
from __future__ import annotations

import logging
from types import MappingProxyType

from core.errors import FetchError, StoreError
from core.store import DocumentStore, collection_path

from .records import (
    COURSES_COLLECTION,
    DEPARTMENTS_COLLECTION,
    STAFF_COLLECTION,
    Course,
    Department,
    StaffRecord,
    StaffSnapshot,
)

logger = logging.getLogger(__name__)


def _fetch(store: DocumentStore, path: str):
    try:
        return store.list_documents(path)
    except StoreError as e:
        raise FetchError(path, e) from e


def load_staff_snapshot(store: DocumentStore) -> StaffSnapshot:
    """
    Reads Staff, Departments and every Departments/<id>/Courses.

    The first failing read aborts the rest and raises FetchError. Results
    are only assembled into a snapshot after every read succeeded, so a
    caller never sees courses keyed by departments it does not have.
    """
    staff = tuple(StaffRecord.from_document(doc_id, data) for doc_id, data in _fetch(store, STAFF_COLLECTION))
    departments = tuple(
        Department.from_document(doc_id, data) for doc_id, data in _fetch(store, DEPARTMENTS_COLLECTION)
    )

    courses: dict[str, tuple[Course, ...]] = {}
    for department in departments:
        path = collection_path(DEPARTMENTS_COLLECTION, department.id, COURSES_COLLECTION)
        courses[department.id] = tuple(
            Course.from_document(doc_id, data, department_id=department.id)
            for doc_id, data in _fetch(store, path)
        )

    logger.debug(
        "Loaded %s staff, %s departments, %s courses",
        len(staff),
        len(departments),
        sum(len(c) for c in courses.values()),
    )
    return StaffSnapshot(
        staff=staff,
        departments=departments,
        courses_by_department=MappingProxyType(courses),
    )
