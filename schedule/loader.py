# schedule/loader.py
from __future__ import annotations

from typing import Sequence

from core.errors import FetchError, StoreError
from core.store import DocumentStore, collection_path
from staff.records import COURSES_COLLECTION, DEPARTMENTS_COLLECTION, Course


def load_schedule_courses(store: DocumentStore, departments: Sequence[str]) -> list[Course]:
    """Courses of the given departments, department by department, in store order."""
    courses: list[Course] = []
    for department_id in departments:
        path = collection_path(DEPARTMENTS_COLLECTION, department_id, COURSES_COLLECTION)
        try:
            docs = store.list_documents(path)
        except StoreError as e:
            raise FetchError(path, e) from e
        courses.extend(Course.from_document(doc_id, data, department_id=department_id) for doc_id, data in docs)
    return courses


def find_course(courses: Sequence[Course], course_id: str) -> Course | None:
    return next((c for c in courses if c.id == course_id), None)
