# staff/search.py
from __future__ import annotations

from functools import lru_cache
from typing import Sequence

from .records import StaffRecord

SEARCH_FIELDS = ("first_name", "last_name", "position", "department", "course")

# Column name as shown/stored -> attribute
SORTABLE_COLUMNS = {
    "firstName": "first_name",
    "lastName": "last_name",
    "position": "position",
    "department": "department",
    "course": "course",
}


def record_matches(record: StaffRecord, query: str) -> bool:
    needle = query.lower()
    return any(needle in (getattr(record, name) or "").lower() for name in SEARCH_FIELDS)


@lru_cache(maxsize=64)
def _filtered(records: tuple[StaffRecord, ...], query: str) -> tuple[StaffRecord, ...]:
    return tuple(r for r in records if record_matches(r, query))


def filter_staff(records: Sequence[StaffRecord], query: str) -> Sequence[StaffRecord]:
    """
    Records where first name, last name, position, department or course
    contains ``query`` (case-insensitive). An empty query returns ``records``
    itself. Same inputs give back the same result object.
    """
    if not query:
        return records
    return _filtered(tuple(records), query)


def sort_staff(records: Sequence[StaffRecord], column: str | None, descending: bool = False) -> list[StaffRecord]:
    attr = SORTABLE_COLUMNS.get(column or "")
    if attr is None:
        return list(records)
    return sorted(records, key=lambda r: (getattr(r, attr) or "").lower(), reverse=descending)
