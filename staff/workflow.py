# staff/workflow.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from core.errors import FetchError
from core.locks import PendingOperationGuard
from core.notify import ERROR, Notifier
from core.store import DocumentStore

from .gateway import ERROR_TITLE, MutationGateway
from .loader import load_staff_snapshot
from .records import FORM_FIELDS, Course, StaffRecord, StaffSnapshot, course_options, empty_form
from .search import filter_staff

logger = logging.getLogger(__name__)

FETCH_ERROR_MESSAGE = "There was an error fetching the data."


@dataclass
class WorkflowState:
    """FormBuffer + EditingTarget. ``editing_id`` None means create mode."""

    form: dict[str, str] = field(default_factory=empty_form)
    editing_id: str | None = None

    @classmethod
    def from_session(cls, raw: Mapping[str, Any] | None) -> WorkflowState:
        if not isinstance(raw, Mapping):
            return cls()
        form = empty_form()
        stored = raw.get("form") or {}
        if isinstance(stored, Mapping):
            for name in FORM_FIELDS:
                form[name] = str(stored.get(name) or "")
        editing_id = raw.get("editing_id") or None
        return cls(form=form, editing_id=str(editing_id) if editing_id else None)

    def to_session(self) -> dict[str, Any]:
        return {"form": dict(self.form), "editing_id": self.editing_id}


class StaffWorkflow:
    """
    View-model of the Staff Management screen.

    States:
      - create: editing_id is None, form holds new values
      - edit  : editing_id names the record, form holds its values

    Transitions: start_edit(), submit(), reset(). Data comes in through
    reload(); a failed reload keeps the previous snapshot.
    """

    def __init__(
        self,
        store: DocumentStore,
        notifier: Notifier,
        *,
        state: WorkflowState | None = None,
        guard: PendingOperationGuard | None = None,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.state = state or WorkflowState()
        self.snapshot = StaffSnapshot.empty()
        self.query = ""
        self.gateway = MutationGateway(store, notifier, reload=self.reload, guard=guard)

    # ----- data -----

    def reload(self) -> bool:
        try:
            snapshot = load_staff_snapshot(self.store)
        except FetchError:
            logger.exception("Error fetching data")
            self.notifier.notify(ERROR, ERROR_TITLE, FETCH_ERROR_MESSAGE)
            return False
        self.snapshot = snapshot
        return True

    def visible_staff(self) -> Sequence[StaffRecord]:
        return filter_staff(self.snapshot.staff, self.query)

    def find(self, staff_id: str) -> StaffRecord | None:
        return self.snapshot.find_staff(staff_id)

    def course_options(self, department_id: str | None = None) -> list[Course]:
        if department_id is None:
            department_id = self.state.form.get("department", "")
        return course_options(self.snapshot, department_id)

    # ----- form state -----

    @property
    def form(self) -> dict[str, str]:
        return self.state.form

    @property
    def is_editing(self) -> bool:
        return self.state.editing_id is not None

    @property
    def editing_target(self) -> StaffRecord | None:
        if self.state.editing_id is None:
            return None
        return self.find(self.state.editing_id) or StaffRecord(id=self.state.editing_id)

    def update_form(self, values: Mapping[str, Any]) -> None:
        for name in FORM_FIELDS:
            if name in values:
                self.state.form[name] = str(values.get(name) or "")

    def start_edit(self, record: StaffRecord) -> None:
        # Any unsaved edit in progress is dropped.
        self.state = WorkflowState(form=record.form_values(), editing_id=record.id)

    def reset(self) -> None:
        self.state = WorkflowState()

    # ----- mutations -----

    def submit(self, values: Mapping[str, Any] | None = None) -> bool:
        if values is not None:
            self.update_form(values)
        return self.gateway.save(dict(self.state.form), self.editing_target, on_saved=self.reset)

    def delete(self, record: StaffRecord) -> bool:
        return self.gateway.delete(record)
