# staff/gateway.py
from __future__ import annotations

import logging
from contextlib import nullcontext
from typing import Callable, Mapping

from core.errors import MutationError, StoreError
from core.locks import PendingOperationGuard
from core.notify import ERROR, SUCCESS, WARNING, Notifier
from core.store import DocumentStore

from .records import FORM_FIELDS, STAFF_COLLECTION, StaffRecord

logger = logging.getLogger(__name__)

SAVE_SUCCESS_TITLE = "Success!"
SAVE_ERROR_MESSAGE = "There was an error saving the staff data."
DELETE_CONFIRM_TITLE = "Are you sure?"
DELETE_CONFIRM_MESSAGE = "You will not be able to recover this staff member!"
DELETE_SUCCESS_TITLE = "Deleted!"
DELETE_SUCCESS_MESSAGE = "Staff member has been deleted."
DELETE_ERROR_MESSAGE = "There was an error deleting the staff member."
ERROR_TITLE = "Error!"
BUSY_TITLE = "Please wait"
BUSY_MESSAGE = "Another change is still being saved."


def staff_payload(fields: Mapping[str, str]) -> dict[str, str]:
    """The document body written for a staff member; never carries the id."""
    return {name: str(fields.get(name) or "") for name in FORM_FIELDS}


class MutationGateway:
    """
    Create/update/delete of Staff documents with user notifications.

    Every successful mutation is followed by ``reload()`` (a full re-fetch);
    failures leave caller state alone so the user can retry.
    """

    def __init__(
        self,
        store: DocumentStore,
        notifier: Notifier,
        *,
        reload: Callable[[], object],
        guard: PendingOperationGuard | None = None,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self._reload = reload
        self._guard = guard

    def _hold(self):
        if self._guard is None:
            return nullcontext(True)
        return self._guard.hold()

    def _busy(self) -> None:
        self.notifier.notify(WARNING, BUSY_TITLE, BUSY_MESSAGE)

    def _write(self, fields: Mapping[str, str], target: StaffRecord | None) -> str:
        payload = staff_payload(fields)
        if target is None:
            try:
                return self.store.create_document(STAFF_COLLECTION, payload)
            except StoreError as e:
                raise MutationError("create", e) from e
        try:
            self.store.update_document(STAFF_COLLECTION, target.id, payload)
        except StoreError as e:
            raise MutationError("update", e) from e
        return target.id

    def _remove(self, record: StaffRecord) -> None:
        try:
            self.store.delete_document(STAFF_COLLECTION, record.id)
        except StoreError as e:
            raise MutationError("delete", e) from e

    def save(
        self,
        fields: Mapping[str, str],
        target: StaffRecord | None = None,
        *,
        on_saved: Callable[[], object] | None = None,
    ) -> bool:
        with self._hold() as acquired:
            if not acquired:
                self._busy()
                return False
            try:
                doc_id = self._write(fields, target)
            except MutationError as e:
                logger.exception("Error saving staff data (%s)", e.action)
                self.notifier.notify(ERROR, ERROR_TITLE, SAVE_ERROR_MESSAGE)
                return False

        verb = "added" if target is None else "updated"
        logger.info("Staff %s %s", doc_id, verb)
        self.notifier.notify(SUCCESS, SAVE_SUCCESS_TITLE, f"Staff has been {verb}.")
        if on_saved is not None:
            on_saved()
        self._reload()
        return True

    def delete(self, record: StaffRecord) -> bool:
        if not self.notifier.confirm(DELETE_CONFIRM_TITLE, DELETE_CONFIRM_MESSAGE):
            return False

        with self._hold() as acquired:
            if not acquired:
                self._busy()
                return False
            try:
                self._remove(record)
            except MutationError:
                logger.exception("Error deleting staff member %s", record.id)
                self.notifier.notify(ERROR, ERROR_TITLE, DELETE_ERROR_MESSAGE)
                return False

        logger.info("Staff %s deleted", record.id)
        self.notifier.notify(SUCCESS, DELETE_SUCCESS_TITLE, DELETE_SUCCESS_MESSAGE)
        self._reload()
        return True
