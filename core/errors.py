from __future__ import annotations


class StoreError(Exception):
    """Any failure reported by the document store client."""


class DocumentNotFound(StoreError):
    def __init__(self, path: str, doc_id: str) -> None:
        super().__init__(f"Document {doc_id!r} does not exist in {path!r}.")
        self.path = path
        self.doc_id = doc_id


class FetchError(Exception):
    """A read-all on a collection failed; the load that issued it is abandoned."""

    def __init__(self, path: str, cause: Exception | None = None) -> None:
        super().__init__(f"Could not read collection {path!r}: {cause}")
        self.path = path
        self.cause = cause


class MutationError(Exception):
    """A create/update/delete against the store failed."""

    ACTIONS = ("create", "update", "delete")

    def __init__(self, action: str, cause: Exception | None = None) -> None:
        if action not in self.ACTIONS:
            raise ValueError(f"Unknown mutation action: {action!r}")
        super().__init__(f"Could not {action} document: {cause}")
        self.action = action
        self.cause = cause
