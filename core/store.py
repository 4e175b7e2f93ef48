# core/store.py
from __future__ import annotations

import copy
import logging
import secrets
import string
import threading
from functools import lru_cache
from typing import Any, Protocol

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from google.api_core import exceptions as google_exceptions

from core.errors import DocumentNotFound, StoreError

logger = logging.getLogger(__name__)

BACKEND_FIRESTORE = "firestore"
BACKEND_MEMORY = "memory"

_AUTO_ID_ALPHABET = string.ascii_letters + string.digits
_AUTO_ID_LENGTH = 20

Document = tuple[str, dict[str, Any]]


def collection_path(*segments: str) -> str:
    """Join segments into a collection path: ``Departments/<id>/Courses``.

    A collection path always has an odd number of segments.
    """
    parts = [str(s) for s in segments]
    if not parts or len(parts) % 2 == 0:
        raise ValueError(f"Not a collection path: {parts!r}")
    for part in parts:
        if not part or "/" in part:
            raise ValueError(f"Invalid path segment: {part!r}")
    return "/".join(parts)


class DocumentStore(Protocol):
    backend: str

    def list_documents(self, path: str) -> list[Document]:
        raise NotImplementedError

    def create_document(self, path: str, data: dict[str, Any]) -> str:
        raise NotImplementedError

    def update_document(self, path: str, doc_id: str, data: dict[str, Any]) -> None:
        raise NotImplementedError

    def delete_document(self, path: str, doc_id: str) -> None:
        raise NotImplementedError

    def set_document(self, path: str, doc_id: str, data: dict[str, Any]) -> None:
        """Create or overwrite a document under a known id."""
        raise NotImplementedError


# ======================
# Firestore
# ======================

class FirestoreDocumentStore:
    backend = BACKEND_FIRESTORE

    def __init__(self, client) -> None:
        self._client = client

    def list_documents(self, path: str) -> list[Document]:
        try:
            return [(snap.id, snap.to_dict() or {}) for snap in self._client.collection(path).stream()]
        except google_exceptions.GoogleAPIError as e:
            raise StoreError(str(e)) from e

    def create_document(self, path: str, data: dict[str, Any]) -> str:
        try:
            _, ref = self._client.collection(path).add(dict(data))
        except google_exceptions.GoogleAPIError as e:
            raise StoreError(str(e)) from e
        return ref.id

    def update_document(self, path: str, doc_id: str, data: dict[str, Any]) -> None:
        try:
            self._client.collection(path).document(doc_id).update(dict(data))
        except google_exceptions.NotFound as e:
            raise DocumentNotFound(path, doc_id) from e
        except google_exceptions.GoogleAPIError as e:
            raise StoreError(str(e)) from e

    def delete_document(self, path: str, doc_id: str) -> None:
        # Plain delete() succeeds on missing documents; the precondition makes it fail.
        option = self._client.write_option(exists=True)
        try:
            self._client.collection(path).document(doc_id).delete(option=option)
        except google_exceptions.NotFound as e:
            raise DocumentNotFound(path, doc_id) from e
        except google_exceptions.GoogleAPIError as e:
            raise StoreError(str(e)) from e

    def set_document(self, path: str, doc_id: str, data: dict[str, Any]) -> None:
        try:
            self._client.collection(path).document(doc_id).set(dict(data))
        except google_exceptions.GoogleAPIError as e:
            raise StoreError(str(e)) from e


# ======================
# In-memory (dev / tests)
# ======================

class MemoryDocumentStore:
    """Keeps collections in a dict, in insertion order, behind a lock."""

    backend = BACKEND_MEMORY

    def __init__(self, initial: dict[str, dict[str, dict[str, Any]]] | None = None) -> None:
        self._lock = threading.Lock()
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        for path, docs in (initial or {}).items():
            for doc_id, data in docs.items():
                self.set_document(path, doc_id, data)

    @staticmethod
    def _new_id() -> str:
        return "".join(secrets.choice(_AUTO_ID_ALPHABET) for _ in range(_AUTO_ID_LENGTH))

    def set_document(self, path: str, doc_id: str, data: dict[str, Any]) -> None:
        with self._lock:
            self._collections.setdefault(path, {})[str(doc_id)] = copy.deepcopy(dict(data))

    def list_documents(self, path: str) -> list[Document]:
        with self._lock:
            docs = self._collections.get(path, {})
            return [(doc_id, copy.deepcopy(data)) for doc_id, data in docs.items()]

    def create_document(self, path: str, data: dict[str, Any]) -> str:
        with self._lock:
            docs = self._collections.setdefault(path, {})
            doc_id = self._new_id()
            while doc_id in docs:
                doc_id = self._new_id()
            docs[doc_id] = copy.deepcopy(dict(data))
            return doc_id

    def update_document(self, path: str, doc_id: str, data: dict[str, Any]) -> None:
        with self._lock:
            docs = self._collections.get(path, {})
            if doc_id not in docs:
                raise DocumentNotFound(path, doc_id)
            docs[doc_id].update(copy.deepcopy(dict(data)))

    def delete_document(self, path: str, doc_id: str) -> None:
        with self._lock:
            docs = self._collections.get(path, {})
            if doc_id not in docs:
                raise DocumentNotFound(path, doc_id)
            del docs[doc_id]

    def clear(self) -> None:
        with self._lock:
            self._collections.clear()


# ======================
# Process-wide instance
# ======================

def build_document_store(backend: str | None = None) -> DocumentStore:
    backend = (backend or getattr(settings, "DOCUMENT_STORE_BACKEND", BACKEND_MEMORY)).strip().lower()

    if backend == BACKEND_FIRESTORE:
        from core.core.firebase import get_firestore_client

        return FirestoreDocumentStore(get_firestore_client())

    if backend == BACKEND_MEMORY:
        return MemoryDocumentStore()

    raise ImproperlyConfigured(f"Unknown DOCUMENT_STORE_BACKEND: {backend!r}")


@lru_cache(maxsize=1)
def get_document_store() -> DocumentStore:
    store = build_document_store()
    logger.info("Document store ready (backend=%s).", store.backend)
    return store


def reset_document_store() -> None:
    get_document_store.cache_clear()
