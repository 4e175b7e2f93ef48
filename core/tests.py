import logging
from io import StringIO
from unittest.mock import MagicMock

import pytest
from django.contrib.messages import get_messages
from django.contrib.messages.storage.fallback import FallbackStorage
from django.contrib.sessions.backends.cache import SessionStore
from django.core.cache import cache
from django.core.exceptions import ImproperlyConfigured
from django.core.management import call_command
from django.test import RequestFactory, TestCase, override_settings
from google.api_core import exceptions as google_exceptions

from core.errors import DocumentNotFound, MutationError, StoreError
from core.locks import PendingOperationGuard
from core.logging_filters import StoreRetryNoiseFilter
from core.notify import RecordingNotifier, RequestNotifier
from core.store import (
    FirestoreDocumentStore,
    MemoryDocumentStore,
    build_document_store,
    collection_path,
    get_document_store,
)
from core.tests_utils import fresh_process_store


# ======================
# Paths / errors
# ======================

class TestCollectionPath:
    def test_nested_path(self):
        assert collection_path("Departments", "D1", "Courses") == "Departments/D1/Courses"

    def test_flat_path(self):
        assert collection_path("Staff") == "Staff"

    @pytest.mark.parametrize("segments", [(), ("Staff", "abc"), ("Departments", "", "Courses"), ("A/B",)])
    def test_rejects_bad_paths(self, segments):
        with pytest.raises(ValueError):
            collection_path(*segments)


def test_mutation_error_requires_known_action():
    assert MutationError("delete").action == "delete"
    with pytest.raises(ValueError):
        MutationError("upsert")


# ======================
# Memory store
# ======================

class TestMemoryDocumentStore:
    def test_create_assigns_new_ids_in_order(self):
        store = MemoryDocumentStore()
        a = store.create_document("Staff", {"firstName": "A"})
        b = store.create_document("Staff", {"firstName": "B"})
        assert a != b
        assert len(a) == 20
        assert [doc_id for doc_id, _ in store.list_documents("Staff")] == [a, b]

    def test_unknown_collection_is_empty(self):
        assert MemoryDocumentStore().list_documents("Departments/X/Courses") == []

    def test_update_replaces_listed_fields_only(self):
        store = MemoryDocumentStore()
        doc_id = store.create_document("Staff", {"firstName": "A", "lastName": "B"})
        store.update_document("Staff", doc_id, {"firstName": "Z"})
        assert store.list_documents("Staff") == [(doc_id, {"firstName": "Z", "lastName": "B"})]

    def test_update_and_delete_of_missing_document_fail(self):
        store = MemoryDocumentStore()
        with pytest.raises(DocumentNotFound):
            store.update_document("Staff", "missing", {})
        with pytest.raises(DocumentNotFound):
            store.delete_document("Staff", "missing")

    def test_returned_documents_are_copies(self):
        store = MemoryDocumentStore({"Staff": {"s1": {"firstName": "A"}}})
        store.list_documents("Staff")[0][1]["firstName"] = "changed"
        assert store.list_documents("Staff")[0][1]["firstName"] == "A"


# ======================
# Firestore adapter (client mocked)
# ======================

def _firestore_client():
    client = MagicMock(name="firestore_client")
    client.write_option.return_value = "exists-option"
    return client


class TestFirestoreDocumentStore:
    def test_list_documents_maps_snapshots(self):
        client = _firestore_client()
        snap = MagicMock(id="s1")
        snap.to_dict.return_value = {"firstName": "A"}
        empty = MagicMock(id="s2")
        empty.to_dict.return_value = None
        client.collection.return_value.stream.return_value = [snap, empty]

        docs = FirestoreDocumentStore(client).list_documents("Departments/D1/Courses")

        client.collection.assert_called_with("Departments/D1/Courses")
        assert docs == [("s1", {"firstName": "A"}), ("s2", {})]

    def test_create_returns_new_id(self):
        client = _firestore_client()
        client.collection.return_value.add.return_value = ("ts", MagicMock(id="new-id"))
        assert FirestoreDocumentStore(client).create_document("Staff", {"a": "b"}) == "new-id"

    def test_update_missing_document(self):
        client = _firestore_client()
        client.collection.return_value.document.return_value.update.side_effect = google_exceptions.NotFound("gone")
        with pytest.raises(DocumentNotFound):
            FirestoreDocumentStore(client).update_document("Staff", "x", {})

    def test_delete_requires_existing_document(self):
        client = _firestore_client()
        doc_ref = client.collection.return_value.document.return_value

        FirestoreDocumentStore(client).delete_document("Staff", "x")

        client.write_option.assert_called_once_with(exists=True)
        doc_ref.delete.assert_called_once_with(option="exists-option")

        doc_ref.delete.side_effect = google_exceptions.NotFound("gone")
        with pytest.raises(DocumentNotFound):
            FirestoreDocumentStore(client).delete_document("Staff", "x")

    def test_api_errors_become_store_errors(self):
        client = _firestore_client()
        client.collection.return_value.stream.side_effect = google_exceptions.ServiceUnavailable("down")
        with pytest.raises(StoreError):
            FirestoreDocumentStore(client).list_documents("Staff")


# ======================
# Store factory
# ======================

def test_build_memory_store():
    assert isinstance(build_document_store("memory"), MemoryDocumentStore)


def test_unknown_backend_rejected():
    with pytest.raises(ImproperlyConfigured):
        build_document_store("mongo")


def test_firestore_client_requires_credentials(monkeypatch, settings):
    from core.core import firebase

    monkeypatch.delenv("FIREBASE_CREDENTIALS_BASE64", raising=False)
    monkeypatch.delenv("GOOGLE_APPLICATION_CREDENTIALS", raising=False)
    monkeypatch.setattr(firebase.firebase_admin, "_apps", {})
    settings.FIREBASE_PROJECT_ID = ""

    with pytest.raises(ImproperlyConfigured):
        firebase.get_firestore_client()


def test_process_store_is_shared_until_reset():
    first = fresh_process_store()
    assert get_document_store() is first
    assert fresh_process_store() is not first


# ======================
# Guard
# ======================

class TestPendingOperationGuard:
    def setup_method(self):
        cache.clear()

    def test_second_acquire_fails_until_release(self):
        guard = PendingOperationGuard("user:1")
        other = PendingOperationGuard("user:1")
        assert guard.acquire() is True
        assert other.acquire() is False
        guard.release()
        assert other.acquire() is True
        other.release()

    def test_owners_are_independent(self):
        a = PendingOperationGuard("user:1")
        b = PendingOperationGuard("user:2")
        assert a.acquire() and b.acquire()
        a.release()
        b.release()

    def test_hold_releases_on_exception(self):
        guard = PendingOperationGuard("user:3")
        with pytest.raises(RuntimeError):
            with guard.hold() as acquired:
                assert acquired is True
                raise RuntimeError("boom")
        assert guard.is_pending() is False

    def test_hold_does_not_release_foreign_lock(self):
        guard = PendingOperationGuard("user:4")
        guard.acquire()
        with PendingOperationGuard("user:4").hold() as acquired:
            assert acquired is False
        assert guard.is_pending() is True
        guard.release()

    def test_expired_holder_does_not_free_next_lock(self):
        first = PendingOperationGuard("user:5", timeout=1)
        second = PendingOperationGuard("user:5")
        third = PendingOperationGuard("user:5")

        with first.hold() as acquired:
            assert acquired is True
            cache.delete(first.key)  # lock timed out while the store call ran
            assert second.acquire() is True

        assert second.owns() is True
        assert third.acquire() is False
        second.release()
        assert third.acquire() is True
        third.release()


# ======================
# Notifiers
# ======================

def _request(method="get", data=None):
    factory = RequestFactory()
    request = getattr(factory, method)("/staff/", data or {})
    request.session = SessionStore()
    request._messages = FallbackStorage(request)
    return request


class TestRequestNotifier:
    def test_notify_adds_message_with_level(self):
        request = _request()
        RequestNotifier(request).notify("success", "Success!", "Staff has been added.")

        stored = list(get_messages(request))
        assert [str(m) for m in stored] == ["Success! Staff has been added."]
        assert "success" in stored[0].tags

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError):
            RequestNotifier(_request()).notify("fatal", "x", "y")

    def test_confirm_reads_posted_answer(self):
        assert RequestNotifier(_request("post", {"confirm": "yes"})).confirm("t", "m") is True
        assert RequestNotifier(_request("post", {"confirm": "no"})).confirm("t", "m") is False
        assert RequestNotifier(_request("post")).confirm("t", "m") is False
        assert RequestNotifier(_request("get", {"confirm": "yes"})).confirm("t", "m") is False


def test_recording_notifier():
    notifier = RecordingNotifier(confirm_answer=False)
    notifier.notify("warning", "Please wait", "busy")
    assert notifier.kinds() == ["warning"]
    assert notifier.confirm("t", "m") is False
    assert notifier.prompts == [("t", "m")]


# ======================
# Logging filter
# ======================

def _record(name, level):
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


def test_retry_noise_filter():
    f = StoreRetryNoiseFilter()
    assert f.filter(_record("google.api_core.retry", logging.DEBUG)) is False
    assert f.filter(_record("google.api_core.retry", logging.WARNING)) is True
    assert f.filter(_record("staff.gateway", logging.INFO)) is True


# ======================
# seed_demo command
# ======================

class SeedDemoCommandTests(TestCase):
    def test_seeds_departments_courses_and_staff(self):
        store = fresh_process_store()
        out = StringIO()

        call_command("seed_demo", stdout=out)

        assert [d for d, _ in store.list_documents("Departments")] == ["Board Courses", "Non-Board Courses"]
        assert len(store.list_documents("Departments/Board Courses/Courses")) == 3
        assert len(store.list_documents("Staff")) == 2
        assert "Demo data written." in out.getvalue()

    def test_no_staff_option(self):
        store = fresh_process_store()
        call_command("seed_demo", "--no-staff", stdout=StringIO())
        assert store.list_documents("Staff") == []


@override_settings(DOCUMENT_STORE_BACKEND="memory")
class ManagerRequiredTests(TestCase):
    def test_superuser_allowed(self):
        from django.contrib.auth import get_user_model

        admin = get_user_model().objects.create_superuser("root", "root@example.com", "pass-1234-xyz")
        self.client.force_login(admin)
        fresh_process_store()
        r = self.client.get("/schedule/")
        self.assertEqual(r.status_code, 200)
