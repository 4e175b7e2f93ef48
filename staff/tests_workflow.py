import pytest
from unittest.mock import MagicMock

from django.core.cache import cache

from core.errors import FetchError
from core.locks import PendingOperationGuard
from core.notify import RecordingNotifier
from core.store import MemoryDocumentStore
from core.tests_utils import FailingStore, seed_store, staff_fields
from staff.forms import StaffForm
from staff.gateway import MutationGateway, staff_payload
from staff.loader import load_staff_snapshot
from staff.records import StaffRecord, StaffSnapshot, course_options, empty_form
from staff.search import filter_staff, record_matches, sort_staff
from staff.workflow import StaffWorkflow, WorkflowState


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def seeded():
    return seed_store(
        MemoryDocumentStore(),
        staff={
            "maria": staff_fields(firstName="Maria", lastName="Santos", position="Department Head"),
            "jose": staff_fields(
                firstName="Jose",
                lastName="Reyes",
                department="Non-Board Courses",
                course="BSIT",
            ),
        },
    )


# ======================
# Data Loader
# ======================

class TestLoader:
    def test_empty_store_gives_empty_snapshot(self):
        snapshot = load_staff_snapshot(MemoryDocumentStore())
        assert snapshot.staff == ()
        assert snapshot.departments == ()
        assert dict(snapshot.courses_by_department) == {}

    def test_loads_staff_departments_and_courses(self, seeded):
        snapshot = load_staff_snapshot(seeded.store)

        assert {r.id for r in snapshot.staff} == set(seeded.staff_ids.values())
        assert snapshot.department_ids() == ["Board Courses", "Non-Board Courses", "Library"]
        assert [c.id for c in snapshot.courses_by_department["Board Courses"]] == ["BSN", "BSCrim"]
        assert snapshot.courses_by_department["Library"] == ()

        maria = snapshot.find_staff(seeded.staff_ids["maria"])
        assert maria.first_name == "Maria"
        assert maria.mobile_number == "1"

    def test_missing_fields_become_empty_strings(self):
        store = MemoryDocumentStore()
        doc_id = store.create_document("Staff", {"firstName": "Only"})
        record = load_staff_snapshot(store).find_staff(doc_id)
        assert record.first_name == "Only"
        assert record.course == ""
        assert record.department == ""

    def test_first_failure_aborts_remaining_reads(self, seeded):
        store = FailingStore(seeded.store, {"list_documents": {"Staff"}})
        with pytest.raises(FetchError) as exc:
            load_staff_snapshot(store)
        assert exc.value.path == "Staff"
        assert store.calls == [("list_documents", "Staff")]

    def test_course_failure_mid_iteration_raises(self, seeded):
        failing_path = "Departments/Non-Board Courses/Courses"
        store = FailingStore(seeded.store, {"list_documents": {failing_path}})
        with pytest.raises(FetchError) as exc:
            load_staff_snapshot(store)
        assert exc.value.path == failing_path
        assert ("list_documents", "Departments/Library/Courses") not in store.calls


# ======================
# Filter / Search
# ======================

def _records():
    return (
        StaffRecord(id="1", first_name="Maria", last_name="Santos", position="Teacher",
                    department="Board Courses", course="BSN"),
        StaffRecord(id="2", first_name="Jose", last_name="Reyes", position="Registrar",
                    department="Non-Board Courses", course="BSIT"),
        StaffRecord(id="3", first_name="Ana", last_name="Cruz", position="Admin",
                    department="Library", course="", address="Teacher Village"),
    )


class TestSearch:
    def test_empty_query_returns_input_unchanged(self):
        records = _records()
        assert filter_staff(records, "") is records

    @pytest.mark.parametrize(
        "query, expected",
        [
            ("maria", ["1"]),
            ("REYES", ["2"]),
            ("teacher", ["1"]),
            ("board courses", ["1", "2"]),
            ("bsit", ["2"]),
            ("a", ["1", "2", "3"]),
            ("nobody", []),
        ],
    )
    def test_matches_any_of_five_fields(self, query, expected):
        assert [r.id for r in filter_staff(_records(), query)] == expected

    def test_address_is_not_searched(self):
        assert [r.id for r in filter_staff(_records(), "village")] == []

    def test_agrees_with_field_by_field_check(self):
        records = _records()
        for query in ("a", "s", "o", "bs", "Non", "x", "Ad"):
            expected = [
                r for r in records
                if any(query.lower() in v.lower()
                       for v in (r.first_name, r.last_name, r.position, r.department, r.course))
            ]
            assert list(filter_staff(records, query)) == expected
            assert all(record_matches(r, query) for r in expected)

    def test_same_inputs_give_same_object(self):
        records = _records()
        assert filter_staff(records, "bs") is filter_staff(records, "bs")
        assert filter_staff(list(records), "bs") is filter_staff(records, "bs")

    def test_new_records_are_not_served_stale(self):
        records = _records()
        first = filter_staff(records, "ana")
        updated = records[:2] + (StaffRecord(id="3", first_name="Anabel"),)
        assert [r.first_name for r in filter_staff(updated, "ana")] == ["Anabel"]
        assert [r.first_name for r in first] == ["Ana"]

    def test_sort_by_column(self):
        records = _records()
        assert [r.id for r in sort_staff(records, "lastName")] == ["3", "2", "1"]
        assert [r.id for r in sort_staff(records, "firstName", descending=True)] == ["1", "2", "3"]
        assert [r.id for r in sort_staff(records, "address")] == ["1", "2", "3"]


# ======================
# Mutation Gateway
# ======================

def _gateway(store, notifier=None, guard=None):
    reload = MagicMock(name="reload")
    notifier = notifier or RecordingNotifier()
    return MutationGateway(store, notifier, reload=reload, guard=guard), notifier, reload


class TestGateway:
    def test_create_adds_one_record(self, seeded):
        gateway, notifier, reload = _gateway(seeded.store)
        on_saved = MagicMock()
        before = len(seeded.store.list_documents("Staff"))

        assert gateway.save(staff_fields(), None, on_saved=on_saved) is True

        docs = seeded.store.list_documents("Staff")
        assert len(docs) == before + 1
        new_id, data = docs[-1]
        assert new_id not in seeded.staff_ids.values()
        assert data == staff_fields()
        assert notifier.notifications[-1].message == "Staff has been added."
        on_saved.assert_called_once()
        reload.assert_called_once()

    def test_update_overwrites_fields_and_keeps_id(self, seeded):
        gateway, notifier, reload = _gateway(seeded.store)
        target = StaffRecord(id=seeded.staff_ids["jose"])

        assert gateway.save(staff_fields(firstName="Joseph", address="Elsewhere"), target) is True

        docs = dict(seeded.store.list_documents("Staff"))
        assert len(docs) == 2
        assert docs[target.id]["firstName"] == "Joseph"
        assert docs[target.id]["address"] == "Elsewhere"
        assert notifier.notifications[-1].message == "Staff has been updated."
        reload.assert_called_once()

    def test_payload_never_contains_id(self):
        payload = staff_payload({**staff_fields(), "id": "abc"})
        assert "id" not in payload
        assert set(payload) == set(empty_form())

    def test_create_failure_notifies_and_skips_reload(self, seeded):
        store = FailingStore(seeded.store, {"create_document": None})
        gateway, notifier, reload = _gateway(store)
        on_saved = MagicMock()

        assert gateway.save(staff_fields(), None, on_saved=on_saved) is False

        assert notifier.kinds() == ["error"]
        assert notifier.notifications[0].message == "There was an error saving the staff data."
        on_saved.assert_not_called()
        reload.assert_not_called()
        assert len(seeded.store.list_documents("Staff")) == 2

    def test_update_of_missing_record_is_an_error(self, seeded):
        gateway, notifier, reload = _gateway(seeded.store)
        assert gateway.save(staff_fields(), StaffRecord(id="missing")) is False
        assert notifier.kinds() == ["error"]
        reload.assert_not_called()

    def test_delete_declined_does_nothing(self, seeded):
        gateway, notifier, reload = _gateway(seeded.store, RecordingNotifier(confirm_answer=False))
        record = StaffRecord(id=seeded.staff_ids["maria"])

        assert gateway.delete(record) is False

        assert notifier.prompts == [("Are you sure?", "You will not be able to recover this staff member!")]
        assert notifier.notifications == []
        reload.assert_not_called()
        assert len(seeded.store.list_documents("Staff")) == 2

    def test_delete_confirmed_removes_record(self, seeded):
        gateway, notifier, reload = _gateway(seeded.store)
        record = StaffRecord(id=seeded.staff_ids["maria"])

        assert gateway.delete(record) is True

        ids = [doc_id for doc_id, _ in seeded.store.list_documents("Staff")]
        assert record.id not in ids
        assert notifier.notifications[-1].title == "Deleted!"
        reload.assert_called_once()

    def test_delete_missing_record_surfaces_error(self, seeded):
        gateway, notifier, reload = _gateway(seeded.store)

        assert gateway.delete(StaffRecord(id="does-not-exist")) is False

        assert notifier.kinds() == ["error"]
        assert notifier.notifications[0].message == "There was an error deleting the staff member."
        reload.assert_not_called()
        assert len(seeded.store.list_documents("Staff")) == 2

    def test_overlapping_mutation_is_rejected(self, seeded):
        guard = PendingOperationGuard("user:42")
        gateway, notifier, reload = _gateway(seeded.store, guard=guard)

        assert guard.acquire() is True  # first operation still outstanding
        try:
            assert gateway.save(staff_fields(), None) is False
            assert gateway.delete(StaffRecord(id=seeded.staff_ids["maria"])) is False
        finally:
            guard.release()

        assert notifier.kinds() == ["warning", "warning"]
        assert len(seeded.store.list_documents("Staff")) == 2
        reload.assert_not_called()

    def test_guard_released_after_failure(self, seeded):
        guard = PendingOperationGuard("user:7")
        store = FailingStore(seeded.store, {"create_document": None})
        gateway, _, _ = _gateway(store, guard=guard)

        gateway.save(staff_fields(), None)

        assert guard.is_pending() is False


# ======================
# Edit / Create workflow
# ======================

class TestWorkflow:
    def test_starts_in_create_mode(self):
        workflow = StaffWorkflow(MemoryDocumentStore(), RecordingNotifier())
        assert workflow.is_editing is False
        assert workflow.editing_target is None
        assert workflow.form == empty_form()

    def test_create_scenario(self):
        store = MemoryDocumentStore()
        workflow = StaffWorkflow(store, RecordingNotifier())
        workflow.reload()

        assert workflow.submit(staff_fields()) is True

        assert len(workflow.snapshot.staff) == 1
        assert workflow.snapshot.staff[0].to_document() == staff_fields()
        assert workflow.form == empty_form()

    def test_start_edit_loads_record(self, seeded):
        workflow = StaffWorkflow(seeded.store, RecordingNotifier())
        workflow.reload()
        record = workflow.find(seeded.staff_ids["jose"])

        workflow.start_edit(record)

        assert workflow.is_editing is True
        assert workflow.editing_target == record
        assert workflow.form["firstName"] == "Jose"
        assert workflow.form["course"] == "BSIT"

    def test_submit_in_edit_mode_updates_and_returns_to_create(self, seeded):
        workflow = StaffWorkflow(seeded.store, RecordingNotifier())
        workflow.reload()
        record = workflow.find(seeded.staff_ids["jose"])
        workflow.start_edit(record)

        assert workflow.submit({"lastName": "Rizal"}) is True

        assert workflow.is_editing is False
        assert workflow.form == empty_form()
        assert len(workflow.snapshot.staff) == 2
        assert workflow.find(record.id).last_name == "Rizal"

    def test_failed_submit_keeps_edit_in_progress(self, seeded):
        store = FailingStore(seeded.store, {"update_document": None})
        workflow = StaffWorkflow(store, RecordingNotifier())
        workflow.reload()
        record = workflow.find(seeded.staff_ids["maria"])
        workflow.start_edit(record)

        assert workflow.submit({"firstName": "Mary"}) is False

        assert workflow.is_editing is True
        assert workflow.state.editing_id == record.id
        assert workflow.form["firstName"] == "Mary"

    def test_failed_create_stays_in_create_mode_with_input(self):
        store = FailingStore(MemoryDocumentStore(), {"create_document": None})
        workflow = StaffWorkflow(store, RecordingNotifier())

        assert workflow.submit(staff_fields(firstName="Keep")) is False

        assert workflow.is_editing is False
        assert workflow.form["firstName"] == "Keep"

    def test_new_edit_discards_previous_unsaved_edit(self, seeded):
        workflow = StaffWorkflow(seeded.store, RecordingNotifier())
        workflow.reload()
        workflow.start_edit(workflow.find(seeded.staff_ids["maria"]))
        workflow.update_form({"firstName": "Unsaved"})

        workflow.start_edit(workflow.find(seeded.staff_ids["jose"]))

        assert workflow.state.editing_id == seeded.staff_ids["jose"]
        assert workflow.form["firstName"] == "Jose"

    @pytest.mark.parametrize("editing", [False, True])
    def test_reset_always_returns_to_empty_create(self, seeded, editing):
        workflow = StaffWorkflow(seeded.store, RecordingNotifier())
        workflow.reload()
        if editing:
            workflow.start_edit(workflow.snapshot.staff[0])
        workflow.update_form({"address": "typed"})

        workflow.reset()

        assert workflow.form == empty_form()
        assert workflow.editing_target is None

    def test_failed_reload_keeps_previous_snapshot(self, seeded):
        notifier = RecordingNotifier()
        workflow = StaffWorkflow(seeded.store, notifier)
        assert workflow.reload() is True
        previous = workflow.snapshot

        workflow.store = FailingStore(seeded.store, {"list_documents": {"Departments/Library/Courses"}})
        assert workflow.reload() is False

        assert workflow.snapshot is previous
        assert notifier.kinds() == ["error"]
        assert notifier.notifications[0].message == "There was an error fetching the data."

    def test_delete_via_workflow_reloads(self, seeded):
        workflow = StaffWorkflow(seeded.store, RecordingNotifier())
        workflow.reload()
        record = workflow.find(seeded.staff_ids["maria"])

        assert workflow.delete(record) is True

        assert workflow.find(record.id) is None
        assert len(workflow.snapshot.staff) == 1

    def test_visible_staff_uses_query(self, seeded):
        workflow = StaffWorkflow(seeded.store, RecordingNotifier())
        workflow.reload()
        workflow.query = "reyes"
        assert [r.first_name for r in workflow.visible_staff()] == ["Jose"]

    def test_course_options_follow_form_department(self, seeded):
        workflow = StaffWorkflow(seeded.store, RecordingNotifier())
        workflow.reload()

        assert workflow.course_options() == []
        workflow.update_form({"department": "Non-Board Courses"})
        assert [c.id for c in workflow.course_options()] == ["BSIT"]
        assert workflow.course_options("Library") == []
        assert workflow.course_options("Unknown") == []

    def test_session_state_round_trip(self):
        state = WorkflowState(form={**empty_form(), "firstName": "A"}, editing_id="abc")
        restored = WorkflowState.from_session(state.to_session())
        assert restored == state

    @pytest.mark.parametrize("raw", [None, "junk", {"form": "junk"}, {}])
    def test_session_state_tolerates_garbage(self, raw):
        state = WorkflowState.from_session(raw)
        assert state.form == empty_form()
        assert state.editing_id is None


# ======================
# Form (input validation)
# ======================

class TestStaffForm:
    def _snapshot(self, seeded):
        return load_staff_snapshot(seeded.store)

    def test_valid_submission(self, seeded):
        form = StaffForm(staff_fields(), snapshot=self._snapshot(seeded))
        assert form.is_valid(), form.errors
        assert form.cleaned_data["course"] == "BSN"

    def test_required_fields(self, seeded):
        form = StaffForm(empty_form(), snapshot=self._snapshot(seeded))
        assert not form.is_valid()
        for name in ("firstName", "lastName", "address", "mobileNumber", "gender", "position", "department"):
            assert name in form.errors

    def test_course_required_when_department_has_courses(self, seeded):
        form = StaffForm(staff_fields(course=""), snapshot=self._snapshot(seeded))
        assert not form.is_valid()
        assert "course" in form.errors

    def test_course_must_belong_to_department(self, seeded):
        form = StaffForm(staff_fields(course="BSIT"), snapshot=self._snapshot(seeded))
        assert not form.is_valid()
        assert "course" in form.errors

    def test_department_without_courses_disables_course(self, seeded):
        snapshot = self._snapshot(seeded)
        form = StaffForm(staff_fields(department="Library", course=""), snapshot=snapshot)

        assert form.is_valid(), form.errors
        assert list(form.fields["course"].choices) == [("", "Select Course")]
        assert form.fields["course"].widget.attrs.get("disabled") == "disabled"
        assert course_options(snapshot, "Library") == []

    def test_unbound_form_without_department_disables_course(self):
        form = StaffForm(initial=empty_form(), snapshot=StaffSnapshot.empty())
        assert form.fields["course"].widget.attrs.get("disabled") == "disabled"

    def test_unknown_gender_rejected(self, seeded):
        form = StaffForm(staff_fields(gender="Robot"), snapshot=self._snapshot(seeded))
        assert not form.is_valid()
        assert "gender" in form.errors

    def test_raw_values_keep_invalid_input(self, seeded):
        form = StaffForm(staff_fields(firstName="", lastName="Typed"), snapshot=self._snapshot(seeded))
        assert form.raw_values()["lastName"] == "Typed"
        assert form.raw_values()["firstName"] == ""
