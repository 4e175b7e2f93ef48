from unittest.mock import patch

import pytest
from django.test import TestCase, override_settings
from django.urls import reverse

from core.errors import FetchError, StoreError
from core.store import MemoryDocumentStore
from core.tests_utils import FailingStore, fresh_process_store, make_manager, seed_store
from schedule.loader import find_course, load_schedule_courses


SCHEDULE_SEED = {
    "Board Courses": {
        "BSN": {"name": "Bachelor of Science in Nursing", "room": "N-101"},
        "BSCrim": {"name": "Bachelor of Science in Criminology"},
    },
    "Non-Board Courses": {
        "BSIT": {"name": "Bachelor of Science in Information Technology"},
    },
    "Library": {
        "LIB": {"name": "Not on the schedule screen"},
    },
}


# ======================
# Loader
# ======================

class TestLoadScheduleCourses:
    def test_concatenates_departments_in_order(self):
        store = MemoryDocumentStore()
        seed_store(store, departments=SCHEDULE_SEED)

        courses = load_schedule_courses(store, ["Non-Board Courses", "Board Courses"])

        assert [c.id for c in courses] == ["BSIT", "BSN", "BSCrim"]
        assert courses[0].department_id == "Non-Board Courses"
        assert courses[1].name == "Bachelor of Science in Nursing"

    def test_department_without_courses(self):
        store = MemoryDocumentStore()
        assert load_schedule_courses(store, ["Board Courses"]) == []

    def test_failure_returns_nothing_partial(self):
        store = MemoryDocumentStore()
        seed_store(store, departments=SCHEDULE_SEED)
        failing = FailingStore(store, {"list_documents": {"Departments/Non-Board Courses/Courses"}})

        with pytest.raises(FetchError) as info:
            load_schedule_courses(failing, ["Board Courses", "Non-Board Courses"])

        assert info.value.path == "Departments/Non-Board Courses/Courses"
        assert [path for _, path in failing.calls] == [
            "Departments/Board Courses/Courses",
            "Departments/Non-Board Courses/Courses",
        ]

    def test_find_course(self):
        store = MemoryDocumentStore()
        seed_store(store, departments=SCHEDULE_SEED)
        courses = load_schedule_courses(store, ["Board Courses"])

        assert find_course(courses, "BSCrim").department_id == "Board Courses"
        assert find_course(courses, "BSIT") is None


# ======================
# Views
# ======================

@override_settings(SCHEDULE_DEPARTMENTS=["Board Courses", "Non-Board Courses"])
class ScheduleViewTests(TestCase):
    def setUp(self):
        self.store = fresh_process_store()
        seed_store(self.store, departments=SCHEDULE_SEED)
        self.client.force_login(make_manager())

    def test_grid_lists_configured_departments_only(self):
        r = self.client.get(reverse("schedule:course_grid"))

        self.assertEqual(r.status_code, 200)
        self.assertEqual([c.id for c in r.context["courses"]], ["BSN", "BSCrim", "BSIT"])
        self.assertContains(r, "Bachelor of Science in Criminology")
        self.assertNotContains(r, "Not on the schedule screen")
        self.assertContains(r, reverse("schedule:course_detail", args=["BSIT"]))

    def test_grid_fetch_failure_renders_empty(self):
        with patch.object(self.store, "list_documents", side_effect=StoreError("down")):
            with self.assertLogs("schedule.views", level="ERROR"):
                r = self.client.get(reverse("schedule:course_grid"))

        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.context["courses"], [])
        self.assertContains(r, "No courses found.")

    def test_course_detail(self):
        r = self.client.get(reverse("schedule:course_detail", args=["BSN"]))

        self.assertEqual(r.status_code, 200)
        self.assertContains(r, "Bachelor of Science in Nursing")
        self.assertContains(r, "N-101")
        self.assertEqual(r.context["attributes"], [("room", "N-101")])

    def test_unknown_course_is_404(self):
        r = self.client.get(reverse("schedule:course_detail", args=["LIB"]))
        self.assertEqual(r.status_code, 404)

    def test_requires_login(self):
        self.client.logout()
        r = self.client.get(reverse("schedule:course_grid"))
        self.assertEqual(r.status_code, 302)
