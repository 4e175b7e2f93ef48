from unittest.mock import patch

from django.core.cache import cache
from django.test import TestCase, override_settings
from django.urls import reverse

from core.errors import StoreError
from core.locks import PendingOperationGuard
from core.tests_utils import fresh_process_store, make_manager, seed_store, staff_fields
from staff.views import SESSION_KEY


class StaffScreenTestBase(TestCase):
    def setUp(self):
        cache.clear()
        self.store = fresh_process_store()
        self.seeded = seed_store(
            self.store,
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
        self.user = make_manager()
        self.client.force_login(self.user)
        self.list_url = reverse("staff:list")

    def staff_docs(self):
        return dict(self.store.list_documents("Staff"))


class StaffAccessTests(TestCase):
    def test_anonymous_redirected_to_login(self):
        r = self.client.get(reverse("staff:list"))
        self.assertEqual(r.status_code, 302)
        self.assertIn(reverse("login"), r["Location"])

    def test_non_staff_user_forbidden(self):
        self.client.force_login(make_manager(is_staff=False))
        r = self.client.get(reverse("staff:list"))
        self.assertEqual(r.status_code, 403)


class StaffListTests(StaffScreenTestBase):
    def test_list_shows_records_and_create_form(self):
        r = self.client.get(self.list_url)
        self.assertEqual(r.status_code, 200)
        self.assertContains(r, "Maria")
        self.assertContains(r, "Reyes")
        self.assertContains(r, "Add Staff")
        self.assertContains(r, 'id="courses-by-department"')

    def test_search_filters_rows(self):
        r = self.client.get(self.list_url, {"q": "bsit"})
        self.assertContains(r, "Jose")
        self.assertNotContains(r, "Maria")

    def test_empty_search_shows_everything(self):
        r = self.client.get(self.list_url, {"q": ""})
        self.assertEqual(len(r.context["page"].object_list), 2)

    def test_sort_by_column(self):
        r = self.client.get(self.list_url, {"sort": "lastName", "dir": "desc"})
        names = [row.last_name for row in r.context["page"].object_list]
        self.assertEqual(names, ["Santos", "Reyes"])

    @override_settings(STAFF_PAGE_SIZE=10)
    def test_pagination(self):
        for i in range(10):
            self.store.create_document("Staff", staff_fields(firstName=f"Person {i}"))
        r = self.client.get(self.list_url, {"page": 2})
        self.assertEqual(len(r.context["page"].object_list), 2)
        self.assertContains(r, "11-12 of 12")

    def test_fetch_failure_shows_error_and_empty_table(self):
        with patch.object(self.store, "list_documents", side_effect=StoreError("down")):
            r = self.client.get(self.list_url)
        self.assertEqual(r.status_code, 200)
        self.assertContains(r, "There was an error fetching the data.")
        self.assertContains(r, "There are no records to display")


class StaffCreateTests(StaffScreenTestBase):
    def test_create_adds_record_and_resets_form(self):
        r = self.client.post(self.list_url, staff_fields(firstName="Ana", lastName="Cruz"), follow=True)

        self.assertRedirects(r, self.list_url)
        self.assertContains(r, "Staff has been added.")
        docs = self.staff_docs()
        self.assertEqual(len(docs), 3)
        self.assertIn(staff_fields(firstName="Ana", lastName="Cruz"), list(docs.values()))
        self.assertIsNone(self.client.session[SESSION_KEY]["editing_id"])
        self.assertEqual(self.client.session[SESSION_KEY]["form"]["firstName"], "")

    def test_invalid_input_never_reaches_store(self):
        r = self.client.post(self.list_url, staff_fields(firstName="", address="Typed address"))

        self.assertEqual(r.status_code, 200)
        self.assertContains(r, "Please correct the errors.")
        self.assertEqual(len(self.staff_docs()), 2)
        self.assertEqual(self.client.session[SESSION_KEY]["form"]["address"], "Typed address")

    def test_department_without_courses_accepts_empty_course(self):
        self.client.post(self.list_url, staff_fields(department="Library", course=""))
        self.assertEqual(len(self.staff_docs()), 3)

    def test_store_failure_keeps_input_for_retry(self):
        with patch.object(self.store, "create_document", side_effect=StoreError("down")):
            r = self.client.post(self.list_url, staff_fields(firstName="Retry"), follow=True)

        self.assertContains(r, "There was an error saving the staff data.")
        self.assertEqual(len(self.staff_docs()), 2)
        self.assertEqual(self.client.session[SESSION_KEY]["form"]["firstName"], "Retry")
        self.assertEqual(r.context["form"].initial["firstName"], "Retry")

    def test_overlapping_submit_is_rejected(self):
        guard = PendingOperationGuard(f"user:{self.user.pk}")
        self.assertTrue(guard.acquire())
        try:
            r = self.client.post(self.list_url, staff_fields(), follow=True)
        finally:
            guard.release()

        self.assertContains(r, "Another change is still being saved.")
        self.assertEqual(len(self.staff_docs()), 2)


class StaffEditTests(StaffScreenTestBase):
    def test_start_edit_loads_record_and_scrolls_to_top(self):
        jose_id = self.seeded.staff_ids["jose"]
        r = self.client.get(reverse("staff:edit", args=[jose_id]))

        self.assertRedirects(r, f"{self.list_url}#top", fetch_redirect_response=False)
        state = self.client.session[SESSION_KEY]
        self.assertEqual(state["editing_id"], jose_id)
        self.assertEqual(state["form"]["course"], "BSIT")

        page = self.client.get(self.list_url)
        self.assertContains(page, "Edit Staff")
        self.assertContains(page, "Update Staff")
        self.assertEqual(page.context["form"].initial["firstName"], "Jose")

    def test_submit_in_edit_mode_updates_in_place(self):
        jose_id = self.seeded.staff_ids["jose"]
        self.client.get(reverse("staff:edit", args=[jose_id]))

        data = staff_fields(firstName="Joseph", department="Non-Board Courses", course="BSIT")
        r = self.client.post(self.list_url, data, follow=True)

        self.assertContains(r, "Staff has been updated.")
        docs = self.staff_docs()
        self.assertEqual(len(docs), 2)
        self.assertEqual(docs[jose_id]["firstName"], "Joseph")
        self.assertIsNone(self.client.session[SESSION_KEY]["editing_id"])

    def test_edit_unknown_record(self):
        r = self.client.get(reverse("staff:edit", args=["nope"]), follow=True)
        self.assertContains(r, "Staff member not found.")

    def test_reset_discards_edit(self):
        self.client.get(reverse("staff:edit", args=[self.seeded.staff_ids["maria"]]))

        r = self.client.post(reverse("staff:reset"))

        self.assertRedirects(r, self.list_url, fetch_redirect_response=False)
        state = self.client.session[SESSION_KEY]
        self.assertIsNone(state["editing_id"])
        self.assertTrue(all(v == "" for v in state["form"].values()))
        self.assertEqual(len(self.staff_docs()), 2)

    def test_reset_requires_post(self):
        r = self.client.get(reverse("staff:reset"))
        self.assertEqual(r.status_code, 405)


class StaffDeleteTests(StaffScreenTestBase):
    def test_get_shows_confirmation(self):
        r = self.client.get(reverse("staff:delete", args=[self.seeded.staff_ids["maria"]]))
        self.assertEqual(r.status_code, 200)
        self.assertContains(r, "Are you sure?")
        self.assertContains(r, "You will not be able to recover this staff member!")

    def test_declined_delete_changes_nothing(self):
        maria_id = self.seeded.staff_ids["maria"]
        r = self.client.post(reverse("staff:delete", args=[maria_id]), {"confirm": "no"}, follow=True)

        self.assertIn(maria_id, self.staff_docs())
        self.assertEqual(list(r.context["messages"]), [])

    def test_confirmed_delete_removes_record(self):
        maria_id = self.seeded.staff_ids["maria"]
        r = self.client.post(reverse("staff:delete", args=[maria_id]), {"confirm": "yes"}, follow=True)

        self.assertContains(r, "Staff member has been deleted.")
        self.assertNotIn(maria_id, self.staff_docs())
        self.assertEqual(len(r.context["page"].object_list), 1)

    def test_delete_missing_record_reports_error(self):
        r = self.client.post(reverse("staff:delete", args=["ghost"]), {"confirm": "yes"}, follow=True)

        self.assertContains(r, "There was an error deleting the staff member.")
        self.assertEqual(len(self.staff_docs()), 2)

    def test_confirmation_page_for_unknown_record_is_404(self):
        r = self.client.get(reverse("staff:delete", args=["ghost"]))
        self.assertEqual(r.status_code, 404)
