from django.core.management.base import BaseCommand, CommandError

from core.errors import StoreError
from core.store import get_document_store, collection_path
from staff.records import COURSES_COLLECTION, DEPARTMENTS_COLLECTION, STAFF_COLLECTION

DEMO_DEPARTMENTS = {
    "Board Courses": {
        "BSN": {"name": "Bachelor of Science in Nursing"},
        "BSCrim": {"name": "Bachelor of Science in Criminology"},
        "BEEd": {"name": "Bachelor of Elementary Education"},
    },
    "Non-Board Courses": {
        "BSIT": {"name": "Bachelor of Science in Information Technology"},
        "BSBA": {"name": "Bachelor of Science in Business Administration"},
    },
}

DEMO_STAFF = [
    {
        "firstName": "Maria",
        "lastName": "Santos",
        "gender": "Female",
        "address": "12 Rizal St.",
        "mobileNumber": "09171234567",
        "position": "Department Head",
        "department": "Board Courses",
        "course": "BSN",
    },
    {
        "firstName": "Jose",
        "lastName": "Reyes",
        "gender": "Male",
        "address": "4 Mabini Ave.",
        "mobileNumber": "09181234567",
        "position": "Teacher",
        "department": "Non-Board Courses",
        "course": "BSIT",
    },
]


class Command(BaseCommand):
    help = "Writes demo departments, courses and staff into the configured document store"

    def add_arguments(self, parser):
        parser.add_argument(
            "--no-staff",
            action="store_true",
            help="Only write departments and courses.",
        )

    def handle(self, *args, **options):
        store = get_document_store()
        if store.backend == "memory":
            self.stdout.write(self.style.WARNING(
                "Document store backend is 'memory': data lives only in this process."
            ))

        try:
            for dept_id, courses in DEMO_DEPARTMENTS.items():
                store.set_document(DEPARTMENTS_COLLECTION, dept_id, {"name": dept_id})
                path = collection_path(DEPARTMENTS_COLLECTION, dept_id, COURSES_COLLECTION)
                for course_id, data in courses.items():
                    store.set_document(path, course_id, data)
                self.stdout.write(f"Department {dept_id}: {len(courses)} courses")

            if not options["no_staff"]:
                for member in DEMO_STAFF:
                    doc_id = store.create_document(STAFF_COLLECTION, member)
                    self.stdout.write(f"Staff {member['firstName']} {member['lastName']} -> {doc_id}")
        except StoreError as e:
            raise CommandError(f"Seeding failed: {e}") from e

        self.stdout.write(self.style.SUCCESS("Demo data written."))
