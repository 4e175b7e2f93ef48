# staff/forms.py
from __future__ import annotations

from django import forms

from .records import GENDERS, POSITIONS, FORM_FIELDS, StaffSnapshot, course_options


def _choices(placeholder: str, values) -> list[tuple[str, str]]:
    return [("", placeholder)] + [(v, v) for v in values]


class StaffForm(forms.Form):
    """
    Input side of the staff screen: presence checks happen here, before the
    gateway is ever called.

    Field names are the stored document field names.
    """

    firstName = forms.CharField(label="First Name", max_length=100)
    lastName = forms.CharField(label="Last Name", max_length=100)
    address = forms.CharField(label="Address", max_length=255)
    mobileNumber = forms.CharField(label="Mobile Number", max_length=30)
    gender = forms.ChoiceField(label="Gender", choices=_choices("Select Gender", GENDERS))
    position = forms.ChoiceField(label="Position", choices=_choices("Select Position", POSITIONS))
    department = forms.ChoiceField(label="Department", choices=())
    course = forms.ChoiceField(label="Course", choices=(), required=False)

    def __init__(self, *args, snapshot: StaffSnapshot | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.snapshot = snapshot or StaffSnapshot.empty()

        self.fields["department"].choices = _choices("Select Department", self.snapshot.department_ids())

        options = course_options(self.snapshot, self.selected_department())
        self.fields["course"].choices = _choices("Select Course", [c.id for c in options])
        if not options:
            self.fields["course"].widget.attrs["disabled"] = "disabled"

        for name in ("firstName", "lastName", "address", "mobileNumber"):
            self.fields[name].widget.attrs.setdefault("placeholder", self.fields[name].label)

    def selected_department(self) -> str:
        if self.is_bound:
            return (self.data.get(self.add_prefix("department")) or "").strip()
        return str(self.initial.get("department") or "")

    def raw_values(self) -> dict[str, str]:
        """What the user typed, valid or not (kept as the form buffer)."""
        if not self.is_bound:
            return {name: str(self.initial.get(name) or "") for name in FORM_FIELDS}
        return {name: str(self.data.get(self.add_prefix(name)) or "") for name in FORM_FIELDS}

    def clean(self):
        cleaned = super().clean()
        department = cleaned.get("department")
        if not department:
            return cleaned

        options = course_options(self.snapshot, department)
        course = cleaned.get("course") or ""
        if options and not course:
            self.add_error("course", "Select a course for this department.")
        elif not options and course:
            self.add_error("course", "This department has no courses.")
        cleaned["course"] = course
        return cleaned
