# staff/views.py
from __future__ import annotations

import logging

from django.conf import settings as dj_settings
from django.contrib import messages
from django.core.paginator import Paginator
from django.http import Http404
from django.shortcuts import redirect, render
from django.urls import reverse
from django.views.decorators.http import require_POST

from core.decorators import manager_required
from core.locks import PendingOperationGuard
from core.notify import RequestNotifier
from core.store import get_document_store

from .forms import StaffForm
from .gateway import DELETE_CONFIRM_MESSAGE, DELETE_CONFIRM_TITLE
from .records import StaffRecord
from .search import SORTABLE_COLUMNS, sort_staff
from .workflow import StaffWorkflow, WorkflowState

logger = logging.getLogger(__name__)

SESSION_KEY = "staff_workflow"

COLUMNS = [
    ("firstName", "First Name"),
    ("lastName", "Last Name"),
    ("position", "Position"),
    ("department", "Department"),
    ("course", "Course"),
]


# ======================
# helpers
# ======================

def _workflow(request) -> StaffWorkflow:
    return StaffWorkflow(
        get_document_store(),
        RequestNotifier(request),
        state=WorkflowState.from_session(request.session.get(SESSION_KEY)),
        guard=PendingOperationGuard(f"user:{request.user.pk}"),
    )


def _remember(request, workflow: StaffWorkflow) -> None:
    request.session[SESSION_KEY] = workflow.state.to_session()


def _courses_by_department(workflow: StaffWorkflow) -> dict[str, list[str]]:
    return {
        dept_id: [c.id for c in courses]
        for dept_id, courses in workflow.snapshot.courses_by_department.items()
    }


def _page_size() -> int:
    try:
        return max(1, int(getattr(dj_settings, "STAFF_PAGE_SIZE", 10)))
    except Exception:
        return 10


def _render_screen(request, workflow: StaffWorkflow, form: StaffForm):
    workflow.query = request.GET.get("q") or ""

    sort = (request.GET.get("sort") or "").strip()
    if sort not in SORTABLE_COLUMNS:
        sort = ""
    descending = (request.GET.get("dir") or "").lower() == "desc"

    rows = sort_staff(workflow.visible_staff(), sort, descending)
    page = Paginator(rows, _page_size()).get_page(request.GET.get("page"))

    editing = workflow.is_editing
    return render(
        request,
        "staff/staff_list.html",
        {
            "form": form,
            "page": page,
            "columns": COLUMNS,
            "query": workflow.query,
            "sort": sort,
            "dir": "desc" if descending else "asc",
            "editing": editing,
            "editing_target": workflow.editing_target,
            "title": "Edit Staff" if editing else "Add Staff",
            "submit_label": "Update Staff" if editing else "Add Staff",
            "courses_by_department": _courses_by_department(workflow),
        },
    )


# ======================
# Staff Management
# ======================

@manager_required
def staff_list(request):
    workflow = _workflow(request)
    workflow.reload()

    if request.method == "POST":
        form = StaffForm(request.POST, snapshot=workflow.snapshot)
        workflow.update_form(form.raw_values())
        if form.is_valid():
            workflow.submit({name: form.cleaned_data.get(name) or "" for name in form.fields})
            _remember(request, workflow)
            return redirect("staff:list")
        messages.error(request, "Please correct the errors.")
        _remember(request, workflow)
        return _render_screen(request, workflow, form)

    form = StaffForm(initial=workflow.form, snapshot=workflow.snapshot)
    return _render_screen(request, workflow, form)


@manager_required
def staff_edit(request, pk: str):
    workflow = _workflow(request)
    workflow.reload()
    record = workflow.find(pk)
    if record is None:
        messages.error(request, "Staff member not found.")
        return redirect("staff:list")

    workflow.start_edit(record)
    _remember(request, workflow)
    return redirect(f"{reverse('staff:list')}#top")


@manager_required
@require_POST
def staff_reset(request):
    workflow = _workflow(request)
    workflow.reset()
    _remember(request, workflow)
    return redirect("staff:list")


@manager_required
def staff_delete(request, pk: str):
    workflow = _workflow(request)
    workflow.reload()
    record = workflow.find(pk)

    if request.method == "POST":
        # Gone already (or never loaded): let the store report it.
        workflow.delete(record or StaffRecord(id=pk))
        return redirect("staff:list")

    if record is None:
        raise Http404("Staff member not found.")

    return render(
        request,
        "staff/staff_confirm_delete.html",
        {
            "record": record,
            "confirm_title": DELETE_CONFIRM_TITLE,
            "confirm_message": DELETE_CONFIRM_MESSAGE,
        },
    )
