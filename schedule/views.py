# schedule/views.py
from __future__ import annotations

import logging

from django.conf import settings as dj_settings
from django.http import Http404
from django.shortcuts import render

from core.decorators import manager_required
from core.errors import FetchError
from core.store import get_document_store
from .loader import find_course, load_schedule_courses

logger = logging.getLogger(__name__)


def _schedule_departments() -> list[str]:
    return list(getattr(dj_settings, "SCHEDULE_DEPARTMENTS", None) or [])


def _load_courses():
    try:
        return load_schedule_courses(get_document_store(), _schedule_departments())
    except FetchError:
        logger.exception("Error fetching courses")
        return []


@manager_required
def course_grid(request):
    return render(request, "schedule/course_grid.html", {"courses": _load_courses()})


@manager_required
def course_detail(request, course_id: str):
    course = find_course(_load_courses(), course_id)
    if course is None:
        raise Http404("Course not found.")

    attributes = sorted(
        (str(k), v) for k, v in course.attributes.items() if k != "name"
    )
    return render(
        request,
        "schedule/course_detail.html",
        {"course": course, "attributes": attributes},
    )
