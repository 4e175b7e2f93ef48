from __future__ import annotations

from functools import wraps
from typing import Callable, Any

from django.contrib.auth.decorators import login_required
from django.core.exceptions import PermissionDenied


def _has_panel_access(user) -> bool:
    return bool(getattr(user, "is_superuser", False) or getattr(user, "is_staff", False))


def manager_required(view_func: Callable[..., Any]):
    """
    Admin panel pages: login first, then staff or superuser only.
    """
    @login_required
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        if _has_panel_access(request.user):
            return view_func(request, *args, **kwargs)
        raise PermissionDenied("Your account does not have access to the admin panel.")

    return _wrapped
