from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from django.contrib import messages

SUCCESS = "success"
ERROR = "error"
WARNING = "warning"
INFO = "info"

_LEVELS = {
    SUCCESS: messages.SUCCESS,
    ERROR: messages.ERROR,
    WARNING: messages.WARNING,
    INFO: messages.INFO,
}


class Notifier(Protocol):
    def notify(self, kind: str, title: str, message: str) -> None:
        raise NotImplementedError

    def confirm(self, title: str, message: str) -> bool:
        raise NotImplementedError


class RequestNotifier:
    """
    Shows notifications through django.contrib.messages.

    The yes/no prompt itself is a confirmation page; confirm() reads the
    answer the user posted back from it.
    """

    CONFIRM_FIELD = "confirm"
    CONFIRM_YES = "yes"

    def __init__(self, request) -> None:
        self.request = request

    def notify(self, kind: str, title: str, message: str) -> None:
        level = _LEVELS.get(kind)
        if level is None:
            raise ValueError(f"Unknown notification kind: {kind!r}")
        messages.add_message(self.request, level, f"{title} {message}".strip(), extra_tags=kind)

    def confirm(self, title: str, message: str) -> bool:
        if self.request.method != "POST":
            return False
        return (self.request.POST.get(self.CONFIRM_FIELD) or "").strip().lower() == self.CONFIRM_YES


@dataclass
class Notification:
    kind: str
    title: str
    message: str


@dataclass
class RecordingNotifier:
    """Collects notifications in memory; confirm() answers with ``confirm_answer``."""

    confirm_answer: bool = True
    notifications: list[Notification] = field(default_factory=list)
    prompts: list[tuple[str, str]] = field(default_factory=list)

    def notify(self, kind: str, title: str, message: str) -> None:
        if kind not in _LEVELS:
            raise ValueError(f"Unknown notification kind: {kind!r}")
        self.notifications.append(Notification(kind, title, message))

    def confirm(self, title: str, message: str) -> bool:
        self.prompts.append((title, message))
        return self.confirm_answer

    def kinds(self) -> list[str]:
        return [n.kind for n in self.notifications]
