from __future__ import annotations

import logging
import secrets
from contextlib import contextmanager
from typing import Iterator

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)

PENDING_CACHE_KEY = "pending:mutation:{}"
DEFAULT_LOCK_SECONDS = 30


class PendingOperationGuard:
    """
    One outstanding mutation per owner.

    The staff views use ``user:<pk>`` as the owner, so every tab and device
    of one user shares a single lock.

    cache.add() is atomic, so a second submit/delete arriving while the
    first is still talking to the store finds the key and is turned away.
    The timeout frees a lock left behind by a crashed worker. Each guard
    stores its own token and only deletes the key while it still holds it.
    """

    def __init__(self, owner: str, *, timeout: int | None = None) -> None:
        self.key = PENDING_CACHE_KEY.format(owner or "anonymous")
        if timeout is None:
            timeout = getattr(settings, "STAFF_MUTATION_LOCK_SECONDS", DEFAULT_LOCK_SECONDS)
        self.timeout = max(1, int(timeout))
        self.token = secrets.token_hex(8)

    def acquire(self) -> bool:
        return bool(cache.add(self.key, self.token, timeout=self.timeout))

    def owns(self) -> bool:
        return cache.get(self.key) == self.token

    def release(self) -> None:
        # After expiry the key may belong to someone else.
        if self.owns():
            cache.delete(self.key)
        else:
            logger.warning("Pending-mutation lock %s expired before release", self.key)

    def is_pending(self) -> bool:
        return cache.get(self.key) is not None

    @contextmanager
    def hold(self) -> Iterator[bool]:
        acquired = self.acquire()
        if not acquired:
            logger.debug("Mutation rejected, another one is pending (%s)", self.key)
        try:
            yield acquired
        finally:
            if acquired:
                self.release()
