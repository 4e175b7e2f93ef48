from __future__ import annotations

import logging


class StoreRetryNoiseFilter(logging.Filter):
    """Suppress google.api_core retry chatter below WARNING.

    Firestore calls are retried by the client library; each attempt logs at
    DEBUG/INFO. The final outcome is logged by our own code, so the console
    only needs that.
    """

    _NOISY_LOGGERS = (
        "google.api_core.retry",
        "google.api_core.bidi",
        "google.auth",
    )

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        try:
            if record.levelno >= logging.WARNING:
                return True
            return not record.name.startswith(self._NOISY_LOGGERS)
        except Exception:
            # Never break logging.
            return True
