import logging
import os

from django.apps import AppConfig
from django.conf import settings

logger = logging.getLogger(__name__)


class CoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core"

    def ready(self) -> None:
        """
        Report which document store backend this process will use.

        - memory: nothing to check.
        - firestore: warn early when no credentials are configured, instead
          of failing on the first page load.
        """
        backend = getattr(settings, "DOCUMENT_STORE_BACKEND", "memory")

        if backend != "firestore":
            logger.info("Firebase integration is disabled (document store backend: %s).", backend)
            return

        creds = (
            os.getenv("FIREBASE_CREDENTIALS_BASE64")
            or os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
            or getattr(settings, "FIREBASE_PROJECT_ID", "")
        )
        if not creds:
            logger.warning(
                "Firestore backend selected but no Firebase credentials are configured. "
                "Pages will fail to load data until they are."
            )
