import base64
import json
import logging
import os

import firebase_admin
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from firebase_admin import credentials, firestore

logger = logging.getLogger(__name__)


def _load_credentials():
    firebase_base64 = os.getenv("FIREBASE_CREDENTIALS_BASE64")

    if firebase_base64:
        try:
            cred_json = json.loads(base64.b64decode(firebase_base64))
        except (ValueError, TypeError) as e:
            raise ImproperlyConfigured("FIREBASE_CREDENTIALS_BASE64 is not valid base64 JSON.") from e
        return credentials.Certificate(cred_json)

    key_path = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
    if key_path and os.path.exists(key_path):
        return credentials.Certificate(key_path)

    # Emulator / workload identity: no key file, only a project id.
    if getattr(settings, "FIREBASE_PROJECT_ID", ""):
        return None

    raise ImproperlyConfigured("Missing Firebase credentials.")


def get_firestore_client():
    if not firebase_admin._apps:
        cred = _load_credentials()
        options = {}
        project_id = getattr(settings, "FIREBASE_PROJECT_ID", "")
        if project_id:
            options["projectId"] = project_id

        if cred is None:
            firebase_admin.initialize_app(options=options)
        else:
            firebase_admin.initialize_app(cred, options or None)
        logger.info("Firebase app initialized (project=%s).", project_id or "from credentials")

    return firestore.client()
