"""Firebase Admin app used for push delivery of appointment notifications."""

import json
from pathlib import Path

import firebase_admin
from firebase_admin import credentials
from structlog import get_logger

logger = get_logger(__name__)

_firebase_app: firebase_admin.App | None = None


def _load_credentials(
    credentials_path: str | None, config_json: str | None
) -> credentials.Certificate | None:
    if config_json:
        return credentials.Certificate(json.loads(config_json))
    if credentials_path:
        path = Path(credentials_path)
        if not path.is_file():
            raise FileNotFoundError(f"Firebase credentials not found at {path}")
        return credentials.Certificate(str(path))
    return None


def initialize_firebase(
    credentials_path: str | None = None,
    config_json: str | None = None,
) -> bool:
    """
    Set up the Firebase app from a service account.

    The raw JSON wins over the file path. Without either, push delivery stays
    off: notifications are still stored and listed, only the FCM send is
    skipped. A broken service account is logged and treated the same way.

    Returns:
        Whether push delivery is available
    """
    global _firebase_app

    if _firebase_app is not None:
        return True

    try:
        cred = _load_credentials(credentials_path, config_json)
    except (OSError, ValueError) as e:
        logger.warning("push_delivery_disabled", reason="invalid_credentials", error=str(e))
        return False

    if cred is None:
        logger.info("push_delivery_disabled", reason="no_firebase_credentials")
        return False

    try:
        _firebase_app = firebase_admin.initialize_app(cred)
    except ValueError as e:
        logger.warning("push_delivery_disabled", reason="firebase_init_failed", error=str(e))
        return False

    logger.info("firebase_initialized", project_id=_firebase_app.project_id)
    return True


def shutdown_firebase() -> None:
    global _firebase_app

    if _firebase_app is not None:
        firebase_admin.delete_app(_firebase_app)
        _firebase_app = None


def is_firebase_initialized() -> bool:
    """Whether push delivery has a usable Firebase app."""
    return _firebase_app is not None
