"""Configuration settings for the upload server."""

import os
from common.constants import (
    DEFAULT_DATABASE_PATH,
    DEFAULT_STORAGE_ROOT,
    SESSION_TTL_SECONDS,
    SWEEP_INTERVAL_SECONDS,
)


DATABASE_PATH = os.environ.get("UPLOAD_DATABASE_PATH", DEFAULT_DATABASE_PATH)

STORAGE_ROOT = os.environ.get("UPLOAD_STORAGE_ROOT", DEFAULT_STORAGE_ROOT)

SERVER_HOST = os.environ.get("UPLOAD_HOST", "0.0.0.0")

SERVER_PORT = int(os.environ.get("UPLOAD_PORT", "8000"))

SESSION_TTL = int(os.environ.get("UPLOAD_SESSION_TTL_SECONDS", str(SESSION_TTL_SECONDS)))

SWEEP_INTERVAL = int(os.environ.get("UPLOAD_SWEEP_INTERVAL_SECONDS", str(SWEEP_INTERVAL_SECONDS)))

PUBLIC_URL_PREFIX = os.environ.get("UPLOAD_PUBLIC_URL_PREFIX", "")

API_KEY = os.environ.get("UPLOAD_API_KEY") or None
