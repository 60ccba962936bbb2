# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS
- In-memory SQLite, fast hasher, no throttling.
- Short lock timeout so contention tests fail fast.
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import REST_FRAMEWORK

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    "DEFAULT_THROTTLE_CLASSES": (),
}

ACCOUNTING_POSTING_ENABLED = True
FEES_LOCK_TIMEOUT_SECONDS = 0.2
FEES_LOCK_POLL_SECONDS = 0.01
FEES_RECEIPT_PREFIX = "RCP"
FEES_INVOICE_PREFIX = "INV"
FEES_NUMBER_PADDING = 6
TIME_ZONE = "UTC"
