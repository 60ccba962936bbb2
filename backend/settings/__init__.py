# backend/settings/__init__.py
"""
PATH: backend/settings/__init__.py

Settings package entrypoint.

We intentionally do NOT import dev/prod here. Use DJANGO_SETTINGS_MODULE:
- backend.settings.dev   (local development)
- backend.settings.prod  (production)
- backend.settings.test  (test runs)
"""
