"""WSGI entry point for the Paradocks notifications backend.

Webhooks from SMSAPI and the staff endpoints are served through this
``application``; `.env` is loaded before Django reads its settings.
"""

import os

from django.core.wsgi import get_wsgi_application

from .env import load_env

load_env()
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "paradocks_backend.settings")

application = get_wsgi_application()
