import os

from celery import Celery

from .env import load_env

# Workers and beat are started without manage.py, so they load `.env` here.
load_env()
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "paradocks_backend.settings")

app = Celery("paradocks_backend")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
