"""Celery app for the fest backend."""
import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("fest")

# All celery-related configuration keys carry a `CELERY_` prefix in settings.
app.config_from_object("django.conf:settings", namespace="CELERY")

# Picks up events/tasks.py
app.autodiscover_tasks()

# run:
# celery -A config worker -l INFO
