from __future__ import annotations
import os
from celery import Celery

# Celery reads Django settings, so point it at them before anything else
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "ledger_project.settings")

celery_app = Celery("ledger_project")

# every CELERY_* key in settings.py configures the worker
celery_app.config_from_object("django.conf:settings", namespace="CELERY")

# finds ledger_core/tasks.py
celery_app.autodiscover_tasks()
