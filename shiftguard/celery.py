"""
Celery application configuration for ShiftGuard.

Tasks are auto-discovered from each Django app's tasks.py module and
registered under explicit names ("scheduling.*", "workforce.*").
Two queues are defined:
  - default: schedule housekeeping such as period auto-lock
  - workforce: attendance scans (no-show detection), routed by task name
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "shiftguard.settings.local")

app = Celery("shiftguard")

app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
