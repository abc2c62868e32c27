"""
MedShare — Celery Application

Worker and beat entry point: `celery -A config worker` / `celery -A config beat`.
Periodic schedules live in CELERY_BEAT_SCHEDULE (config/settings/base.py).

@file config/celery.py
"""

import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.development')

app = Celery('medshare')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
