"""
Celery application for background catalog work (blob purges).
"""
import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "catalogsite.settings")

app = Celery("catalogsite")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
