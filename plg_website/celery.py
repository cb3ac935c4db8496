"""
Celery configuration for background tasks.

Used for transactional email and the scheduled customer jobs.
"""
import os

from celery import Celery
from celery.schedules import crontab

# Set default Django settings module
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "plg_website.settings.base")

app = Celery("plg_website")

# Load configuration from Django settings
app.config_from_object("django.conf:settings", namespace="CELERY")

# Auto-discover tasks from all installed apps
app.autodiscover_tasks()

app.conf.beat_schedule = {
    "trial-reminder": {
        "task": "core.tasks.run_scheduled_task",
        "schedule": crontab(hour=9, minute=0),
        "args": ("trial-reminder",),
    },
    "winback-30": {
        "task": "core.tasks.run_scheduled_task",
        "schedule": crontab(hour=10, minute=0),
        "args": ("winback-30",),
    },
    "winback-90": {
        "task": "core.tasks.run_scheduled_task",
        "schedule": crontab(hour=10, minute=30),
        "args": ("winback-90",),
    },
}
