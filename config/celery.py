# config/celery.py
import os
from celery import Celery
from celery.schedules import crontab

# Use your real settings module by default
os.environ.setdefault(
    "DJANGO_SETTINGS_MODULE",
    os.getenv("DJANGO_SETTINGS_MODULE", "config.settings"),
)

app = Celery("dentline")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()

# Upstash TLS relax (dev-only) if needed
if str(app.conf.broker_url or "").startswith("rediss://"):
    app.conf.broker_transport_options = {"ssl": {"cert_reqs": "CERT_NONE"}}
if str(app.conf.result_backend or "").startswith("rediss://"):
    app.conf.redis_backend_use_ssl = {"cert_reqs": "CERT_NONE"}

app.conf.beat_schedule = {
    "mark-no-shows-every-15m": {
        "task": "apps.appointments.tasks.mark_no_shows_task",
        "schedule": 900.0,
    },
    "check-refund-deadlines-daily": {
        "task": "apps.refunds.tasks.check_refund_deadlines_task",
        "schedule": crontab(hour=7, minute=0),
    },
}
