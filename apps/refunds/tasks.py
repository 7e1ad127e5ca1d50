# apps/refunds/tasks.py
from celery import shared_task
from django.utils import timezone

from .services import check_refund_deadlines


@shared_task
def check_refund_deadlines_task():
    report = check_refund_deadlines(timezone.now())
    return {
        "overdue": [r.id for r in report.overdue],
        "approaching": [r.id for r in report.approaching],
    }
