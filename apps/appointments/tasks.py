# apps/appointments/tasks.py
from __future__ import annotations

import logging

from celery import shared_task
from django.utils import timezone

from .booking import mark_no_shows

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=2)
def mark_no_shows_task(self):
    """Beat job: flip overdue approved bookings for today to no_show."""
    marked = mark_no_shows(timezone.now())
    logger.info("no-show sweep marked %s appointment(s)", len(marked))
    return {"marked": [a.reference_code for a in marked]}
