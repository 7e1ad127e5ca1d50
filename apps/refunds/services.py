# apps/refunds/services.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List

from django.utils import timezone

from apps.audit.utils import log_system_event

from .models import RefundRequest, RefundSetting

logger = logging.getLogger(__name__)


@dataclass
class DeadlineReport:
    overdue: List[RefundRequest] = field(default_factory=list)
    approaching: List[RefundRequest] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.overdue) + len(self.approaching)


def check_refund_deadlines(now: datetime, *, record: bool = True) -> DeadlineReport:
    """
    Sort open refund requests into overdue and approaching (deadline within
    reminder_days, counted to end of day). With record=True each one gets an
    audit event.
    """
    reminder_days = RefundSetting.get_settings().reminder_days
    local_now = timezone.localtime(now)
    threshold = local_now.replace(hour=23, minute=59, second=59, microsecond=999999) + timedelta(days=reminder_days)

    report = DeadlineReport()
    qs = RefundRequest.objects.open().filter(deadline_at__isnull=False).select_related("patient").order_by("deadline_at")
    for refund in qs:
        if now > refund.deadline_at:
            report.overdue.append(refund)
        elif refund.deadline_at <= threshold:
            report.approaching.append(refund)

    if record:
        for refund in report.overdue:
            days = -refund.days_until_deadline(now)
            log_system_event(
                "refund.deadline_overdue", "RefundRequest", refund.id,
                message=f"Refund request #{refund.id} is {days} day(s) overdue",
                context={
                    "deadline_at": timezone.localtime(refund.deadline_at).date().isoformat(),
                    "days_overdue": days,
                    "status": refund.status,
                },
            )
        for refund in report.approaching:
            days = refund.days_until_deadline(now)
            log_system_event(
                "refund.deadline_approaching", "RefundRequest", refund.id,
                message=f"Refund request #{refund.id} deadline in {days} day(s)",
                context={
                    "deadline_at": timezone.localtime(refund.deadline_at).date().isoformat(),
                    "days_remaining": days,
                    "status": refund.status,
                },
            )

    if report.total:
        logger.warning(
            "%s refund(s) need attention: %s overdue, %s approaching",
            report.total, len(report.overdue), len(report.approaching),
        )
    else:
        logger.info("No refund deadlines need attention")
    return report
