# apps/clinic/deadlines.py
"""
Business-day deadlines (refund processing and similar SLAs).

A business day is any date the resolver reports as open, so holidays and
special closures entered as calendar overrides are skipped automatically.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

from django.conf import settings
from django.utils import timezone

from .exceptions import SafetyLimitReached
from .services import ClinicDateResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeadlineResult:
    deadline: datetime
    counted_days: int
    degraded: bool = False


def end_of_day(day: date) -> datetime:
    """23:59:59.999999 on `day`, aware in the clinic timezone."""
    return timezone.make_aware(datetime.combine(day, time.max), timezone.get_default_timezone())


def walk_business_days(
    start_date: date,
    business_days: int,
    *,
    max_scan_days: int,
    resolver: ClinicDateResolver,
) -> tuple[date, int]:
    """
    Return (date of the Nth open day after start_date, N).
    Raises SafetyLimitReached if max_scan_days pass first.
    """
    counted = 0
    current = start_date
    for scanned in range(1, max_scan_days + 1):
        current = current + timedelta(days=1)
        if resolver.resolve(current).is_open:
            counted += 1
            if counted >= business_days:
                return current, counted
    raise SafetyLimitReached(
        f"only {counted} of {business_days} open days found within {max_scan_days} days of {start_date.isoformat()}",
        scanned_days=max_scan_days,
        counted_days=counted,
    )


def business_day_deadline(
    start_date: date,
    business_days: int,
    *,
    max_scan_days: Optional[int] = None,
    resolver: Optional[ClinicDateResolver] = None,
) -> DeadlineResult:
    if isinstance(start_date, datetime):
        start_date = timezone.localtime(start_date).date() if timezone.is_aware(start_date) else start_date.date()

    if business_days <= 0:
        return DeadlineResult(deadline=end_of_day(start_date), counted_days=0)

    if max_scan_days is None:
        max_scan_days = int(getattr(settings, "REFUND_DEADLINE_MAX_SCAN_DAYS", 365))
    resolver = resolver or ClinicDateResolver(use_cache=True)

    try:
        day, counted = walk_business_days(
            start_date, business_days, max_scan_days=max_scan_days, resolver=resolver
        )
    except SafetyLimitReached as exc:
        fallback = start_date + timedelta(days=business_days)
        logger.warning(
            "Business-day walk gave up (%s); falling back to %s calendar days -> %s",
            exc, business_days, fallback.isoformat(),
        )
        return DeadlineResult(deadline=end_of_day(fallback), counted_days=exc.counted_days, degraded=True)

    return DeadlineResult(deadline=end_of_day(day), counted_days=counted)
