# apps/appointments/services.py
"""
Ledger reads and block accounting.

Each booking write or slot listing loads the day's capacity-consuming
bookings with one query (bookings_for_date) and does all counting in memory.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from apps.clinic.blocks import block_key, from_minutes, granularity, to_minutes
from apps.clinic.services import ClinicDateResolver, DaySnapshot

from .models import Appointment


def bookings_for_date(day: date, *, exclude_id: Optional[int] = None) -> List[Appointment]:
    """Capacity-consuming bookings on `day`, ordered by start."""
    qs = Appointment.objects.active().on_date(day).select_related("practitioner")
    if exclude_id:
        qs = qs.exclude(id=exclude_id)
    return list(qs.order_by("start_time", "id"))


def block_usage(bookings: Iterable[Appointment], block_starts: Iterable[int], granularity_minutes: Optional[int] = None) -> Dict[int, int]:
    """
    Clinic-wide count per block (minutes-of-day key).
    A booking uses a block when their [start, end) ranges overlap.
    """
    step = granularity(granularity_minutes)
    bookings = list(bookings)
    usage: Dict[int, int] = {}
    for b in block_starts:
        usage[b] = sum(1 for appt in bookings if appt.overlaps(b, b + step))
    return usage


def first_full_block(usage: Dict[int, int], span: Iterable[int], capacity: int) -> Optional[int]:
    for b in span:
        if usage.get(b, 0) >= capacity:
            return b
    return None


def practitioner_is_free(bookings: Iterable[Appointment], practitioner_id: int, start_minutes: int, end_minutes: int) -> bool:
    return not any(
        appt.practitioner_id == practitioner_id and appt.overlaps(start_minutes, end_minutes)
        for appt in bookings
    )


def patient_has_overlap(bookings: Iterable[Appointment], patient_id: Optional[int], start_minutes: int, end_minutes: int) -> bool:
    if not patient_id:
        return False
    return any(
        appt.patient_id == patient_id and appt.overlaps(start_minutes, end_minutes)
        for appt in bookings
    )


def usage_report(snapshot: DaySnapshot, bookings: Iterable[Appointment], granularity_minutes: Optional[int] = None) -> Dict:
    """
    Per-block usage for display: clinic-wide counts and per-practitioner counts,
    keyed by "HH:MM".
    """
    step = granularity(granularity_minutes)
    bookings = list(bookings)
    grid = [to_minutes(t) for t in snapshot.blocks(step)]
    clinic = block_usage(bookings, grid, step)

    by_practitioner: Dict[str, Dict[str, int]] = defaultdict(dict)
    for appt in bookings:
        if not appt.practitioner_id:
            continue
        for b in grid:
            if appt.overlaps(b, b + step):
                row = by_practitioner[str(appt.practitioner_id)]
                key = block_key(from_minutes(b))
                row[key] = row.get(key, 0) + 1

    return {
        "capacity": snapshot.effective_capacity,
        "blocks": {block_key(from_minutes(b)): clinic[b] for b in grid},
        "practitioners": dict(by_practitioner),
        "unassigned": sum(1 for appt in bookings if not appt.practitioner_id),
    }


def utilization(start_date: date, end_date: date, *, resolver: Optional[ClinicDateResolver] = None) -> List[Dict]:
    """Day-by-day block usage between two dates (inclusive), for reporting."""
    resolver = resolver or ClinicDateResolver(use_cache=True)
    step = timedelta(days=1)
    out: List[Dict] = []
    day = start_date
    while day <= end_date:
        snapshot = resolver.resolve(day)
        row = {"date": day.isoformat(), "is_open": snapshot.is_open}
        if snapshot.is_open:
            report = usage_report(snapshot, bookings_for_date(day))
            booked = sum(report["blocks"].values())
            total = snapshot.effective_capacity * len(report["blocks"])
            row.update(report)
            row["utilization"] = round(booked / total, 4) if total else 0.0
        out.append(row)
        day += step
    return out
