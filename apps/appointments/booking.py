# apps/appointments/booking.py
"""
Booking writes.

Every write for a date runs inside one transaction holding that date's
BookingDayLock row, and re-reads the calendar (uncached) and the ledger
after the lock is taken. The first writer to commit wins; later writers see
its booking and get CapacityExceeded / PreferredUnavailable.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Tuple

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.audit.utils import log_event, log_system_event
from apps.clinic.blocks import (
    block_key,
    blocks_needed,
    fits_before_close,
    from_minutes,
    granularity,
    span_end,
    to_minutes,
)
from apps.clinic.services import ClinicDateResolver, DaySnapshot

from .exceptions import CapacityExceeded, InvalidTransition, PreferredUnavailable, SlotUnavailable
from .models import Appointment, BookingDayLock
from .preferred import PreferenceStatus, preference_for
from .services import (
    block_usage,
    bookings_for_date,
    first_full_block,
    patient_has_overlap,
    practitioner_is_free,
)

logger = logging.getLogger(__name__)


# ---- helpers ----

def _audit(request, action: str, appt: Appointment, message: str = "", **context) -> None:
    context = {
        "reference_code": appt.reference_code,
        "date": appt.date.isoformat(),
        "start_time": block_key(appt.start_time),
        "status": appt.status,
        **context,
    }
    if request is not None:
        log_event(request, action, "Appointment", appt.id, message=message, context=context)
    else:
        log_system_event(action, "Appointment", appt.id, message=message, context=context)


def lock_day(day: date) -> BookingDayLock:
    """Take the per-date writer lock. Must be called inside transaction.atomic()."""
    BookingDayLock.objects.get_or_create(date=day)
    return BookingDayLock.objects.select_for_update().get(date=day)


def check_booking_window(day: date, today: date) -> None:
    window = int(getattr(settings, "SCHEDULING_BOOKING_WINDOW_DAYS", 7))
    if day <= today:
        raise SlotUnavailable("Bookings must be made at least one day in advance.", code="outside_window")
    if day > today + timedelta(days=window):
        raise SlotUnavailable(
            f"Bookings open at most {window} days ahead.",
            code="outside_window",
            hint=f"Choose a date up to {(today + timedelta(days=window)).isoformat()}.",
        )


def _span_for(snapshot: DaySnapshot, start_time: time, duration_minutes: int) -> Tuple[int, int, List[int]]:
    """Validate a requested start against the day's grid; return (start, end, blocks) in minutes."""
    if not snapshot.is_open:
        raise SlotUnavailable(
            f"The clinic is closed on {snapshot.date.isoformat()}.",
            code="clinic_closed",
            hint="Try another date.",
        )
    step = granularity()
    grid = {to_minutes(t) for t in snapshot.blocks(step)}
    start = to_minutes(start_time)
    if start not in grid:
        raise SlotUnavailable(f"{block_key(start_time)} is not a bookable start time.", code="off_grid")
    n = blocks_needed(duration_minutes, step)
    end = span_end(start_time, n, step)
    if not fits_before_close(start_time, n, snapshot.close_time, step):
        raise SlotUnavailable(
            f"A {duration_minutes}-minute visit starting {block_key(start_time)} runs past closing.",
            code="past_closing",
        )
    return start, end, list(range(start, end, step))


def _check_capacity(snapshot: DaySnapshot, bookings: List[Appointment], span: List[int]) -> None:
    usage = block_usage(bookings, span)
    full = first_full_block(usage, span, snapshot.effective_capacity)
    if full is not None:
        raise CapacityExceeded(full_at=block_key(from_minutes(full)))


def _assign(
    snapshot: DaySnapshot,
    bookings: List[Appointment],
    preference: PreferenceStatus,
    start: int,
    end: int,
) -> Tuple[Optional[int], bool]:
    """(practitioner_id or None, honored_preference)."""
    if preference.effective:
        if practitioner_is_free(bookings, preference.preferred_id, start, end):
            return preference.preferred_id, True
        raise PreferredUnavailable()

    for pid in snapshot.active_practitioner_ids:
        if practitioner_is_free(bookings, pid, start, end):
            return pid, False
    # Capacity allowed it (override) but nobody is free to take it
    return None, False


# ---- operations ----

def book_appointment(
    patient,
    service,
    day: date,
    start_time: time,
    duration_minutes: Optional[int] = None,
    honor_preferred: bool = True,
    *,
    today: date,
    teeth_count: Optional[int] = None,
    notes: str = "",
    request=None,
) -> Appointment:
    if duration_minutes is None:
        duration_minutes = service.calculate_estimated_minutes(teeth_count)
    check_booking_window(day, today)

    with transaction.atomic():
        lock_day(day)
        snapshot = ClinicDateResolver(use_cache=False).resolve(day)
        start, end, span = _span_for(snapshot, start_time, duration_minutes)

        bookings = bookings_for_date(day)
        _check_capacity(snapshot, bookings, span)

        if patient_has_overlap(bookings, patient.id, start, end):
            raise SlotUnavailable(
                "You already have an appointment overlapping that time.",
                code="patient_overlap",
            )

        preference = preference_for(patient.id, snapshot, honor_preferred)
        practitioner_id, honored = _assign(snapshot, bookings, preference, start, end)

        appt = Appointment.objects.create(
            patient=patient,
            service=service,
            practitioner_id=practitioner_id,
            date=day,
            start_time=from_minutes(start),
            end_time=from_minutes(end),
            status=Appointment.STATUS_PENDING,
            honor_preferred_dentist=honored,
            teeth_count=teeth_count,
            notes=notes,
        )
        _audit(
            request, "appt.book", appt,
            message=f"Booked {appt.reference_code}",
            practitioner_id=practitioner_id,
            honored_preference=honored,
        )

    logger.info(
        "Booked %s on %s %s-%s practitioner=%s",
        appt.reference_code, day.isoformat(), block_key(appt.start_time), block_key(appt.end_time), practitioner_id,
    )
    return appt


def reschedule_appointment(
    appointment: Appointment,
    day: date,
    start_time: time,
    *,
    today: date,
    request=None,
) -> Appointment:
    if appointment.status not in (Appointment.STATUS_PENDING, Appointment.STATUS_APPROVED):
        raise InvalidTransition(f"A {appointment.get_status_display().lower()} appointment cannot be rescheduled.")
    check_booking_window(day, today)
    duration = appointment.duration_minutes
    previous = (appointment.date.isoformat(), block_key(appointment.start_time))

    with transaction.atomic():
        # Lock both dates in a fixed order so two reschedules cannot deadlock
        for d in sorted({appointment.date, day}):
            lock_day(d)
        appt = Appointment.objects.select_for_update().get(pk=appointment.pk)

        snapshot = ClinicDateResolver(use_cache=False).resolve(day)
        start, end, span = _span_for(snapshot, start_time, duration)

        bookings = bookings_for_date(day, exclude_id=appt.id)
        _check_capacity(snapshot, bookings, span)

        if patient_has_overlap(bookings, appt.patient_id, start, end):
            raise SlotUnavailable(
                "The patient already has an appointment overlapping that time.",
                code="patient_overlap",
            )

        keep = (
            appt.practitioner_id in snapshot.active_practitioner_ids
            and practitioner_is_free(bookings, appt.practitioner_id, start, end)
        )
        if keep:
            practitioner_id, honored = appt.practitioner_id, appt.honor_preferred_dentist
        else:
            preference = preference_for(appt.patient_id, snapshot, appt.honor_preferred_dentist)
            practitioner_id, honored = _assign(snapshot, bookings, preference, start, end)

        appt.date = day
        appt.start_time = from_minutes(start)
        appt.end_time = from_minutes(end)
        appt.practitioner_id = practitioner_id
        appt.honor_preferred_dentist = honored
        appt.status = Appointment.STATUS_PENDING
        appt.save()
        _audit(
            request, "appt.reschedule", appt,
            message=f"Rescheduled {appt.reference_code}",
            previous_date=previous[0],
            previous_start_time=previous[1],
            practitioner_id=practitioner_id,
        )

    logger.info("Rescheduled %s to %s %s", appt.reference_code, day.isoformat(), block_key(appt.start_time))
    return appt


def approve_appointment(appointment: Appointment, *, request=None) -> Appointment:
    with transaction.atomic():
        lock_day(appointment.date)
        appt = Appointment.objects.select_for_update().get(pk=appointment.pk)
        if appt.status != Appointment.STATUS_PENDING:
            raise InvalidTransition(f"Only pending appointments can be approved (this one is {appt.status}).")

        snapshot = ClinicDateResolver(use_cache=False).resolve(appt.date)
        if not snapshot.is_open:
            raise SlotUnavailable(
                f"The clinic is now closed on {appt.date.isoformat()}.",
                code="clinic_closed",
                hint="Reschedule or reject the appointment.",
            )
        step = granularity()
        span = list(range(appt.start_minutes, appt.end_minutes, step))
        # Seats taken by others only; an override may have lowered capacity since booking
        _check_capacity(snapshot, bookings_for_date(appt.date, exclude_id=appt.id), span)

        appt.status = Appointment.STATUS_APPROVED
        appt.save(update_fields=["status", "updated_at"])
        _audit(request, "appt.approve", appt, message=f"Approved {appt.reference_code}")
    return appt


def reject_appointment(appointment: Appointment, note: str = "", *, request=None) -> Appointment:
    with transaction.atomic():
        appt = Appointment.objects.select_for_update().get(pk=appointment.pk)
        if appt.status != Appointment.STATUS_PENDING:
            raise InvalidTransition(f"Only pending appointments can be rejected (this one is {appt.status}).")
        appt.status = Appointment.STATUS_REJECTED
        if note:
            appt.notes = f"{appt.notes}\nRejected: {note}".strip()
        appt.save(update_fields=["status", "notes", "updated_at"])
        _audit(request, "appt.reject", appt, message=f"Rejected {appt.reference_code}", note=note)
    return appt


def cancel_appointment(
    appointment: Appointment,
    reason: str = "",
    *,
    now: Optional[datetime] = None,
    request=None,
) -> Appointment:
    now = now or timezone.now()
    with transaction.atomic():
        appt = Appointment.objects.select_for_update().get(pk=appointment.pk)
        if appt.status not in (Appointment.STATUS_PENDING, Appointment.STATUS_APPROVED):
            raise InvalidTransition(f"A {appt.get_status_display().lower()} appointment cannot be cancelled.")
        appt.status = Appointment.STATUS_CANCELLED
        appt.cancelled_at = now
        if reason:
            appt.notes = f"{appt.notes}\nCancelled: {reason}".strip()
        appt.save(update_fields=["status", "cancelled_at", "notes", "updated_at"])
        _audit(request, "appt.cancel", appt, message=f"Cancelled {appt.reference_code}", reason=reason)
    logger.info("Cancelled %s (%s)", appt.reference_code, reason or "no reason")
    return appt


def no_show_candidates(now: datetime, *, resolver: Optional[ClinicDateResolver] = None) -> List[Tuple[Appointment, str]]:
    """
    Approved bookings for today that should become no_show at `now`:
    more than an hour past their start, or start already passed once the
    clinic's closing time is reached. Nothing on a closed day.
    """
    local = timezone.localtime(now) if timezone.is_aware(now) else now
    today = local.date()
    snapshot = (resolver or ClinicDateResolver(use_cache=False)).resolve(today)
    if not snapshot.is_open:
        logger.info("Clinic closed on %s; no-show sweep skipped", today.isoformat())
        return []

    wall = local.replace(tzinfo=None)
    closing = datetime.combine(today, snapshot.close_time)
    out: List[Tuple[Appointment, str]] = []
    qs = Appointment.objects.filter(status=Appointment.STATUS_APPROVED, date=today).order_by("start_time", "id")
    for appt in qs:
        start = appt.start_datetime()
        if wall > start + timedelta(hours=1):
            out.append((appt, "more than 1 hour past start"))
        elif wall >= closing and wall > start:
            out.append((appt, "closing time reached after start"))
    return out


def mark_no_shows(now: datetime, *, dry_run: bool = False) -> List[Appointment]:
    marked: List[Appointment] = []
    for appt, reason in no_show_candidates(now):
        if dry_run:
            marked.append(appt)
            continue
        with transaction.atomic():
            updated = Appointment.objects.filter(pk=appt.pk, status=Appointment.STATUS_APPROVED).update(
                status=Appointment.STATUS_NO_SHOW, updated_at=timezone.now()
            )
            if not updated:
                continue
            appt.status = Appointment.STATUS_NO_SHOW
            _audit(None, "appt.no_show", appt, message=f"Marked {appt.reference_code} no-show: {reason}", reason=reason)
        marked.append(appt)
    if marked:
        logger.info("%s %s appointment(s) as no_show", "Would mark" if dry_run else "Marked", len(marked))
    return marked
