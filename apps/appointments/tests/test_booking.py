import re
from datetime import date, datetime, time, timedelta

import pytest
from django.utils import timezone

from apps.appointments.booking import (
    approve_appointment,
    book_appointment,
    cancel_appointment,
    reject_appointment,
    reschedule_appointment,
)
from apps.appointments.exceptions import (
    CapacityExceeded,
    InvalidTransition,
    PreferredUnavailable,
    SlotUnavailable,
)
from apps.appointments.models import Appointment
from apps.audit.models import AuditEvent
from apps.clinic.models import ClinicCalendar
from apps.services.models import Service

from .factories import ledger_entry

MONDAY = date(2025, 9, 22)
TODAY = MONDAY - timedelta(days=1)


def book(patient, service, start, day=MONDAY, **kw):
    kw.setdefault("today", TODAY)
    return book_appointment(patient, service, day, start, **kw)


@pytest.mark.django_db
def test_booking_assigns_practitioner_and_records_ledger_row(weekday_hours, make_practitioner, patient, service):
    d1 = make_practitioner("D1")

    appt = book(patient, service, time(9, 0))

    assert appt.status == Appointment.STATUS_PENDING
    assert appt.practitioner_id == d1.id
    assert (appt.start_time, appt.end_time) == (time(9, 0), time(9, 30))
    assert appt.honor_preferred_dentist is False
    assert re.fullmatch(r"[A-Z0-9]{8}", appt.reference_code)
    assert AuditEvent.objects.filter(action="appt.book", object_id=str(appt.id)).exists()


@pytest.mark.django_db
def test_second_request_for_last_seat_is_capacity_exceeded(weekday_hours, make_practitioner, patient, make_patient, service):
    make_practitioner("D1")
    book(patient, service, time(16, 30))

    with pytest.raises(CapacityExceeded) as exc:
        book(make_patient("Ben", "Cruz"), service, time(16, 30))

    assert exc.value.full_at == "16:30"
    assert exc.value.as_payload()["code"] == "capacity_exceeded"
    assert Appointment.objects.filter(date=MONDAY).count() == 1


@pytest.mark.django_db
def test_capacity_invariant_exactly_capacity_successes(weekday_hours, make_practitioner, make_patient, service):
    for code in ("D1", "D2", "D3"):
        make_practitioner(code)

    ok, refused = [], 0
    for i in range(5):
        try:
            ok.append(book(make_patient(f"P{i}", "Test"), service, time(10, 0)))
        except CapacityExceeded:
            refused += 1

    assert len(ok) == 3
    assert refused == 2
    # no practitioner holds two overlapping bookings
    assert len({a.practitioner_id for a in ok}) == 3


@pytest.mark.django_db
def test_multi_block_booking_refused_when_any_block_full(weekday_hours, make_practitioner, patient, make_patient, service, long_service):
    make_practitioner("D1")
    book(make_patient("Ben", "Cruz"), service, time(10, 0))

    with pytest.raises(CapacityExceeded) as exc:
        book(patient, long_service, time(9, 0))
    assert exc.value.full_at == "10:00"


@pytest.mark.django_db
def test_opt_out_assigns_first_free_practitioner_by_code(weekday_hours, make_practitioner, make_patient, service):
    b = make_practitioner("B")
    a = make_practitioner("A")

    first = book(make_patient("P1", "T"), service, time(9, 0), honor_preferred=False)
    second = book(make_patient("P2", "T"), service, time(9, 0), honor_preferred=False)

    assert first.practitioner_id == a.id
    assert second.practitioner_id == b.id


@pytest.mark.django_db
def test_free_preferred_dentist_is_assigned(weekday_hours, make_practitioner, patient, service):
    make_practitioner("D1")
    d2 = make_practitioner("D2")
    ledger_entry(patient, service, MONDAY - timedelta(days=7), practitioner=d2, status="completed")

    appt = book(patient, service, time(9, 0), honor_preferred=True)

    assert appt.practitioner_id == d2.id
    assert appt.honor_preferred_dentist is True


@pytest.mark.django_db
def test_busy_preferred_dentist_raises_then_opt_out_succeeds(weekday_hours, make_practitioner, patient, make_patient, service):
    d1 = make_practitioner("D1")
    d2 = make_practitioner("D2")
    ledger_entry(patient, service, MONDAY - timedelta(days=7), practitioner=d2, status="completed")
    ledger_entry(make_patient("Ben", "Cruz"), service, MONDAY, time(9, 0), practitioner=d2)

    with pytest.raises(PreferredUnavailable) as exc:
        book(patient, service, time(9, 0), honor_preferred=True)
    assert "honor_preferred_dentist=false" in exc.value.hint

    appt = book(patient, service, time(9, 0), honor_preferred=False)
    assert appt.practitioner_id == d1.id
    assert appt.honor_preferred_dentist is False


@pytest.mark.django_db
def test_preferred_dentist_off_that_day_falls_back(weekday_hours, make_practitioner, patient, service):
    d1 = make_practitioner("D1")
    d2 = make_practitioner("D2", days=("tue",))
    ledger_entry(patient, service, MONDAY - timedelta(days=6), practitioner=d2, status="completed")

    appt = book(patient, service, time(9, 0), honor_preferred=True)
    assert appt.practitioner_id == d1.id
    assert appt.honor_preferred_dentist is False


@pytest.mark.django_db
def test_patient_cannot_overlap_own_booking(weekday_hours, make_practitioner, patient, service, long_service):
    make_practitioner("D1")
    make_practitioner("D2")
    book(patient, long_service, time(9, 0))

    with pytest.raises(SlotUnavailable) as exc:
        book(patient, service, time(10, 0))
    assert exc.value.code == "patient_overlap"
    assert exc.value.http_status == 422

    # back-to-back is fine
    assert book(patient, service, time(10, 30)).start_time == time(10, 30)


@pytest.mark.django_db
@pytest.mark.parametrize("day", [TODAY, TODAY - timedelta(days=3), TODAY + timedelta(days=8)])
def test_booking_window(weekday_hours, make_practitioner, patient, service, day):
    make_practitioner("D1", days=("mon", "tue", "wed", "thu", "fri", "sat", "sun"))
    with pytest.raises(SlotUnavailable) as exc:
        book(patient, service, time(9, 0), day=day)
    assert exc.value.code == "outside_window"


@pytest.mark.django_db
def test_last_day_of_window_is_bookable(weekday_hours, make_practitioner, patient, service):
    make_practitioner("D1")
    appt = book(patient, service, time(9, 0), day=MONDAY + timedelta(days=7), today=MONDAY)
    assert appt.date == MONDAY + timedelta(days=7)


@pytest.mark.django_db
def test_closed_day_off_grid_and_past_closing_are_refused(weekday_hours, make_practitioner, patient, service, long_service):
    make_practitioner("D1")
    ClinicCalendar.objects.create(date=MONDAY + timedelta(days=1), is_open=False, note="Holiday")

    with pytest.raises(SlotUnavailable) as closed:
        book(patient, service, time(9, 0), day=MONDAY + timedelta(days=1))
    assert closed.value.code == "clinic_closed"

    with pytest.raises(SlotUnavailable) as off_grid:
        book(patient, service, time(9, 15))
    assert off_grid.value.code == "off_grid"

    with pytest.raises(SlotUnavailable) as late:
        book(patient, long_service, time(16, 0))
    assert late.value.code == "past_closing"


@pytest.mark.django_db
def test_override_capacity_without_roster_books_unassigned(weekday_hours, patient, make_patient, service):
    ClinicCalendar.objects.create(date=MONDAY, is_open=True, max_per_block_override=2)

    a = book(patient, service, time(9, 0))
    b = book(make_patient("Ben", "Cruz"), service, time(9, 0))
    assert a.practitioner_id is None and b.practitioner_id is None
    with pytest.raises(CapacityExceeded):
        book(make_patient("Cy", "Diaz"), service, time(9, 0))


@pytest.mark.django_db
def test_override_lower_than_roster_binds(weekday_hours, make_practitioner, patient, make_patient, service):
    make_practitioner("D1")
    make_practitioner("D2")
    ClinicCalendar.objects.create(date=MONDAY, is_open=True, max_per_block_override=1)

    book(patient, service, time(9, 0))
    with pytest.raises(CapacityExceeded):
        book(make_patient("Ben", "Cruz"), service, time(9, 0))


@pytest.mark.django_db
def test_per_tooth_service_duration(weekday_hours, make_practitioner, patient):
    make_practitioner("D1")
    filling = Service.objects.create(name="Filling", estimated_minutes=30, per_teeth_service=True, per_tooth_minutes=30)

    appt = book(patient, filling, time(9, 0), teeth_count=3)
    assert appt.end_time == time(10, 30)
    assert appt.teeth_count == 3


@pytest.mark.django_db
def test_cancel_frees_capacity_immediately(weekday_hours, make_practitioner, patient, make_patient, service):
    make_practitioner("D1")
    first = book(patient, service, time(9, 0))
    now = timezone.make_aware(datetime(2025, 9, 21, 12, 0))

    cancelled = cancel_appointment(first, "Family emergency", now=now)

    assert cancelled.status == Appointment.STATUS_CANCELLED
    assert cancelled.cancelled_at == now
    assert "Family emergency" in cancelled.notes
    assert book(make_patient("Ben", "Cruz"), service, time(9, 0)).status == Appointment.STATUS_PENDING

    with pytest.raises(InvalidTransition):
        cancel_appointment(cancelled)


@pytest.mark.django_db
def test_approve_rechecks_capacity_after_override_reduction(weekday_hours, make_practitioner, patient, make_patient, service):
    make_practitioner("D1")
    make_practitioner("D2")
    a = book(patient, service, time(9, 0))
    b = book(make_patient("Ben", "Cruz"), service, time(9, 0))

    ClinicCalendar.objects.create(date=MONDAY, is_open=True, max_per_block_override=1)

    with pytest.raises(CapacityExceeded):
        approve_appointment(b)

    reject_appointment(a, "Reduced chairs")
    approved = approve_appointment(b)
    assert approved.status == Appointment.STATUS_APPROVED
    assert AuditEvent.objects.filter(action="appt.approve", object_id=str(b.id)).exists()

    with pytest.raises(InvalidTransition):
        approve_appointment(approved)


@pytest.mark.django_db
def test_approve_on_newly_closed_day_is_refused(weekday_hours, make_practitioner, patient, service):
    make_practitioner("D1")
    appt = book(patient, service, time(9, 0))
    ClinicCalendar.objects.create(date=MONDAY, is_open=False)

    with pytest.raises(SlotUnavailable) as exc:
        approve_appointment(appt)
    assert exc.value.code == "clinic_closed"


@pytest.mark.django_db
def test_reject_only_pending(weekday_hours, make_practitioner, patient, service):
    make_practitioner("D1")
    appt = book(patient, service, time(9, 0))
    rejected = reject_appointment(appt, "Duplicate")
    assert rejected.status == Appointment.STATUS_REJECTED
    assert "Duplicate" in rejected.notes
    with pytest.raises(InvalidTransition):
        reject_appointment(rejected)


@pytest.mark.django_db
def test_reschedule_keeps_free_practitioner_and_resets_to_pending(weekday_hours, make_practitioner, patient, service):
    d1 = make_practitioner("D1")
    make_practitioner("D2")
    appt = approve_appointment(book(patient, service, time(9, 0)))

    moved = reschedule_appointment(appt, MONDAY + timedelta(days=1), time(14, 0), today=TODAY)

    assert moved.date == MONDAY + timedelta(days=1)
    assert (moved.start_time, moved.end_time) == (time(14, 0), time(14, 30))
    assert moved.practitioner_id == d1.id
    assert moved.status == Appointment.STATUS_PENDING
    assert AuditEvent.objects.filter(action="appt.reschedule", object_id=str(appt.id)).exists()


@pytest.mark.django_db
def test_reschedule_within_own_span_does_not_conflict_with_itself(weekday_hours, make_practitioner, patient, long_service):
    make_practitioner("D1")
    appt = book(patient, long_service, time(9, 0))
    moved = reschedule_appointment(appt, MONDAY, time(9, 30), today=TODAY)
    assert (moved.start_time, moved.end_time) == (time(9, 30), time(11, 0))


@pytest.mark.django_db
def test_reschedule_into_full_block_is_refused(weekday_hours, make_practitioner, patient, make_patient, service):
    make_practitioner("D1")
    mine = book(patient, service, time(9, 0))
    book(make_patient("Ben", "Cruz"), service, time(11, 0))

    with pytest.raises(CapacityExceeded):
        reschedule_appointment(mine, MONDAY, time(11, 0), today=TODAY)

    mine.refresh_from_db()
    assert mine.start_time == time(9, 0)


@pytest.mark.django_db
def test_reschedule_reassigns_when_practitioner_busy(weekday_hours, make_practitioner, patient, make_patient, service):
    d1 = make_practitioner("D1")
    d2 = make_practitioner("D2")
    mine = book(patient, service, time(9, 0), honor_preferred=False)
    assert mine.practitioner_id == d1.id
    ledger_entry(make_patient("Ben", "Cruz"), service, MONDAY, time(13, 0), practitioner=d1)

    moved = reschedule_appointment(mine, MONDAY, time(13, 0), today=TODAY)
    assert moved.practitioner_id == d2.id
