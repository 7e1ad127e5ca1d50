from datetime import date, datetime, time, timedelta
from decimal import Decimal
from io import StringIO

import pytest
from django.core.management import call_command
from django.utils import timezone

from apps.audit.models import AuditEvent
from apps.clinic.deadlines import end_of_day
from apps.clinic.models import ClinicCalendar
from apps.refunds.models import RefundRequest, RefundSetting
from apps.refunds.services import check_refund_deadlines

MONDAY = date(2025, 9, 22)


def aware(day, hour=10):
    return timezone.make_aware(datetime.combine(day, time(hour, 0)))


def refund(patient, requested_on=MONDAY, **kw):
    return RefundRequest.objects.create(
        patient=patient,
        original_amount=Decimal("1500.00"),
        cancellation_fee=Decimal("150.00"),
        refund_amount=Decimal("1350.00"),
        requested_at=aware(requested_on),
        **kw,
    )


@pytest.mark.django_db
def test_settings_singleton_defaults():
    s = RefundSetting.get_settings()
    assert (s.processing_business_days, s.reminder_days) == (7, 2)
    assert RefundSetting.get_settings().pk == s.pk


@pytest.mark.django_db
def test_deadline_computed_on_first_save(weekday_hours, patient):
    r = refund(patient)
    # seven open days after Monday: next week's Wednesday
    assert r.deadline_at == end_of_day(MONDAY + timedelta(days=9))


@pytest.mark.django_db
def test_deadline_skips_holidays_and_follows_setting(weekday_hours, patient):
    ClinicCalendar.objects.create(date=MONDAY + timedelta(days=1), is_open=False, note="Holiday")
    s = RefundSetting.get_settings()
    s.processing_business_days = 2
    s.save()

    r = refund(patient)
    assert r.deadline_at == end_of_day(MONDAY + timedelta(days=3))


@pytest.mark.django_db
def test_deadline_not_recomputed_on_later_saves(weekday_hours, patient):
    r = refund(patient)
    first = r.deadline_at
    ClinicCalendar.objects.create(date=MONDAY + timedelta(days=2), is_open=False)
    r.status = RefundRequest.STATUS_APPROVED
    r.save()
    r.refresh_from_db()
    assert r.deadline_at == first


@pytest.mark.django_db
def test_overdue_and_days_until_deadline(weekday_hours, patient):
    r = refund(patient)
    deadline_day = MONDAY + timedelta(days=9)

    assert not r.is_overdue(aware(deadline_day, 23))
    assert r.is_overdue(aware(deadline_day + timedelta(days=1), 0))
    assert r.days_until_deadline(aware(MONDAY)) == 9
    assert r.days_until_deadline(aware(deadline_day + timedelta(days=2))) == -2

    r.status = RefundRequest.STATUS_COMPLETED
    assert not r.is_overdue(aware(deadline_day + timedelta(days=5)))


@pytest.mark.django_db
def test_check_deadlines_sorts_and_audits(weekday_hours, patient):
    overdue = refund(patient, requested_on=MONDAY - timedelta(days=21))
    approaching = refund(patient, requested_on=MONDAY - timedelta(days=7))
    later = refund(patient, requested_on=MONDAY)
    refund(patient, requested_on=MONDAY - timedelta(days=28), status=RefundRequest.STATUS_COMPLETED)

    now = aware(MONDAY)
    report = check_refund_deadlines(now)

    assert [r.id for r in report.overdue] == [overdue.id]
    assert [r.id for r in report.approaching] == [approaching.id]
    assert later not in report.overdue + report.approaching
    assert AuditEvent.objects.filter(action="refund.deadline_overdue", object_id=str(overdue.id)).exists()
    event = AuditEvent.objects.get(action="refund.deadline_approaching")
    assert event.context["days_remaining"] == 2
    assert event.category == "refund"


@pytest.mark.django_db
def test_check_deadlines_without_recording(weekday_hours, patient):
    refund(patient, requested_on=MONDAY - timedelta(days=21))
    report = check_refund_deadlines(aware(MONDAY), record=False)
    assert report.total == 1
    assert not AuditEvent.objects.exists()


@pytest.mark.django_db
def test_command_dry_run(weekday_hours):
    out = StringIO()
    call_command("check_refund_deadlines", "--dry-run", stdout=out)
    assert "No refund deadlines need attention." in out.getvalue()


@pytest.mark.django_db
def test_task_runs_eagerly(weekday_hours):
    from apps.refunds.tasks import check_refund_deadlines_task

    result = check_refund_deadlines_task.delay()
    assert result.get() == {"overdue": [], "approaching": []}
