from datetime import date, datetime, time, timedelta

import pytest
from django.utils import timezone

from apps.clinic.deadlines import business_day_deadline, end_of_day, walk_business_days
from apps.clinic.exceptions import SafetyLimitReached
from apps.clinic.models import ClinicCalendar, ClinicWeeklySchedule
from apps.clinic.services import ClinicDateResolver

MONDAY = date(2025, 9, 22)


@pytest.mark.django_db
def test_seven_business_days_from_monday_is_next_wednesday(weekday_hours):
    result = business_day_deadline(MONDAY, 7)

    expected_day = MONDAY + timedelta(days=9)
    assert expected_day.weekday() == 2
    assert timezone.localtime(result.deadline).date() == expected_day
    assert timezone.localtime(result.deadline).time() == time.max
    assert result.counted_days == 7
    assert not result.degraded


@pytest.mark.django_db
def test_deadline_is_timezone_aware_in_clinic_zone(weekday_hours):
    result = business_day_deadline(MONDAY, 1)
    assert timezone.is_aware(result.deadline)
    assert result.deadline == end_of_day(MONDAY + timedelta(days=1))


@pytest.mark.django_db
def test_holiday_overrides_are_skipped(weekday_hours):
    ClinicCalendar.objects.create(date=MONDAY + timedelta(days=1), is_open=False, note="Holiday")
    result = business_day_deadline(MONDAY, 1)
    assert timezone.localtime(result.deadline).date() == MONDAY + timedelta(days=2)


@pytest.mark.django_db
def test_non_positive_days_end_on_start_date(weekday_hours):
    assert business_day_deadline(MONDAY, 0).deadline == end_of_day(MONDAY)
    assert business_day_deadline(MONDAY, -3).deadline == end_of_day(MONDAY)


@pytest.mark.django_db
def test_deadline_monotonic_in_business_days(weekday_hours):
    deadlines = [business_day_deadline(MONDAY, n).deadline for n in range(0, 12)]
    assert deadlines == sorted(deadlines)


@pytest.mark.django_db
def test_only_open_days_are_counted(weekday_hours):
    resolver = ClinicDateResolver()
    day, counted = walk_business_days(MONDAY - timedelta(days=3), 1, max_scan_days=10, resolver=resolver)
    # From a Friday the next open day is Monday
    assert day == MONDAY
    assert counted == 1


@pytest.mark.django_db
def test_never_open_calendar_degrades_to_calendar_days(caplog):
    for wd in range(7):
        ClinicWeeklySchedule.objects.create(weekday=wd, is_open=False)

    with caplog.at_level("WARNING", logger="apps.clinic.deadlines"):
        result = business_day_deadline(MONDAY, 5, max_scan_days=30)

    assert result.degraded
    assert result.counted_days == 0
    assert result.deadline == end_of_day(MONDAY + timedelta(days=5))
    assert "falling back" in caplog.text


@pytest.mark.django_db
def test_walker_raises_safety_limit(weekday_hours):
    with pytest.raises(SafetyLimitReached) as exc:
        walk_business_days(MONDAY, 50, max_scan_days=14, resolver=ClinicDateResolver())
    assert exc.value.scanned_days == 14
    assert exc.value.counted_days == 10


@pytest.mark.django_db
def test_datetime_start_uses_local_date(weekday_hours):
    start = timezone.make_aware(datetime(2025, 9, 22, 18, 30))
    assert business_day_deadline(start, 1).deadline == end_of_day(date(2025, 9, 23))
