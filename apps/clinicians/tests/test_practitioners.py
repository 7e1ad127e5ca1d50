from datetime import date, timedelta

import pytest
from django.urls import reverse

from apps.clinic.models import ClinicCalendar
from apps.clinicians.models import Practitioner

MONDAY = date(2025, 9, 22)


@pytest.mark.django_db
def test_active_on_filters_weekday_status_and_contract(make_practitioner):
    a = make_practitioner("A", days=("mon",))
    make_practitioner("B", days=("tue",))
    make_practitioner("C", days=("mon",), status=Practitioner.STATUS_INACTIVE)
    make_practitioner("D", days=("mon",), contract_end_date=MONDAY - timedelta(days=1))

    assert list(Practitioner.objects.active_on(MONDAY)) == [a]


def test_weekday_flags_index_matches_python_weekday():
    p = Practitioner(code="X", wed=True)
    assert p.weekday_flags == [False, False, True, False, False, False, False]


@pytest.mark.django_db
def test_available_for_date_lists_on_duty_roster(staff_client, weekday_hours, make_practitioner):
    make_practitioner("B2", days=("mon",))
    make_practitioner("A1", days=("mon",))
    make_practitioner("C3", days=("tue",))

    res = staff_client.get(reverse("clinicians_api:practitioner-available-for-date"), {"date": MONDAY.isoformat()})
    assert res.status_code == 200
    assert [p["code"] for p in res.json()] == ["A1", "B2"]


@pytest.mark.django_db
def test_available_for_date_empty_when_clinic_closed(staff_client, weekday_hours, make_practitioner):
    make_practitioner("A1", days=("mon",))
    ClinicCalendar.objects.create(date=MONDAY, is_open=False)

    res = staff_client.get(reverse("clinicians_api:practitioner-available-for-date"), {"date": MONDAY.isoformat()})
    assert res.json() == []


@pytest.mark.django_db
def test_practitioner_list_is_read_only(staff_client, make_practitioner):
    make_practitioner("A1")
    url = reverse("clinicians_api:practitioner-list")
    res = staff_client.get(url)
    assert res.status_code == 200
    assert res.json()["results"][0]["code"] == "A1"
    assert staff_client.post(url, {"code": "Z9"}, format="json").status_code == 405
