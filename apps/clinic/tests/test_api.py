from datetime import date, time, timedelta

import pytest
from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework.test import APIClient

from apps.clinic.models import ClinicCalendar

MONDAY = date(2025, 9, 22)


@pytest.mark.django_db
def test_jwt_login_and_calendar_snapshot(weekday_hours, make_practitioner):
    make_practitioner("D1")
    U = get_user_model()
    U.objects.create_user(username="apiuser", password="pass12345!")

    client = APIClient()

    # 1) obtain token
    res = client.post(reverse("token_obtain_pair"), {"username": "apiuser", "password": "pass12345!"}, format="json")
    assert res.status_code == 200, res.content
    access = res.json()["access"]

    # 2) use Bearer token to hit a protected endpoint
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")
    r2 = client.get(reverse("clinic_api:calendar-snapshot"), {"date": MONDAY.isoformat()})
    assert r2.status_code == 200, r2.content
    body = r2.json()
    assert body["is_open"] is True
    assert body["open_time"] == "08:00"
    assert body["close_time"] == "17:00"
    assert body["effective_capacity"] == 1
    assert body["practitioner_count"] == 1


@pytest.mark.django_db
def test_snapshot_reports_override(staff_client, weekday_hours):
    ClinicCalendar.objects.create(
        date=MONDAY + timedelta(days=1), is_open=True, open_time=time(10, 0), max_per_block_override=4, note="Clinic day"
    )
    res = staff_client.get(reverse("clinic_api:calendar-snapshot"), {"date": (MONDAY + timedelta(days=1)).isoformat()})
    body = res.json()
    assert body["open_time"] == "10:00"
    assert body["capacity_override"] == 4
    assert body["effective_capacity"] == 4
    assert body["note"] == "Clinic day"


@pytest.mark.django_db
def test_snapshot_requires_auth_and_valid_date(staff_client):
    url = reverse("clinic_api:calendar-snapshot")
    assert APIClient().get(url, {"date": MONDAY.isoformat()}).status_code == 401
    assert staff_client.get(url, {"date": "not-a-date"}).status_code == 400
    assert staff_client.get(url).status_code == 400


def test_health(client):
    assert client.get("/health/").json() == {"ok": True}
