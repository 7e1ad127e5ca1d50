# conftest.py
from datetime import time

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient


@pytest.fixture(autouse=True)
def _fresh_cache():
    # locmem cache outlives the per-test DB rollback
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def weekday_hours(db):
    """Mon-Fri 08:00-17:00, weekend closed."""
    from apps.clinic.models import ClinicWeeklySchedule

    rows = []
    for wd in range(7):
        if wd < 5:
            rows.append(ClinicWeeklySchedule.objects.create(
                weekday=wd, is_open=True, open_time=time(8, 0), close_time=time(17, 0)
            ))
        else:
            rows.append(ClinicWeeklySchedule.objects.create(weekday=wd, is_open=False))
    return rows


@pytest.fixture
def make_practitioner(db):
    from apps.clinicians.models import Practitioner

    def _make(code, days=("mon", "tue", "wed", "thu", "fri"), **kw):
        flags = {d: True for d in days}
        name = kw.pop("name", f"Dr {code}")
        return Practitioner.objects.create(code=code, name=name, **flags, **kw)
    return _make


@pytest.fixture
def make_patient(db):
    from apps.patients.models import Patient

    def _make(given="Ana", family="Reyes", **kw):
        return Patient.objects.create(given_name=given, family_name=family, **kw)
    return _make


@pytest.fixture
def patient(make_patient):
    return make_patient()


@pytest.fixture
def service(db):
    from apps.services.models import Service
    return Service.objects.create(name="Cleaning", estimated_minutes=30)


@pytest.fixture
def long_service(db):
    from apps.services.models import Service
    return Service.objects.create(name="Root canal", estimated_minutes=90)


def _user_in_group(username, group):
    from django.contrib.auth import get_user_model
    from django.contrib.auth.models import Group

    user = get_user_model().objects.create_user(username=username, password="pass12345!")
    user.groups.add(Group.objects.get_or_create(name=group)[0])
    return user


@pytest.fixture
def staff_user(db):
    return _user_in_group("frontdesk", "staff")


@pytest.fixture
def staff_client(staff_user):
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client


@pytest.fixture
def patient_user(db, patient):
    user = _user_in_group("ana", "patient")
    patient.user = user
    patient.save(update_fields=["user"])
    return user


@pytest.fixture
def patient_client(patient_user):
    client = APIClient()
    client.force_authenticate(user=patient_user)
    return client
