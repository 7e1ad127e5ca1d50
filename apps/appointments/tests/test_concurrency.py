import threading
from datetime import date, time, timedelta

import pytest
from django.db import connections

from apps.appointments.booking import book_appointment
from apps.appointments.exceptions import CapacityExceeded
from apps.appointments.models import Appointment

MONDAY = date(2025, 9, 22)


def run_in_parallel(patients, service, start_time):
    """Book the same start for every patient at once; return the outcomes."""
    barrier = threading.Barrier(len(patients))
    outcomes = []
    lock = threading.Lock()

    def worker(p):
        try:
            barrier.wait()
            try:
                appt = book_appointment(p, service, MONDAY, start_time, today=MONDAY - timedelta(days=1))
                result = ("ok", appt.practitioner_id)
            except CapacityExceeded:
                result = ("full", None)
            with lock:
                outcomes.append(result)
        finally:
            connections.close_all()

    threads = [threading.Thread(target=worker, args=(p,)) for p in patients]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return outcomes


@pytest.mark.django_db(transaction=True)
def test_parallel_requests_never_exceed_capacity(weekday_hours, make_practitioner, make_patient, service):
    make_practitioner("D1")
    make_practitioner("D2")
    patients = [make_patient(f"P{i}", "Load") for i in range(6)]

    outcomes = run_in_parallel(patients, service, time(9, 0))

    assert len(outcomes) == 6
    ok = [pid for kind, pid in outcomes if kind == "ok"]
    assert len(ok) == 2
    assert len(set(ok)) == 2
    assert outcomes.count(("full", None)) == 4
    assert Appointment.objects.active().filter(date=MONDAY).count() == 2


@pytest.mark.django_db(transaction=True)
def test_two_requests_for_last_slot_one_wins(weekday_hours, make_practitioner, make_patient, service):
    make_practitioner("D1")
    patients = [make_patient("Ana", "First"), make_patient("Ben", "Second")]

    outcomes = run_in_parallel(patients, service, time(16, 30))

    assert sorted(kind for kind, _ in outcomes) == ["full", "ok"]
    assert Appointment.objects.filter(date=MONDAY, start_time=time(16, 30)).count() == 1
