# apps/appointments/preferred.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from apps.clinic.services import DaySnapshot
from apps.clinicians.models import Practitioner

from .models import Appointment


def derive_preferred_practitioner(history: Iterable, reference_date: date) -> Optional[int]:
    """
    Practitioner of the most recent completed booking on or before
    reference_date. Ties go to the later start, then the later creation.

    `history` is any iterable of objects with practitioner_id, status, date,
    start_time and created_at (Appointment rows in practice).
    """
    latest = None
    latest_key = None
    for row in history:
        if row.status != Appointment.STATUS_COMPLETED or not row.practitioner_id:
            continue
        if row.date > reference_date:
            continue
        key = (row.date, row.start_time, row.created_at)
        if latest_key is None or key > latest_key:
            latest, latest_key = row, key
    return latest.practitioner_id if latest else None


def preferred_practitioner_id(patient_id: Optional[int], reference_date: date) -> Optional[int]:
    if not patient_id:
        return None
    history = (
        Appointment.objects.filter(
            patient_id=patient_id,
            status=Appointment.STATUS_COMPLETED,
            practitioner__isnull=False,
            date__lte=reference_date,
        )
        .only("practitioner_id", "status", "date", "start_time", "created_at")
    )
    return derive_preferred_practitioner(history, reference_date)


@dataclass(frozen=True)
class PreferenceStatus:
    preferred_id: Optional[int]
    present: bool
    requested: bool

    @property
    def effective(self) -> bool:
        # Only binding when the preferred dentist actually works that day
        return self.requested and self.preferred_id is not None and self.present

    def as_metadata(self) -> dict:
        brief = None
        if self.preferred_id is not None:
            p = Practitioner.objects.filter(pk=self.preferred_id).only("id", "code", "name").first()
            if p is not None:
                brief = {"id": p.id, "code": p.code, "name": p.name}
        return {
            "preferred_dentist_id": self.preferred_id,
            "preferred_dentist_present": self.present,
            "requested_honor_preferred_dentist": self.requested,
            "effective_honor_preferred_dentist": self.effective,
            "preferred_dentist": brief,
        }


def preference_for(patient_id: Optional[int], snapshot: DaySnapshot, requested: bool) -> PreferenceStatus:
    preferred_id = preferred_practitioner_id(patient_id, snapshot.date)
    present = preferred_id is not None and preferred_id in snapshot.active_practitioner_ids
    return PreferenceStatus(preferred_id=preferred_id, present=present, requested=bool(requested))
