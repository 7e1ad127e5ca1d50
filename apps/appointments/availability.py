# apps/appointments/availability.py
"""
Slot listing for one date.

Advisory only: nothing is locked here, and the booking coordinator re-checks
everything before inserting.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from apps.clinic.blocks import (
    block_key,
    blocks_needed,
    fits_before_close,
    from_minutes,
    granularity,
    to_minutes,
)
from apps.clinic.services import ClinicDateResolver, DaySnapshot

from .preferred import preference_for
from .services import (
    block_usage,
    bookings_for_date,
    first_full_block,
    patient_has_overlap,
    practitioner_is_free,
    usage_report,
)

logger = logging.getLogger(__name__)

NO_SLOTS_MESSAGE = "No slots available, try another date."


@dataclass
class SlotListing:
    date: date
    slots: List[str]
    snapshot: DaySnapshot
    metadata: Dict
    usage: Dict = field(default_factory=dict)

    @property
    def message(self) -> str:
        return "" if self.slots else NO_SLOTS_MESSAGE

    def as_dict(self) -> Dict:
        return {
            "date": self.date.isoformat(),
            "slots": list(self.slots),
            "message": self.message,
            "snapshot": self.snapshot.as_dict(),
            "usage": self.usage,
            "metadata": self.metadata,
        }


def available_slots(
    day: date,
    duration_minutes: int,
    patient_id: Optional[int] = None,
    honor_preferred: bool = True,
    *,
    resolver: Optional[ClinicDateResolver] = None,
    exclude_appointment_id: Optional[int] = None,
) -> SlotListing:
    resolver = resolver or ClinicDateResolver(use_cache=True)
    snapshot = resolver.resolve(day)

    if not snapshot.is_open:
        preference = preference_for(patient_id, snapshot, honor_preferred)
        return SlotListing(date=day, slots=[], snapshot=snapshot, metadata=preference.as_metadata())

    step = granularity()
    grid = [to_minutes(t) for t in snapshot.blocks(step)]
    n = blocks_needed(duration_minutes, step)

    bookings = bookings_for_date(day, exclude_id=exclude_appointment_id)
    usage = block_usage(bookings, grid, step)
    preference = preference_for(patient_id, snapshot, honor_preferred)

    slots: List[str] = []
    for start in grid:
        if not fits_before_close(from_minutes(start), n, snapshot.close_time, step):
            break
        end = start + n * step
        span = range(start, end, step)
        if first_full_block(usage, span, snapshot.effective_capacity) is not None:
            continue
        if preference.effective and not practitioner_is_free(bookings, preference.preferred_id, start, end):
            continue
        if patient_has_overlap(bookings, patient_id, start, end):
            continue
        slots.append(block_key(from_minutes(start)))

    logger.debug(
        "Listed %s slot(s) on %s for %s min (capacity %s, preferred %s)",
        len(slots), day.isoformat(), duration_minutes, snapshot.effective_capacity,
        preference.preferred_id if preference.effective else "-",
    )
    return SlotListing(
        date=day,
        slots=sorted(set(slots)),
        snapshot=snapshot,
        metadata=preference.as_metadata(),
        usage=usage_report(snapshot, bookings, step),
    )
