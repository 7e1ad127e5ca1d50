# apps/clinic/services.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Dict, List, NamedTuple, Optional, Tuple

from django.conf import settings
from django.core.cache import cache

from apps.clinicians.models import Practitioner

from .blocks import block_key, build_blocks
from .exceptions import ConfigurationGap
from .models import ClinicCalendar, ClinicWeeklySchedule

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

CONFIG_VERSION_KEY = "clinic:config:version"
_MISS = object()


class WeeklyHours(NamedTuple):
    is_open: bool
    open_time: Optional[time]
    close_time: Optional[time]


class OverrideRow(NamedTuple):
    is_open: bool
    open_time: Optional[time]
    close_time: Optional[time]
    capacity: Optional[int]
    note: str


@dataclass(frozen=True)
class DaySnapshot:
    """Resolved, read-only view of one date's operating parameters."""

    date: date
    is_open: bool
    open_time: Optional[time] = None
    close_time: Optional[time] = None
    effective_capacity: int = 0
    active_practitioner_ids: Tuple[int, ...] = field(default_factory=tuple)
    capacity_override: Optional[int] = None
    note: str = ""
    source: str = "weekly"  # weekly | override | missing

    @classmethod
    def closed(cls, day: date, *, source: str, note: str = "") -> "DaySnapshot":
        return cls(date=day, is_open=False, source=source, note=note)

    @property
    def practitioner_count(self) -> int:
        return len(self.active_practitioner_ids)

    def blocks(self, granularity_minutes: Optional[int] = None) -> List[time]:
        if not self.is_open:
            return []
        return build_blocks(self.open_time, self.close_time, granularity_minutes)

    def as_dict(self) -> Dict:
        return {
            "date": self.date.isoformat(),
            "is_open": self.is_open,
            "open_time": block_key(self.open_time) if self.open_time else None,
            "close_time": block_key(self.close_time) if self.close_time else None,
            "effective_capacity": self.effective_capacity,
            "capacity_override": self.capacity_override,
            "practitioner_count": self.practitioner_count,
            "active_practitioner_ids": list(self.active_practitioner_ids),
            "note": self.note,
            "source": self.source,
        }


# -------- configuration cache --------

def _config_version() -> str:
    version = cache.get(CONFIG_VERSION_KEY)
    if version is None:
        cache.add(CONFIG_VERSION_KEY, uuid.uuid4().hex, None)
        version = cache.get(CONFIG_VERSION_KEY)
    return str(version)


def invalidate_config_cache() -> None:
    """Drop every cached calendar/roster read (new version token, old keys expire)."""
    cache.set(CONFIG_VERSION_KEY, uuid.uuid4().hex, None)


# -------- resolver --------

class ClinicDateResolver:
    """
    Layers the weekly schedule, per-date overrides and the practitioner roster
    into a DaySnapshot.

    With use_cache=True configuration rows are read through the Django cache;
    only advisory reads (slot listings, deadline walks) should do that. The
    booking coordinator always resolves uncached.
    """

    def __init__(
        self,
        *,
        use_cache: bool = False,
        default_open_capacity: Optional[int] = None,
        cache_seconds: Optional[int] = None,
    ) -> None:
        self.use_cache = use_cache
        self.default_open_capacity = (
            default_open_capacity
            if default_open_capacity is not None
            else int(getattr(settings, "SCHEDULING_DEFAULT_OPEN_CAPACITY", 1))
        )
        self.cache_seconds = (
            cache_seconds
            if cache_seconds is not None
            else int(getattr(settings, "SCHEDULING_CONFIG_CACHE_SECONDS", 60))
        )

    def resolve(self, day: date) -> DaySnapshot:
        if isinstance(day, datetime):
            day = day.date()

        override = self._override(day)
        weekly = self._weekly().get(day.weekday())

        try:
            is_open, open_time, close_time, source = self._hours(day, override, weekly)
        except ConfigurationGap as gap:
            logger.warning("Calendar configuration gap on %s: %s; treating as closed", day.isoformat(), gap)
            return DaySnapshot.closed(day, source="missing", note=str(gap))

        note = override.note if override else ""
        if not is_open:
            return DaySnapshot.closed(day, source=source, note=note)

        practitioner_ids = self._practitioners_on(day)
        capacity_override = override.capacity if override else None

        if capacity_override is not None:
            capacity = capacity_override
        elif practitioner_ids:
            capacity = len(practitioner_ids)
        else:
            capacity = self.default_open_capacity

        return DaySnapshot(
            date=day,
            is_open=True,
            open_time=open_time,
            close_time=close_time,
            effective_capacity=max(0, int(capacity)),
            active_practitioner_ids=practitioner_ids,
            capacity_override=capacity_override,
            note=note,
            source=source,
        )

    # -- layering --

    @staticmethod
    def _hours(day: date, override: Optional[OverrideRow], weekly: Optional[WeeklyHours]):
        if override is not None:
            if not override.is_open:
                return False, None, None, "override"
            open_time = override.open_time or (weekly.open_time if weekly else None)
            close_time = override.close_time or (weekly.close_time if weekly else None)
            source = "override"
        else:
            if weekly is None:
                raise ConfigurationGap(f"no weekly schedule for {WEEKDAY_NAMES[day.weekday()]}")
            if not weekly.is_open:
                return False, None, None, "weekly"
            open_time, close_time = weekly.open_time, weekly.close_time
            source = "weekly"

        if open_time is None or close_time is None:
            raise ConfigurationGap("open day without opening hours")
        if open_time >= close_time:
            raise ConfigurationGap(f"closes at {block_key(close_time)} before opening at {block_key(open_time)}")
        return True, open_time, close_time, source

    # -- data access (optionally cached) --

    def _cached(self, name: str, loader):
        if not self.use_cache:
            return loader()
        key = f"clinic:{_config_version()}:{name}"
        hit = cache.get(key, _MISS)
        if hit is not _MISS:
            return hit
        value = loader()
        cache.set(key, value, self.cache_seconds)
        return value

    def _weekly(self) -> Dict[int, WeeklyHours]:
        def load():
            return {
                row.weekday: WeeklyHours(row.is_open, row.open_time, row.close_time)
                for row in ClinicWeeklySchedule.objects.all()
            }

        return self._cached("weekly", load)

    def _override(self, day: date) -> Optional[OverrideRow]:
        def load():
            row = ClinicCalendar.objects.filter(date=day).first()
            if row is None:
                return None
            return OverrideRow(row.is_open, row.open_time, row.close_time, row.max_per_block_override, row.note)

        return self._cached(f"override:{day.isoformat()}", load)

    def _practitioners_on(self, day: date) -> Tuple[int, ...]:
        def load():
            return tuple(Practitioner.objects.active_on(day).values_list("id", flat=True))

        return self._cached(f"practitioners:{day.isoformat()}", load)


def resolve_day(day: date, *, use_cache: bool = True) -> DaySnapshot:
    return ClinicDateResolver(use_cache=use_cache).resolve(day)
