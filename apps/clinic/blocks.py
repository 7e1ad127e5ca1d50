# apps/clinic/blocks.py
"""
Fixed-granularity time grid.

Every capacity count in the scheduler is keyed by block start time, so the
grid builder and the ledger accounting must share one granularity
(settings.SCHEDULING_BLOCK_MINUTES). Arithmetic runs on minutes-of-day so a
span can never wrap past midnight.
"""
from __future__ import annotations

import math
from datetime import time
from typing import List, Optional

from django.conf import settings

MINUTES_PER_DAY = 24 * 60


def granularity(minutes: Optional[int] = None) -> int:
    value = int(minutes or getattr(settings, "SCHEDULING_BLOCK_MINUTES", 30))
    if value <= 0:
        raise ValueError("Block granularity must be a positive number of minutes.")
    return value


def to_minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def from_minutes(m: int) -> time:
    if not 0 <= m < MINUTES_PER_DAY:
        raise ValueError(f"{m} minutes is outside a single day")
    return time(m // 60, m % 60)


def block_key(t: time) -> str:
    """'HH:MM' label used in API payloads and usage maps."""
    return t.strftime("%H:%M")


def build_blocks(open_time: Optional[time], close_time: Optional[time], granularity_minutes: Optional[int] = None) -> List[time]:
    """Block starts from open_time up to (not including) close_time."""
    if open_time is None or close_time is None:
        return []
    step = granularity(granularity_minutes)
    start, end = to_minutes(open_time), to_minutes(close_time)
    return [from_minutes(m) for m in range(start, end, step)]


def blocks_needed(duration_minutes: int, granularity_minutes: Optional[int] = None) -> int:
    step = granularity(granularity_minutes)
    return max(1, math.ceil(int(duration_minutes) / step))


def span_end(start: time, n_blocks: int, granularity_minutes: Optional[int] = None) -> int:
    """End of an n-block span in minutes-of-day (may reach 1440)."""
    return to_minutes(start) + n_blocks * granularity(granularity_minutes)


def occupied_blocks(start: time, n_blocks: int, granularity_minutes: Optional[int] = None) -> List[time]:
    step = granularity(granularity_minutes)
    first = to_minutes(start)
    return [from_minutes(first + i * step) for i in range(n_blocks) if first + i * step < MINUTES_PER_DAY]


def fits_before_close(start: time, n_blocks: int, close_time: time, granularity_minutes: Optional[int] = None) -> bool:
    return span_end(start, n_blocks, granularity_minutes) <= to_minutes(close_time)


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    # Intervals are [start, end); touching ends do not overlap
    return a_start < b_end and b_start < a_end
