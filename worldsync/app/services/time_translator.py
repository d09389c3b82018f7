"""Translation of real-world time into simulated world ticks."""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from worldsync.app.services.profile_store import TICKS_MAX, TICKS_MIN, Profile

# 20 simulated ticks for every 72 real seconds
TICK_RATIO = 20 / 72

# Elapsed time zero lands at mid-day instead of midnight
DAY_START_OFFSET = 18000

_ONE_MILLISECOND = timedelta(milliseconds=1)


@dataclass(frozen=True)
class TimeTranslation:
    now: datetime
    base_ticks: int
    simulated_time: int


def elapsed_millis(time_zero: datetime, now: datetime) -> int:
    """Whole milliseconds from time_zero to now (negative if time_zero is later)."""
    return (now - time_zero) // _ONE_MILLISECOND


def clamp_ticks(value: float) -> int:
    """Truncate toward zero, saturating at the signed 64-bit bounds (NaN is 0)."""
    if math.isnan(value):
        return 0
    if value >= TICKS_MAX:
        return TICKS_MAX
    if value <= TICKS_MIN:
        return TICKS_MIN
    return int(value)


def translate_time(now: datetime, profile: Profile) -> TimeTranslation:
    base_ticks = math.floor(elapsed_millis(profile.time_zero, now) / 1000 * TICK_RATIO) + DAY_START_OFFSET
    offset = min(max(profile.time_offset, TICKS_MIN), TICKS_MAX)
    # float multiply/add, truncated toward zero
    gametime = clamp_ticks(profile.time_speed * base_ticks + offset)
    return TimeTranslation(now=now, base_ticks=base_ticks, simulated_time=gametime)


def simulated_time(now: datetime, profile: Profile) -> int:
    """Get the simulated world time for the profile at the real time now."""
    return translate_time(now, profile).simulated_time
