"""Clock engine — pure punch-list rules, no database access.

The service layer loads the record, reads the punch policy once, asks this
module what to do, applies the answer and persists. Keeping the rules here
means every decision can be tested with plain objects.
"""

from __future__ import annotations

import enum
import math
from datetime import datetime
from typing import Optional, Protocol, Sequence

from timekeeping.common.constants import PunchPolicy, PunchType
from timekeeping.common.timeutils import ensure_utc


class PunchLike(Protocol):
    punch_type: PunchType
    punched_at: datetime


class ClockDecision(str, enum.Enum):
    APPEND = "append"
    SKIP = "skip"
    OVERWRITE_LAST_OUT = "overwrite_last_out"


def sort_by_time(punches: Sequence[PunchLike]) -> list[PunchLike]:
    """Stable sort on punch time; equal times keep their recorded order."""
    return sorted(punches, key=lambda p: ensure_utc(p.punched_at))


def compute_work_minutes(punches: Sequence[PunchLike]) -> int:
    """Sum worked minutes over strict (IN, OUT) pairs of the time-sorted punches.

    Punches are walked two at a time from index 0. A pair counts only when it
    is exactly (IN, OUT); any other pair contributes nothing, as does an
    unpaired trailing punch. The total is rounded to the nearest minute.
    """
    ordered = sort_by_time(punches)
    total_seconds = 0.0
    for i in range(0, len(ordered) - 1, 2):
        first, second = ordered[i], ordered[i + 1]
        if first.punch_type == PunchType.IN and second.punch_type == PunchType.OUT:
            total_seconds += (
                ensure_utc(second.punched_at) - ensure_utc(first.punched_at)
            ).total_seconds()
    # Half-up rounding, so 30 seconds counts as a minute
    return math.floor(total_seconds / 60 + 0.5)


def plan_clock_in(punches: Sequence[PunchLike], policy: PunchPolicy) -> ClockDecision:
    # FIRST_LAST: the first clock-in of the day wins
    if policy == PunchPolicy.FIRST_LAST and any(
        p.punch_type == PunchType.IN for p in punches
    ):
        return ClockDecision.SKIP
    return ClockDecision.APPEND


def plan_clock_out(punches: Sequence[PunchLike], policy: PunchPolicy) -> ClockDecision:
    # FIRST_LAST: repeated clock-outs move the single terminal OUT
    if (
        policy == PunchPolicy.FIRST_LAST
        and punches
        and punches[-1].punch_type == PunchType.OUT
    ):
        return ClockDecision.OVERWRITE_LAST_OUT
    return ClockDecision.APPEND


def last_punch_by_time(punches: Sequence[PunchLike]) -> Optional[PunchLike]:
    ordered = sort_by_time(punches)
    return ordered[-1] if ordered else None


def has_unmatched_clock_in(punches: Sequence[PunchLike]) -> bool:
    """True when the punch list is non-empty and its latest punch is an IN."""
    last = last_punch_by_time(punches)
    return last is not None and last.punch_type == PunchType.IN
