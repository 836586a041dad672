"""Scheduled integrity sweeps over attendance records and shift assignments.

Both sweeps take an open session and leave committing to the caller (the
scheduler, or the request session for on-demand runs).
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from timekeeping.attendance import engine
from timekeeping.attendance.models import AttendanceRecord, ShiftAssignment
from timekeeping.common.constants import ShiftAssignmentStatus
from timekeeping.common.timeutils import day_key, utcnow
from timekeeping.config import settings
from timekeeping.core_hr.models import Employee
from timekeeping.notifications.service import notify_missed_punch, notify_shift_expiry

logger = logging.getLogger(__name__)


# ── Missed punch (end of day) ───────────────────────────────────────


async def flag_missed_punches(
    db: AsyncSession,
    *,
    now: Optional[datetime] = None,
) -> int:
    """Flag today's records whose latest punch is an unmatched clock-in.

    Records with no punches are skipped. Each flagged record gets one
    MISSED_PUNCH notification. Returns the number of records flagged.
    """
    today = day_key(now or utcnow())
    result = await db.execute(
        select(AttendanceRecord).where(AttendanceRecord.date == today)
    )

    flagged = 0
    for record in result.scalars().all():
        if not engine.has_unmatched_clock_in(record.punches):
            continue
        record.has_missed_punch = True
        record.updated_at = utcnow()
        await notify_missed_punch(db, record)
        flagged += 1

    await db.flush()
    logger.info("Missed-punch sweep for %s flagged %d record(s)", today, flagged)
    return flagged


# ── Shift expiry (morning) ──────────────────────────────────────────


async def notify_expiring_shifts(
    db: AsyncSession,
    *,
    now: Optional[datetime] = None,
) -> int:
    """Notify about APPROVED shift assignments ending within the window.

    The window is inclusive on both ends: from today up to today plus
    SHIFT_EXPIRY_WINDOW_DAYS. Assignments are only read.
    """
    now = now or utcnow()
    start = day_key(now)
    end = day_key(now + timedelta(days=settings.SHIFT_EXPIRY_WINDOW_DAYS))

    result = await db.execute(
        select(ShiftAssignment)
        .where(
            ShiftAssignment.status == ShiftAssignmentStatus.APPROVED,
            ShiftAssignment.end_date.is_not(None),
            ShiftAssignment.end_date >= start,
            ShiftAssignment.end_date <= end,
        )
        .order_by(ShiftAssignment.end_date)
    )

    notified = 0
    for assignment in result.scalars().all():
        employee = (
            await db.get(Employee, assignment.employee_id)
            if assignment.employee_id is not None
            else None
        )
        if employee is not None:
            name = f"{employee.full_name} ({employee.employee_number})"
        else:
            name = "Unknown Employee"
        await notify_shift_expiry(db, assignment, name, assignment.end_date)
        notified += 1

    await db.flush()
    logger.info(
        "Shift-expiry sweep for %s..%s sent %d notification(s)", start, end, notified,
    )
    return notified


# Registry used by the scheduler and the on-demand endpoint
SWEEPS = {
    "missed-punch": flag_missed_punches,
    "shift-expiry": notify_expiring_shifts,
}
