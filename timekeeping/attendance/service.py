"""Attendance service layer — clock in/out, manual correction, record reads.

Business logic:
  - Clock in/out under the active punch policy (decisions in engine.py)
  - Worked minutes recomputed from the punch list on every mutation
  - HR manual correction: full punch overwrite, finalised for payroll
  - Read operations for self and admin views
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from timekeeping.attendance import engine
from timekeeping.attendance.engine import ClockDecision
from timekeeping.attendance.models import AttendancePunch, AttendanceRecord
from timekeeping.attendance.policy import PunchPolicyService
from timekeeping.attendance.schemas import (
    AttendanceListResponse,
    AttendanceRecordDetail,
    AttendanceRecordResponse,
    ClockResponse,
    PunchIn,
)
from timekeeping.common.audit import create_audit_entry
from timekeeping.common.constants import PunchPolicy, PunchType
from timekeeping.common.exceptions import (
    NoActiveClockInError,
    NotFoundException,
    ValidationException,
)
from timekeeping.common.pagination import PaginationParams, paginate
from timekeeping.common.timeutils import ensure_utc, today, utcnow
from timekeeping.core_hr.models import Employee

logger = logging.getLogger(__name__)


# ── Record helpers (shared with the correction workflow and sweeps) ──


async def find_record(
    db: AsyncSession,
    employee_id: uuid.UUID,
    on: date,
) -> Optional[AttendanceRecord]:
    result = await db.execute(
        select(AttendanceRecord).where(
            AttendanceRecord.employee_id == employee_id,
            AttendanceRecord.date == on,
        )
    )
    return result.scalars().first()


async def find_or_create_record(
    db: AsyncSession,
    employee_id: uuid.UUID,
    on: date,
) -> AttendanceRecord:
    """Return the (employee, day) record, creating an empty one if missing."""
    record = await find_record(db, employee_id, on)
    if record is None:
        record = AttendanceRecord(
            employee_id=employee_id,
            date=on,
            punches=[],
            total_work_minutes=0,
            has_missed_punch=False,
            finalised_for_payroll=False,
        )
        db.add(record)
    return record


def replace_punches(
    record: AttendanceRecord,
    punches: Iterable[PunchIn],
    *,
    corrected_by: uuid.UUID,
    reason: str,
) -> None:
    """Overwrite a record's punches with an authoritative set.

    Used by manual correction and approved correction requests; both leave
    the record recomputed, unflagged and finalised for payroll.
    """
    record.punches = [
        AttendancePunch(
            sequence=index,
            punch_type=p.type,
            punched_at=ensure_utc(p.time),
            location=p.location,
        )
        for index, p in enumerate(punches)
    ]
    record.total_work_minutes = engine.compute_work_minutes(record.punches)
    record.has_missed_punch = False
    record.finalised_for_payroll = True
    record.corrected_by = corrected_by
    record.correction_reason = reason
    record.updated_at = utcnow()


def _append_punch(
    record: AttendanceRecord,
    punch_type: PunchType,
    at: datetime,
    location: Optional[str],
) -> AttendancePunch:
    punch = AttendancePunch(
        sequence=max((p.sequence for p in record.punches), default=-1) + 1,
        punch_type=punch_type,
        punched_at=at,
        location=location,
    )
    record.punches.append(punch)
    return punch


# ═════════════════════════════════════════════════════════════════════
# AttendanceService
# ═════════════════════════════════════════════════════════════════════


class AttendanceService:
    """Async attendance operations: clock, correct, read."""

    # ── Clock in ────────────────────────────────────────────────────

    @staticmethod
    async def clock_in(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        time: Optional[datetime] = None,
        location: Optional[str] = None,
        policy: Optional[PunchPolicy] = None,
    ) -> ClockResponse:
        """Record a clock-in on today's record, honouring the punch policy."""

        punch_time = ensure_utc(time) if time else utcnow()
        day = today()
        if policy is None:
            policy = await PunchPolicyService.get_policy(db)

        record = await find_or_create_record(db, employee_id, day)

        if engine.plan_clock_in(record.punches, policy) == ClockDecision.SKIP:
            await db.flush()
            return ClockResponse(
                message="Already clocked in for today (FIRST_LAST policy)",
                record=AttendanceRecordResponse.model_validate(record),
            )

        _append_punch(record, PunchType.IN, punch_time, location)
        record.updated_at = utcnow()
        await db.flush()

        await create_audit_entry(
            db,
            action="clock_in",
            entity_type="attendance_record",
            entity_id=record.id,
            actor_id=employee_id,
            new_values={"time": punch_time.isoformat(), "location": location, "policy": policy.value},
        )

        return ClockResponse(
            message="Clock-in successful",
            record=AttendanceRecordResponse.model_validate(record),
        )

    # ── Clock out ───────────────────────────────────────────────────

    @staticmethod
    async def clock_out(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        time: Optional[datetime] = None,
        location: Optional[str] = None,
        policy: Optional[PunchPolicy] = None,
    ) -> ClockResponse:
        """Record a clock-out on today's record, honouring the punch policy."""

        punch_time = ensure_utc(time) if time else utcnow()
        day = today()

        record = await find_record(db, employee_id, day)
        if record is None:
            raise NoActiveClockInError()

        if policy is None:
            policy = await PunchPolicyService.get_policy(db)

        decision = engine.plan_clock_out(record.punches, policy)
        if decision == ClockDecision.OVERWRITE_LAST_OUT:
            last_out = record.punches[-1]
            last_out.punched_at = punch_time
            if location:
                last_out.location = location
            message = "Clock-out updated (FIRST_LAST policy)"
        else:
            _append_punch(record, PunchType.OUT, punch_time, location)
            message = "Clock-out successful"

        # Both branches recompute so total_work_minutes always matches the punches
        record.total_work_minutes = engine.compute_work_minutes(record.punches)
        record.has_missed_punch = False
        record.updated_at = utcnow()
        await db.flush()

        await create_audit_entry(
            db,
            action="clock_out",
            entity_type="attendance_record",
            entity_id=record.id,
            actor_id=employee_id,
            new_values={
                "time": punch_time.isoformat(),
                "location": location,
                "policy": policy.value,
                "decision": decision.value,
                "total_work_minutes": record.total_work_minutes,
            },
        )

        return ClockResponse(
            message=message,
            record=AttendanceRecordResponse.model_validate(record),
        )

    # ── Manual correction ───────────────────────────────────────────

    @staticmethod
    async def correct_attendance(
        db: AsyncSession,
        record_id: uuid.UUID,
        *,
        punches: Sequence[PunchIn],
        corrected_by: uuid.UUID,
        reason: str,
    ) -> ClockResponse:
        """Overwrite a record's punches directly, bypassing the request workflow."""

        record = await AttendanceService._get_record_or_404(db, record_id)
        old_values = {
            "punch_count": len(record.punches),
            "total_work_minutes": record.total_work_minutes,
        }

        replace_punches(record, punches, corrected_by=corrected_by, reason=reason)
        await db.flush()

        await create_audit_entry(
            db,
            action="correct",
            entity_type="attendance_record",
            entity_id=record.id,
            actor_id=corrected_by,
            old_values=old_values,
            new_values={
                "punch_count": len(record.punches),
                "total_work_minutes": record.total_work_minutes,
                "reason": reason,
            },
        )
        logger.info("Attendance record %s corrected by %s", record.id, corrected_by)

        return ClockResponse(
            message="Attendance corrected successfully",
            record=AttendanceRecordResponse.model_validate(record),
        )

    # ── Reads ───────────────────────────────────────────────────────

    @staticmethod
    async def _get_record_or_404(
        db: AsyncSession,
        record_id: uuid.UUID,
    ) -> AttendanceRecord:
        result = await db.execute(
            select(AttendanceRecord).where(AttendanceRecord.id == record_id)
        )
        record = result.scalars().first()
        if record is None:
            raise NotFoundException("AttendanceRecord", record_id)
        return record

    @staticmethod
    async def get_record(
        db: AsyncSession,
        record_id: uuid.UUID,
    ) -> AttendanceRecordDetail:
        record = await AttendanceService._get_record_or_404(db, record_id)
        return AttendanceRecordDetail.model_validate(record)

    @staticmethod
    async def get_my_today(
        db: AsyncSession,
        employee_id: uuid.UUID,
    ) -> Optional[AttendanceRecordResponse]:
        """Today's record for the employee, or None before the first clock-in."""
        record = await find_record(db, employee_id, today())
        return AttendanceRecordResponse.model_validate(record) if record else None

    @staticmethod
    async def list_records(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        employee_id: Optional[uuid.UUID] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        has_missed_punch: Optional[bool] = None,
        finalised: Optional[bool] = None,
    ) -> AttendanceListResponse:
        """Attendance records, newest day first, with employees populated."""

        if from_date and to_date and from_date > to_date:
            raise ValidationException(
                {"date_range": ["from_date must be before or equal to to_date."]}
            )

        query = select(AttendanceRecord).order_by(
            AttendanceRecord.date.desc(), AttendanceRecord.created_at.desc()
        )
        if employee_id is not None:
            query = query.where(AttendanceRecord.employee_id == employee_id)
        if from_date is not None:
            query = query.where(AttendanceRecord.date >= from_date)
        if to_date is not None:
            query = query.where(AttendanceRecord.date <= to_date)
        if has_missed_punch is not None:
            query = query.where(AttendanceRecord.has_missed_punch == has_missed_punch)
        if finalised is not None:
            query = query.where(AttendanceRecord.finalised_for_payroll == finalised)

        rows, meta = await paginate(db, query, pagination)
        return AttendanceListResponse(
            data=[AttendanceRecordDetail.model_validate(r) for r in rows],
            meta=meta,
        )

    @staticmethod
    async def get_employee_records(
        db: AsyncSession,
        employee_id: uuid.UUID,
        pagination: PaginationParams,
    ) -> AttendanceListResponse:
        """Records of one employee (admin view). 404 for unknown employees."""

        emp_result = await db.execute(
            select(Employee.id).where(Employee.id == employee_id)
        )
        if emp_result.scalars().first() is None:
            raise NotFoundException("Employee", employee_id)

        return await AttendanceService.list_records(
            db, pagination, employee_id=employee_id,
        )
