"""Notification log — the single append path, the employee feed and the
attendance dispatchers.

Entries are never updated or deleted once written.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from timekeeping.common.constants import NotificationType
from timekeeping.common.pagination import PaginationParams, paginate
from timekeeping.notifications.models import NotificationLog
from timekeeping.notifications.schemas import NotificationFeedResponse, NotificationLogEntry


# ── Core service ────────────────────────────────────────────────────


class NotificationService:
    """Async notification log operations."""

    @staticmethod
    async def create_notification(
        db: AsyncSession,
        *,
        type: NotificationType,
        employee_id: Optional[uuid.UUID],
        title: str,
        message: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[uuid.UUID] = None,
    ) -> NotificationLog:
        """Append a notification entry and flush to DB."""
        notification = NotificationLog(
            type=type,
            employee_id=employee_id,
            title=title,
            message=message,
            entity_type=entity_type,
            entity_id=entity_id,
        )
        db.add(notification)
        await db.flush()
        return notification

    @staticmethod
    async def list_for_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        notification_type: Optional[NotificationType] = None,
        entity_id: Optional[uuid.UUID] = None,
        since: Optional[datetime] = None,
    ) -> NotificationFeedResponse:
        """An employee's notification entries, newest first.

        ``entity_id`` narrows the feed to one attendance record, correction
        request or shift assignment.
        """
        query = (
            select(NotificationLog)
            .where(NotificationLog.employee_id == employee_id)
            .order_by(NotificationLog.created_at.desc())
        )
        if notification_type is not None:
            query = query.where(NotificationLog.type == notification_type)
        if entity_id is not None:
            query = query.where(NotificationLog.entity_id == entity_id)
        if since is not None:
            query = query.where(NotificationLog.created_at >= since)

        rows, meta = await paginate(db, query, pagination)
        return NotificationFeedResponse(
            data=[NotificationLogEntry.model_validate(n) for n in rows],
            meta=meta,
        )


# ── Attendance dispatchers ──────────────────────────────────────────
# Imported by the attendance services and sweeps. They accept ORM objects
# directly to avoid coupling on response schemas.


async def notify_missed_punch(
    db: AsyncSession,
    record,  # timekeeping.attendance.models.AttendanceRecord
) -> NotificationLog:
    """Tell the employee their day ended with an open clock-in."""
    return await NotificationService.create_notification(
        db,
        type=NotificationType.MISSED_PUNCH,
        employee_id=record.employee_id,
        title="Missed Clock-Out",
        message="You forgot to clock out today",
        entity_type="attendance_record",
        entity_id=record.id,
    )


async def notify_correction_approved(
    db: AsyncSession,
    correction,  # timekeeping.attendance.models.AttendanceCorrectionRequest
) -> NotificationLog:
    """Notify the employee that their correction request was approved."""
    return await NotificationService.create_notification(
        db,
        type=NotificationType.CORRECTION_APPROVED,
        employee_id=correction.employee_id,
        title="Attendance Correction Approved",
        message="Your attendance correction request has been approved",
        entity_type="correction_request",
        entity_id=correction.id,
    )


async def notify_correction_rejected(
    db: AsyncSession,
    correction,  # timekeeping.attendance.models.AttendanceCorrectionRequest
    comment: Optional[str],
) -> NotificationLog:
    """Notify the employee that their correction request was rejected."""
    return await NotificationService.create_notification(
        db,
        type=NotificationType.CORRECTION_REJECTED,
        employee_id=correction.employee_id,
        title="Attendance Correction Rejected",
        message=(
            "Your attendance correction request has been rejected. "
            f"Reason: {comment or 'No reason provided'}"
        ),
        entity_type="correction_request",
        entity_id=correction.id,
    )


async def notify_shift_expiry(
    db: AsyncSession,
    assignment,  # timekeeping.attendance.models.ShiftAssignment
    employee_name: str,
    end_date: date,
) -> NotificationLog:
    """Announce that a shift assignment is about to end."""
    return await NotificationService.create_notification(
        db,
        type=NotificationType.SHIFT_EXPIRY,
        employee_id=assignment.employee_id,
        title="Shift Assignment Expiring",
        message=(
            f"Shift for employee {employee_name} expires on "
            f"{end_date.strftime('%a %b %d %Y')}"
        ),
        entity_type="shift_assignment",
        entity_id=assignment.id,
    )
