"""Attendance correction requests — submit, review once, list.

State machine: SUBMITTED → APPROVED | REJECTED. Both outcomes are terminal;
a second review is rejected with AlreadyReviewedError.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from timekeeping.attendance.models import AttendanceCorrectionRequest, AttendanceRecord
from timekeeping.attendance.schemas import (
    CorrectionListResponse,
    CorrectionRequestResponse,
    PunchIn,
)
from timekeeping.attendance.service import find_or_create_record, replace_punches
from timekeeping.common.audit import create_audit_entry
from timekeeping.common.constants import CorrectionStatus, ReviewAction
from timekeeping.common.exceptions import (
    AlreadyReviewedError,
    ForbiddenException,
    InvalidRequestException,
    NotFoundException,
)
from timekeeping.common.pagination import PaginationParams, paginate
from timekeeping.common.timeutils import utcnow
from timekeeping.notifications.service import (
    notify_correction_approved,
    notify_correction_rejected,
)

logger = logging.getLogger(__name__)


class CorrectionService:
    """Async correction-request operations."""

    # ── Submit ──────────────────────────────────────────────────────

    @staticmethod
    async def create_request(
        db: AsyncSession,
        employee_id: uuid.UUID,
        *,
        date: date,
        requested_punches: Sequence[PunchIn],
        reason: str,
        attendance_record_id: Optional[uuid.UUID] = None,
    ) -> CorrectionRequestResponse:
        """Submit a correction request for one day.

        When ``attendance_record_id`` resolves, it must be the submitter's
        own record for ``date``; that record is then pulled back out of
        payroll until the request is reviewed. An id that does not resolve
        is kept on the request but has no other effect.
        """
        record: Optional[AttendanceRecord] = None
        if attendance_record_id is not None:
            result = await db.execute(
                select(AttendanceRecord).where(AttendanceRecord.id == attendance_record_id)
            )
            record = result.scalars().first()
            if record is not None and record.employee_id != employee_id:
                raise ForbiddenException(
                    "You can only request corrections to your own attendance records."
                )
            if record is not None and record.date != date:
                raise InvalidRequestException(
                    f"Attendance record {attendance_record_id} is for "
                    f"{record.date.isoformat()}, not {date.isoformat()}.",
                    error_type="record-date-mismatch",
                )

        correction = AttendanceCorrectionRequest(
            employee_id=employee_id,
            attendance_record_id=attendance_record_id,
            date=date,
            requested_punches=[p.model_dump(mode="json") for p in requested_punches],
            reason=reason,
            status=CorrectionStatus.SUBMITTED,
        )
        db.add(correction)
        if record is not None:
            record.finalised_for_payroll = False

        await db.flush()
        await db.refresh(correction, ["employee"])

        await create_audit_entry(
            db,
            action="create",
            entity_type="correction_request",
            entity_id=correction.id,
            actor_id=employee_id,
            new_values={
                "date": date.isoformat(),
                "punch_count": len(correction.requested_punches),
                "reason": reason,
            },
        )

        return CorrectionRequestResponse.model_validate(correction)

    # ── Review ──────────────────────────────────────────────────────

    @staticmethod
    async def _get_or_404(
        db: AsyncSession,
        request_id: uuid.UUID,
    ) -> AttendanceCorrectionRequest:
        result = await db.execute(
            select(AttendanceCorrectionRequest).where(
                AttendanceCorrectionRequest.id == request_id
            )
        )
        correction = result.scalars().first()
        if correction is None:
            raise NotFoundException("AttendanceCorrectionRequest", request_id)
        return correction

    @staticmethod
    async def review_request(
        db: AsyncSession,
        request_id: uuid.UUID,
        *,
        action: ReviewAction,
        reviewer_id: uuid.UUID,
        comment: Optional[str] = None,
    ) -> CorrectionRequestResponse:
        """Approve or reject a SUBMITTED request. Each request is reviewed once.

        Approval overwrites the punches of the (employee, day) record,
        creating the record when the day has none. The request's
        ``attendance_record_id`` is then set to that record, replacing a
        submitted id that did not resolve.
        """
        correction = await CorrectionService._get_or_404(db, request_id)

        if correction.status != CorrectionStatus.SUBMITTED:
            raise AlreadyReviewedError(correction.status.value)

        correction.status = (
            CorrectionStatus.APPROVED
            if action == ReviewAction.APPROVE
            else CorrectionStatus.REJECTED
        )
        correction.reviewed_by = reviewer_id
        correction.review_comment = comment
        correction.reviewed_at = utcnow()
        correction.updated_at = correction.reviewed_at

        if action == ReviewAction.APPROVE:
            record = await find_or_create_record(db, correction.employee_id, correction.date)
            replace_punches(
                record,
                [PunchIn.model_validate(p) for p in correction.requested_punches],
                corrected_by=reviewer_id,
                reason=f"Approved correction request: {correction.reason}",
            )
            await db.flush()
            correction.attendance_record_id = record.id
            await notify_correction_approved(db, correction)
        else:
            await db.flush()
            await notify_correction_rejected(db, correction, comment)

        await create_audit_entry(
            db,
            action=correction.status.value.lower(),
            entity_type="correction_request",
            entity_id=correction.id,
            actor_id=reviewer_id,
            old_values={"status": CorrectionStatus.SUBMITTED.value},
            new_values={"status": correction.status.value, "comment": comment},
        )
        logger.info(
            "Correction request %s %s by %s",
            correction.id, correction.status.value, reviewer_id,
        )

        return CorrectionRequestResponse.model_validate(correction)

    # ── Reads ───────────────────────────────────────────────────────

    @staticmethod
    async def get_request(
        db: AsyncSession,
        request_id: uuid.UUID,
    ) -> CorrectionRequestResponse:
        correction = await CorrectionService._get_or_404(db, request_id)
        return CorrectionRequestResponse.model_validate(correction)

    @staticmethod
    async def list_requests(
        db: AsyncSession,
        pagination: PaginationParams,
        *,
        status: Optional[CorrectionStatus] = None,
        employee_id: Optional[uuid.UUID] = None,
    ) -> CorrectionListResponse:
        """Correction requests, newest first."""
        query = select(AttendanceCorrectionRequest).order_by(
            AttendanceCorrectionRequest.created_at.desc()
        )
        if status is not None:
            query = query.where(AttendanceCorrectionRequest.status == status)
        if employee_id is not None:
            query = query.where(AttendanceCorrectionRequest.employee_id == employee_id)

        rows, meta = await paginate(db, query, pagination)
        return CorrectionListResponse(
            data=[CorrectionRequestResponse.model_validate(r) for r in rows],
            meta=meta,
        )

    @staticmethod
    async def list_my_requests(
        db: AsyncSession,
        employee_id: uuid.UUID,
        pagination: PaginationParams,
    ) -> CorrectionListResponse:
        return await CorrectionService.list_requests(
            db, pagination, employee_id=employee_id,
        )

    @staticmethod
    async def list_pending(
        db: AsyncSession,
        pagination: PaginationParams,
    ) -> CorrectionListResponse:
        return await CorrectionService.list_requests(
            db, pagination, status=CorrectionStatus.SUBMITTED,
        )
