"""Attendance router — clock in/out, records, manual correction, punch policy,
correction requests and on-demand sweeps.

All endpoints require authentication. Manager/HR-specific endpoints enforce role checks.
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from timekeeping.attendance.corrections import CorrectionService
from timekeeping.attendance.jobs import SWEEPS
from timekeeping.attendance.policy import PunchPolicyService
from timekeeping.attendance.schemas import (
    AttendanceListResponse,
    AttendanceRecordDetail,
    AttendanceRecordResponse,
    ClockInRequest,
    ClockOutRequest,
    ClockResponse,
    CorrectionListResponse,
    CorrectionRequestCreate,
    CorrectionRequestResponse,
    CorrectionReviewRequest,
    JobRunResponse,
    ManualCorrectionRequest,
    PunchPolicyResponse,
    PunchPolicyUpdate,
)
from timekeeping.attendance.service import AttendanceService
from timekeeping.auth.dependencies import get_current_user, has_role, require_role
from timekeeping.common.constants import CorrectionStatus, UserRole
from timekeeping.common.exceptions import ForbiddenException, NotFoundException
from timekeeping.common.pagination import PaginationParams
from timekeeping.common.rate_limit import limiter
from timekeeping.config import settings
from timekeeping.core_hr.models import Employee
from timekeeping.database import get_db

router = APIRouter(prefix="", tags=["attendance"])

_MANAGERS = (UserRole.manager, UserRole.hr_admin, UserRole.system_admin)


# ── POST /clock-in ──────────────────────────────────────────────────

@router.post("/clock-in", response_model=ClockResponse)
@limiter.limit(settings.RATE_LIMIT_CLOCK)
async def clock_in(
    request: Request,
    body: ClockInRequest,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Record a clock-in for the current user."""
    return await AttendanceService.clock_in(
        db, employee.id, time=body.time, location=body.location,
    )


# ── POST /clock-out ─────────────────────────────────────────────────

@router.post("/clock-out", response_model=ClockResponse)
@limiter.limit(settings.RATE_LIMIT_CLOCK)
async def clock_out(
    request: Request,
    body: ClockOutRequest,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Record a clock-out for the current user."""
    return await AttendanceService.clock_out(
        db, employee.id, time=body.time, location=body.location,
    )


# ── GET /today ──────────────────────────────────────────────────────

@router.get("/today", response_model=Optional[AttendanceRecordResponse])
async def my_today(
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Today's record for the current user (null before the first clock-in)."""
    return await AttendanceService.get_my_today(db, employee.id)


# ── Records (manager / HR) ──────────────────────────────────────────

@router.get("/records", response_model=AttendanceListResponse)
async def list_records(
    employee_id: Optional[uuid.UUID] = Query(None),
    from_date: Optional[date] = Query(None, description="Start date (inclusive)"),
    to_date: Optional[date] = Query(None, description="End date (inclusive)"),
    has_missed_punch: Optional[bool] = Query(None),
    finalised: Optional[bool] = Query(None),
    pagination: PaginationParams = Depends(),
    employee: Employee = Depends(require_role(*_MANAGERS)),
    db: AsyncSession = Depends(get_db),
):
    return await AttendanceService.list_records(
        db,
        pagination,
        employee_id=employee_id,
        from_date=from_date,
        to_date=to_date,
        has_missed_punch=has_missed_punch,
        finalised=finalised,
    )


@router.get("/records/{record_id}", response_model=AttendanceRecordDetail)
async def get_record(
    record_id: uuid.UUID,
    employee: Employee = Depends(require_role(*_MANAGERS)),
    db: AsyncSession = Depends(get_db),
):
    return await AttendanceService.get_record(db, record_id)


@router.get("/employees/{employee_id}/records", response_model=AttendanceListResponse)
async def employee_records(
    employee_id: uuid.UUID,
    pagination: PaginationParams = Depends(),
    employee: Employee = Depends(require_role(*_MANAGERS)),
    db: AsyncSession = Depends(get_db),
):
    return await AttendanceService.get_employee_records(db, employee_id, pagination)


# ── PUT /records/{id}/correct (HR override) ─────────────────────────

@router.put("/records/{record_id}/correct", response_model=ClockResponse)
async def correct_record(
    record_id: uuid.UUID,
    body: ManualCorrectionRequest,
    employee: Employee = Depends(
        require_role(UserRole.hr_admin, UserRole.system_admin)
    ),
    db: AsyncSession = Depends(get_db),
):
    """Overwrite a record's punches and finalise it for payroll."""
    return await AttendanceService.correct_attendance(
        db,
        record_id,
        punches=body.punches,
        corrected_by=employee.id,
        reason=body.reason,
    )


# ── Punch policy ────────────────────────────────────────────────────

@router.get("/punch-policy", response_model=PunchPolicyResponse)
async def get_punch_policy(
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await PunchPolicyService.get_setting(db)


@router.put("/punch-policy", response_model=PunchPolicyResponse)
async def update_punch_policy(
    body: PunchPolicyUpdate,
    employee: Employee = Depends(
        require_role(UserRole.hr_admin, UserRole.system_admin)
    ),
    db: AsyncSession = Depends(get_db),
):
    return await PunchPolicyService.set_policy(
        db, body.policy, updated_by=employee.id,
    )


# ── Correction requests ─────────────────────────────────────────────
# NOTE: /mine and /pending are registered before /{request_id} so they are
# never parsed as a UUID path parameter.

@router.post("/corrections", response_model=CorrectionRequestResponse, status_code=201)
async def create_correction(
    body: CorrectionRequestCreate,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Submit a correction request for one of the current user's days."""
    return await CorrectionService.create_request(
        db,
        employee.id,
        date=body.date,
        requested_punches=body.requested_punches,
        reason=body.reason,
        attendance_record_id=body.attendance_record_id,
    )


@router.get("/corrections", response_model=CorrectionListResponse)
async def list_corrections(
    status: Optional[CorrectionStatus] = Query(None),
    employee_id: Optional[uuid.UUID] = Query(None),
    pagination: PaginationParams = Depends(),
    employee: Employee = Depends(require_role(*_MANAGERS)),
    db: AsyncSession = Depends(get_db),
):
    return await CorrectionService.list_requests(
        db, pagination, status=status, employee_id=employee_id,
    )


@router.get("/corrections/mine", response_model=CorrectionListResponse)
async def my_corrections(
    pagination: PaginationParams = Depends(),
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await CorrectionService.list_my_requests(db, employee.id, pagination)


@router.get("/corrections/pending", response_model=CorrectionListResponse)
async def pending_corrections(
    pagination: PaginationParams = Depends(),
    employee: Employee = Depends(require_role(*_MANAGERS)),
    db: AsyncSession = Depends(get_db),
):
    return await CorrectionService.list_pending(db, pagination)


@router.get("/corrections/{request_id}", response_model=CorrectionRequestResponse)
async def get_correction(
    request_id: uuid.UUID,
    request: Request,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Employees see their own requests; managers and above see all."""
    correction = await CorrectionService.get_request(db, request_id)
    if correction.employee_id != employee.id and not has_role(request, *_MANAGERS):
        raise ForbiddenException("You can only view your own correction requests.")
    return correction


@router.put("/corrections/{request_id}/review", response_model=CorrectionRequestResponse)
async def review_correction(
    request_id: uuid.UUID,
    body: CorrectionReviewRequest,
    employee: Employee = Depends(require_role(*_MANAGERS)),
    db: AsyncSession = Depends(get_db),
):
    """Approve or reject a SUBMITTED correction request."""
    return await CorrectionService.review_request(
        db,
        request_id,
        action=body.action,
        reviewer_id=employee.id,
        comment=body.comment,
    )


# ── POST /jobs/{job}/run (system admin) ─────────────────────────────

@router.post("/jobs/{job}/run", response_model=JobRunResponse)
async def run_job(
    job: str,
    employee: Employee = Depends(require_role(UserRole.system_admin)),
    db: AsyncSession = Depends(get_db),
):
    """Run a scheduled sweep immediately in the request's transaction."""
    sweep = SWEEPS.get(job)
    if sweep is None:
        raise NotFoundException("Job", job)
    affected = await sweep(db)
    return JobRunResponse(job=job, affected=affected)
