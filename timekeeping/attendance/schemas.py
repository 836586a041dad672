"""Attendance Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Request / *Create → request bodies (write)
  - *Response / *Detail → response bodies (read)
"""


import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from timekeeping.common.constants import (
    CorrectionStatus,
    PunchPolicy,
    PunchType,
    ReviewAction,
)
from timekeeping.common.pagination import PaginationMeta


# ═════════════════════════════════════════════════════════════════════
# Punches
# ═════════════════════════════════════════════════════════════════════


class PunchIn(BaseModel):
    """A punch supplied by a client (correction or manual override)."""

    type: PunchType
    time: datetime
    location: Optional[str] = Field(None, max_length=200)


class PunchResponse(BaseModel):
    """A stored punch."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    type: PunchType = Field(validation_alias="punch_type")
    time: datetime = Field(validation_alias="punched_at")
    location: Optional[str] = None


# ═════════════════════════════════════════════════════════════════════
# Clock in / out
# ═════════════════════════════════════════════════════════════════════


class ClockInRequest(BaseModel):
    """Payload for clocking in. Omitted time means now."""

    time: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=200)


class ClockOutRequest(BaseModel):
    """Payload for clocking out. Omitted time means now."""

    time: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=200)


# ═════════════════════════════════════════════════════════════════════
# Attendance record
# ═════════════════════════════════════════════════════════════════════


class EmployeeBrief(BaseModel):
    """Minimal employee info embedded in attendance views."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_number: str
    full_name: str


class AttendanceRecordResponse(BaseModel):
    """Single attendance record for a day."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    date: date
    punches: list[PunchResponse] = []
    total_work_minutes: int = 0
    has_missed_punch: bool = False
    finalised_for_payroll: bool = False
    corrected_by: Optional[uuid.UUID] = None
    correction_reason: Optional[str] = None


class AttendanceRecordDetail(AttendanceRecordResponse):
    """Attendance record with the employee populated (list / admin views)."""

    employee: Optional[EmployeeBrief] = None


class AttendanceListResponse(BaseModel):
    """Paginated attendance list."""

    data: list[AttendanceRecordDetail]
    meta: PaginationMeta


class ClockResponse(BaseModel):
    """Response after a clock action or a manual correction."""

    message: str
    record: AttendanceRecordResponse


class ManualCorrectionRequest(BaseModel):
    """HR override of a record's punches, bypassing the request workflow."""

    punches: list[PunchIn] = Field(..., min_length=1)
    reason: str = Field(..., min_length=3, max_length=500)


# ═════════════════════════════════════════════════════════════════════
# Punch policy
# ═════════════════════════════════════════════════════════════════════


class PunchPolicyResponse(BaseModel):
    """Current punch policy setting."""

    model_config = ConfigDict(from_attributes=True)

    key: str
    value: PunchPolicy
    description: Optional[str] = None


class PunchPolicyUpdate(BaseModel):
    policy: PunchPolicy


# ═════════════════════════════════════════════════════════════════════
# Correction requests
# ═════════════════════════════════════════════════════════════════════


class CorrectionRequestCreate(BaseModel):
    """Employee request to replace a day's punches."""

    date: date
    requested_punches: list[PunchIn] = Field(..., min_length=1)
    reason: str = Field(..., min_length=3, max_length=500)
    attendance_record_id: Optional[uuid.UUID] = None


class CorrectionReviewRequest(BaseModel):
    """Reviewer decision on a correction request."""

    action: ReviewAction
    comment: Optional[str] = Field(None, max_length=500)


class CorrectionRequestResponse(BaseModel):
    """Correction request details."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    attendance_record_id: Optional[uuid.UUID] = None
    date: date
    requested_punches: list[PunchIn]
    reason: str
    status: CorrectionStatus
    reviewed_by: Optional[uuid.UUID] = None
    review_comment: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime
    employee: Optional[EmployeeBrief] = None


class CorrectionListResponse(BaseModel):
    data: list[CorrectionRequestResponse]
    meta: PaginationMeta


# ═════════════════════════════════════════════════════════════════════
# Scheduled jobs
# ═════════════════════════════════════════════════════════════════════


class JobRunResponse(BaseModel):
    job: str
    affected: int
