"""Attendance ORM models: AttendanceRecord, AttendancePunch,
AttendanceCorrectionRequest, ShiftAssignment."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from timekeeping.common.constants import (
    CorrectionStatus,
    PunchType,
    ShiftAssignmentStatus,
)
from timekeeping.core_hr.models import Employee
from timekeeping.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AttendanceRecord(Base):
    """One employee's attendance for one calendar day."""

    __tablename__ = "attendance_records"
    __table_args__ = (
        sa.UniqueConstraint("employee_id", "date", name="uq_attendance_emp_date"),
        sa.Index("ix_attendance_records_date", "date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id"), nullable=False
    )
    date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    total_work_minutes: Mapped[int] = mapped_column(sa.Integer, default=0)
    has_missed_punch: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    finalised_for_payroll: Mapped[bool] = mapped_column(sa.Boolean, default=False)
    corrected_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id")
    )
    correction_reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    # Relationships
    employee: Mapped[Employee] = relationship(
        foreign_keys=[employee_id], lazy="selectin"
    )
    punches: Mapped[list[AttendancePunch]] = relationship(
        back_populates="attendance_record",
        cascade="all, delete-orphan",
        order_by="AttendancePunch.sequence",
        lazy="selectin",
    )


class AttendancePunch(Base):
    """A single clock action. Order within a record follows ``sequence``."""

    __tablename__ = "attendance_punches"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    attendance_record_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("attendance_records.id", ondelete="CASCADE"),
        nullable=False,
    )
    sequence: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    punch_type: Mapped[PunchType] = mapped_column(
        sa.Enum(PunchType, name="punch_type", native_enum=False, length=10),
        nullable=False,
    )
    punched_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False
    )
    location: Mapped[Optional[str]] = mapped_column(sa.String(200))

    # Relationships
    attendance_record: Mapped[AttendanceRecord] = relationship(
        back_populates="punches"
    )


class AttendanceCorrectionRequest(Base):
    """Employee proposal to replace a day's punches, pending review."""

    __tablename__ = "attendance_correction_requests"
    __table_args__ = (
        sa.Index("ix_correction_requests_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id"), nullable=False
    )
    # Weak reference: resolved by a separate lookup, never cascaded
    attendance_record_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True)
    )
    date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    requested_punches: Mapped[list] = mapped_column(JSONB, nullable=False)
    reason: Mapped[str] = mapped_column(sa.Text, nullable=False)
    status: Mapped[CorrectionStatus] = mapped_column(
        sa.Enum(CorrectionStatus, name="correction_status", native_enum=False, length=20),
        nullable=False,
        default=CorrectionStatus.SUBMITTED,
    )
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id")
    )
    review_comment: Mapped[Optional[str]] = mapped_column(sa.Text)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        sa.DateTime(timezone=True)
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    # Relationships
    employee: Mapped[Employee] = relationship(
        foreign_keys=[employee_id], lazy="selectin"
    )


class ShiftAssignment(Base):
    """Shift assignment for an employee. Managed elsewhere; read by the expiry sweep."""

    __tablename__ = "shift_assignments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id", ondelete="CASCADE")
    )
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    status: Mapped[ShiftAssignmentStatus] = mapped_column(
        sa.Enum(ShiftAssignmentStatus, name="shift_assignment_status", native_enum=False, length=20),
        nullable=False,
        default=ShiftAssignmentStatus.PENDING,
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_utcnow
    )
