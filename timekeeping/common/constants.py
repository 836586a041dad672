"""Enums and constants for HR Timekeeping — matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    employee = "employee"
    manager = "manager"
    hr_admin = "hr_admin"
    system_admin = "system_admin"


# ── Attendance ──────────────────────────────────────────────────────

class PunchType(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"


class PunchPolicy(str, enum.Enum):
    MULTIPLE = "MULTIPLE"
    FIRST_LAST = "FIRST_LAST"


class CorrectionStatus(str, enum.Enum):
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ReviewAction(str, enum.Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"


class ShiftAssignmentStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


# ── Notifications ───────────────────────────────────────────────────

class NotificationType(str, enum.Enum):
    MISSED_PUNCH = "MISSED_PUNCH"
    CORRECTION_APPROVED = "CORRECTION_APPROVED"
    CORRECTION_REJECTED = "CORRECTION_REJECTED"
    SHIFT_EXPIRY = "SHIFT_EXPIRY"


# ── Settings keys ───────────────────────────────────────────────────

PUNCH_POLICY_KEY = "PUNCH_POLICY"
DEFAULT_PUNCH_POLICY = PunchPolicy.MULTIPLE

PUNCH_POLICY_DESCRIPTIONS: dict[PunchPolicy, str] = {
    PunchPolicy.MULTIPLE: "Multiple punches allowed per day",
    PunchPolicy.FIRST_LAST: "Only first clock-in and last clock-out count",
}

# ── Misc constants ──────────────────────────────────────────────────

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
