"""Common module — shared utilities for HR Timekeeping."""

from timekeeping.common.audit import create_audit_entry
from timekeeping.common.constants import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_PUNCH_POLICY,
    MAX_PAGE_SIZE,
    PUNCH_POLICY_KEY,
    CorrectionStatus,
    NotificationType,
    PunchPolicy,
    PunchType,
    ReviewAction,
    ShiftAssignmentStatus,
    UserRole,
)
from timekeeping.common.exceptions import (
    AlreadyReviewedError,
    AppException,
    ForbiddenException,
    InvalidRequestException,
    NoActiveClockInError,
    NotFoundException,
    PersistenceFailure,
    ValidationException,
    register_exception_handlers,
)
from timekeeping.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)
from timekeeping.common.timeutils import day_key, ensure_utc, today, utcnow

__all__ = [
    # Audit
    "create_audit_entry",
    # Constants / Enums
    "CorrectionStatus",
    "NotificationType",
    "PunchPolicy",
    "PunchType",
    "ReviewAction",
    "ShiftAssignmentStatus",
    "UserRole",
    "DEFAULT_PAGE_SIZE",
    "DEFAULT_PUNCH_POLICY",
    "MAX_PAGE_SIZE",
    "PUNCH_POLICY_KEY",
    # Exceptions
    "AlreadyReviewedError",
    "AppException",
    "ForbiddenException",
    "InvalidRequestException",
    "NoActiveClockInError",
    "NotFoundException",
    "PersistenceFailure",
    "ValidationException",
    "register_exception_handlers",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
    # Time
    "day_key",
    "ensure_utc",
    "today",
    "utcnow",
]
