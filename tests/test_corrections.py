"""Correction request test suite — submit, review once, approval overwrite.

Uses the shared conftest.py pattern with in-memory SQLite.
"""

from __future__ import annotations

import uuid
from datetime import timedelta

import pytest
from sqlalchemy import select

from timekeeping.attendance.corrections import CorrectionService
from timekeeping.attendance.models import AttendanceRecord
from timekeeping.attendance.schemas import PunchIn
from timekeeping.attendance.service import AttendanceService
from timekeeping.common.constants import (
    CorrectionStatus,
    NotificationType,
    PunchType,
    ReviewAction,
)
from timekeeping.common.exceptions import (
    AlreadyReviewedError,
    ForbiddenException,
    InvalidRequestException,
    NotFoundException,
)
from timekeeping.common.pagination import PaginationParams
from timekeeping.common.timeutils import today
from timekeeping.notifications.models import NotificationLog
from tests.conftest import at


def _page() -> PaginationParams:
    return PaginationParams(page=1, page_size=50)


def _day_punches(day, start=9, end=18) -> list[PunchIn]:
    return [
        PunchIn(type=PunchType.IN, time=at(start, day=day)),
        PunchIn(type=PunchType.OUT, time=at(end, day=day)),
    ]


async def _notifications(db, employee_id) -> list[NotificationLog]:
    return (await db.execute(
        select(NotificationLog).where(NotificationLog.employee_id == employee_id)
    )).scalars().all()


# ═════════════════════════════════════════════════════════════════════
# 1. SUBMIT
# ═════════════════════════════════════════════════════════════════════


async def test_create_request_is_submitted(db, test_employee):
    yesterday = today() - timedelta(days=1)

    resp = await CorrectionService.create_request(
        db,
        test_employee["id"],
        date=yesterday,
        requested_punches=_day_punches(yesterday),
        reason="Forgot to clock out",
    )

    assert resp.status == CorrectionStatus.SUBMITTED
    assert resp.date == yesterday
    assert resp.employee_id == test_employee["id"]
    assert resp.employee.full_name == "Asha Rao"
    assert [p.type for p in resp.requested_punches] == [PunchType.IN, PunchType.OUT]
    assert resp.requested_punches[0].time == at(9, day=yesterday)
    assert resp.reviewed_by is None


async def test_create_request_pulls_record_out_of_payroll(db, test_employee, hr_employee):
    await AttendanceService.clock_in(db, test_employee["id"], time=at(9))
    record = (await db.execute(
        select(AttendanceRecord).where(AttendanceRecord.employee_id == test_employee["id"])
    )).scalars().one()
    await AttendanceService.correct_attendance(
        db, record.id,
        punches=_day_punches(today()),
        corrected_by=hr_employee["id"],
        reason="Initial fix",
    )
    assert record.finalised_for_payroll is True

    await CorrectionService.create_request(
        db,
        test_employee["id"],
        date=today(),
        requested_punches=_day_punches(today(), 10, 19),
        reason="Wrong times entered",
        attendance_record_id=record.id,
    )
    assert record.finalised_for_payroll is False


async def test_create_request_ignores_unknown_record_id(db, test_employee):
    missing_id = uuid.uuid4()
    resp = await CorrectionService.create_request(
        db,
        test_employee["id"],
        date=today(),
        requested_punches=_day_punches(today()),
        reason="Device was down",
        attendance_record_id=missing_id,
    )
    assert resp.status == CorrectionStatus.SUBMITTED
    assert resp.attendance_record_id == missing_id


async def _finalised_record(db, employee_id, corrected_by) -> AttendanceRecord:
    resp = await AttendanceService.clock_in(db, employee_id, time=at(9))
    await AttendanceService.correct_attendance(
        db, resp.record.id,
        punches=_day_punches(today()),
        corrected_by=corrected_by,
        reason="Initial fix",
    )
    return await db.get(AttendanceRecord, resp.record.id)


async def test_create_request_rejects_someone_elses_record(
    db, test_employee, manager_employee, hr_employee,
):
    record = await _finalised_record(db, manager_employee["id"], hr_employee["id"])

    with pytest.raises(ForbiddenException):
        await CorrectionService.create_request(
            db,
            test_employee["id"],
            date=today() - timedelta(days=3),
            requested_punches=_day_punches(today() - timedelta(days=3)),
            reason="Not my record",
            attendance_record_id=record.id,
        )

    assert record.finalised_for_payroll is True
    assert (await CorrectionService.list_pending(db, _page())).meta.total == 0


async def test_create_request_rejects_record_from_another_day(db, test_employee, hr_employee):
    record = await _finalised_record(db, test_employee["id"], hr_employee["id"])
    other_day = today() - timedelta(days=3)

    with pytest.raises(InvalidRequestException) as exc_info:
        await CorrectionService.create_request(
            db,
            test_employee["id"],
            date=other_day,
            requested_punches=_day_punches(other_day),
            reason="Wrong day",
            attendance_record_id=record.id,
        )

    assert exc_info.value.error_type == "record-date-mismatch"
    assert record.finalised_for_payroll is True


async def test_multiple_open_requests_for_one_day_are_allowed(db, test_employee):
    for reason in ("First attempt", "Second attempt"):
        await CorrectionService.create_request(
            db,
            test_employee["id"],
            date=today(),
            requested_punches=_day_punches(today()),
            reason=reason,
        )

    pending = await CorrectionService.list_pending(db, _page())
    assert pending.meta.total == 2


# ═════════════════════════════════════════════════════════════════════
# 2. REVIEW — APPROVE
# ═════════════════════════════════════════════════════════════════════


async def test_approval_points_request_at_the_written_record(db, test_employee, manager_employee):
    day = today() - timedelta(days=1)
    created = await CorrectionService.create_request(
        db,
        test_employee["id"],
        date=day,
        requested_punches=_day_punches(day),
        reason="Device was down",
        attendance_record_id=uuid.uuid4(),
    )

    resp = await CorrectionService.review_request(
        db, created.id, action=ReviewAction.APPROVE, reviewer_id=manager_employee["id"],
    )

    record = (await db.execute(
        select(AttendanceRecord).where(
            AttendanceRecord.employee_id == test_employee["id"],
            AttendanceRecord.date == day,
        )
    )).scalars().one()
    assert resp.attendance_record_id == record.id
    assert resp.attendance_record_id != created.attendance_record_id


async def test_approval_replaces_punches_on_a_new_record(db, test_employee, manager_employee):
    """Approving a request for a day without a record creates and finalises it."""
    day = today() - timedelta(days=2)
    created = await CorrectionService.create_request(
        db,
        test_employee["id"],
        date=day,
        requested_punches=_day_punches(day),
        reason="Was at client site",
    )

    resp = await CorrectionService.review_request(
        db,
        created.id,
        action=ReviewAction.APPROVE,
        reviewer_id=manager_employee["id"],
        comment="OK",
    )

    assert resp.status == CorrectionStatus.APPROVED
    assert resp.reviewed_by == manager_employee["id"]
    assert resp.review_comment == "OK"
    assert resp.reviewed_at is not None

    record = (await db.execute(
        select(AttendanceRecord).where(
            AttendanceRecord.employee_id == test_employee["id"],
            AttendanceRecord.date == day,
        )
    )).scalars().one()
    assert resp.attendance_record_id == record.id
    assert [p.punch_type for p in record.punches] == [PunchType.IN, PunchType.OUT]
    assert record.total_work_minutes == 540
    assert record.has_missed_punch is False
    assert record.finalised_for_payroll is True
    assert record.corrected_by == manager_employee["id"]
    assert record.correction_reason == "Approved correction request: Was at client site"

    notes = await _notifications(db, test_employee["id"])
    assert [n.type for n in notes] == [NotificationType.CORRECTION_APPROVED]
    assert notes[0].message == "Your attendance correction request has been approved"


async def test_approval_overwrites_existing_punches(db, test_employee, manager_employee):
    """Approval is a full overwrite, not a merge."""
    await AttendanceService.clock_in(db, test_employee["id"], time=at(9))
    await AttendanceService.clock_out(db, test_employee["id"], time=at(12))
    await AttendanceService.clock_in(db, test_employee["id"], time=at(13))
    record = (await db.execute(
        select(AttendanceRecord).where(AttendanceRecord.employee_id == test_employee["id"])
    )).scalars().one()
    record.has_missed_punch = True
    await db.flush()

    created = await CorrectionService.create_request(
        db,
        test_employee["id"],
        date=today(),
        requested_punches=_day_punches(today(), 9, 17),
        reason="Missed final clock-out",
        attendance_record_id=record.id,
    )
    await CorrectionService.review_request(
        db, created.id, action=ReviewAction.APPROVE, reviewer_id=manager_employee["id"],
    )

    assert len(record.punches) == 2
    assert record.total_work_minutes == 480
    assert record.has_missed_punch is False
    assert record.finalised_for_payroll is True


# ═════════════════════════════════════════════════════════════════════
# 3. REVIEW — REJECT and review-once
# ═════════════════════════════════════════════════════════════════════


async def test_rejection_notifies_with_default_reason(db, test_employee, manager_employee):
    created = await CorrectionService.create_request(
        db,
        test_employee["id"],
        date=today(),
        requested_punches=_day_punches(today()),
        reason="Please fix",
    )

    resp = await CorrectionService.review_request(
        db, created.id, action=ReviewAction.REJECT, reviewer_id=manager_employee["id"],
    )

    assert resp.status == CorrectionStatus.REJECTED
    notes = await _notifications(db, test_employee["id"])
    assert len(notes) == 1
    assert notes[0].type == NotificationType.CORRECTION_REJECTED
    assert notes[0].message.endswith("Reason: No reason provided")

    # Rejection leaves attendance untouched
    records = (await db.execute(select(AttendanceRecord))).scalars().all()
    assert records == []


async def test_rejection_message_carries_comment(db, test_employee, manager_employee):
    created = await CorrectionService.create_request(
        db,
        test_employee["id"],
        date=today(),
        requested_punches=_day_punches(today()),
        reason="Please fix",
    )
    await CorrectionService.review_request(
        db,
        created.id,
        action=ReviewAction.REJECT,
        reviewer_id=manager_employee["id"],
        comment="CCTV shows a later arrival",
    )

    notes = await _notifications(db, test_employee["id"])
    assert notes[0].message == (
        "Your attendance correction request has been rejected. "
        "Reason: CCTV shows a later arrival"
    )


@pytest.mark.parametrize("first", [ReviewAction.APPROVE, ReviewAction.REJECT])
async def test_request_can_only_be_reviewed_once(db, test_employee, manager_employee, first):
    created = await CorrectionService.create_request(
        db,
        test_employee["id"],
        date=today(),
        requested_punches=_day_punches(today()),
        reason="Needs review",
    )
    await CorrectionService.review_request(
        db, created.id, action=first, reviewer_id=manager_employee["id"],
    )

    with pytest.raises(AlreadyReviewedError) as exc_info:
        await CorrectionService.review_request(
            db, created.id, action=ReviewAction.APPROVE, reviewer_id=manager_employee["id"],
        )
    assert exc_info.value.status_code == 400

    # Exactly one notification from the single successful review
    assert len(await _notifications(db, test_employee["id"])) == 1


async def test_review_unknown_request_is_404(db, manager_employee):
    with pytest.raises(NotFoundException):
        await CorrectionService.review_request(
            db, uuid.uuid4(), action=ReviewAction.APPROVE, reviewer_id=manager_employee["id"],
        )


# ═════════════════════════════════════════════════════════════════════
# 4. READS
# ═════════════════════════════════════════════════════════════════════


async def test_list_filters_by_status_and_employee(db, test_employee, make_employee, manager_employee):
    other = await make_employee(first_name="Ravi", last_name="Kumar")
    mine = await CorrectionService.create_request(
        db, test_employee["id"], date=today(),
        requested_punches=_day_punches(today()), reason="Mine",
    )
    await CorrectionService.create_request(
        db, other["id"], date=today(),
        requested_punches=_day_punches(today()), reason="Theirs",
    )
    await CorrectionService.review_request(
        db, mine.id, action=ReviewAction.REJECT, reviewer_id=manager_employee["id"],
    )

    everything = await CorrectionService.list_requests(db, _page())
    assert everything.meta.total == 2

    rejected = await CorrectionService.list_requests(db, _page(), status=CorrectionStatus.REJECTED)
    assert [r.id for r in rejected.data] == [mine.id]

    own = await CorrectionService.list_my_requests(db, other["id"], _page())
    assert own.meta.total == 1
    assert own.data[0].reason == "Theirs"

    pending = await CorrectionService.list_pending(db, _page())
    assert pending.meta.total == 1


async def test_get_request_unknown_is_404(db):
    with pytest.raises(NotFoundException):
        await CorrectionService.get_request(db, uuid.uuid4())
