"""Notification feed — read-only view of the caller's notification log."""


import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from timekeeping.auth.dependencies import get_current_user
from timekeeping.common.constants import NotificationType
from timekeeping.common.pagination import PaginationParams
from timekeeping.core_hr.models import Employee
from timekeeping.database import get_db
from timekeeping.notifications.schemas import NotificationFeedResponse
from timekeeping.notifications.service import NotificationService

router = APIRouter(prefix="", tags=["notifications"])


# ── GET / — my notification feed ───────────────────────────────────

@router.get("", response_model=NotificationFeedResponse)
async def my_notifications(
    type: Optional[NotificationType] = Query(default=None, description="Only this notification type"),
    entity_id: Optional[uuid.UUID] = Query(
        default=None, description="Only entries about this record, request or assignment"
    ),
    since: Optional[datetime] = Query(default=None, description="Only entries created at or after"),
    pagination: PaginationParams = Depends(),
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Notifications addressed to the authenticated employee, newest first."""
    return await NotificationService.list_for_employee(
        db,
        employee.id,
        pagination,
        notification_type=type,
        entity_id=entity_id,
        since=since,
    )
