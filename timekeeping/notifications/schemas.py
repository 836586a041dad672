"""Notification log response schemas."""


import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from timekeeping.common.constants import NotificationType
from timekeeping.common.pagination import PaginationMeta


class NotificationLogEntry(BaseModel):
    """One entry of the attendance notification log."""

    id: uuid.UUID
    type: NotificationType
    employee_id: Optional[uuid.UUID] = None
    title: str
    message: str
    entity_type: Optional[str] = None
    entity_id: Optional[uuid.UUID] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationFeedResponse(BaseModel):
    data: list[NotificationLogEntry]
    meta: PaginationMeta
