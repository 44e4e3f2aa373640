"""Inbox schemas for leave workflow notifications."""


import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from leavedesk.common.constants import NotificationType
from leavedesk.common.pagination import PaginationMeta


class NotificationOut(BaseModel):
    """One inbox entry. ``leave_request_id`` points at the request it is about."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: uuid.UUID
    type: NotificationType
    title: str
    message: str
    link: Optional[str] = None
    leave_request_id: Optional[uuid.UUID] = Field(default=None, validation_alias="entity_id")
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class InboxMeta(PaginationMeta):
    unread: int


class InboxPage(BaseModel):
    data: list[NotificationOut]
    meta: InboxMeta


class UnreadCount(BaseModel):
    count: int


class MarkedRead(BaseModel):
    """Result of a bulk mark-as-read."""

    count: int
    leave_request_id: Optional[uuid.UUID] = None
