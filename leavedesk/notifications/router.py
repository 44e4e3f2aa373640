"""Leave inbox endpoints for the authenticated user.

The static paths are declared before ``/{notification_id}/read`` so they
are not matched as ids.
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.auth.dependencies import get_current_user
from leavedesk.common.constants import NotificationType
from leavedesk.common.pagination import PaginationParams
from leavedesk.database import get_db
from leavedesk.notifications.schemas import (
    InboxPage,
    MarkedRead,
    NotificationOut,
    UnreadCount,
)
from leavedesk.notifications.service import NotificationService
from leavedesk.users.models import User

router = APIRouter(prefix="", tags=["notifications"])


@router.get("", response_model=InboxPage)
async def inbox(
    is_read: Optional[bool] = Query(None),
    type: Optional[NotificationType] = Query(None),
    leave_request_id: Optional[uuid.UUID] = Query(
        None, description="Only notifications about this leave request",
    ),
    pagination: PaginationParams = Depends(),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await NotificationService.get_notifications(
        db,
        user.id,
        pagination,
        is_read=is_read,
        notification_type=type,
        leave_request_id=leave_request_id,
    )


@router.get("/unread-count", response_model=UnreadCount)
async def unread_count(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return UnreadCount(count=await NotificationService.get_unread_count(db, user.id))


@router.put("/read-all", response_model=MarkedRead)
async def mark_all_read(
    leave_request_id: Optional[uuid.UUID] = Query(
        None, description="Clear only the notifications about this leave request",
    ),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark the caller's unread notifications read."""
    count = await NotificationService.mark_all_read(
        db, user.id, leave_request_id=leave_request_id,
    )
    return MarkedRead(count=count, leave_request_id=leave_request_id)


@router.put("/{notification_id}/read", response_model=NotificationOut)
async def mark_read(
    notification_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await NotificationService.mark_read(db, notification_id, user.id)
