"""Notification service — the leave inbox and the workflow emitters.

Every notification written here is about one leave request: ``entity_id``
holds its id and ``link`` its page, so the inbox can be filtered and
cleared per request.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.common.constants import NotificationType
from leavedesk.common.exceptions import ForbiddenException, NotFoundException
from leavedesk.common.pagination import PaginationParams, paginate
from leavedesk.database import utcnow
from leavedesk.notifications.models import Notification
from leavedesk.notifications.schemas import InboxMeta, InboxPage, NotificationOut

if TYPE_CHECKING:
    from leavedesk.leave.models import LeaveRequest


class NotificationService:
    """Inbox reads and writes for one recipient at a time."""

    @staticmethod
    async def create_notification(
        db: AsyncSession,
        *,
        recipient_id: uuid.UUID,
        type: NotificationType = NotificationType.info,
        title: str,
        message: str,
        link: Optional[str] = None,
        entity_id: Optional[uuid.UUID] = None,
    ) -> Notification:
        notification = Notification(
            recipient_id=recipient_id,
            type=type,
            title=title,
            message=message,
            link=link,
            entity_id=entity_id,
        )
        db.add(notification)
        await db.flush()
        return notification

    @staticmethod
    async def get_notifications(
        db: AsyncSession,
        user_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        is_read: Optional[bool] = None,
        notification_type: Optional[NotificationType] = None,
        leave_request_id: Optional[uuid.UUID] = None,
    ) -> InboxPage:
        """Newest-first inbox page. ``meta.unread`` ignores the filters."""
        query = (
            select(Notification)
            .where(Notification.recipient_id == user_id)
            .order_by(Notification.created_at.desc())
        )
        if is_read is not None:
            query = query.where(Notification.is_read == is_read)
        if notification_type is not None:
            query = query.where(Notification.type == notification_type)
        if leave_request_id is not None:
            query = query.where(Notification.entity_id == leave_request_id)

        page = await paginate(db, query, pagination, transform=NotificationOut.model_validate)
        unread = await NotificationService.get_unread_count(db, user_id)
        return InboxPage(
            data=page.data,
            meta=InboxMeta(**page.meta.model_dump(), unread=unread),
        )

    @staticmethod
    async def mark_read(
        db: AsyncSession,
        notification_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Notification:
        """Mark one of the recipient's notifications read. Idempotent."""
        notification = await db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundException("Notification", notification_id)
        if notification.recipient_id != user_id:
            raise ForbiddenException("You can only mark your own notifications as read.")

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = utcnow()
            await db.flush()
        return notification

    @staticmethod
    async def mark_all_read(
        db: AsyncSession,
        user_id: uuid.UUID,
        *,
        leave_request_id: Optional[uuid.UUID] = None,
    ) -> int:
        """Bulk-mark unread notifications read, optionally for one leave request.

        Returns the number of rows changed.
        """
        stmt = update(Notification).where(
            Notification.recipient_id == user_id,
            Notification.is_read.is_(False),
        )
        if leave_request_id is not None:
            stmt = stmt.where(Notification.entity_id == leave_request_id)

        result = await db.execute(
            stmt.values(is_read=True, read_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount  # type: ignore[return-value]

    @staticmethod
    async def get_unread_count(db: AsyncSession, user_id: uuid.UUID) -> int:
        result = await db.execute(
            select(func.count())
            .select_from(Notification)
            .where(
                Notification.recipient_id == user_id,
                Notification.is_read.is_(False),
            )
        )
        return result.scalar_one()


# ── Leave workflow emitters ─────────────────────────────────────────
# Called by the leave service after its transaction commits. They take
# the ORM request directly to avoid coupling to leave schemas.


def _request_link(leave_request: LeaveRequest) -> str:
    return f"/leave/requests/{leave_request.id}"


async def notify_leave_submitted(
    db: AsyncSession,
    leave_request: LeaveRequest,
    manager_id: uuid.UUID,
    requester_name: str,
) -> Notification:
    """Tell the requester's manager a new request awaits a decision."""
    return await NotificationService.create_notification(
        db,
        recipient_id=manager_id,
        type=NotificationType.leave_request,
        title="New Leave Request",
        message=(
            f"{requester_name} requested leave from {leave_request.start_date} "
            f"to {leave_request.end_date} ({leave_request.total_days} day(s))."
        ),
        link=_request_link(leave_request),
        entity_id=leave_request.id,
    )


async def notify_leave_approved(
    db: AsyncSession,
    leave_request: LeaveRequest,
) -> Notification:
    """Tell the requester their request was approved."""
    return await NotificationService.create_notification(
        db,
        recipient_id=leave_request.user_id,
        type=NotificationType.approval,
        title="Leave Request Approved",
        message=(
            f"Your leave request from {leave_request.start_date} to "
            f"{leave_request.end_date} has been approved."
        ),
        link=_request_link(leave_request),
        entity_id=leave_request.id,
    )


async def notify_leave_rejected(
    db: AsyncSession,
    leave_request: LeaveRequest,
) -> Notification:
    """Tell the requester their request was rejected, with the reason."""
    return await NotificationService.create_notification(
        db,
        recipient_id=leave_request.user_id,
        type=NotificationType.rejection,
        title="Leave Request Rejected",
        message=(
            f"Your leave request from {leave_request.start_date} to "
            f"{leave_request.end_date} was rejected. "
            f"Reason: {leave_request.rejection_reason}"
        ),
        link=_request_link(leave_request),
        entity_id=leave_request.id,
    )


async def notify_leave_cancelled(
    db: AsyncSession,
    leave_request: LeaveRequest,
    manager_id: uuid.UUID,
    requester_name: str,
) -> Notification:
    """Tell the requester's manager a pending request was withdrawn."""
    return await NotificationService.create_notification(
        db,
        recipient_id=manager_id,
        type=NotificationType.info,
        title="Leave Request Cancelled",
        message=(
            f"{requester_name} cancelled the leave request from "
            f"{leave_request.start_date} to {leave_request.end_date}."
        ),
        link=_request_link(leave_request),
        entity_id=leave_request.id,
    )
