"""Leave service layer — submission, lifecycle transitions, balance reads.

Every write is one transaction owned here:

  submit:      lock user row → lock balance row → validate → insert request
               + reserve → commit
  transition:  lock request row → authorize → state check → lock balance
               row → stamp request + ledger adjustment → commit

Domain errors are raised before anything is written. A storage failure at
commit rolls the whole unit back and surfaces as ``StorageConflict``; the
service never retries. Notifications go out after the commit, best-effort,
in their own transaction.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from leavedesk.common.constants import (
    ACTIVE_LEAVE_STATUSES,
    LeaveEvent,
    LeaveStatus,
    UserRole,
)
from leavedesk.common.exceptions import (
    ForbiddenException,
    MissingReason,
    NotFoundException,
    StorageConflict,
    Unauthorized,
)
from leavedesk.common.pagination import PaginatedResponse, PaginationParams, paginate
from leavedesk.config import settings
from leavedesk.database import CONFLICT_ERRORS, utcnow
from leavedesk.leave.ledger import BalanceLedger
from leavedesk.leave.models import LeaveBalance, LeaveRequest, LeaveType
from leavedesk.leave.permissions import (
    Actor,
    ManagerLookup,
    TransitionPredicate,
    can_transition,
    manager_lookup,
)
from leavedesk.leave.schemas import LeaveRequestCreate, LeaveRequestDetail
from leavedesk.leave.validator import validate
from leavedesk.leave.workflow import next_state
from leavedesk.notifications.service import (
    notify_leave_approved,
    notify_leave_cancelled,
    notify_leave_rejected,
    notify_leave_submitted,
)
from leavedesk.users.models import User

logger = logging.getLogger(__name__)

_DETAIL_OPTIONS = (
    selectinload(LeaveRequest.user),
    selectinload(LeaveRequest.leave_type),
    selectinload(LeaveRequest.approver),
)


# ═════════════════════════════════════════════════════════════════════
# LeaveService
# ═════════════════════════════════════════════════════════════════════


class LeaveService:
    """Async leave operations: types, balances, requests, approvals."""

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def _commit(db: AsyncSession, operation: str) -> None:
        """Flush and commit the current unit, mapping storage failures."""
        try:
            await db.flush()
            await db.commit()
        except CONFLICT_ERRORS as exc:
            await db.rollback()
            logger.warning("Leave %s could not be committed: %s", operation, exc)
            raise StorageConflict(operation) from exc

    @staticmethod
    async def _emit(
        db: AsyncSession,
        event: LeaveEvent,
        leave_req: LeaveRequest,
        manager_id: Optional[uuid.UUID],
    ) -> None:
        """Best-effort notification for a committed transition.

        ``leave_req`` is detached first so a failed emit (and its rollback)
        cannot expire the state handed back to the caller. Any emitter error
        is logged and swallowed; the transition is already committed.
        """
        db.expunge(leave_req)
        if not settings.NOTIFICATIONS_ENABLED:
            return

        try:
            if event == LeaveEvent.approve:
                await notify_leave_approved(db, leave_req)
            elif event == LeaveEvent.reject:
                await notify_leave_rejected(db, leave_req)
            elif manager_id is not None:
                name_result = await db.execute(
                    select(User.name).where(User.id == leave_req.user_id)
                )
                requester_name = name_result.scalar() or "An employee"
                if event == LeaveEvent.submit:
                    await notify_leave_submitted(db, leave_req, manager_id, requester_name)
                else:
                    await notify_leave_cancelled(db, leave_req, manager_id, requester_name)
            await db.commit()
        except Exception:
            logger.exception(
                "Failed to emit %s notification for leave request %s",
                event.value, leave_req.id,
            )
            await db.rollback()

    # ─────────────────────────────────────────────────────────────────
    # Leave Types
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_leave_types(
        db: AsyncSession,
        *,
        is_active: Optional[bool] = True,
    ) -> list[LeaveType]:
        """List leave types, active ones by default."""
        query = select(LeaveType).order_by(LeaveType.name)
        if is_active is not None:
            query = query.where(LeaveType.is_active == is_active)

        result = await db.execute(query)
        return list(result.scalars().all())

    # ─────────────────────────────────────────────────────────────────
    # Balance
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_balance(
        db: AsyncSession,
        user_id: uuid.UUID,
        leave_type_id: uuid.UUID,
        year: int,
    ) -> LeaveBalance:
        """Single balance row for (user, leave type, year)."""
        result = await db.execute(
            select(LeaveBalance)
            .where(
                LeaveBalance.user_id == user_id,
                LeaveBalance.leave_type_id == leave_type_id,
                LeaveBalance.year == year,
            )
            .options(selectinload(LeaveBalance.leave_type))
        )
        balance = result.scalars().first()
        if balance is None:
            raise NotFoundException(
                "LeaveBalance", f"{user_id}/{leave_type_id}/{year}",
            )
        return balance

    @staticmethod
    async def get_balances(
        db: AsyncSession,
        user_id: uuid.UUID,
        year: int,
    ) -> list[LeaveBalance]:
        """All balances of a user for one year, ordered by leave type name."""
        result = await db.execute(
            select(LeaveBalance)
            .join(LeaveType, LeaveBalance.leave_type_id == LeaveType.id)
            .where(
                LeaveBalance.user_id == user_id,
                LeaveBalance.year == year,
            )
            .options(selectinload(LeaveBalance.leave_type))
            .order_by(LeaveType.name)
        )
        return list(result.scalars().all())

    @staticmethod
    async def provision_balances(
        db: AsyncSession,
        user_id: uuid.UUID,
        year: int,
    ) -> list[LeaveBalance]:
        """Open the year's missing balances for a user and commit them."""
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundException("User", user_id)

        created = await BalanceLedger.provision(db, user_id, year)
        await LeaveService._commit(db, "provision")
        return created

    # ─────────────────────────────────────────────────────────────────
    # Submit
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def submit(
        db: AsyncSession,
        user_id: uuid.UUID,
        data: LeaveRequestCreate,
    ) -> LeaveRequest:
        """Validate and create a pending request, reserving its days.

        The requester's user row is locked first so concurrent submissions
        by the same user run one after the other; the validator then sees
        the balance and the active requests as of this transaction.

        Raises:
            NotFoundException: unknown or inactive user.
            LeaveValidationError: a submission check failed.
            StorageConflict: the unit could not commit.
        """
        user_result = await db.execute(
            select(User)
            .where(User.id == user_id, User.is_active.is_(True))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        user = user_result.scalars().first()
        if user is None:
            raise NotFoundException("User", user_id)

        balance: Optional[LeaveBalance] = None
        if data.leave_type_id is not None:
            balance = await BalanceLedger.load(
                db, user_id, data.leave_type_id, data.start_date.year,
                for_update=True,
            )

        active_result = await db.execute(
            select(LeaveRequest).where(
                LeaveRequest.user_id == user_id,
                LeaveRequest.status.in_(ACTIVE_LEAVE_STATUSES),
                LeaveRequest.start_date <= data.end_date,
                LeaveRequest.end_date >= data.start_date,
            )
        )
        validated = validate(user_id, data, balance, active_result.scalars().all())

        transition = next_state(None, LeaveEvent.submit)
        leave_req = LeaveRequest(
            user_id=user_id,
            leave_type_id=validated.leave_type_id,
            department_id=user.department_id,
            start_date=validated.start_date,
            end_date=validated.end_date,
            total_days=validated.total_days,
            half_day=validated.half_day,
            reason=validated.reason,
            status=transition.target,
            applied_at=utcnow(),
        )
        db.add(leave_req)
        transition.ledger_op(balance, validated.total_days)

        manager_id = user.manager_id
        await LeaveService._commit(db, "submit")
        logger.info(
            "Leave request %s submitted by %s (%s days)",
            leave_req.id, user_id, validated.total_days,
        )

        await LeaveService._emit(db, LeaveEvent.submit, leave_req, manager_id)
        return leave_req

    # ─────────────────────────────────────────────────────────────────
    # Transition (approve / reject / cancel)
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def transition(
        db: AsyncSession,
        request_id: uuid.UUID,
        actor: Actor,
        event: LeaveEvent,
        *,
        reason: Optional[str] = None,
        manager_of: Optional[ManagerLookup] = None,
        authorize: TransitionPredicate = can_transition,
    ) -> LeaveRequest:
        """Move a pending request to approved, rejected or cancelled.

        Args:
            request_id: The request to move.
            actor: Who is acting, with their role.
            event: approve, reject or cancel.
            reason: Rejection reason; required and non-blank for reject.
            manager_of: userId → managerId lookup; defaults to the users table.
            authorize: Capability predicate deciding whether ``actor`` may
                apply ``event`` to this requester's request.

        Raises:
            NotFoundException: no such request.
            Unauthorized: ``authorize`` refused the actor.
            InvalidTransition: the request is no longer pending.
            MissingReason: reject without a reason.
            StorageConflict: the unit could not commit.
        """
        result = await db.execute(
            select(LeaveRequest)
            .where(LeaveRequest.id == request_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        leave_req = result.scalars().first()
        if leave_req is None:
            raise NotFoundException("LeaveRequest", request_id)

        lookup = manager_of or manager_lookup(db)
        manager_id = await lookup(leave_req.user_id)
        if not authorize(actor, event, leave_req.user_id, manager_id):
            raise Unauthorized(actor.id, event.value)

        transition = next_state(leave_req.status, event, request_id=leave_req.id)

        if event == LeaveEvent.reject:
            reason = (reason or "").strip()
            if not reason:
                raise MissingReason()

        balance = await BalanceLedger.load(
            db, leave_req.user_id, leave_req.leave_type_id, leave_req.year,
            for_update=True,
        )
        if balance is None:
            raise NotFoundException(
                "LeaveBalance",
                f"{leave_req.user_id}/{leave_req.leave_type_id}/{leave_req.year}",
            )

        now = utcnow()
        previous = leave_req.status
        leave_req.status = transition.target
        if event in (LeaveEvent.approve, LeaveEvent.reject):
            leave_req.approved_at = now
            leave_req.approved_by = actor.id
        if event == LeaveEvent.reject:
            leave_req.rejection_reason = reason
        if event == LeaveEvent.cancel:
            leave_req.cancelled_at = now
        leave_req.updated_at = now
        transition.ledger_op(balance, leave_req.total_days)

        await LeaveService._commit(db, event.value)
        logger.info(
            "Leave request %s %s → %s by %s",
            leave_req.id, previous.value, transition.target.value, actor.id,
        )

        await LeaveService._emit(db, event, leave_req, manager_id)
        return leave_req

    @staticmethod
    async def approve(
        db: AsyncSession, request_id: uuid.UUID, actor: Actor, **kwargs,
    ) -> LeaveRequest:
        return await LeaveService.transition(
            db, request_id, actor, LeaveEvent.approve, **kwargs,
        )

    @staticmethod
    async def reject(
        db: AsyncSession, request_id: uuid.UUID, actor: Actor, reason: Optional[str], **kwargs,
    ) -> LeaveRequest:
        return await LeaveService.transition(
            db, request_id, actor, LeaveEvent.reject, reason=reason, **kwargs,
        )

    @staticmethod
    async def cancel(
        db: AsyncSession, request_id: uuid.UUID, actor: Actor, **kwargs,
    ) -> LeaveRequest:
        return await LeaveService.transition(
            db, request_id, actor, LeaveEvent.cancel, **kwargs,
        )

    # ─────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_request(
        db: AsyncSession,
        request_id: uuid.UUID,
        viewer: User,
    ) -> LeaveRequest:
        """Single request with relationships loaded. Employees see only their own."""
        result = await db.execute(
            select(LeaveRequest)
            .where(LeaveRequest.id == request_id)
            .options(*_DETAIL_OPTIONS)
        )
        leave_req = result.scalars().first()
        if leave_req is None:
            raise NotFoundException("LeaveRequest", request_id)

        if viewer.role == UserRole.employee and leave_req.user_id != viewer.id:
            raise ForbiddenException("You can only view your own leave requests.")
        return leave_req

    @staticmethod
    async def list_requests(
        db: AsyncSession,
        viewer: User,
        pagination: PaginationParams,
        *,
        status: Optional[LeaveStatus] = None,
        user_id: Optional[uuid.UUID] = None,
        department_id: Optional[uuid.UUID] = None,
    ) -> PaginatedResponse:
        """Role-scoped request listing, newest first.

        Scopes:
          - employee: own requests
          - manager: own requests plus those of direct reports
          - admin: everything
        ``user_id`` and ``department_id`` narrow the scope for managers and
        admins; employees cannot widen theirs.
        """
        query = select(LeaveRequest).order_by(LeaveRequest.applied_at.desc())

        if viewer.role == UserRole.employee:
            query = query.where(LeaveRequest.user_id == viewer.id)
        else:
            if viewer.role == UserRole.manager:
                reports = select(User.id).where(User.manager_id == viewer.id)
                query = query.where(
                    or_(
                        LeaveRequest.user_id == viewer.id,
                        LeaveRequest.user_id.in_(reports),
                    )
                )
            if user_id is not None:
                query = query.where(LeaveRequest.user_id == user_id)
            if department_id is not None:
                query = query.where(LeaveRequest.department_id == department_id)

        if status is not None:
            query = query.where(LeaveRequest.status == status)

        return await paginate(
            db, query, pagination,
            transform=LeaveRequestDetail.model_validate,
            options=_DETAIL_OPTIONS,
        )

    @staticmethod
    async def get_pending_approvals(
        db: AsyncSession,
        approver: User,
    ) -> list[LeaveRequest]:
        """Pending requests awaiting ``approver``, oldest first.

        Managers get their direct reports' requests; admins get all.
        """
        query = (
            select(LeaveRequest)
            .where(LeaveRequest.status == LeaveStatus.pending)
            .options(*_DETAIL_OPTIONS)
            .order_by(LeaveRequest.applied_at.asc())
        )
        if approver.role != UserRole.admin:
            reports = select(User.id).where(User.manager_id == approver.id)
            query = query.where(LeaveRequest.user_id.in_(reports))

        result = await db.execute(query)
        return list(result.scalars().all())
