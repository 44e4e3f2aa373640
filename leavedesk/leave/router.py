"""Leave router — submit, approve/reject/cancel, balances, leave types.

All endpoints require authentication. Approver and admin endpoints enforce
role checks; per-request capability is decided by the leave workflow.
"""


import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.auth.dependencies import get_current_user, require_permission, require_role
from leavedesk.common.constants import LeaveEvent, LeaveStatus, UserRole
from leavedesk.common.exceptions import ForbiddenException
from leavedesk.common.pagination import PaginatedResponse, PaginationParams
from leavedesk.common.rate_limit import limiter
from leavedesk.config import settings
from leavedesk.database import get_db
from leavedesk.leave.permissions import Actor
from leavedesk.leave.schemas import (
    BalanceProvisionRequest,
    LeaveBalanceDetail,
    LeaveBalanceOut,
    LeaveRequestCreate,
    LeaveRequestDetail,
    LeaveRequestOut,
    LeaveTransitionRequest,
    LeaveTypeOut,
)
from leavedesk.leave.service import LeaveService
from leavedesk.users.models import User

router = APIRouter(prefix="", tags=["leave"])


def _current_year() -> int:
    return datetime.now(timezone.utc).year


# ── POST /requests ──────────────────────────────────────────────────

@router.post("/requests", response_model=LeaveRequestOut, status_code=201)
@limiter.limit(settings.SUBMIT_RATE_LIMIT)
async def submit_leave(
    request: Request,
    body: LeaveRequestCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Submit a leave request. Checks dates, required fields, balance and overlap."""
    return await LeaveService.submit(db, user.id, body)


# ── GET /requests ───────────────────────────────────────────────────

@router.get("/requests", response_model=PaginatedResponse[LeaveRequestDetail])
async def list_requests(
    status: Optional[LeaveStatus] = Query(None),
    user_id: Optional[uuid.UUID] = Query(None),
    department_id: Optional[uuid.UUID] = Query(None),
    pagination: PaginationParams = Depends(),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List leave requests visible to the caller, newest first."""
    return await LeaveService.list_requests(
        db,
        user,
        pagination,
        status=status,
        user_id=user_id,
        department_id=department_id,
    )


# ── GET /requests/{id} ──────────────────────────────────────────────

@router.get("/requests/{request_id}", response_model=LeaveRequestDetail)
async def get_request(
    request_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.get_request(db, request_id, user)


# ── PUT /requests/{id} ──────────────────────────────────────────────

@router.put("/requests/{request_id}", response_model=LeaveRequestOut)
async def transition_request(
    request_id: uuid.UUID,
    body: LeaveTransitionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Approve, reject or cancel a pending leave request."""
    return await LeaveService.transition(
        db,
        request_id,
        Actor.from_user(user),
        LeaveEvent(body.action.value),
        reason=body.rejection_reason,
    )


# ── GET /pending-approvals ──────────────────────────────────────────

@router.get("/pending-approvals", response_model=list[LeaveRequestDetail])
async def pending_approvals(
    user: User = Depends(require_role(UserRole.manager, UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    """Pending requests awaiting the caller's decision, oldest first."""
    return await LeaveService.get_pending_approvals(db, user)


# ── GET /balances ───────────────────────────────────────────────────

@router.get("/balances", response_model=list[LeaveBalanceDetail])
async def get_balances(
    year: Optional[int] = Query(None, description="Leave year; defaults to current year"),
    user_id: Optional[uuid.UUID] = Query(None, description="Another user's balances (managers, admins)"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Leave balances for a year, the caller's own by default."""
    target_user = user_id or user.id
    if target_user != user.id and user.role == UserRole.employee:
        raise ForbiddenException("You can only view your own leave balances.")
    return await LeaveService.get_balances(db, target_user, year or _current_year())


# ── GET /balances/{leave_type_id} ───────────────────────────────────

@router.get("/balances/{leave_type_id}", response_model=LeaveBalanceDetail)
async def get_balance(
    leave_type_id: uuid.UUID,
    year: Optional[int] = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.get_balance(
        db, user.id, leave_type_id, year or _current_year(),
    )


# ── POST /balances/provision ────────────────────────────────────────

@router.post("/balances/provision", response_model=list[LeaveBalanceOut], status_code=201)
async def provision_balances(
    body: BalanceProvisionRequest,
    user: User = Depends(require_permission("balance:provision")),
    db: AsyncSession = Depends(get_db),
):
    """Create a user's missing balances for a year, carrying over leftovers."""
    return await LeaveService.provision_balances(db, body.user_id, body.year)


# ── GET /types ──────────────────────────────────────────────────────

@router.get("/types", response_model=list[LeaveTypeOut])
async def get_leave_types(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List active leave types."""
    return await LeaveService.get_leave_types(db)
