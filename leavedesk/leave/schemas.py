"""Leave Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Request  → request bodies (write)
  - *Out                → response bodies (read)
  - *Brief              → compact embedded representations

Submission bodies are deliberately lax about required-ness: a missing
leave type or reason is reported by the leave validator with its own
error kind, not by a generic request-validation 422.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from leavedesk.common.constants import LeaveStatus


# ═════════════════════════════════════════════════════════════════════
# Embedded / shared
# ═════════════════════════════════════════════════════════════════════


class UserBrief(BaseModel):
    """Minimal user info embedded in leave responses."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str


class LeaveTypeBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    color: str


# ═════════════════════════════════════════════════════════════════════
# Leave Type
# ═════════════════════════════════════════════════════════════════════


class LeaveTypeOut(BaseModel):
    """Full leave type representation."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    default_days: Decimal
    color: str
    carry_forward: bool = False
    max_carry_days: Decimal = Decimal("0")
    is_active: bool = True


# ═════════════════════════════════════════════════════════════════════
# Leave Balance
# ═════════════════════════════════════════════════════════════════════


class LeaveBalanceOut(BaseModel):
    """Balance for a single leave type and year with computed available field."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    leave_type_id: uuid.UUID
    year: int
    total_days: Decimal
    used_days: Decimal
    pending_days: Decimal
    carried_days: Decimal
    available_days: Decimal


class LeaveBalanceDetail(LeaveBalanceOut):
    """Balance with its leave type embedded (the type must be eager-loaded)."""

    leave_type: LeaveTypeBrief


class BalanceProvisionRequest(BaseModel):
    """Admin payload for opening a user's balances for a year."""

    user_id: uuid.UUID
    year: int = Field(..., ge=2000, le=2100)


# ═════════════════════════════════════════════════════════════════════
# Leave Request: Create
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestCreate(BaseModel):
    """Payload for submitting a leave request."""

    leave_type_id: Optional[uuid.UUID] = None
    start_date: date = Field(..., description="Leave start date (inclusive)")
    end_date: date = Field(..., description="Leave end date (inclusive)")
    half_day: bool = False
    reason: Optional[str] = Field(None, max_length=1000)


# ═════════════════════════════════════════════════════════════════════
# Leave Request: Response
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestOut(BaseModel):
    """Full leave request response."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    leave_type_id: uuid.UUID
    department_id: Optional[uuid.UUID] = None
    start_date: date
    end_date: date
    total_days: Decimal
    half_day: bool
    reason: str
    status: LeaveStatus
    rejection_reason: Optional[str] = None
    applied_at: datetime
    approved_at: Optional[datetime] = None
    approved_by: Optional[uuid.UUID] = None
    cancelled_at: Optional[datetime] = None


class LeaveRequestDetail(LeaveRequestOut):
    """Request with requester, type and approver embedded.

    Only for rows loaded with those relationships eager-loaded.
    """

    user: UserBrief
    leave_type: LeaveTypeBrief
    approver: Optional[UserBrief] = None


# ═════════════════════════════════════════════════════════════════════
# Leave Approve / Reject / Cancel
# ═════════════════════════════════════════════════════════════════════


class LeaveAction(str, Enum):
    approve = "approve"
    reject = "reject"
    cancel = "cancel"


class LeaveTransitionRequest(BaseModel):
    """Payload for moving a pending request to approved, rejected or cancelled."""

    action: LeaveAction
    rejection_reason: Optional[str] = Field(None, max_length=1000)
