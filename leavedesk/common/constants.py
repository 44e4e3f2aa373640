"""Enums and constants for LeaveDesk — matching the database ENUM types."""

from __future__ import annotations

import enum
from decimal import Decimal


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    employee = "employee"
    manager = "manager"
    admin = "admin"


# ── Leave ───────────────────────────────────────────────────────────

class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


class LeaveEvent(str, enum.Enum):
    submit = "submit"
    approve = "approve"
    reject = "reject"
    cancel = "cancel"


# Statuses that hold dates on the calendar (and block overlapping requests)
ACTIVE_LEAVE_STATUSES = (LeaveStatus.pending, LeaveStatus.approved)

HALF_DAY = Decimal("0.5")

# Saturday (5) and Sunday (6)
WEEKEND_DAYS = frozenset({5, 6})


# ── Notifications ───────────────────────────────────────────────────

class NotificationType(str, enum.Enum):
    leave_request = "leave_request"
    approval = "approval"
    rejection = "rejection"
    info = "info"


# ── Role-based permissions ──────────────────────────────────────────
# Only capabilities checked through require_permission are listed; request
# transitions are decided by leave.permissions.can_transition.

PERMISSIONS: dict[UserRole, list[str]] = {
    UserRole.employee: [],
    UserRole.manager: [],
    UserRole.admin: ["balance:provision"],
}

# ── Misc constants ──────────────────────────────────────────────────

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
