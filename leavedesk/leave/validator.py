"""Pre-submission checks for leave requests.

Pure functions over snapshots supplied by the caller: no database access,
no clock. ``LeaveService.submit`` loads the snapshots under row locks and
calls :func:`validate` inside the same transaction that writes the request.

Checks run in a fixed order and stop at the first failure:

1. start date on or before end date        → ``InvalidDateRange``
2. leave type and reason supplied           → ``MissingField``
3. balance row for the start date's year    → ``BalanceNotFound``
4. requested days fit the available balance → ``InsufficientBalance``
5. no pending/approved request overlapping  → ``OverlappingRequest``
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from leavedesk.common.constants import ACTIVE_LEAVE_STATUSES, HALF_DAY, WEEKEND_DAYS
from leavedesk.common.exceptions import (
    BalanceNotFound,
    InsufficientBalance,
    InvalidDateRange,
    MissingField,
    OverlappingRequest,
)
from leavedesk.leave.models import LeaveBalance, LeaveRequest
from leavedesk.leave.schemas import LeaveRequestCreate


@dataclass(frozen=True)
class ValidatedRequest:
    """A candidate that passed every check, with its day count fixed."""

    user_id: uuid.UUID
    leave_type_id: uuid.UUID
    start_date: date
    end_date: date
    half_day: bool
    reason: str
    total_days: Decimal

    @property
    def year(self) -> int:
        return self.start_date.year


def count_business_days(start_date: date, end_date: date) -> int:
    """Monday–Friday days in [start_date, end_date], both ends inclusive.

    Holidays are not excluded.
    """
    days = 0
    current = start_date
    while current <= end_date:
        if current.weekday() not in WEEKEND_DAYS:
            days += 1
        current += timedelta(days=1)
    return days


def requested_days(start_date: date, end_date: date, half_day: bool) -> Decimal:
    """Days a request consumes: 0.5 for a half day, else the business-day count."""
    if half_day:
        return HALF_DAY
    return Decimal(count_business_days(start_date, end_date))


def overlaps(
    start_a: date, end_a: date, start_b: date, end_b: date,
) -> bool:
    """Inclusive interval intersection."""
    return start_a <= end_b and start_b <= end_a


def validate(
    user_id: uuid.UUID,
    candidate: LeaveRequestCreate,
    balance: Optional[LeaveBalance],
    existing: Iterable[LeaveRequest],
) -> ValidatedRequest:
    """Run the submission checks and return the validated request.

    Args:
        user_id: The requester.
        candidate: Submitted payload.
        balance: The requester's balance for (leave type, start year), or
            ``None`` when no such row exists.
        existing: The requester's other requests; anything not pending or
            approved is ignored.

    Raises:
        LeaveValidationError: the first failing check.
    """
    start, end = candidate.start_date, candidate.end_date

    if start > end:
        raise InvalidDateRange(start, end)

    if candidate.leave_type_id is None:
        raise MissingField("leave_type_id")
    reason = (candidate.reason or "").strip()
    if not reason:
        raise MissingField("reason")

    if balance is None:
        raise BalanceNotFound(user_id, candidate.leave_type_id, start.year)

    total_days = requested_days(start, end, candidate.half_day)

    available = max(balance.available_days, Decimal("0"))
    if total_days > available:
        raise InsufficientBalance(total_days, available)

    for other in existing:
        if other.user_id != user_id or other.status not in ACTIVE_LEAVE_STATUSES:
            continue
        if overlaps(start, end, other.start_date, other.end_date):
            raise OverlappingRequest(other.id, other.start_date, other.end_date)

    return ValidatedRequest(
        user_id=user_id,
        leave_type_id=candidate.leave_type_id,
        start_date=start,
        end_date=end,
        half_day=candidate.half_day,
        reason=reason,
        total_days=total_days,
    )
