"""Balance ledger — the only code that writes leave balance counters.

Three adjustments, applied to a balance row already loaded (and locked)
inside the caller's transaction:

    reserve(amount)  pending += amount                 submit
    commit(amount)   pending -= amount; used += amount approve
    release(amount)  pending -= amount                 reject / cancel

The adjustments do not re-check non-negativity: the validator admits a
reservation only when it fits, and the state machine lets each request
leave ``pending`` exactly once.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.database import utcnow
from leavedesk.leave.models import LeaveBalance, LeaveType

logger = logging.getLogger(__name__)


class BalanceLedger:
    """Loaders and signed adjustments for ``LeaveBalance`` rows."""

    # ─────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def load(
        db: AsyncSession,
        user_id: uuid.UUID,
        leave_type_id: uuid.UUID,
        year: int,
        *,
        for_update: bool = False,
    ) -> Optional[LeaveBalance]:
        """Fetch the balance row keyed by (user, leave type, year).

        With ``for_update`` the row is locked until the transaction ends and
        re-read from the database even if it is already in the identity map.
        """
        query = select(LeaveBalance).where(
            LeaveBalance.user_id == user_id,
            LeaveBalance.leave_type_id == leave_type_id,
            LeaveBalance.year == year,
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)

        result = await db.execute(query)
        return result.scalars().first()

    # ─────────────────────────────────────────────────────────────────
    # Adjustments
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def reserve(balance: LeaveBalance, amount: Decimal) -> None:
        balance.pending_days = balance.pending_days + amount
        balance.updated_at = utcnow()
        logger.debug("Reserved %s days on %r", amount, balance)

    @staticmethod
    def commit(balance: LeaveBalance, amount: Decimal) -> None:
        balance.pending_days = balance.pending_days - amount
        balance.used_days = balance.used_days + amount
        balance.updated_at = utcnow()
        logger.debug("Committed %s days on %r", amount, balance)

    @staticmethod
    def release(balance: LeaveBalance, amount: Decimal) -> None:
        balance.pending_days = balance.pending_days - amount
        balance.updated_at = utcnow()
        logger.debug("Released %s days on %r", amount, balance)

    # ─────────────────────────────────────────────────────────────────
    # Provisioning
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def provision(
        db: AsyncSession,
        user_id: uuid.UUID,
        year: int,
    ) -> list[LeaveBalance]:
        """Create the missing balance rows for every active leave type.

        ``total_days`` is the type's ``default_days`` plus the days carried
        over from the previous year. Carry-over applies only to types with
        ``carry_forward`` and is capped at ``max_carry_days``; a negative
        prior balance carries nothing. Rows that already exist are left as
        they are. Returns the newly created rows (flushed, not committed).
        """
        types_result = await db.execute(
            select(LeaveType)
            .where(LeaveType.is_active.is_(True))
            .order_by(LeaveType.name)
        )
        leave_types = types_result.scalars().all()

        existing_result = await db.execute(
            select(LeaveBalance.leave_type_id).where(
                LeaveBalance.user_id == user_id,
                LeaveBalance.year == year,
            )
        )
        existing = {row[0] for row in existing_result.all()}

        created: list[LeaveBalance] = []
        for lt in leave_types:
            if lt.id in existing:
                continue

            carried = Decimal("0")
            if lt.carry_forward:
                prior = await BalanceLedger.load(db, user_id, lt.id, year - 1)
                if prior is not None:
                    leftover = max(prior.available_days, Decimal("0"))
                    carried = min(leftover, lt.max_carry_days)

            balance = LeaveBalance(
                user_id=user_id,
                leave_type_id=lt.id,
                year=year,
                total_days=lt.default_days + carried,
                used_days=Decimal("0"),
                pending_days=Decimal("0"),
                carried_days=carried,
            )
            db.add(balance)
            created.append(balance)

        if created:
            await db.flush()
            logger.info(
                "Provisioned %d leave balances for user %s in %d",
                len(created), user_id, year,
            )
        return created
