"""Balance ledger — signed adjustments and yearly provisioning."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.leave.ledger import BalanceLedger
from leavedesk.leave.models import LeaveBalance
from tests.conftest import make_balance, make_leave_type


def _balance(total: str = "20", used: str = "0", pending: str = "0") -> LeaveBalance:
    return LeaveBalance(
        year=2026,
        total_days=Decimal(total),
        used_days=Decimal(used),
        pending_days=Decimal(pending),
    )


# ═════════════════════════════════════════════════════════════════════
# Adjustments
# ═════════════════════════════════════════════════════════════════════


class TestAdjustments:

    def test_reserve_moves_available_into_pending(self):
        bal = _balance()
        BalanceLedger.reserve(bal, Decimal("5"))
        assert bal.pending_days == Decimal("5")
        assert bal.used_days == Decimal("0")
        assert bal.available_days == Decimal("15")

    def test_commit_moves_pending_into_used(self):
        bal = _balance(pending="5")
        BalanceLedger.commit(bal, Decimal("5"))
        assert bal.pending_days == Decimal("0")
        assert bal.used_days == Decimal("5")
        assert bal.available_days == Decimal("15")

    def test_release_returns_pending(self):
        bal = _balance(pending="5.5")
        BalanceLedger.release(bal, Decimal("0.5"))
        assert bal.pending_days == Decimal("5")
        assert bal.available_days == Decimal("15")

    def test_reserve_then_release_restores(self):
        bal = _balance(total="12", used="3", pending="1")
        BalanceLedger.reserve(bal, Decimal("2.5"))
        BalanceLedger.release(bal, Decimal("2.5"))
        assert (bal.total_days, bal.used_days, bal.pending_days) == (
            Decimal("12"), Decimal("3"), Decimal("1"),
        )


# ═════════════════════════════════════════════════════════════════════
# Load / provision
# ═════════════════════════════════════════════════════════════════════


class TestLoad:

    async def test_load_by_key(self, db: AsyncSession, employee, leave_type, balance):
        found = await BalanceLedger.load(db, employee.id, leave_type.id, 2026)
        assert found is not None
        assert found.id == balance.id

    async def test_load_for_update(self, db: AsyncSession, employee, leave_type, balance):
        found = await BalanceLedger.load(
            db, employee.id, leave_type.id, 2026, for_update=True,
        )
        assert found.total_days == Decimal("20")

    async def test_other_year_missing(self, db: AsyncSession, employee, leave_type, balance):
        assert await BalanceLedger.load(db, employee.id, leave_type.id, 2027) is None


class TestProvision:

    async def test_creates_rows_for_active_types(self, db: AsyncSession, employee):
        annual = await make_leave_type(db, name="Annual Leave", default_days="20")
        sick = await make_leave_type(db, name="Sick Leave", default_days="10")
        await make_leave_type(db, name="Retired Leave", is_active=False)

        created = await BalanceLedger.provision(db, employee.id, 2026)
        await db.commit()

        by_type = {b.leave_type_id: b for b in created}
        assert set(by_type) == {annual.id, sick.id}
        assert by_type[annual.id].total_days == Decimal("20")
        assert by_type[sick.id].total_days == Decimal("10")
        assert all(b.used_days == 0 and b.pending_days == 0 for b in created)

    async def test_existing_rows_untouched(self, db: AsyncSession, employee, leave_type):
        await make_balance(db, employee, leave_type, total="7", used="2")

        created = await BalanceLedger.provision(db, employee.id, 2026)
        assert created == []

        count = (await db.execute(
            select(func.count()).select_from(LeaveBalance)
        )).scalar_one()
        assert count == 1
        bal = await BalanceLedger.load(db, employee.id, leave_type.id, 2026)
        assert bal.total_days == Decimal("7")

    async def test_carry_forward_capped(self, db: AsyncSession, employee):
        lt = await make_leave_type(
            db, default_days="20", carry_forward=True, max_carry_days="5",
        )
        # 20 - 8 - 0 = 12 left over, capped at 5
        await make_balance(db, employee, lt, year=2025, total="20", used="8")

        [bal] = await BalanceLedger.provision(db, employee.id, 2026)
        assert bal.carried_days == Decimal("5")
        assert bal.total_days == Decimal("25")

    async def test_carry_forward_below_cap(self, db: AsyncSession, employee):
        lt = await make_leave_type(
            db, default_days="20", carry_forward=True, max_carry_days="5",
        )
        await make_balance(db, employee, lt, year=2025, total="20", used="17", pending="1")

        [bal] = await BalanceLedger.provision(db, employee.id, 2026)
        assert bal.carried_days == Decimal("2")
        assert bal.total_days == Decimal("22")

    async def test_no_carry_without_flag(self, db: AsyncSession, employee, leave_type):
        await make_balance(db, employee, leave_type, year=2025, total="20")

        [bal] = await BalanceLedger.provision(db, employee.id, 2026)
        assert bal.carried_days == Decimal("0")
        assert bal.total_days == Decimal("20")

    async def test_overdrawn_prior_year_carries_nothing(self, db: AsyncSession, employee):
        lt = await make_leave_type(
            db, default_days="20", carry_forward=True, max_carry_days="5",
        )
        await make_balance(db, employee, lt, year=2025, total="10", used="12")

        [bal] = await BalanceLedger.provision(db, employee.id, 2026)
        assert bal.carried_days == Decimal("0")
