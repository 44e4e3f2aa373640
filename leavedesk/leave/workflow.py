"""Leave request lifecycle.

    (new) ──submit──▶ pending ──approve──▶ approved
                         │ ───reject───▶ rejected
                         └───cancel───▶ cancelled

``pending`` is the only state that accepts an event; every other state is
terminal. Each edge names the ledger adjustment that must be applied in
the same transaction as the status write.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Callable, NamedTuple, Optional

from leavedesk.common.constants import LeaveEvent, LeaveStatus
from leavedesk.common.exceptions import InvalidTransition
from leavedesk.leave.ledger import BalanceLedger
from leavedesk.leave.models import LeaveBalance

LedgerOp = Callable[[LeaveBalance, Decimal], None]


class Transition(NamedTuple):
    target: LeaveStatus
    ledger_op: LedgerOp


# (source status, event) → transition.  ``None`` is the not-yet-created request.
TRANSITIONS: dict[tuple[Optional[LeaveStatus], LeaveEvent], Transition] = {
    (None, LeaveEvent.submit): Transition(LeaveStatus.pending, BalanceLedger.reserve),
    (LeaveStatus.pending, LeaveEvent.approve): Transition(LeaveStatus.approved, BalanceLedger.commit),
    (LeaveStatus.pending, LeaveEvent.reject): Transition(LeaveStatus.rejected, BalanceLedger.release),
    (LeaveStatus.pending, LeaveEvent.cancel): Transition(LeaveStatus.cancelled, BalanceLedger.release),
}


def next_state(
    status: Optional[LeaveStatus],
    event: LeaveEvent,
    *,
    request_id: Optional[uuid.UUID] = None,
) -> Transition:
    """Look up the transition for ``event`` from ``status``.

    Raises:
        InvalidTransition: ``status`` does not accept ``event``.
    """
    transition = TRANSITIONS.get((status, event))
    if transition is None:
        current = status.value if status is not None else "new"
        raise InvalidTransition(request_id, current, event.value)
    return transition


def is_terminal(status: LeaveStatus) -> bool:
    return not any(src == status for src, _ in TRANSITIONS)
