"""Who may move a leave request through which transition.

The predicate is handed to ``LeaveService.transition`` rather than called
from inside it, so the workflow can be driven with any capability check.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.common.constants import LeaveEvent, UserRole
from leavedesk.users.models import User

# userId → managerId
ManagerLookup = Callable[[uuid.UUID], Awaitable[Optional[uuid.UUID]]]

# (actor, event, requester_id, requester's manager id) → allowed?
TransitionPredicate = Callable[
    ["Actor", LeaveEvent, uuid.UUID, Optional[uuid.UUID]], bool
]


@dataclass(frozen=True)
class Actor:
    """The caller attempting a transition."""

    id: uuid.UUID
    role: UserRole

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(id=user.id, role=user.role)


def can_transition(
    actor: Actor,
    event: LeaveEvent,
    requester_id: uuid.UUID,
    requester_manager_id: Optional[uuid.UUID],
) -> bool:
    """Default capability check.

    - cancel: only the requester
    - approve / reject: an admin, or the requester's direct manager
    - submit: only on one's own behalf
    """
    if event in (LeaveEvent.cancel, LeaveEvent.submit):
        return actor.id == requester_id
    if event in (LeaveEvent.approve, LeaveEvent.reject):
        if actor.role == UserRole.admin:
            return True
        return requester_manager_id is not None and actor.id == requester_manager_id
    return False


def manager_lookup(db: AsyncSession) -> ManagerLookup:
    """Build a ``ManagerLookup`` backed by ``users.manager_id``."""

    async def _lookup(user_id: uuid.UUID) -> Optional[uuid.UUID]:
        result = await db.execute(select(User.manager_id).where(User.id == user_id))
        return result.scalar()

    return _lookup
