"""Audit Recorder - append-only log of state-changing actions.

Entries are written through the caller's session, inside the caller's
transaction, so an entry exists exactly when the action it describes committed.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit import AuditEntry, AuditAction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """Authenticated identity attributed in the audit log. user_id None means system."""

    user_id: Optional[int]
    role: str = "SYSTEM"

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(user_id=user.id, role=user.role or "OPERATOR")


SYSTEM_ACTOR = Actor(user_id=None, role="SYSTEM")


class AuditRecorder:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        actor: Actor,
        action: AuditAction,
        entity_type: str,
        entity_id: Optional[int],
        detail: str,
    ) -> AuditEntry:
        entry = AuditEntry(
            user_id=actor.user_id,
            action=AuditAction(action).value,
            entity_type=entity_type,
            entity_id=entity_id,
            detail=detail,
        )
        self.db.add(entry)
        await self.db.flush()
        logger.debug(f"Audit {entry.action} {entity_type}#{entity_id} by user {actor.user_id or 'system'}")
        return entry
