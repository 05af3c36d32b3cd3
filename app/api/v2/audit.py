"""Audit log - latest entries, newest first."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from typing import Optional
import logging

from app.api.deps import DbSession, CurrentUser
from app.config import settings
from app.models.audit import AuditEntry
from app.schemas.inventory import AuditEntryResponse
from app.security.rbac import Permission, require_permission

logger = logging.getLogger(__name__)
router = APIRouter()


def audit_entry_to_response(entry: AuditEntry) -> dict:
    return {
        "id": entry.id,
        "action": entry.action,
        "entity_type": entry.entity_type,
        "entity_id": entry.entity_id,
        "detail": entry.detail,
        "user_id": entry.user_id,
        "user_name": entry.user.name if entry.user else None,
        "user_email": entry.user.email if entry.user else None,
        "created_at": entry.created_at.isoformat() if entry.created_at else None,
    }


@router.get("", response_model=list[AuditEntryResponse])
async def list_audit_entries(
    db: DbSession,
    current_user: CurrentUser,
    limit: Optional[int] = Query(None, ge=1, le=500),
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    _: None = Depends(require_permission(Permission.VIEW_AUDIT)),
):
    query = select(AuditEntry)
    if action:
        query = query.where(AuditEntry.action == action)
    if entity_type:
        query = query.where(AuditEntry.entity_type == entity_type)

    query = query.order_by(AuditEntry.id.desc()).limit(limit or settings.AUDIT_LOG_LIMIT)
    result = await db.execute(query)
    return [audit_entry_to_response(e) for e in result.scalars().all()]
