"""User administration - list accounts and change roles (admin only)."""

from fastapi import APIRouter, Depends
from sqlalchemy import select
import logging

from app.api.deps import DbSession, CurrentUser, CurrentActor
from app.exceptions import NotFoundError
from app.models.audit import AuditAction
from app.models.user import User
from app.schemas.auth import UserResponse, RoleUpdate
from app.security.rbac import require_admin
from app.services.audit_recorder import AuditRecorder

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=list[UserResponse])
async def list_users(
    db: DbSession,
    current_user: CurrentUser,
    _: None = Depends(require_admin),
):
    result = await db.execute(select(User).order_by(User.id))
    return [UserResponse.model_validate(u) for u in result.scalars().all()]


@router.patch("/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    user_id: int,
    data: RoleUpdate,
    db: DbSession,
    actor: CurrentActor,
    _: None = Depends(require_admin),
):
    """Change a user's role; the change is audited."""
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)

    previous = user.role
    user.role = data.role
    await AuditRecorder(db).record(
        actor,
        AuditAction.USER_ROLE_UPDATE,
        "User",
        user.id,
        f"Changed role of {user.email} from {previous} to {data.role}",
    )
    await db.commit()
    await db.refresh(user)

    logger.info(f"User {user.id} role changed from {previous} to {data.role} by user {actor.user_id}")
    return UserResponse.model_validate(user)
