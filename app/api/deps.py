"""
Request dependencies: sessions, the caller and the services built per request.

Bearer tokens are the primary credential; the session cookie set at login is
accepted when no Authorization header is sent. Token payloads never reach the
logs, and authorization always uses the role stored on the user row.
"""

from typing import Annotated
from fastapi import Depends, HTTPException, status, Cookie
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from jose import JWTError, jwt
import bcrypt
from datetime import datetime, timedelta, timezone
import logging

from app.database import get_db, get_session_factory
from app.config import settings
from app.models.user import User
from app.schemas.auth import TokenData
from app.services.audit_recorder import Actor
from app.services.batch_importer import BatchImporter
from app.services.movement_executor import MovementExecutor

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Sign `data` with an exp claim (ACCESS_TOKEN_EXPIRE_MINUTES unless overridden)."""
    lifetime = expires_delta if expires_delta is not None else timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {**data, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def _decode_user_id(token: str) -> int | None:
    """User id from a valid, unexpired token; None otherwise. Payloads are never logged."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        token_data = TokenData(user_id=int(payload["sub"]), email=payload.get("email"))
    except (JWTError, KeyError, TypeError, ValueError):
        return None
    return token_data.user_id


async def get_current_user(
    db: Annotated[AsyncSession, Depends(get_db)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)] = None,
    session_token: Annotated[str | None, Cookie(alias="session")] = None,
) -> User:
    """
    Resolve the caller from the bearer token, falling back to the session cookie.

    The role used for authorization is the one stored on the user row now,
    not whatever it was when the token was issued.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    auth_method = "bearer" if credentials else "cookie"
    token = credentials.credentials if credentials else session_token
    if not token:
        raise credentials_exception

    user_id = _decode_user_id(token)
    if user_id is None:
        logger.warning("Token validation failed", extra={"auth_method": auth_method})
        raise credentials_exception

    user = await db.get(User, user_id)
    if user is None:
        raise credentials_exception
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is disabled")

    logger.debug("User authenticated", extra={"user_id": user.id, "auth_method": auth_method})
    return user


async def get_current_actor(
    current_user: Annotated[User, Depends(get_current_user)]
) -> Actor:
    """Identity the services attribute audit entries to."""
    return Actor.from_user(current_user)


# Type aliases for dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db)]
SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentActor = Annotated[Actor, Depends(get_current_actor)]


def get_movement_executor(session_factory: SessionFactory) -> MovementExecutor:
    return MovementExecutor(session_factory)


def get_batch_importer(session_factory: SessionFactory) -> BatchImporter:
    return BatchImporter(session_factory, MovementExecutor(session_factory))


Executor = Annotated[MovementExecutor, Depends(get_movement_executor)]
Importer = Annotated[BatchImporter, Depends(get_batch_importer)]
