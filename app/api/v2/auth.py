"""Authentication API - login, logout, current user and self-registration."""

from fastapi import APIRouter, status, Response
from sqlalchemy import select, func
import logging

from app.api.deps import (
    DbSession,
    CurrentUser,
    verify_password,
    get_password_hash,
    create_access_token,
)
from app.config import settings
from app.exceptions import ConflictError, ErrorCode, UnauthorizedError
from app.models.user import User
from app.schemas.auth import UserCreate, UserResponse, Token, LoginRequest, AuthMeResponse

logger = logging.getLogger(__name__)
router = APIRouter()

SESSION_COOKIE = "session"


@router.post("/login", response_model=Token)
async def login(
    response: Response,
    login_data: LoginRequest,
    db: DbSession,
):
    """Exchange email and password for a bearer token (also set as the session cookie)."""
    result = await db.execute(select(User).where(User.email == login_data.email))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(login_data.password, user.hashed_password):
        logger.info("Failed login attempt")
        raise UnauthorizedError("Incorrect email or password")
    if not user.is_active:
        raise UnauthorizedError("User account is disabled")

    access_token = create_access_token(data={"sub": str(user.id), "email": user.email})
    response.set_cookie(
        key=SESSION_COOKIE,
        value=access_token,
        httponly=True,
        secure=settings.ENVIRONMENT != "development",
        samesite="lax",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )

    logger.info(f"User {user.id} logged in")
    return Token(
        access_token=access_token,
        token=access_token,
        token_type="bearer",
        user=UserResponse.model_validate(user),
    )


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(key=SESSION_COOKIE)
    return {"message": "Successfully logged out"}


@router.get("/me", response_model=AuthMeResponse)
async def get_current_user_info(current_user: CurrentUser):
    return AuthMeResponse(user=UserResponse.model_validate(current_user))


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    db: DbSession,
):
    """Register a new user.

    The first account becomes ADMIN; everyone after that starts as OPERATOR
    until an admin changes the role.
    """
    existing = await db.execute(select(User.id).where(User.email == user_data.email))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Email already registered", code=ErrorCode.ALREADY_EXISTS)

    user_count = (await db.execute(select(func.count()).select_from(User))).scalar()

    user = User(
        email=user_data.email,
        hashed_password=get_password_hash(user_data.password),
        name=user_data.name,
        role="ADMIN" if user_count == 0 else "OPERATOR",
        is_active=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info(f"Registered user {user.id} with role {user.role}")
    return UserResponse.model_validate(user)
