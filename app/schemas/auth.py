from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional, Literal


RoleType = Literal["ADMIN", "MANAGER", "OPERATOR"]


class UserBase(BaseModel):
    """Base user schema."""

    email: EmailStr
    name: Optional[str] = None


class UserCreate(UserBase):
    """Schema for creating a user. The role is assigned by the server."""

    password: str = Field(..., min_length=8)


class UserResponse(UserBase):
    """Schema for user response."""

    id: int
    role: RoleType = "OPERATOR"
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AuthMeResponse(BaseModel):
    """Response wrapper for /auth/me."""

    user: UserResponse


class Token(BaseModel):
    """JWT token response - includes 'token' alias and the user for SPA clients."""

    access_token: str
    token: str
    token_type: str = "bearer"
    user: Optional[UserResponse] = None


class TokenData(BaseModel):
    """Data encoded in JWT token."""

    user_id: Optional[int] = None
    email: Optional[str] = None


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr
    password: str


class RoleUpdate(BaseModel):
    role: RoleType
