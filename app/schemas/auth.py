from pydantic import BaseModel, EmailStr, Field, ConfigDict, field_validator
from datetime import datetime
from typing import Optional, Literal

from app.schemas.validators import reject_null


RoleType = Literal["teknisi", "supervisor", "admin"]


class UserBase(BaseModel):
    """Base user schema."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr


class UserCreate(UserBase):
    """Schema for creating a user."""

    password: str = Field(..., min_length=8)
    role: RoleType = "teknisi"
    is_active: bool = True


class UserUpdate(BaseModel):
    """Schema for updating a user (all fields optional)."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8)
    role: Optional[RoleType] = None
    is_active: Optional[bool] = None

    @field_validator("name", "email", "password", "role", "is_active")
    @classmethod
    def required_not_null(cls, value):
        return reject_null(value)


class UserResponse(UserBase):
    """User as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    role: RoleType
    is_active: bool
    created_at: Optional[datetime] = None


class UserSummary(BaseModel):
    """Compact user reference embedded in other resources."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    role: str


class AuthMeResponse(BaseModel):
    """Response wrapper for /auth/me."""

    user: UserResponse


class Token(BaseModel):
    """JWT token response."""

    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class TokenData(BaseModel):
    """Data encoded in JWT token."""

    user_id: Optional[int] = None
    email: Optional[str] = None
    role: Optional[str] = None


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr
    password: str
