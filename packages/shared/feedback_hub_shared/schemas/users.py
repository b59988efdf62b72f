"""User management schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from .common import Role


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class LoginRequest(BaseModel):
    """Login with either mobile number or email plus password."""
    mobile: Optional[str] = None
    email: Optional[EmailStr] = None
    password: str = Field(min_length=1)

    @model_validator(mode="after")
    def _require_identifier(self) -> "LoginRequest":
        if not self.mobile and not self.email:
            raise ValueError("Mobile or email is required")
        return self


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=8)


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class UserCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    mobile: str = Field(min_length=5, max_length=20)
    email: Optional[EmailStr] = None
    password: str = Field(min_length=8)
    role: Role = Role.EMPLOYEE
    department_id: Optional[uuid.UUID] = None


class UserUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    mobile: Optional[str] = Field(default=None, min_length=5, max_length=20)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=8)
    role: Optional[Role] = None
    department_id: Optional[uuid.UUID] = None
    is_active: Optional[bool] = None
    avatar_url: Optional[str] = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    mobile: str
    email: Optional[str] = None
    role: Role
    department_id: Optional[uuid.UUID] = None
    is_active: bool = True
    avatar_url: Optional[str] = None
    last_seen_at: Optional[datetime] = None
    created_at: datetime


class UserListResponse(BaseModel):
    data: List[UserResponse]


class LoginResponse(BaseModel):
    user: UserResponse
    access_token: str
    message: str
