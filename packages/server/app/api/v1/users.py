"""
User Management API endpoints.

GET    /api/v1/users                List users (admin: all, manager: own department)
POST   /api/v1/users                Create a user (admin)
POST   /api/v1/users/heartbeat      Update the caller's last_seen_at
GET    /api/v1/users/{userId}       Get a user
PATCH  /api/v1/users/{userId}       Update a user (admin)
DELETE /api/v1/users/{userId}       Deactivate a user (admin)
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import (
    AuthenticatedUser,
    require_admin,
    require_manager,
    require_member,
)
from app.core.database import get_session
from app.services import users as user_service
from feedback_hub_shared.schemas.common import Role
from feedback_hub_shared.schemas.users import (
    UserCreateRequest,
    UserListResponse,
    UserResponse,
    UserUpdateRequest,
)

router = APIRouter()


@router.get("", response_model=UserListResponse)
async def list_users(
    role: Optional[Role] = None,
    department_id: Optional[uuid.UUID] = None,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    """List users. Managers only see their own department."""
    users = await user_service.list_users(session, auth, role=role, department_id=department_id)
    return UserListResponse(data=[UserResponse.model_validate(u) for u in users])


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    body: UserCreateRequest,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    user = await user_service.create_user(session, body)
    await session.commit()
    await session.refresh(user)
    return user


@router.post("/heartbeat")
async def heartbeat(
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    user_service.touch(auth.user)
    session.add(auth.user)
    return {"last_seen_at": auth.user.last_seen_at}


@router.get("/{userId}", response_model=UserResponse)
async def get_user(
    userId: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    user = await user_service.get_user_or_404(session, userId)
    if not (auth.is_admin or user.id == auth.user_id or auth.manages(user.department_id)):
        raise HTTPException(status_code=403, detail="Forbidden")
    return user


@router.patch("/{userId}", response_model=UserResponse)
async def update_user(
    userId: uuid.UUID,
    body: UserUpdateRequest,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    user = await user_service.get_user_or_404(session, userId)
    user = await user_service.update_user(session, user, body)
    await session.commit()
    await session.refresh(user)
    return user


@router.delete("/{userId}", status_code=204)
async def delete_user(
    userId: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Deactivate a user (admin only). Their sessions stop working immediately."""
    user = await user_service.get_user_or_404(session, userId)
    await user_service.deactivate_user(session, user, auth)
