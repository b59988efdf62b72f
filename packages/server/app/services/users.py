"""
User management service: business logic for user CRUD and presence.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import AuthenticatedUser, hash_password
from app.models.base import utcnow
from app.models.department import Department
from app.models.user import User
from feedback_hub_shared.schemas.common import Role
from feedback_hub_shared.schemas.users import UserCreateRequest, UserUpdateRequest

log = structlog.get_logger()


async def get_user_or_404(session: AsyncSession, user_id: uuid.UUID) -> User:
    user = await session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


async def find_by_login(
    session: AsyncSession, *, mobile: Optional[str] = None, email: Optional[str] = None
) -> Optional[User]:
    if mobile:
        stmt = select(User).where(User.mobile == mobile)
    else:
        stmt = select(User).where(User.email == email)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def _ensure_unique(
    session: AsyncSession,
    *,
    mobile: Optional[str],
    email: Optional[str],
    exclude_id: Optional[uuid.UUID] = None,
) -> None:
    if mobile:
        existing = await find_by_login(session, mobile=mobile)
        if existing and existing.id != exclude_id:
            raise HTTPException(status_code=409, detail="A user with this mobile number already exists")
    if email:
        existing = await find_by_login(session, email=email)
        if existing and existing.id != exclude_id:
            raise HTTPException(status_code=409, detail="A user with this email already exists")


async def _ensure_department(session: AsyncSession, department_id: Optional[uuid.UUID]) -> None:
    if department_id and not await session.get(Department, department_id):
        raise HTTPException(status_code=404, detail="Department not found")


async def list_users(
    session: AsyncSession,
    auth: AuthenticatedUser,
    *,
    role: Optional[Role] = None,
    department_id: Optional[uuid.UUID] = None,
) -> list[User]:
    stmt = select(User)
    if auth.is_manager:
        stmt = stmt.where(User.department_id == auth.department_id)
    elif department_id:
        stmt = stmt.where(User.department_id == department_id)
    if role:
        stmt = stmt.where(User.role == role.value)
    result = await session.execute(stmt.order_by(User.name))
    return list(result.scalars().all())


async def create_user(session: AsyncSession, req: UserCreateRequest) -> User:
    await _ensure_unique(session, mobile=req.mobile, email=req.email)
    await _ensure_department(session, req.department_id)

    user = User(
        name=req.name,
        mobile=req.mobile,
        email=req.email,
        password_hash=hash_password(req.password),
        role=req.role.value,
        department_id=req.department_id,
    )
    session.add(user)
    await session.flush()
    log.info("user.created", user_id=str(user.id), role=user.role)
    return user


async def update_user(
    session: AsyncSession, user: User, req: UserUpdateRequest
) -> User:
    data = req.model_dump(exclude_unset=True)
    await _ensure_unique(
        session, mobile=data.get("mobile"), email=data.get("email"), exclude_id=user.id
    )
    if "department_id" in data:
        await _ensure_department(session, data["department_id"])

    password = data.pop("password", None)
    if password:
        user.password_hash = hash_password(password)
    if data.get("role") is not None:
        data["role"] = data["role"].value

    for key, value in data.items():
        setattr(user, key, value)

    session.add(user)
    await session.flush()
    log.info("user.updated", user_id=str(user.id), fields=sorted(data))
    return user


async def deactivate_user(
    session: AsyncSession, user: User, auth: AuthenticatedUser
) -> None:
    """Users are deactivated rather than removed; their feedback keeps its author."""
    if user.id == auth.user_id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    user.is_active = False
    session.add(user)
    await session.flush()
    log.info("user.deactivated", user_id=str(user.id))


def touch(user: User) -> None:
    user.last_seen_at = utcnow()
