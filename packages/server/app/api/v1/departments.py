"""
Department endpoints: CRUD, member listing and routing keywords.

- Keywords accept a comma separated string or a list
- A department is only deletable once no users, feedback or tasks reference it
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import (
    AuthenticatedUser,
    require_admin,
    require_manager,
    require_member,
)
from app.core.database import get_session
from app.models.department import Department
from app.models.feedback import Feedback
from app.models.task import Task
from app.models.user import User
from feedback_hub_shared.schemas.departments import (
    DepartmentCreate,
    DepartmentRead,
    DepartmentUpdate,
)
from feedback_hub_shared.schemas.users import UserResponse

router = APIRouter()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _get_department_or_404(
    session: AsyncSession, department_id: uuid.UUID
) -> Department:
    department = await session.get(Department, department_id)
    if not department:
        raise HTTPException(status_code=404, detail="Department not found")
    return department


async def _user_counts(
    session: AsyncSession, department_ids: list[uuid.UUID]
) -> dict[uuid.UUID, int]:
    if not department_ids:
        return {}
    result = await session.execute(
        select(User.department_id, func.count().label("cnt"))
        .where(User.department_id.in_(department_ids))
        .group_by(User.department_id)
    )
    return {row.department_id: row.cnt for row in result}


LIST_FIELDS = ("allowed_announcement_departments", "allowed_poll_departments")


def _column_values(data: dict) -> dict:
    """Department id lists are stored as JSON strings."""
    for key in LIST_FIELDS:
        if data.get(key) is not None:
            data[key] = [str(v) for v in data[key]]
    return data


def _to_read(department: Department, user_count: int = 0) -> DepartmentRead:
    read = DepartmentRead.model_validate(department)
    read.user_count = user_count
    return read


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=List[DepartmentRead])
async def list_departments(
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """All departments ordered by name, with member counts."""
    result = await session.execute(select(Department).order_by(Department.name))
    departments = list(result.scalars().all())
    counts = await _user_counts(session, [d.id for d in departments])
    return [_to_read(d, counts.get(d.id, 0)) for d in departments]


@router.post("", response_model=DepartmentRead, status_code=201)
async def create_department(
    body: DepartmentCreate,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    department = Department(**_column_values(body.model_dump()))
    session.add(department)
    await session.commit()
    await session.refresh(department)
    return _to_read(department)


@router.get("/{department_id}", response_model=DepartmentRead)
async def get_department(
    department_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    department = await _get_department_or_404(session, department_id)
    counts = await _user_counts(session, [department.id])
    return _to_read(department, counts.get(department.id, 0))


@router.patch("/{department_id}", response_model=DepartmentRead)
async def update_department(
    department_id: uuid.UUID,
    body: DepartmentUpdate,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    department = await _get_department_or_404(session, department_id)

    update_data = _column_values(body.model_dump(exclude_unset=True))
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")

    for key, value in update_data.items():
        setattr(department, key, value)

    session.add(department)
    await session.commit()
    await session.refresh(department)
    counts = await _user_counts(session, [department.id])
    return _to_read(department, counts.get(department.id, 0))


@router.delete("/{department_id}", status_code=204)
async def delete_department(
    department_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    department = await _get_department_or_404(session, department_id)

    users = (await _user_counts(session, [department.id])).get(department.id, 0)
    if users:
        raise HTTPException(status_code=400, detail=f"Department has {users} users")

    for model, label in ((Feedback, "feedback"), (Task, "tasks")):
        result = await session.execute(
            select(func.count()).select_from(model).where(model.department_id == department.id)
        )
        if result.scalar_one():
            raise HTTPException(status_code=400, detail=f"Department still has {label}")

    await session.delete(department)


@router.get("/{department_id}/users", response_model=List[UserResponse])
async def list_department_users(
    department_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    await _get_department_or_404(session, department_id)
    if not (auth.is_admin or auth.manages(department_id)):
        raise HTTPException(status_code=403, detail="Forbidden")

    result = await session.execute(
        select(User).where(User.department_id == department_id).order_by(User.name)
    )
    return [UserResponse.model_validate(u) for u in result.scalars().all()]
