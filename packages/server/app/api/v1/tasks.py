"""
Task endpoints: CRUD, forwarding between departments, comments.

Statuses: Pending → In Progress → Completed, or Forwarded to another department.
- Tasks created from feedback are routed to a department by keyword match.
- Employees see tasks assigned to them, managers their department, admins all.
"""

from __future__ import annotations

import uuid
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedUser, require_admin, require_manager, require_member
from app.core.database import get_session
from app.services.tasks import (
    create_task,
    delete_task,
    enrich_task,
    ensure_can_view,
    get_task_or_404,
    list_tasks,
    update_task,
)
from feedback_hub_shared.schemas.common import TaskStatus
from feedback_hub_shared.schemas.tasks import TaskCreate, TaskPage, TaskRead, TaskUpdate

router = APIRouter()


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------


@router.get("", response_model=Union[TaskPage, List[TaskRead]])
async def list_tasks_endpoint(
    status: Optional[TaskStatus] = None,
    department_id: Optional[uuid.UUID] = None,
    page: Optional[int] = Query(None, ge=1),
    limit: int = Query(20, ge=1, le=100),
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """List tasks visible to the caller. Pass `page` to get pagination metadata."""
    return await list_tasks(
        session, auth, status=status, department_id=department_id, page=page, limit=limit
    )


@router.post("", response_model=TaskRead, status_code=201)
async def create_task_endpoint(
    task_in: TaskCreate,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    """Create a new task."""
    task = await create_task(session, task_in, auth)
    await session.commit()
    await session.refresh(task)
    return await enrich_task(session, task)


@router.get("/{task_id}", response_model=TaskRead)
async def get_task_endpoint(
    task_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Get a single task with assignees and comments."""
    task = await get_task_or_404(session, task_id)
    await ensure_can_view(session, task, auth)
    return await enrich_task(session, task)


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task_endpoint(
    task_id: uuid.UUID,
    task_in: TaskUpdate,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Update status, priority, description or assignees; add a comment; or forward."""
    task = await get_task_or_404(session, task_id)
    task = await update_task(session, task, task_in, auth)
    await session.commit()
    await session.refresh(task)
    return await enrich_task(session, task)


@router.delete("/{task_id}", status_code=204)
async def delete_task_endpoint(
    task_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    task = await get_task_or_404(session, task_id)
    await delete_task(session, task)
