"""
Task service layer: business logic for tasks, assignees and comments.

Handles:
- Task creation with keyword-based department routing for feedback tasks
- Role-scoped visibility (assignee / department manager / admin)
- Updates: status, forwarding to another department, comments, assignees
- Enrichment of task data for API responses
"""

from __future__ import annotations

import uuid
from typing import Optional, Sequence

import structlog
from fastapi import HTTPException
from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import AuthenticatedUser
from app.core.cache import invalidate_dashboard
from app.models.base import utcnow
from app.models.department import Department
from app.models.feedback import Feedback
from app.models.task import Task, TaskAssignment, TaskComment
from app.services import notifications as notify_service
from app.services.keywords import extract_keywords, route_department
from feedback_hub_shared.schemas.common import FeedbackStatus, Pagination, TaskStatus
from feedback_hub_shared.schemas.tasks import (
    TaskCommentRead,
    TaskCreate,
    TaskPage,
    TaskRead,
    TaskUpdate,
)

log = structlog.get_logger()

FORWARD_COMMENT_PREFIX = "Forwarded: "


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def get_task_or_404(session: AsyncSession, task_id: uuid.UUID) -> Task:
    task = await session.get(Task, task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


async def _get_assignee_ids(session: AsyncSession, task_id: uuid.UUID) -> list[uuid.UUID]:
    result = await session.execute(
        select(TaskAssignment.user_id).where(TaskAssignment.task_id == task_id)
    )
    return [row[0] for row in result.all()]


async def _get_comments(session: AsyncSession, task_id: uuid.UUID) -> list[TaskCommentRead]:
    result = await session.execute(
        select(TaskComment)
        .where(TaskComment.task_id == task_id)
        .order_by(TaskComment.created_at.desc())
    )
    return [
        TaskCommentRead(id=c.id, user_id=c.user_id, content=c.content, created_at=c.created_at)
        for c in result.scalars().all()
    ]


async def enrich_task(session: AsyncSession, task: Task) -> TaskRead:
    """Convert a Task ORM object to a TaskRead with assignees and comments."""
    return TaskRead(
        id=task.id,
        title=task.title,
        description=task.description,
        status=task.status,
        priority=task.priority,
        department_id=task.department_id,
        feedback_id=task.feedback_id,
        created_by_id=task.created_by_id,
        assignee_ids=await _get_assignee_ids(session, task.id),
        comments=await _get_comments(session, task.id),
        completed_at=task.completed_at,
        created_at=task.created_at,
        updated_at=task.updated_at,
    )


async def enrich_tasks(session: AsyncSession, tasks: Sequence[Task]) -> list[TaskRead]:
    return [await enrich_task(session, t) for t in tasks]


async def ensure_can_view(
    session: AsyncSession, task: Task, auth: AuthenticatedUser
) -> None:
    if auth.is_admin:
        return
    if auth.is_manager:
        if task.department_id != auth.department_id:
            raise HTTPException(status_code=403, detail="Forbidden")
        return
    if auth.user_id not in await _get_assignee_ids(session, task.id):
        raise HTTPException(status_code=403, detail="Forbidden")


async def _set_assignees(
    session: AsyncSession, task_id: uuid.UUID, user_ids: Sequence[uuid.UUID]
) -> None:
    await session.execute(delete(TaskAssignment).where(TaskAssignment.task_id == task_id))
    for uid in dict.fromkeys(user_ids):
        session.add(TaskAssignment(task_id=task_id, user_id=uid))


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------


async def resolve_department(
    session: AsyncSession, task_in: TaskCreate
) -> Optional[uuid.UUID]:
    """Department for a new task.

    Feedback tasks are routed by matching the task's keywords against the
    department keyword lists, falling back to the feedback's department.
    """
    if not task_in.feedback_id:
        return task_in.department_id

    feedback = await session.get(Feedback, task_in.feedback_id)
    if not feedback:
        raise HTTPException(status_code=404, detail="Feedback not found")

    keywords = extract_keywords(f"{task_in.title} {task_in.description or ''}")
    departments = (await session.execute(select(Department).order_by(Department.name))).scalars().all()
    routed = route_department(keywords, departments)
    if routed:
        log.info("tasks.routed", feedback_id=str(feedback.id), department_id=str(routed.id))
        return routed.id
    return feedback.department_id or task_in.department_id


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


async def create_task(
    session: AsyncSession,
    task_in: TaskCreate,
    auth: AuthenticatedUser,
) -> Task:
    department_id = await resolve_department(session, task_in)

    task = Task(
        title=task_in.title,
        description=task_in.description,
        priority=task_in.priority.value,
        status=TaskStatus.PENDING.value,
        department_id=department_id,
        feedback_id=task_in.feedback_id,
        created_by_id=auth.user_id,
    )
    session.add(task)
    await session.flush()

    await _set_assignees(session, task.id, task_in.assignee_ids)

    if task_in.feedback_id:
        feedback = await session.get(Feedback, task_in.feedback_id)
        feedback.status = FeedbackStatus.REVIEWED.value
        session.add(feedback)

    notify_service.notify_many(
        session,
        task_in.assignee_ids,
        "New task assigned",
        f'You were assigned the task "{task.title}".',
        redirect_url=f"/tasks/{task.id}",
    )

    await session.flush()
    invalidate_dashboard()
    log.info("tasks.created", task_id=str(task.id), department_id=str(department_id))
    return task


async def list_tasks(
    session: AsyncSession,
    auth: AuthenticatedUser,
    *,
    status: Optional[TaskStatus] = None,
    department_id: Optional[uuid.UUID] = None,
    page: Optional[int] = None,
    limit: int = 20,
) -> list[TaskRead] | TaskPage:
    stmt = select(Task)
    if auth.is_employee:
        stmt = stmt.join(TaskAssignment, TaskAssignment.task_id == Task.id).where(
            TaskAssignment.user_id == auth.user_id
        )
    elif auth.is_manager:
        stmt = stmt.where(Task.department_id == auth.department_id)
    elif department_id:
        stmt = stmt.where(Task.department_id == department_id)

    if status:
        stmt = stmt.where(Task.status == status.value)

    stmt = stmt.order_by(Task.created_at.desc())

    if page is None:
        result = await session.execute(stmt)
        return await enrich_tasks(session, list(result.scalars().all()))

    total = (
        await session.execute(select(func.count()).select_from(stmt.order_by(None).subquery()))
    ).scalar_one()
    result = await session.execute(stmt.offset((page - 1) * limit).limit(limit))
    tasks = await enrich_tasks(session, list(result.scalars().all()))
    return TaskPage(
        tasks=tasks,
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=(total + limit - 1) // limit,
        ),
    )


async def update_task(
    session: AsyncSession,
    task: Task,
    task_in: TaskUpdate,
    auth: AuthenticatedUser,
) -> Task:
    is_assigned = auth.user_id in await _get_assignee_ids(session, task.id)
    can_manage = auth.is_admin or auth.manages(task.department_id)
    if not (is_assigned or can_manage):
        raise HTTPException(status_code=403, detail="Forbidden")

    data = task_in.model_dump(exclude_unset=True)
    comment = (data.pop("comment", None) or "").strip()

    forward_to = data.pop("forward_to_department_id", None)
    if forward_to:
        if not can_manage:
            raise HTTPException(status_code=403, detail="Only managers can forward tasks")
        if not await session.get(Department, forward_to):
            raise HTTPException(status_code=404, detail="Department not found")
        task.department_id = forward_to
        task.status = TaskStatus.FORWARDED.value
        session.add(task)
        if comment:
            session.add(
                TaskComment(task_id=task.id, user_id=auth.user_id, content=f"{FORWARD_COMMENT_PREFIX}{comment}")
            )
        invalidate_dashboard()
        log.info("tasks.forwarded", task_id=str(task.id), department_id=str(forward_to))
        return task

    if "assignee_ids" in data:
        assignee_ids = data.pop("assignee_ids") or []
        await _set_assignees(session, task.id, assignee_ids)

    status = data.pop("status", None)
    if status is not None:
        task.status = status.value
        if status == TaskStatus.COMPLETED:
            task.completed_at = utcnow()

    if data.get("priority") is not None:
        task.priority = data.pop("priority").value
    if data.get("description") is not None:
        task.description = data["description"]

    if comment:
        session.add(TaskComment(task_id=task.id, user_id=auth.user_id, content=comment))

    session.add(task)
    await session.flush()
    invalidate_dashboard()
    return task


async def delete_task(session: AsyncSession, task: Task) -> None:
    await session.execute(delete(TaskComment).where(TaskComment.task_id == task.id))
    await session.execute(delete(TaskAssignment).where(TaskAssignment.task_id == task.id))
    await session.delete(task)
    invalidate_dashboard()
    log.info("tasks.deleted", task_id=str(task.id))
