"""
Dashboard widgets.

Every widget is cached in ``dashboard_cache`` and falls back to empty data
when its tables are missing.
"""

from __future__ import annotations

from collections import Counter
from datetime import timedelta
from typing import Any, Awaitable, Callable

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import AuthenticatedUser, require_admin, require_member
from app.core.cache import dashboard_cache
from app.core.database import MISSING_SCHEMA_ERRORS, get_session
from app.models.base import utcnow
from app.models.feedback import Feedback
from app.models.task import Task, TaskAssignment
from app.models.user import User
from feedback_hub_shared.schemas.common import FeedbackStatus, Role, TaskStatus

log = structlog.get_logger()
router = APIRouter()

ACTIVE_WINDOW = timedelta(minutes=15)
RECENT_LIMIT = 10
TOP_PERFORMERS = 5


async def _cached(
    session: AsyncSession, key: str, loader: Callable[[], Awaitable[Any]], empty: Any
) -> Any:
    cached = dashboard_cache.get(key)
    if cached is not None:
        return cached
    try:
        data = await loader()
    except MISSING_SCHEMA_ERRORS as exc:
        await session.rollback()
        log.warning("dashboard.schema_missing", widget=key, error=str(exc))
        return empty
    dashboard_cache.set(key, data)
    return data


def _scope_key(auth: AuthenticatedUser) -> str:
    return "all" if auth.is_admin else str(auth.department_id)


# ---------------------------------------------------------------------------
# Widgets
# ---------------------------------------------------------------------------


@router.get("/usage-stats")
async def usage_stats(
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    async def load():
        rows = (
            await session.execute(
                select(User.role, func.count())
                .where(User.is_active == True)  # noqa: E712
                .group_by(User.role)
            )
        ).all()
        by_role = {role.value: 0 for role in Role}
        by_role.update(dict(rows))
        active = (
            await session.execute(
                select(func.count())
                .select_from(User)
                .where(User.is_active == True, User.last_seen_at >= utcnow() - ACTIVE_WINDOW)  # noqa: E712
            )
        ).scalar_one()
        return {"total_users": sum(by_role.values()), "active_users": active, "by_role": by_role}

    empty = {"total_users": 0, "active_users": 0, "by_role": {}}
    return await _cached(session, "dashboard:usage-stats", load, empty)


@router.get("/recent-activity")
async def recent_activity(
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Latest feedback and tasks in the caller's scope."""

    async def load():
        fb_stmt = select(Feedback).where(Feedback.deleted_at.is_(None))
        task_stmt = select(Task)
        if auth.is_employee:
            fb_stmt = fb_stmt.where(Feedback.user_id == auth.user_id)
            task_stmt = task_stmt.join(TaskAssignment, TaskAssignment.task_id == Task.id).where(
                TaskAssignment.user_id == auth.user_id
            )
        elif not auth.is_admin:
            fb_stmt = fb_stmt.where(Feedback.department_id == auth.department_id)
            task_stmt = task_stmt.where(Task.department_id == auth.department_id)

        feedbacks = (
            await session.execute(fb_stmt.order_by(Feedback.created_at.desc()).limit(RECENT_LIMIT))
        ).scalars().all()
        tasks = (
            await session.execute(task_stmt.order_by(Task.created_at.desc()).limit(RECENT_LIMIT))
        ).scalars().all()
        return {
            "feedback": [
                {
                    "id": str(f.id),
                    "title": f.title,
                    "type": f.type,
                    "status": f.status,
                    "department_id": str(f.department_id),
                    "created_at": f.created_at.isoformat(),
                }
                for f in feedbacks
            ],
            "tasks": [
                {
                    "id": str(t.id),
                    "title": t.title,
                    "status": t.status,
                    "priority": t.priority,
                    "created_at": t.created_at.isoformat(),
                }
                for t in tasks
            ],
        }

    key = f"dashboard:recent-activity:{auth.user_id if auth.is_employee else _scope_key(auth)}"
    return await _cached(session, key, load, {"feedback": [], "tasks": []})


@router.get("/top-performers")
async def top_performers(
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Managers ranked by the feedback they completed."""

    async def load():
        completed = func.count(Feedback.id)
        rows = (
            await session.execute(
                select(User.id, User.name, User.department_id, completed)
                .join(Feedback, Feedback.completed_by_id == User.id)
                .where(
                    User.role == Role.MANAGER.value,
                    Feedback.status == FeedbackStatus.COMPLETED.value,
                    Feedback.deleted_at.is_(None),
                )
                .group_by(User.id, User.name, User.department_id)
                .order_by(completed.desc())
                .limit(TOP_PERFORMERS)
            )
        ).all()
        return [
            {
                "user_id": str(user_id),
                "name": name,
                "department_id": str(dept_id) if dept_id else None,
                "completed": count,
            }
            for user_id, name, dept_id, count in rows
        ]

    return await _cached(session, "dashboard:top-performers", load, [])


@router.get("/upcoming-tasks")
async def upcoming_tasks(
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    async def load():
        tasks = (
            await session.execute(
                select(Task)
                .join(TaskAssignment, TaskAssignment.task_id == Task.id)
                .where(
                    TaskAssignment.user_id == auth.user_id,
                    Task.status.in_([TaskStatus.PENDING.value, TaskStatus.IN_PROGRESS.value]),
                )
                .order_by(Task.created_at)
                .limit(RECENT_LIMIT)
            )
        ).scalars().all()
        return [
            {
                "id": str(t.id),
                "title": t.title,
                "status": t.status,
                "priority": t.priority,
                "created_at": t.created_at.isoformat(),
            }
            for t in tasks
        ]

    return await _cached(session, f"dashboard:upcoming-tasks:{auth.user_id}", load, [])


@router.get("/activity-timeline")
async def activity_timeline(
    days: int = Query(7, ge=1, le=90),
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Per-day counts of new and completed feedback."""

    async def load():
        start = utcnow().date() - timedelta(days=days - 1)
        conditions = [Feedback.deleted_at.is_(None)]
        if not auth.is_admin:
            conditions.append(Feedback.department_id == auth.department_id)

        created = (
            await session.execute(select(Feedback.created_at).where(*conditions))
        ).scalars().all()
        completed = (
            await session.execute(
                select(Feedback.completed_at).where(*conditions, Feedback.completed_at.is_not(None))
            )
        ).scalars().all()
        created_per_day = Counter(ts.date() for ts in created if ts.date() >= start)
        completed_per_day = Counter(ts.date() for ts in completed if ts.date() >= start)

        return [
            {
                "date": day.isoformat(),
                "feedback": created_per_day.get(day, 0),
                "completed": completed_per_day.get(day, 0),
            }
            for day in (start + timedelta(days=i) for i in range(days))
        ]

    key = f"dashboard:activity-timeline:{_scope_key(auth)}:{days}"
    return await _cached(session, key, load, [])
