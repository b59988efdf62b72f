"""
Notification helpers used by feedback, task, poll and announcement flows.

Notifications are added to the caller's session; the caller commits.
"""

from __future__ import annotations

import uuid
from typing import Iterable, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.notification import Notification
from app.models.user import User
from feedback_hub_shared.schemas.common import NotificationType, Role

log = structlog.get_logger()


def notify(
    session: AsyncSession,
    user_id: uuid.UUID,
    title: str,
    content: str,
    *,
    type: NotificationType = NotificationType.INFO,
    feedback_id: Optional[uuid.UUID] = None,
    redirect_url: Optional[str] = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        title=title,
        content=content,
        type=type.value,
        feedback_id=feedback_id,
        redirect_url=redirect_url,
    )
    session.add(notification)
    return notification


def notify_many(
    session: AsyncSession,
    user_ids: Iterable[uuid.UUID],
    title: str,
    content: str,
    **kwargs,
) -> int:
    count = 0
    for user_id in dict.fromkeys(user_ids):
        notify(session, user_id, title, content, **kwargs)
        count += 1
    return count


async def admin_ids(session: AsyncSession) -> list[uuid.UUID]:
    result = await session.execute(
        select(User.id).where(User.role == Role.ADMIN.value, User.is_active == True)  # noqa: E712
    )
    return [row[0] for row in result.all()]


async def audience_ids(
    session: AsyncSession,
    department_id: Optional[uuid.UUID],
    *,
    exclude: Optional[uuid.UUID] = None,
) -> list[uuid.UUID]:
    """Active users of a department, or everyone when department_id is None."""
    stmt = select(User.id).where(User.is_active == True)  # noqa: E712
    if department_id is not None:
        stmt = stmt.where(User.department_id == department_id)
    if exclude is not None:
        stmt = stmt.where(User.id != exclude)
    result = await session.execute(stmt)
    return [row[0] for row in result.all()]


async def notify_admins(
    session: AsyncSession, title: str, content: str, **kwargs
) -> int:
    count = notify_many(session, await admin_ids(session), title, content, **kwargs)
    log.info("notifications.admins_notified", title=title, count=count)
    return count
