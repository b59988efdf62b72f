"""
Feedback service layer: submission, visibility, triage and lifecycle.

Handles:
- Direct-to-manager routing for departments with allow_direct_feedback
- Role-scoped listing and anonymous-author masking
- Status changes, forwarding to a manager (creates a task), cancel-forward
- Archive, soft delete / restore / permanent delete, bulk actions
- Feedback chat messages and manager checklists
"""

from __future__ import annotations

import uuid
from typing import Optional, Sequence

import structlog
from fastapi import HTTPException
from sqlalchemy import delete, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import AuthenticatedUser
from app.core.cache import invalidate_dashboard
from app.models.base import utcnow
from app.models.department import Department
from app.models.feedback import ChecklistItem, Feedback, FeedbackMessage
from app.models.notification import Notification
from app.models.task import Task, TaskAssignment, TaskComment
from app.models.update import Update
from app.models.user import User
from app.services import notifications as notify_service
from app.services.settings import get_notification_settings
from feedback_hub_shared.schemas.common import (
    FeedbackStatus,
    FeedbackType,
    NotificationType,
    Role,
    TaskPriority,
    TaskStatus,
)
from feedback_hub_shared.schemas.feedback import (
    FeedbackArchive,
    FeedbackCreate,
    FeedbackForward,
    FeedbackRead,
    FeedbackStatusUpdate,
)

log = structlog.get_logger()

ANONYMOUS_NAME = "Anonymous"
ADMIN_NOTE_PREFIX = "[Admin note]: "


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def get_feedback_or_404(
    session: AsyncSession, feedback_id: uuid.UUID, *, include_deleted: bool = True
) -> Feedback:
    feedback = await session.get(Feedback, feedback_id)
    if not feedback or (not include_deleted and feedback.deleted_at is not None):
        raise HTTPException(status_code=404, detail="Feedback not found")
    return feedback


async def find_department_manager(
    session: AsyncSession, department: Department
) -> Optional[User]:
    """The department's designated manager, else its first MANAGER user."""
    if department.manager_id:
        manager = await session.get(User, department.manager_id)
        if manager:
            return manager
    result = await session.execute(
        select(User)
        .where(User.department_id == department.id, User.role == Role.MANAGER.value)
        .order_by(User.created_at)
        .limit(1)
    )
    return result.scalar_one_or_none()


def can_view(auth: AuthenticatedUser, feedback: Feedback) -> bool:
    return (
        auth.is_admin
        or feedback.user_id == auth.user_id
        or feedback.forwarded_to_id == auth.user_id
        or auth.manages(feedback.department_id)
    )


def ensure_triage_access(auth: AuthenticatedUser, feedback: Feedback) -> None:
    """Admins, or managers acting on feedback of their own department."""
    if auth.is_admin:
        return
    if not auth.manages(feedback.department_id):
        raise HTTPException(
            status_code=403,
            detail="Managers can only manage feedback of their own department",
        )


async def to_read(
    session: AsyncSession, items: Sequence[Feedback], auth: AuthenticatedUser
) -> list[FeedbackRead]:
    """Attach author/department names; hide anonymous authors from non-admins."""
    user_ids = {f.user_id for f in items}
    dept_ids = {f.department_id for f in items}
    names: dict[uuid.UUID, str] = {}
    dept_names: dict[uuid.UUID, str] = {}
    if user_ids:
        result = await session.execute(select(User.id, User.name).where(User.id.in_(user_ids)))
        names = {row[0]: row[1] for row in result.all()}
    if dept_ids:
        result = await session.execute(
            select(Department.id, Department.name).where(Department.id.in_(dept_ids))
        )
        dept_names = {row[0]: row[1] for row in result.all()}

    out = []
    for f in items:
        read = FeedbackRead.model_validate(f)
        read.department_name = dept_names.get(f.department_id)
        if f.is_anonymous and not auth.is_admin:
            read.user_id = None
            read.user_name = ANONYMOUS_NAME
        else:
            read.user_name = names.get(f.user_id)
        out.append(read)
    return out


# ---------------------------------------------------------------------------
# Create / list
# ---------------------------------------------------------------------------


async def create_feedback(
    session: AsyncSession, body: FeedbackCreate, auth: AuthenticatedUser
) -> Feedback:
    department = await session.get(Department, body.department_id)
    if not department:
        raise HTTPException(status_code=404, detail="Department not found")

    manager = None
    if department.allow_direct_feedback:
        manager = await find_department_manager(session, department)

    feedback = Feedback(
        **body.model_dump(),
        user_id=auth.user_id,
        forwarded_to_id=manager.id if manager else None,
        forwarded_at=utcnow() if manager else None,
        status=(FeedbackStatus.REVIEWED if manager else FeedbackStatus.PENDING).value,
    )
    session.add(feedback)
    await session.flush()

    if manager:
        notify_service.notify(
            session,
            manager.id,
            "New feedback for your department",
            f'Feedback "{feedback.title}" was sent directly to you.',
            feedback_id=feedback.id,
            redirect_url=f"/feedback/{feedback.id}",
        )
        prefs = await get_notification_settings(session)
        if prefs.direct_feedback_to_manager:
            await notify_service.notify_admins(
                session,
                "Direct feedback to department",
                f'Feedback "{feedback.title}" was sent directly to {department.name}.',
                feedback_id=feedback.id,
            )

    invalidate_dashboard()
    log.info(
        "feedback.created",
        feedback_id=str(feedback.id),
        department_id=str(department.id),
        direct=manager is not None,
    )
    return feedback


async def list_feedback(
    session: AsyncSession,
    auth: AuthenticatedUser,
    *,
    status: Optional[FeedbackStatus] = None,
    department_id: Optional[uuid.UUID] = None,
    type: Optional[str] = None,
    received: bool = False,
    forwarded_to_me: bool = False,
) -> list[Feedback]:
    stmt = select(Feedback).where(Feedback.deleted_at.is_(None))
    if department_id:
        stmt = stmt.where(Feedback.department_id == department_id)
    if status:
        stmt = stmt.where(Feedback.status == status.value)
    if type:
        stmt = stmt.where(Feedback.type == type)

    if received and auth.is_manager:
        stmt = stmt.where(
            Feedback.forwarded_to_id == auth.user_id,
            Feedback.status != FeedbackStatus.ARCHIVED.value,
        ).limit(100)
    elif forwarded_to_me and auth.is_manager:
        stmt = stmt.where(
            Feedback.forwarded_to_id == auth.user_id,
            Feedback.status != FeedbackStatus.COMPLETED.value,
        )
    elif not auth.is_admin:
        stmt = stmt.where(Feedback.user_id == auth.user_id)

    result = await session.execute(stmt.order_by(Feedback.created_at.desc()))
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Triage
# ---------------------------------------------------------------------------


def _complete(feedback: Feedback, auth: AuthenticatedUser) -> None:
    feedback.completed_by_id = auth.user_id
    feedback.completed_at = utcnow()


async def update_status(
    session: AsyncSession,
    feedback: Feedback,
    body: FeedbackStatusUpdate,
    auth: AuthenticatedUser,
) -> Feedback:
    ensure_triage_access(auth, feedback)
    feedback.status = body.status.value
    if body.admin_notes is not None:
        feedback.admin_notes = body.admin_notes

    if body.status == FeedbackStatus.COMPLETED:
        _complete(feedback, auth)
        response = (body.user_response or "").strip()
        if response:
            feedback.user_response = response
            notify_service.notify(
                session,
                feedback.user_id,
                "Your feedback was completed",
                response,
                type=NotificationType.SUCCESS,
                feedback_id=feedback.id,
            )
        notes = (body.admin_notes or "").strip()
        if notes and feedback.forwarded_to_id:
            session.add(
                FeedbackMessage(
                    feedback_id=feedback.id,
                    sender_id=auth.user_id,
                    content=f"{ADMIN_NOTE_PREFIX}{notes}",
                )
            )
        if auth.is_manager:
            prefs = await get_notification_settings(session)
            if prefs.feedback_completed_by_manager:
                await notify_service.notify_admins(
                    session,
                    "Feedback completed",
                    f'Feedback "{feedback.title}" was completed by manager {auth.user.name}.',
                    feedback_id=feedback.id,
                )

    session.add(feedback)
    invalidate_dashboard()
    log.info(
        "feedback.status_changed",
        feedback_id=str(feedback.id),
        status=feedback.status,
        by=str(auth.user_id),
    )
    return feedback


async def forward_feedback(
    session: AsyncSession,
    feedback: Feedback,
    body: FeedbackForward,
    auth: AuthenticatedUser,
) -> Task:
    """Forward to a manager: creates the follow-up task and assigns it."""
    target = await session.get(User, body.manager_id)
    if not target:
        raise HTTPException(status_code=404, detail="Manager not found")
    if target.role not in (Role.MANAGER.value, Role.ADMIN.value):
        raise HTTPException(status_code=400, detail="Feedback can only be forwarded to a manager")
    if auth.is_manager and (
        target.department_id != auth.department_id
        or feedback.department_id != auth.department_id
    ):
        raise HTTPException(
            status_code=403,
            detail="Managers can only forward feedback within their own department",
        )

    existing = await session.execute(select(Task.id).where(Task.feedback_id == feedback.id))
    if existing.first():
        raise HTTPException(status_code=400, detail="A task already exists for this feedback")

    notes = (body.notes or "").strip()
    description = feedback.content
    if notes:
        description = f"{description}\n\nNotes: {notes}"

    task = Task(
        title=f"Forwarded: {feedback.title}",
        description=description,
        priority=(
            TaskPriority.HIGH if feedback.type == FeedbackType.CRITICAL.value else TaskPriority.MEDIUM
        ).value,
        status=TaskStatus.PENDING.value,
        department_id=target.department_id or feedback.department_id,
        feedback_id=feedback.id,
        created_by_id=auth.user_id,
    )
    session.add(task)
    await session.flush()
    session.add(TaskAssignment(task_id=task.id, user_id=target.id))

    feedback.status = FeedbackStatus.REVIEWED.value
    feedback.forwarded_to_id = target.id
    feedback.forwarded_at = utcnow()
    session.add(feedback)

    if notes:
        session.add(FeedbackMessage(feedback_id=feedback.id, sender_id=auth.user_id, content=notes))

    notify_service.notify(
        session,
        target.id,
        "Feedback forwarded to you",
        f'Feedback "{feedback.title}" was forwarded to you.',
        feedback_id=feedback.id,
        redirect_url=f"/tasks/{task.id}",
    )
    invalidate_dashboard()
    log.info(
        "feedback.forwarded",
        feedback_id=str(feedback.id),
        manager_id=str(target.id),
        task_id=str(task.id),
    )
    return task


async def cancel_forward(
    session: AsyncSession, feedback: Feedback, auth: AuthenticatedUser
) -> Feedback:
    if not feedback.forwarded_to_id:
        raise HTTPException(status_code=400, detail="Feedback has not been forwarded")
    ensure_triage_access(auth, feedback)

    result = await session.execute(select(Task).where(Task.feedback_id == feedback.id))
    task = result.scalar_one_or_none()
    if task:
        if task.status != TaskStatus.PENDING.value:
            raise HTTPException(
                status_code=400,
                detail="Cannot cancel: the task has already been started",
            )
        await _delete_task(session, task.id)

    feedback.forwarded_to_id = None
    feedback.forwarded_at = None
    feedback.status = FeedbackStatus.PENDING.value
    session.add(feedback)
    invalidate_dashboard()
    log.info("feedback.forward_cancelled", feedback_id=str(feedback.id))
    return feedback


def archive(feedback: Feedback, body: FeedbackArchive, auth: AuthenticatedUser) -> Feedback:
    feedback.status = FeedbackStatus.ARCHIVED.value
    if body.admin_notes is not None:
        feedback.admin_notes = body.admin_notes
    if body.user_response is not None:
        feedback.user_response = body.user_response
    _complete(feedback, auth)
    invalidate_dashboard()
    return feedback


# ---------------------------------------------------------------------------
# Deletion
# ---------------------------------------------------------------------------


def soft_delete(feedback: Feedback) -> Feedback:
    if feedback.deleted_at is not None:
        raise HTTPException(status_code=400, detail="Feedback is already deleted")
    feedback.deleted_at = utcnow()
    invalidate_dashboard()
    return feedback


def restore(feedback: Feedback) -> Feedback:
    if feedback.deleted_at is None:
        raise HTTPException(status_code=400, detail="Feedback is not in the trash")
    feedback.deleted_at = None
    invalidate_dashboard()
    return feedback


async def _delete_task(session: AsyncSession, task_id: uuid.UUID) -> None:
    await session.execute(delete(TaskComment).where(TaskComment.task_id == task_id))
    await session.execute(delete(TaskAssignment).where(TaskAssignment.task_id == task_id))
    await session.execute(delete(Task).where(Task.id == task_id))


async def permanent_delete(session: AsyncSession, feedback: Feedback) -> None:
    if feedback.deleted_at is None:
        raise HTTPException(
            status_code=400, detail="Feedback must be in the trash before permanent deletion"
        )
    fid = feedback.id
    await session.execute(delete(Notification).where(Notification.feedback_id == fid))
    await session.execute(delete(FeedbackMessage).where(FeedbackMessage.feedback_id == fid))
    await session.execute(delete(ChecklistItem).where(ChecklistItem.feedback_id == fid))
    task_ids = (await session.execute(select(Task.id).where(Task.feedback_id == fid))).scalars().all()
    for task_id in task_ids:
        await _delete_task(session, task_id)
    await session.execute(update(Update).where(Update.feedback_id == fid).values(feedback_id=None))
    await session.delete(feedback)
    invalidate_dashboard()
    log.info("feedback.permanently_deleted", feedback_id=str(fid))


async def trash_count(session: AsyncSession) -> int:
    result = await session.execute(
        select(func.count()).select_from(Feedback).where(Feedback.deleted_at.is_not(None))
    )
    return result.scalar_one()


# ---------------------------------------------------------------------------
# Bulk actions
# ---------------------------------------------------------------------------


async def load_many(session: AsyncSession, ids: Sequence[uuid.UUID]) -> list[Feedback]:
    if not ids:
        raise HTTPException(status_code=400, detail="No feedback selected")
    result = await session.execute(select(Feedback).where(Feedback.id.in_(ids)))
    return list(result.scalars().all())


async def bulk_archive(session: AsyncSession, ids, auth: AuthenticatedUser) -> int:
    items = [f for f in await load_many(session, ids) if f.deleted_at is None]
    for f in items:
        archive(f, FeedbackArchive(), auth)
        session.add(f)
    return len(items)


async def bulk_delete(session: AsyncSession, ids) -> int:
    items = [f for f in await load_many(session, ids) if f.deleted_at is None]
    for f in items:
        soft_delete(f)
        session.add(f)
    return len(items)


async def bulk_complete(
    session: AsyncSession, ids, auth: AuthenticatedUser, user_response: Optional[str] = None
) -> int:
    items = [f for f in await load_many(session, ids) if f.deleted_at is None]
    for f in items:
        await update_status(
            session,
            f,
            FeedbackStatusUpdate(status=FeedbackStatus.COMPLETED, user_response=user_response),
            auth,
        )
    return len(items)


# ---------------------------------------------------------------------------
# Messages & checklist
# ---------------------------------------------------------------------------


def ensure_chat_access(auth: AuthenticatedUser, feedback: Feedback) -> None:
    if not feedback.forwarded_to_id:
        raise HTTPException(status_code=403, detail="Feedback has not been forwarded")
    if not (auth.is_admin or feedback.forwarded_to_id == auth.user_id):
        raise HTTPException(status_code=403, detail="Forbidden")


def ensure_checklist_access(auth: AuthenticatedUser, feedback: Feedback) -> None:
    if not (auth.is_manager and feedback.forwarded_to_id == auth.user_id):
        raise HTTPException(status_code=403, detail="Forbidden")


async def read_messages(
    session: AsyncSession, feedback: Feedback, auth: AuthenticatedUser
) -> list[FeedbackMessage]:
    """List a feedback's chat, marking other senders' messages as read."""
    result = await session.execute(
        select(FeedbackMessage)
        .where(FeedbackMessage.feedback_id == feedback.id)
        .order_by(FeedbackMessage.created_at)
    )
    messages = list(result.scalars().all())
    now = utcnow()
    for msg in messages:
        if not msg.is_read and msg.sender_id != auth.user_id:
            msg.is_read = True
            msg.read_at = now
            session.add(msg)
    return messages


async def unread_message_count(session: AsyncSession, auth: AuthenticatedUser) -> int:
    stmt = (
        select(func.count())
        .select_from(FeedbackMessage)
        .join(Feedback, Feedback.id == FeedbackMessage.feedback_id)
        .where(
            FeedbackMessage.is_read == False,  # noqa: E712
            FeedbackMessage.sender_id != auth.user_id,
            Feedback.deleted_at.is_(None),
        )
    )
    if not auth.is_admin:
        stmt = stmt.where(Feedback.forwarded_to_id == auth.user_id)
    return (await session.execute(stmt)).scalar_one()


async def add_checklist_item(
    session: AsyncSession, feedback: Feedback, title: str
) -> ChecklistItem:
    result = await session.execute(
        select(func.max(ChecklistItem.order)).where(ChecklistItem.feedback_id == feedback.id)
    )
    last = result.scalar_one_or_none()
    item = ChecklistItem(
        feedback_id=feedback.id,
        title=title,
        order=0 if last is None else last + 1,
    )
    session.add(item)
    return item
