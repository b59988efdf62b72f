"""
Feedback endpoints: submission, triage, trash, bulk actions, chat and checklists.

Lifecycle: PENDING → REVIEWED (forwarded) → COMPLETED | ARCHIVED | DEFERRED
- Direct feedback departments forward new submissions to their manager
- Forwarding creates exactly one follow-up task per feedback
- Deletion is soft (trash) until an admin deletes permanently
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import (
    AuthenticatedUser,
    require_admin,
    require_manager,
    require_member,
)
from app.core.database import get_session
from app.models.feedback import ChecklistItem, Feedback, FeedbackMessage
from app.services import feedback as feedback_service
from app.services.keywords import extract_keywords
from app.services.tasks import enrich_task
from feedback_hub_shared.schemas.common import BulkIds, CountResponse, FeedbackStatus
from feedback_hub_shared.schemas.feedback import (
    BulkComplete,
    ChecklistItemCreate,
    ChecklistItemRead,
    ChecklistItemUpdate,
    FeedbackArchive,
    FeedbackCreate,
    FeedbackForward,
    FeedbackRead,
    FeedbackStatusUpdate,
    MessageCreate,
    MessageRead,
)
from feedback_hub_shared.schemas.tasks import TaskRead

router = APIRouter()


async def _read_one(
    session: AsyncSession, feedback: Feedback, auth: AuthenticatedUser
) -> FeedbackRead:
    await session.refresh(feedback)
    return (await feedback_service.to_read(session, [feedback], auth))[0]


# ---------------------------------------------------------------------------
# Submission & listing
# ---------------------------------------------------------------------------


@router.post("", response_model=FeedbackRead, status_code=201)
async def create_feedback(
    body: FeedbackCreate,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    feedback = await feedback_service.create_feedback(session, body, auth)
    await session.commit()
    return await _read_one(session, feedback, auth)


@router.get("", response_model=List[FeedbackRead])
async def list_feedback(
    status: Optional[FeedbackStatus] = None,
    department_id: Optional[uuid.UUID] = None,
    type: Optional[str] = None,
    received: bool = False,
    forwarded_to_me: bool = False,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """List feedback visible to the caller. Soft-deleted items are never included."""
    items = await feedback_service.list_feedback(
        session,
        auth,
        status=status,
        department_id=department_id,
        type=type,
        received=received,
        forwarded_to_me=forwarded_to_me,
    )
    return await feedback_service.to_read(session, items, auth)


# ---------------------------------------------------------------------------
# Trash & bulk actions
# ---------------------------------------------------------------------------


@router.get("/trash", response_model=List[FeedbackRead])
async def list_trash(
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    result = await session.execute(
        select(Feedback)
        .where(Feedback.deleted_at.is_not(None))
        .order_by(Feedback.deleted_at.desc())
    )
    return await feedback_service.to_read(session, list(result.scalars().all()), auth)


@router.get("/trash/count", response_model=CountResponse)
async def trash_count(
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    return CountResponse(count=await feedback_service.trash_count(session))


@router.post("/bulk-archive", response_model=CountResponse)
async def bulk_archive(
    body: BulkIds,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    count = await feedback_service.bulk_archive(session, body.ids, auth)
    return CountResponse(count=count, message=f"{count} feedback archived")


@router.post("/bulk-delete", response_model=CountResponse)
async def bulk_delete(
    body: BulkIds,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    count = await feedback_service.bulk_delete(session, body.ids)
    return CountResponse(count=count, message=f"{count} feedback moved to trash")


@router.post("/bulk-complete", response_model=CountResponse)
async def bulk_complete(
    body: BulkComplete,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    count = await feedback_service.bulk_complete(session, body.ids, auth, body.user_response)
    return CountResponse(count=count, message=f"{count} feedback completed")


@router.get("/messages/unread-count", response_model=CountResponse)
async def unread_message_count(
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    return CountResponse(count=await feedback_service.unread_message_count(session, auth))


# ---------------------------------------------------------------------------
# Checklist items (by item id)
# ---------------------------------------------------------------------------


async def _get_checklist_item(
    session: AsyncSession, item_id: uuid.UUID, auth: AuthenticatedUser
) -> ChecklistItem:
    item = await session.get(ChecklistItem, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Checklist item not found")
    feedback = await feedback_service.get_feedback_or_404(session, item.feedback_id)
    feedback_service.ensure_checklist_access(auth, feedback)
    return item


@router.patch("/checklist/{item_id}", response_model=ChecklistItemRead)
async def update_checklist_item(
    item_id: uuid.UUID,
    body: ChecklistItemUpdate,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    item = await _get_checklist_item(session, item_id, auth)
    for key, value in body.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(item, key, value)
    session.add(item)
    await session.commit()
    await session.refresh(item)
    return item


@router.delete("/checklist/{item_id}", status_code=204)
async def delete_checklist_item(
    item_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    item = await _get_checklist_item(session, item_id, auth)
    await session.delete(item)


# ---------------------------------------------------------------------------
# Single feedback
# ---------------------------------------------------------------------------


@router.get("/{feedback_id}", response_model=FeedbackRead)
async def get_feedback(
    feedback_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    feedback = await feedback_service.get_feedback_or_404(session, feedback_id)
    if not feedback_service.can_view(auth, feedback):
        raise HTTPException(status_code=403, detail="Forbidden")
    return (await feedback_service.to_read(session, [feedback], auth))[0]


@router.patch("/{feedback_id}/status", response_model=FeedbackRead)
async def update_status(
    feedback_id: uuid.UUID,
    body: FeedbackStatusUpdate,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    feedback = await feedback_service.get_feedback_or_404(session, feedback_id, include_deleted=False)
    await feedback_service.update_status(session, feedback, body, auth)
    await session.commit()
    return await _read_one(session, feedback, auth)


@router.post("/{feedback_id}/forward", response_model=TaskRead, status_code=201)
async def forward_feedback(
    feedback_id: uuid.UUID,
    body: FeedbackForward,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    """Forward feedback to a manager. Creates and assigns the follow-up task."""
    feedback = await feedback_service.get_feedback_or_404(session, feedback_id, include_deleted=False)
    task = await feedback_service.forward_feedback(session, feedback, body, auth)
    await session.commit()
    await session.refresh(task)
    return await enrich_task(session, task)


@router.post("/{feedback_id}/cancel-forward", response_model=FeedbackRead)
async def cancel_forward(
    feedback_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    feedback = await feedback_service.get_feedback_or_404(session, feedback_id, include_deleted=False)
    await feedback_service.cancel_forward(session, feedback, auth)
    await session.commit()
    return await _read_one(session, feedback, auth)


@router.post("/{feedback_id}/archive", response_model=FeedbackRead)
async def archive_feedback(
    feedback_id: uuid.UUID,
    body: FeedbackArchive,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    feedback = await feedback_service.get_feedback_or_404(session, feedback_id, include_deleted=False)
    feedback_service.ensure_triage_access(auth, feedback)
    feedback_service.archive(feedback, body, auth)
    session.add(feedback)
    await session.commit()
    return await _read_one(session, feedback, auth)


@router.delete("/{feedback_id}", response_model=FeedbackRead)
async def delete_feedback(
    feedback_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Move feedback to the trash (owner or admin)."""
    feedback = await feedback_service.get_feedback_or_404(session, feedback_id)
    if not (auth.is_admin or feedback.user_id == auth.user_id):
        raise HTTPException(status_code=403, detail="Forbidden")
    feedback_service.soft_delete(feedback)
    session.add(feedback)
    await session.commit()
    return await _read_one(session, feedback, auth)


@router.post("/{feedback_id}/restore", response_model=FeedbackRead)
async def restore_feedback(
    feedback_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    feedback = await feedback_service.get_feedback_or_404(session, feedback_id)
    feedback_service.restore(feedback)
    session.add(feedback)
    await session.commit()
    return await _read_one(session, feedback, auth)


@router.delete("/{feedback_id}/permanent", status_code=204)
async def permanently_delete_feedback(
    feedback_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    feedback = await feedback_service.get_feedback_or_404(session, feedback_id)
    await feedback_service.permanent_delete(session, feedback)


@router.post("/{feedback_id}/extract-keywords", response_model=FeedbackRead)
async def extract_feedback_keywords(
    feedback_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    feedback = await feedback_service.get_feedback_or_404(session, feedback_id, include_deleted=False)
    feedback.keywords = extract_keywords(f"{feedback.title} {feedback.content}")
    session.add(feedback)
    await session.commit()
    return await _read_one(session, feedback, auth)


# ---------------------------------------------------------------------------
# Chat messages
# ---------------------------------------------------------------------------


@router.get("/{feedback_id}/messages", response_model=List[MessageRead])
async def list_messages(
    feedback_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    feedback = await feedback_service.get_feedback_or_404(session, feedback_id)
    feedback_service.ensure_chat_access(auth, feedback)
    messages = await feedback_service.read_messages(session, feedback, auth)
    return [MessageRead.model_validate(m) for m in messages]


@router.post("/{feedback_id}/messages", response_model=MessageRead, status_code=201)
async def send_message(
    feedback_id: uuid.UUID,
    body: MessageCreate,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    feedback = await feedback_service.get_feedback_or_404(session, feedback_id)
    feedback_service.ensure_chat_access(auth, feedback)
    message = FeedbackMessage(feedback_id=feedback.id, sender_id=auth.user_id, content=body.content)
    session.add(message)
    await session.commit()
    await session.refresh(message)
    return message


# ---------------------------------------------------------------------------
# Checklist (by feedback)
# ---------------------------------------------------------------------------


@router.get("/{feedback_id}/checklist", response_model=List[ChecklistItemRead])
async def list_checklist(
    feedback_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    feedback = await feedback_service.get_feedback_or_404(session, feedback_id)
    feedback_service.ensure_checklist_access(auth, feedback)
    result = await session.execute(
        select(ChecklistItem)
        .where(ChecklistItem.feedback_id == feedback.id)
        .order_by(ChecklistItem.order)
    )
    return list(result.scalars().all())


@router.post("/{feedback_id}/checklist", response_model=ChecklistItemRead, status_code=201)
async def add_checklist_item(
    feedback_id: uuid.UUID,
    body: ChecklistItemCreate,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    feedback = await feedback_service.get_feedback_or_404(session, feedback_id)
    feedback_service.ensure_checklist_access(auth, feedback)
    item = await feedback_service.add_checklist_item(session, feedback, body.title)
    await session.commit()
    await session.refresh(item)
    return item
