"""
Poll service layer: creation rules, voting and result aggregation.

Handles:
- Department permissions for managers (can_create_poll / allowed_poll_departments)
- Per-type vote validation (choice / rating / text)
- Results: participation stats, option counts, rating distribution, voters
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from typing import Optional, Sequence

import structlog
from fastapi import HTTPException
from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import AuthenticatedUser
from app.models.base import utcnow
from app.models.department import Department
from app.models.poll import Poll, PollOption, PollResponse
from app.models.user import User
from app.services import notifications as notify_service
from feedback_hub_shared.schemas.common import PollShowResults, PollType, PollVisibility, Role
from feedback_hub_shared.schemas.polls import PollCreate, PollOptionRead, PollRead, VoteRequest

log = structlog.get_logger()

CHOICE_TYPES = (PollType.SINGLE_CHOICE.value, PollType.MULTIPLE_CHOICE.value)
DEFAULT_MIN_RATING = 1
DEFAULT_MAX_RATING = 5


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def get_poll_or_404(session: AsyncSession, poll_id: uuid.UUID) -> Poll:
    poll = await session.get(Poll, poll_id)
    if not poll:
        raise HTTPException(status_code=404, detail="Poll not found")
    return poll


async def get_options(session: AsyncSession, poll_id: uuid.UUID) -> list[PollOption]:
    result = await session.execute(
        select(PollOption).where(PollOption.poll_id == poll_id).order_by(PollOption.order)
    )
    return list(result.scalars().all())


async def _has_voted(session: AsyncSession, poll_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    result = await session.execute(
        select(PollResponse.id)
        .where(PollResponse.poll_id == poll_id, PollResponse.user_id == user_id)
        .limit(1)
    )
    return result.first() is not None


async def enrich_poll(session: AsyncSession, poll: Poll, auth: AuthenticatedUser) -> PollRead:
    options = await get_options(session, poll.id)
    count = await session.execute(
        select(func.count(func.distinct(PollResponse.user_id))).where(PollResponse.poll_id == poll.id)
    )
    return PollRead(
        **poll.model_dump(exclude={"updated_at"}),
        options=[PollOptionRead(id=o.id, text=o.text, order=o.order) for o in options],
        has_voted=await _has_voted(session, poll.id, auth.user_id),
        response_count=count.scalar_one(),
    )


def ensure_owner(poll: Poll, auth: AuthenticatedUser) -> None:
    if not (auth.is_admin or poll.created_by_id == auth.user_id):
        raise HTTPException(status_code=403, detail="Only the creator or an admin can change this poll")


async def ensure_can_target(
    session: AsyncSession, auth: AuthenticatedUser, department_id: Optional[uuid.UUID]
) -> None:
    """Managers need a poll-enabled department and an allowed target department."""
    if auth.is_admin:
        return
    own = await session.get(Department, auth.department_id) if auth.department_id else None
    if not own or not own.can_create_poll:
        raise HTTPException(status_code=403, detail="Your department is not allowed to create polls")
    if department_id is None:
        raise HTTPException(status_code=400, detail="A target department is required")
    allowed = {str(d) for d in own.allowed_poll_departments or []} | {str(own.id)}
    if str(department_id) not in allowed:
        raise HTTPException(status_code=403, detail="You cannot create polls for this department")


def validate_definition(body: PollCreate) -> None:
    if body.type.value in CHOICE_TYPES:
        if len([o for o in body.options if o.strip()]) < 2:
            raise HTTPException(status_code=400, detail="Choice polls need at least two options")
    if body.type == PollType.RATING_SCALE:
        low = body.min_rating if body.min_rating is not None else DEFAULT_MIN_RATING
        high = body.max_rating if body.max_rating is not None else DEFAULT_MAX_RATING
        if low >= high:
            raise HTTPException(status_code=400, detail="min_rating must be less than max_rating")


# ---------------------------------------------------------------------------
# Create / copy
# ---------------------------------------------------------------------------


async def create_poll(session: AsyncSession, body: PollCreate, auth: AuthenticatedUser) -> Poll:
    await ensure_can_target(session, auth, body.department_id)
    validate_definition(body)

    poll = Poll(
        **body.model_dump(exclude={"options", "type", "visibility", "show_results"}),
        type=body.type.value,
        visibility=body.visibility.value,
        show_results=body.show_results.value,
        created_by_id=auth.user_id,
    )
    session.add(poll)
    await session.flush()

    if body.type.value in CHOICE_TYPES:
        texts = [o.strip() for o in body.options if o.strip()]
        for order, text in enumerate(texts):
            session.add(PollOption(poll_id=poll.id, text=text, order=order))

    if poll.is_active and (poll.scheduled_at is None or poll.scheduled_at <= utcnow()):
        recipients = await notify_service.audience_ids(session, poll.department_id, exclude=auth.user_id)
        notify_service.notify_many(
            session,
            recipients,
            "New poll",
            f'A new poll "{poll.title}" is open.',
            redirect_url=f"/polls/{poll.id}",
        )

    log.info("polls.created", poll_id=str(poll.id), type=poll.type)
    return poll


async def copy_poll(session: AsyncSession, source: Poll, auth: AuthenticatedUser) -> Poll:
    """Duplicate a poll and its options; the copy starts inactive."""
    if source.department_id is not None:
        await ensure_can_target(session, auth, source.department_id)
    elif not auth.is_admin:
        raise HTTPException(status_code=403, detail="Only admins can copy organization-wide polls")

    data = source.model_dump(exclude={"id", "created_at", "updated_at", "created_by_id", "title", "is_active"})
    poll = Poll(**data, title=f"{source.title} - copy", is_active=False, created_by_id=auth.user_id)
    session.add(poll)
    await session.flush()
    for option in await get_options(session, source.id):
        session.add(PollOption(poll_id=poll.id, text=option.text, order=option.order))
    return poll


async def delete_poll(session: AsyncSession, poll: Poll) -> None:
    await session.execute(delete(PollResponse).where(PollResponse.poll_id == poll.id))
    await session.execute(delete(PollOption).where(PollOption.poll_id == poll.id))
    await session.delete(poll)


# ---------------------------------------------------------------------------
# Voting
# ---------------------------------------------------------------------------


def ensure_open(poll: Poll) -> None:
    now = utcnow()
    if not poll.is_active:
        raise HTTPException(status_code=400, detail="Poll is not active")
    if poll.scheduled_at and poll.scheduled_at > now:
        raise HTTPException(status_code=400, detail="Poll has not started yet")
    if poll.closed_at and poll.closed_at < now:
        raise HTTPException(status_code=400, detail="Poll is closed")


async def build_responses(
    session: AsyncSession, poll: Poll, body: VoteRequest, user_id: uuid.UUID
) -> list[PollResponse]:
    """Validate a vote against the poll type and return the rows to store."""
    if poll.type in CHOICE_TYPES:
        option_ids = list(dict.fromkeys(body.option_ids))
        if not option_ids:
            raise HTTPException(status_code=400, detail="Select at least one option")
        if poll.type == PollType.SINGLE_CHOICE.value and len(option_ids) != 1:
            raise HTTPException(status_code=400, detail="Select exactly one option")
        valid = {o.id for o in await get_options(session, poll.id)}
        if not set(option_ids) <= valid:
            raise HTTPException(status_code=400, detail="Invalid option for this poll")
        return [PollResponse(poll_id=poll.id, user_id=user_id, option_id=oid) for oid in option_ids]

    if poll.type == PollType.RATING_SCALE.value:
        low = poll.min_rating if poll.min_rating is not None else DEFAULT_MIN_RATING
        high = poll.max_rating if poll.max_rating is not None else DEFAULT_MAX_RATING
        if body.rating_value is None or not low <= body.rating_value <= high:
            raise HTTPException(status_code=400, detail=f"Rating must be between {low} and {high}")
        return [PollResponse(poll_id=poll.id, user_id=user_id, rating_value=body.rating_value)]

    text = (body.text_value or "").strip()
    if not text:
        raise HTTPException(status_code=400, detail="Answer text is required")
    if poll.max_text_length and len(text) > poll.max_text_length:
        raise HTTPException(
            status_code=400, detail=f"Answer must be at most {poll.max_text_length} characters"
        )
    return [PollResponse(poll_id=poll.id, user_id=user_id, text_value=text)]


async def vote(
    session: AsyncSession, poll: Poll, body: VoteRequest, auth: AuthenticatedUser
) -> int:
    ensure_open(poll)
    if await _has_voted(session, poll.id, auth.user_id):
        if not poll.allow_multiple_votes:
            raise HTTPException(status_code=400, detail="You have already voted in this poll")
        await withdraw_vote(session, poll, auth)

    rows = await build_responses(session, poll, body, auth.user_id)
    session.add_all(rows)
    log.info("polls.voted", poll_id=str(poll.id), user_id=str(auth.user_id))
    return len(rows)


async def withdraw_vote(session: AsyncSession, poll: Poll, auth: AuthenticatedUser) -> None:
    await session.execute(
        delete(PollResponse).where(
            PollResponse.poll_id == poll.id, PollResponse.user_id == auth.user_id
        )
    )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


def _rate(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


async def ensure_can_see_results(
    session: AsyncSession, poll: Poll, auth: AuthenticatedUser
) -> None:
    privileged = auth.is_admin or poll.created_by_id == auth.user_id
    voted = await _has_voted(session, poll.id, auth.user_id)
    if not (privileged or voted or poll.visibility == PollVisibility.PUBLIC.value):
        raise HTTPException(status_code=403, detail="You are not allowed to view these results")

    still_open = poll.closed_at is None or poll.closed_at > utcnow()
    if poll.show_results == PollShowResults.AFTER_CLOSE.value and still_open and not (privileged or voted):
        raise HTTPException(status_code=403, detail="Results are shown after the poll closes")


async def compute_results(
    session: AsyncSession, poll: Poll, auth: AuthenticatedUser
) -> dict:
    target_stmt = select(User).where(User.role != Role.ADMIN.value)
    if poll.department_id:
        target_stmt = target_stmt.where(User.department_id == poll.department_id)
    targets: Sequence[User] = (await session.execute(target_stmt)).scalars().all()

    result = await session.execute(
        select(PollResponse, User)
        .join(User, User.id == PollResponse.user_id)
        .where(PollResponse.poll_id == poll.id)
        .order_by(PollResponse.created_at.desc())
    )
    rows = result.all()

    by_user: dict[uuid.UUID, list[PollResponse]] = defaultdict(list)
    users: dict[uuid.UUID, User] = {}
    for response, user in rows:
        by_user[user.id].append(response)
        users[user.id] = user

    respondents = len(by_user)
    stats = {
        "total_target_users": len(targets),
        "total_responses": respondents,
        "total_not_responded": len(targets) - respondents,
        "response_rate": _rate(respondents, len(targets)),
    }

    privileged = auth.is_admin or poll.created_by_id == auth.user_id
    public = poll.visibility == PollVisibility.PUBLIC.value
    responses = [r for r, _ in rows]
    results: dict = {}
    options = await get_options(session, poll.id)
    option_text = {o.id: o.text for o in options}

    if poll.type in CHOICE_TYPES:
        results["options"] = [
            {
                "id": o.id,
                "text": o.text,
                "order": o.order,
                "vote_count": sum(1 for r in responses if r.option_id == o.id),
                "percentage": _rate(sum(1 for r in responses if r.option_id == o.id), respondents),
            }
            for o in options
        ]
    elif poll.type == PollType.RATING_SCALE.value:
        ratings = [r.rating_value for r in responses if r.rating_value is not None]
        low = poll.min_rating if poll.min_rating is not None else DEFAULT_MIN_RATING
        high = poll.max_rating if poll.max_rating is not None else DEFAULT_MAX_RATING
        results["average"] = round(sum(ratings) / len(ratings), 2) if ratings else 0
        results["distribution"] = [
            {"rating": value, "count": ratings.count(value)} for value in range(low, high + 1)
        ]
        results["total_ratings"] = len(ratings)
    else:
        results["text_responses"] = [
            {
                "id": r.id,
                "text_value": r.text_value,
                "created_at": r.created_at,
                **({"user": {"id": u.id, "name": u.name}} if public or privileged else {}),
            }
            for r, u in rows
        ]

    voters = None
    if public or privileged:
        voters = []
        for user_id, user_responses in by_user.items():
            user = users[user_id]
            first = user_responses[0]
            voters.append(
                {
                    "user_id": user.id,
                    "name": user.name,
                    "role": user.role,
                    "department_id": user.department_id,
                    "voted_at": first.created_at,
                    "selected_options": (
                        [option_text[r.option_id] for r in user_responses if r.option_id in option_text]
                        if poll.type in CHOICE_TYPES
                        else None
                    ),
                    "rating_value": first.rating_value,
                    "text_value": first.text_value,
                }
            )

    department_stats = None
    if privileged and poll.department_id is None:
        departments = (await session.execute(select(Department).order_by(Department.name))).scalars().all()
        department_stats = []
        for dept in departments:
            dept_targets = [u for u in targets if u.department_id == dept.id]
            dept_respondents = {uid for uid, u in users.items() if u.department_id == dept.id}
            department_stats.append(
                {
                    "department_id": dept.id,
                    "department_name": dept.name,
                    "total_target": len(dept_targets),
                    "total_responded": len(dept_respondents),
                    "total_not_responded": len(dept_targets) - len(dept_respondents),
                    "response_rate": _rate(len(dept_respondents), len(dept_targets)),
                }
            )

    return {
        "poll": {
            "id": poll.id,
            "title": poll.title,
            "type": poll.type,
            "visibility": poll.visibility,
            "show_results": poll.show_results,
            "closed_at": poll.closed_at,
            "department_id": poll.department_id,
        },
        "stats": stats,
        "results": results,
        "voters": voters,
        "department_stats": department_stats,
    }
