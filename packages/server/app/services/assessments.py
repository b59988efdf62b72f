"""
Assessment service layer: questionnaires, department assignments,
taking an assessment (start / progress / submit) and result access.
"""

from __future__ import annotations

import uuid
from typing import Optional, Sequence

import structlog
from fastapi import HTTPException
from sqlalchemy import delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import AuthenticatedUser
from app.models.assessment import (
    Assessment,
    AssessmentAssignment,
    AssessmentProgress,
    AssessmentQuestion,
    AssessmentResult,
)
from app.models.base import utcnow
from app.models.user import User
from app.services.scoring import ScoringError, calculate_assessment_score, validate_answers
from feedback_hub_shared.schemas.assessments import (
    AssessmentCreate,
    AssessmentRead,
    QuestionCreate,
    QuestionRead,
    SubmitRequest,
)

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def get_assessment_or_404(session: AsyncSession, assessment_id: uuid.UUID) -> Assessment:
    assessment = await session.get(Assessment, assessment_id)
    if not assessment:
        raise HTTPException(status_code=404, detail="Assessment not found")
    return assessment


async def get_question_or_404(
    session: AsyncSession, assessment_id: uuid.UUID, question_id: uuid.UUID
) -> AssessmentQuestion:
    question = await session.get(AssessmentQuestion, question_id)
    if not question or question.assessment_id != assessment_id:
        raise HTTPException(status_code=404, detail="Question not found")
    return question


async def get_questions(session: AsyncSession, assessment_id: uuid.UUID) -> list[AssessmentQuestion]:
    result = await session.execute(
        select(AssessmentQuestion)
        .where(AssessmentQuestion.assessment_id == assessment_id)
        .order_by(AssessmentQuestion.order)
    )
    return list(result.scalars().all())


async def _count(session: AsyncSession, model, assessment_id: uuid.UUID) -> int:
    result = await session.execute(
        select(func.count()).select_from(model).where(model.assessment_id == assessment_id)
    )
    return result.scalar_one()


async def enrich_assessment(
    session: AsyncSession, assessment: Assessment, *, with_questions: bool = False
) -> AssessmentRead:
    questions = None
    if with_questions:
        questions = [QuestionRead.model_validate(q) for q in await get_questions(session, assessment.id)]
    return AssessmentRead(
        **assessment.model_dump(),
        question_count=await _count(session, AssessmentQuestion, assessment.id),
        assignment_count=await _count(session, AssessmentAssignment, assessment.id),
        result_count=await _count(session, AssessmentResult, assessment.id),
        questions=questions,
    )


def build_question(assessment_id: uuid.UUID, body: QuestionCreate, order: int) -> AssessmentQuestion:
    return AssessmentQuestion(
        assessment_id=assessment_id,
        question=body.question,
        options=[o.model_dump() for o in body.options],
        order=body.order if body.order is not None else order,
        is_required=body.is_required,
    )


async def next_question_order(session: AsyncSession, assessment_id: uuid.UUID) -> int:
    result = await session.execute(
        select(func.max(AssessmentQuestion.order)).where(
            AssessmentQuestion.assessment_id == assessment_id
        )
    )
    last = result.scalar_one_or_none()
    return 0 if last is None else last + 1


# ---------------------------------------------------------------------------
# Authoring
# ---------------------------------------------------------------------------


async def create_assessment(
    session: AsyncSession, body: AssessmentCreate, auth: AuthenticatedUser
) -> Assessment:
    assessment = Assessment(
        **body.model_dump(exclude={"questions", "type"}),
        type=body.type.value,
        created_by_id=auth.user_id,
    )
    session.add(assessment)
    await session.flush()
    for order, question in enumerate(body.questions):
        session.add(build_question(assessment.id, question, order))
    log.info("assessments.created", assessment_id=str(assessment.id), type=assessment.type)
    return assessment


async def delete_assessment(session: AsyncSession, assessment: Assessment) -> None:
    if await _count(session, AssessmentResult, assessment.id):
        raise HTTPException(status_code=400, detail="Assessment has results and cannot be deleted")
    for model in (AssessmentProgress, AssessmentAssignment, AssessmentQuestion):
        await session.execute(delete(model).where(model.assessment_id == assessment.id))
    await session.delete(assessment)


async def reorder_questions(
    session: AsyncSession, assessment_id: uuid.UUID, question_ids: Sequence[uuid.UUID]
) -> list[AssessmentQuestion]:
    questions = {q.id: q for q in await get_questions(session, assessment_id)}
    if set(question_ids) != set(questions) or len(question_ids) != len(questions):
        raise HTTPException(status_code=400, detail="Reorder must list every question exactly once")
    for order, qid in enumerate(question_ids):
        questions[qid].order = order
        session.add(questions[qid])
    return [questions[qid] for qid in question_ids]


# ---------------------------------------------------------------------------
# Taking an assessment
# ---------------------------------------------------------------------------


def _window_open(assignment: AssessmentAssignment) -> bool:
    now = utcnow()
    if assignment.start_date and assignment.start_date > now:
        return False
    if assignment.end_date and assignment.end_date < now:
        return False
    return True


async def get_assignment_for(
    session: AsyncSession, assessment_id: uuid.UUID, department_id: Optional[uuid.UUID]
) -> Optional[AssessmentAssignment]:
    if department_id is None:
        return None
    result = await session.execute(
        select(AssessmentAssignment).where(
            AssessmentAssignment.assessment_id == assessment_id,
            AssessmentAssignment.department_id == department_id,
        )
    )
    return result.scalar_one_or_none()


async def latest_result(
    session: AsyncSession, assessment_id: uuid.UUID, user_id: uuid.UUID
) -> Optional[AssessmentResult]:
    result = await session.execute(
        select(AssessmentResult)
        .where(AssessmentResult.assessment_id == assessment_id, AssessmentResult.user_id == user_id)
        .order_by(AssessmentResult.completed_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_progress(
    session: AsyncSession, assessment_id: uuid.UUID, user_id: uuid.UUID
) -> Optional[AssessmentProgress]:
    result = await session.execute(
        select(AssessmentProgress).where(
            AssessmentProgress.assessment_id == assessment_id,
            AssessmentProgress.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def available_for(session: AsyncSession, auth: AuthenticatedUser) -> list[dict]:
    """Active assessments assigned to the caller's department and currently open."""
    if auth.department_id is None:
        return []
    now = utcnow()
    result = await session.execute(
        select(AssessmentAssignment, Assessment)
        .join(Assessment, Assessment.id == AssessmentAssignment.assessment_id)
        .where(
            AssessmentAssignment.department_id == auth.department_id,
            Assessment.is_active == True,  # noqa: E712
            or_(AssessmentAssignment.start_date.is_(None), AssessmentAssignment.start_date <= now),
            or_(AssessmentAssignment.end_date.is_(None), AssessmentAssignment.end_date >= now),
        )
        .order_by(Assessment.title)
    )
    items = []
    for assignment, assessment in result.all():
        latest = await latest_result(session, assessment.id, auth.user_id)
        progress = await get_progress(session, assessment.id, auth.user_id)
        items.append(
            {
                "assessment": await enrich_assessment(session, assessment),
                "assignment": assignment,
                "latest_result": latest,
                "progress": progress,
            }
        )
    return items


async def start(
    session: AsyncSession, assessment: Assessment, auth: AuthenticatedUser
) -> AssessmentProgress:
    if not assessment.is_active:
        raise HTTPException(status_code=400, detail="Assessment is not active")
    if auth.department_id is None:
        raise HTTPException(status_code=403, detail="You are not assigned to a department")

    assignment = await get_assignment_for(session, assessment.id, auth.department_id)
    if not assignment:
        raise HTTPException(status_code=403, detail="Assessment is not assigned to your department")
    if not _window_open(assignment):
        raise HTTPException(status_code=400, detail="Assessment is not open at this time")

    if await latest_result(session, assessment.id, auth.user_id) and not assessment.allow_retake:
        raise HTTPException(status_code=400, detail="You have already completed this assessment")

    progress = await get_progress(session, assessment.id, auth.user_id)
    now = utcnow()
    if progress:
        progress.answers = {}
        progress.current_question = 0
        progress.started_at = now
        progress.last_saved_at = now
    else:
        progress = AssessmentProgress(assessment_id=assessment.id, user_id=auth.user_id)
    session.add(progress)
    log.info("assessments.started", assessment_id=str(assessment.id), user_id=str(auth.user_id))
    return progress


async def submit(
    session: AsyncSession, assessment: Assessment, body: SubmitRequest, auth: AuthenticatedUser
) -> AssessmentResult:
    if not assessment.is_active:
        raise HTTPException(status_code=400, detail="Assessment is not active")
    # start() enforces the department assignment and window
    if await get_progress(session, assessment.id, auth.user_id) is None:
        raise HTTPException(status_code=400, detail="Start the assessment before submitting")
    if await latest_result(session, assessment.id, auth.user_id) and not assessment.allow_retake:
        raise HTTPException(status_code=400, detail="You have already completed this assessment")

    questions = await get_questions(session, assessment.id)
    missing = validate_answers(body.answers, questions)
    if missing:
        raise HTTPException(
            status_code=400,
            detail={"message": "Please answer all required questions", "missing_questions": missing},
        )

    try:
        scored = calculate_assessment_score(assessment.type, body.answers, questions)
    except ScoringError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    score = scored["score"]
    result = AssessmentResult(
        assessment_id=assessment.id,
        user_id=auth.user_id,
        answers=body.answers,
        score=score,
        result=scored,
        is_passed=score >= assessment.passing_score if assessment.passing_score is not None else None,
        time_taken=body.time_taken,
    )
    session.add(result)
    await session.execute(
        delete(AssessmentProgress).where(
            AssessmentProgress.assessment_id == assessment.id,
            AssessmentProgress.user_id == auth.user_id,
        )
    )
    log.info(
        "assessments.submitted",
        assessment_id=str(assessment.id),
        user_id=str(auth.user_id),
        personality_type=scored["personality_type"],
    )
    return result


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


async def results_for(
    session: AsyncSession, assessment: Assessment, auth: AuthenticatedUser
) -> list[dict]:
    """All results (admins) or the manager's department (with allow_manager_view)."""
    stmt = (
        select(AssessmentResult, User)
        .join(User, User.id == AssessmentResult.user_id)
        .where(AssessmentResult.assessment_id == assessment.id)
    )
    if not auth.is_admin:
        assignment = await get_assignment_for(session, assessment.id, auth.department_id)
        if not (auth.is_manager and assignment and assignment.allow_manager_view):
            raise HTTPException(status_code=403, detail="You cannot view results of this assessment")
        stmt = stmt.where(User.department_id == auth.department_id)

    result = await session.execute(stmt.order_by(AssessmentResult.completed_at.desc()))
    return [
        {
            "result": row,
            "user": {"id": user.id, "name": user.name, "department_id": user.department_id},
        }
        for row, user in result.all()
    ]
