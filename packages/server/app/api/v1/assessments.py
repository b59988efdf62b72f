"""
Assessment endpoints: authoring, department assignment, taking and results.

Types: MBTI, DISC and custom points-based questionnaires.
- Employees take assessments assigned to their department within its window
- Progress is saved per (assessment, user) and dropped on submit
- Assessments with results cannot be deleted
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import AuthenticatedUser, require_admin, require_manager, require_member
from app.core.database import get_session
from app.models.assessment import (
    Assessment,
    AssessmentAssignment,
    AssessmentResult,
)
from app.models.base import utcnow
from app.models.department import Department
from app.services import assessments as assessment_service
from feedback_hub_shared.schemas.assessments import (
    AssessmentCreate,
    AssessmentRead,
    AssessmentUpdate,
    AssignmentRead,
    AssignmentRequest,
    ProgressSave,
    QuestionCreate,
    QuestionRead,
    QuestionReorder,
    QuestionUpdate,
    ResultRead,
    SubmitRequest,
)

router = APIRouter()


# ---------------------------------------------------------------------------
# Caller views
# ---------------------------------------------------------------------------


@router.get("/available")
async def available_assessments(
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    return await assessment_service.available_for(session, auth)


@router.get("/my-results", response_model=List[ResultRead])
async def my_results(
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    result = await session.execute(
        select(AssessmentResult)
        .where(AssessmentResult.user_id == auth.user_id)
        .order_by(AssessmentResult.completed_at.desc())
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Authoring
# ---------------------------------------------------------------------------


@router.get("", response_model=List[AssessmentRead])
async def list_assessments(
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    result = await session.execute(select(Assessment).order_by(Assessment.created_at.desc()))
    return [await assessment_service.enrich_assessment(session, a) for a in result.scalars().all()]


@router.post("", response_model=AssessmentRead, status_code=201)
async def create_assessment(
    body: AssessmentCreate,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    assessment = await assessment_service.create_assessment(session, body, auth)
    await session.commit()
    await session.refresh(assessment)
    return await assessment_service.enrich_assessment(session, assessment, with_questions=True)


@router.get("/{assessment_id}", response_model=AssessmentRead)
async def get_assessment(
    assessment_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    assessment = await assessment_service.get_assessment_or_404(session, assessment_id)
    if auth.is_employee:
        assignment = await assessment_service.get_assignment_for(session, assessment.id, auth.department_id)
        if not assignment:
            raise HTTPException(status_code=403, detail="Assessment is not assigned to your department")
    return await assessment_service.enrich_assessment(session, assessment, with_questions=True)


@router.patch("/{assessment_id}", response_model=AssessmentRead)
async def update_assessment(
    assessment_id: uuid.UUID,
    body: AssessmentUpdate,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    assessment = await assessment_service.get_assessment_or_404(session, assessment_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(assessment, key, value)
    session.add(assessment)
    await session.commit()
    await session.refresh(assessment)
    return await assessment_service.enrich_assessment(session, assessment, with_questions=True)


@router.delete("/{assessment_id}", status_code=204)
async def delete_assessment(
    assessment_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    assessment = await assessment_service.get_assessment_or_404(session, assessment_id)
    await assessment_service.delete_assessment(session, assessment)


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------


@router.post("/{assessment_id}/questions", response_model=QuestionRead, status_code=201)
async def add_question(
    assessment_id: uuid.UUID,
    body: QuestionCreate,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    await assessment_service.get_assessment_or_404(session, assessment_id)
    order = await assessment_service.next_question_order(session, assessment_id)
    question = assessment_service.build_question(assessment_id, body, order)
    session.add(question)
    await session.commit()
    await session.refresh(question)
    return question


@router.put("/{assessment_id}/questions/reorder", response_model=List[QuestionRead])
async def reorder_questions(
    assessment_id: uuid.UUID,
    body: QuestionReorder,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    await assessment_service.get_assessment_or_404(session, assessment_id)
    questions = await assessment_service.reorder_questions(session, assessment_id, body.question_ids)
    await session.commit()
    return [QuestionRead.model_validate(q) for q in questions]


@router.patch("/{assessment_id}/questions/{question_id}", response_model=QuestionRead)
async def update_question(
    assessment_id: uuid.UUID,
    question_id: uuid.UUID,
    body: QuestionUpdate,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    question = await assessment_service.get_question_or_404(session, assessment_id, question_id)
    data = body.model_dump(exclude_unset=True)
    if data.get("options") is not None:
        if len(data["options"]) < 2:
            raise HTTPException(status_code=400, detail="A question needs at least two options")
    for key, value in data.items():
        if value is not None:
            setattr(question, key, value)
    session.add(question)
    await session.commit()
    await session.refresh(question)
    return question


@router.delete("/{assessment_id}/questions/{question_id}", status_code=204)
async def delete_question(
    assessment_id: uuid.UUID,
    question_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    question = await assessment_service.get_question_or_404(session, assessment_id, question_id)
    await session.delete(question)


# ---------------------------------------------------------------------------
# Assignment
# ---------------------------------------------------------------------------


@router.post("/{assessment_id}/assign", response_model=AssignmentRead)
async def assign_assessment(
    assessment_id: uuid.UUID,
    body: AssignmentRequest,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Assign to a department, or update the existing assignment."""
    await assessment_service.get_assessment_or_404(session, assessment_id)
    if not await session.get(Department, body.department_id):
        raise HTTPException(status_code=404, detail="Department not found")

    assignment = await assessment_service.get_assignment_for(session, assessment_id, body.department_id)
    if assignment is None:
        assignment = AssessmentAssignment(assessment_id=assessment_id, department_id=body.department_id)
    for key, value in body.model_dump(exclude={"department_id"}).items():
        setattr(assignment, key, value)
    assignment.assigned_at = utcnow()

    session.add(assignment)
    await session.commit()
    await session.refresh(assignment)
    return assignment


@router.delete("/{assessment_id}/assign", status_code=204)
async def unassign_assessment(
    assessment_id: uuid.UUID,
    department_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    await session.execute(
        delete(AssessmentAssignment).where(
            AssessmentAssignment.assessment_id == assessment_id,
            AssessmentAssignment.department_id == department_id,
        )
    )


@router.get("/{assessment_id}/assignments", response_model=List[AssignmentRead])
async def list_assignments(
    assessment_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    result = await session.execute(
        select(AssessmentAssignment).where(AssessmentAssignment.assessment_id == assessment_id)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Taking
# ---------------------------------------------------------------------------


@router.post("/{assessment_id}/start")
async def start_assessment(
    assessment_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    assessment = await assessment_service.get_assessment_or_404(session, assessment_id)
    progress = await assessment_service.start(session, assessment, auth)
    await session.commit()
    await session.refresh(progress)
    questions = await assessment_service.get_questions(session, assessment.id)
    return {
        "progress": progress,
        "assessment": {
            "id": assessment.id,
            "title": assessment.title,
            "description": assessment.description,
            "instructions": assessment.instructions,
            "time_limit": assessment.time_limit,
            "total_questions": len(questions),
        },
        "questions": [QuestionRead.model_validate(q) for q in questions],
    }


@router.put("/{assessment_id}/progress")
async def save_progress(
    assessment_id: uuid.UUID,
    body: ProgressSave,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    await assessment_service.get_assessment_or_404(session, assessment_id)
    progress = await assessment_service.get_progress(session, assessment_id, auth.user_id)
    if progress is None:
        raise HTTPException(status_code=404, detail="Assessment has not been started")
    progress.answers = body.answers
    progress.current_question = body.current_question
    progress.last_saved_at = utcnow()
    session.add(progress)
    await session.commit()
    await session.refresh(progress)
    return progress


@router.post("/{assessment_id}/submit", response_model=ResultRead, status_code=201)
async def submit_assessment(
    assessment_id: uuid.UUID,
    body: SubmitRequest,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    assessment = await assessment_service.get_assessment_or_404(session, assessment_id)
    result = await assessment_service.submit(session, assessment, body, auth)
    await session.commit()
    await session.refresh(result)
    return result


@router.get("/{assessment_id}/result", response_model=ResultRead)
async def my_result(
    assessment_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    result = await assessment_service.latest_result(session, assessment_id, auth.user_id)
    if not result:
        raise HTTPException(status_code=404, detail="Result not found")
    return result


@router.get("/{assessment_id}/results")
async def assessment_results(
    assessment_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    assessment = await assessment_service.get_assessment_or_404(session, assessment_id)
    return await assessment_service.results_for(session, assessment, auth)
