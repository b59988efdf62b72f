"""
Seed a local database with development data.

Creates an admin, departments with routing keywords, a manager and a few
employees per department, MBTI and DISC assessments and the default
settings row. Safe to run repeatedly: existing rows (matched by mobile
number, department name or assessment title) are left alone.

    python -m app.scripts.seed_dev_data --admin-mobile 09120000000 --password secret
"""

import argparse
import asyncio

import structlog
from sqlmodel import select

from app.core.auth import hash_password
from app.core.config import get_settings
from app.core.database import get_session_context, init_db
from app.core.logging import configure_logging
from app.models.assessment import Assessment, AssessmentQuestion
from app.models.department import Department
from app.models.user import User
from app.services.settings import get_or_create_settings
from feedback_hub_shared.schemas.common import AssessmentType, Role

log = structlog.get_logger()

DEPARTMENTS = {
    "Engineering": ["software", "server", "network", "computer", "bug"],
    "Human Resources": ["salary", "leave", "hiring", "benefits", "training"],
    "Facilities": ["office", "parking", "cleaning", "kitchen", "building"],
}

EMPLOYEES_PER_DEPARTMENT = 3

MBTI_QUESTIONS = [
    ("At a party you usually", ("talk to many people", "E"), ("stay with a few friends", "I")),
    ("You trust more", ("experience", "S"), ("intuition", "N")),
    ("Decisions are best made with", ("logic", "T"), ("feelings", "F")),
    ("You prefer to", ("plan ahead", "J"), ("keep options open", "P")),
]

DISC_QUESTIONS = [
    ("Under pressure you", ("take charge", "D"), ("rally the team", "I"), ("stay calm", "S"), ("check the facts", "C")),
    ("Your strength is", ("results", "D"), ("enthusiasm", "I"), ("reliability", "S"), ("accuracy", "C")),
]


def _options(*choices):
    return [
        {"text": text, "value": f"{dim}{i}", "score": {dim: 1}}
        for i, (text, dim) in enumerate(choices)
    ]


async def _get_or_create_user(session, mobile, **fields) -> User:
    result = await session.execute(select(User).where(User.mobile == mobile))
    user = result.scalar_one_or_none()
    if user is None:
        user = User(mobile=mobile, **fields)
        session.add(user)
        await session.flush()
        log.info("seed.user_created", mobile=mobile, role=user.role)
    return user


async def _seed_assessment(session, admin, title, kind, questions) -> None:
    existing = await session.execute(select(Assessment).where(Assessment.title == title))
    if existing.scalar_one_or_none():
        return
    assessment = Assessment(title=title, type=kind.value, created_by_id=admin.id, allow_retake=True)
    session.add(assessment)
    await session.flush()
    for order, (question, *choices) in enumerate(questions):
        session.add(
            AssessmentQuestion(
                assessment_id=assessment.id,
                question=question,
                options=_options(*choices),
                order=order,
            )
        )
    log.info("seed.assessment_created", title=title)


async def seed(admin_mobile: str, password: str) -> None:
    if get_settings().create_tables_on_startup:
        await init_db()

    password_hash = hash_password(password)
    async with get_session_context() as session:
        await get_or_create_settings(session)
        admin = await _get_or_create_user(
            session, admin_mobile, name="Administrator", role=Role.ADMIN.value,
            password_hash=password_hash,
        )

        for index, (name, keywords) in enumerate(DEPARTMENTS.items(), start=1):
            result = await session.execute(select(Department).where(Department.name == name))
            dept = result.scalar_one_or_none()
            if dept is None:
                dept = Department(name=name, keywords=keywords, allow_direct_feedback=True)
                session.add(dept)
                await session.flush()
                log.info("seed.department_created", name=name)

            manager = await _get_or_create_user(
                session, f"0913{index:03d}0000", name=f"{name} Manager",
                role=Role.MANAGER.value, department_id=dept.id, password_hash=password_hash,
            )
            dept.manager_id = manager.id
            session.add(dept)

            for n in range(1, EMPLOYEES_PER_DEPARTMENT + 1):
                await _get_or_create_user(
                    session, f"0913{index:03d}{n:04d}", name=f"{name} Employee {n}",
                    role=Role.EMPLOYEE.value, department_id=dept.id, password_hash=password_hash,
                )

        await _seed_assessment(session, admin, "Personality Type (MBTI)", AssessmentType.MBTI, MBTI_QUESTIONS)
        await _seed_assessment(session, admin, "Work Style (DISC)", AssessmentType.DISC, DISC_QUESTIONS)

    log.info("seed.done")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed local development data.")
    parser.add_argument("--admin-mobile", default="09120000000", help="Mobile number of the admin")
    parser.add_argument("--password", required=True, help="Password for every seeded user")
    args = parser.parse_args()

    configure_logging("info", "console")
    asyncio.run(seed(args.admin_mobile, args.password))
