"""
Shared fixtures: in-memory SQLite database, app client and record factories.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional
from unittest.mock import AsyncMock, patch

os.environ["FH_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["FH_SECRET_KEY"] = "test-secret-key"
os.environ["FH_CREATE_TABLES_ON_STARTUP"] = "false"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import app.models  # noqa: F401
from app.core.auth import create_jwt, hash_password
from app.core.cache import dashboard_cache
from app.core.database import get_session
from app.core.storage import LocalStorage, get_storage
from app.main import app as fastapi_app
from app.models.department import Department
from app.models.user import User

PASSWORD = "password123"
PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def redis_mock():
    mock = AsyncMock()
    mock.exists = AsyncMock(return_value=0)
    mock.setex = AsyncMock()
    return mock


@pytest.fixture
def storage(tmp_path: Path) -> LocalStorage:
    return LocalStorage(root=tmp_path / "uploads")


@pytest.fixture(autouse=True)
def clear_dashboard_cache():
    dashboard_cache.clear()
    yield
    dashboard_cache.clear()


@pytest.fixture
async def client(session_factory, redis_mock, storage):
    async def override_get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_session] = override_get_session
    fastapi_app.dependency_overrides[get_storage] = lambda: storage

    with patch("app.core.auth.get_redis", AsyncMock(return_value=redis_mock)):
        async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as ac:
            yield ac

    fastapi_app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_department(session_factory):
    async def _make(name: str = "Engineering", **fields) -> Department:
        async with session_factory() as session:
            dept = Department(name=name, **fields)
            session.add(dept)
            await session.commit()
            await session.refresh(dept)
            return dept

    return _make


@pytest.fixture
def make_user(session_factory):
    counter = {"n": 0}

    async def _make(
        role: str = "EMPLOYEE",
        department: Optional[Department] = None,
        name: Optional[str] = None,
        **fields,
    ) -> User:
        counter["n"] += 1
        async with session_factory() as session:
            user = User(
                name=name or f"{role.title()} {counter['n']}",
                mobile=fields.pop("mobile", f"0912{counter['n']:07d}"),
                password_hash=PASSWORD_HASH,
                role=role,
                department_id=department.id if department else None,
                **fields,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    return _make


@pytest.fixture
def set_manager(session_factory):
    """Make `user` the manager of `department`."""

    async def _set(department: Department, user: User) -> None:
        async with session_factory() as session:
            dept = await session.get(Department, department.id)
            dept.manager_id = user.id
            session.add(dept)
            await session.commit()

    return _set


def _bearer(user: User) -> dict:
    token, _ = create_jwt(user.id, user.role, user.department_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    """Bearer headers for a user: `auth_headers(user)`."""
    return _bearer


@pytest.fixture
async def org(make_department, make_user, set_manager):
    """A department with a manager and an employee, plus an admin."""
    dept = await make_department("Engineering", keywords=["server", "network"])
    other = await make_department("Human Resources", keywords=["salary", "leave"])
    admin = await make_user("ADMIN", name="Admin")
    manager = await make_user("MANAGER", dept, name="Manager")
    employee = await make_user("EMPLOYEE", dept, name="Employee")
    other_manager = await make_user("MANAGER", other, name="HR Manager")
    await set_manager(dept, manager)
    await set_manager(other, other_manager)
    return {
        "dept": dept,
        "other": other,
        "admin": admin,
        "manager": manager,
        "employee": employee,
        "other_manager": other_manager,
    }
