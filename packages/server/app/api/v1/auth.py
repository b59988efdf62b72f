"""
Authentication endpoints.

- Mobile-or-email / password login
- JWT session management (refresh, logout)
- Current user and password change
"""

from __future__ import annotations

import uuid
from typing import Optional

import jwt
import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import (
    CSRF_COOKIE,
    SESSION_COOKIE,
    AuthenticatedUser,
    authenticate_token,
    bearer_scheme,
    create_jwt,
    decode_jwt,
    generate_csrf_token,
    hash_password,
    require_member,
    revoke_jwt,
    verify_password,
)
from app.core.config import get_settings
from app.core.database import get_session
from app.services import users as user_service
from feedback_hub_shared.schemas.users import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    UserResponse,
)

log = structlog.get_logger()
settings = get_settings()
router = APIRouter()

# Cookie config
COOKIE_KWARGS = {
    "httponly": True,
    "secure": not settings.debug,  # allow non-HTTPS in dev
    "samesite": "lax",
    "path": "/",
    "max_age": settings.jwt_expire_minutes * 60,
}


def _set_session_cookies(response: Response, token: str, csrf: str) -> None:
    """Set the session JWT and CSRF cookies on a response."""
    response.set_cookie(key=SESSION_COOKIE, value=token, **COOKIE_KWARGS)
    response.set_cookie(
        key=CSRF_COOKIE,
        value=csrf,
        httponly=False,  # JS must read this
        secure=not settings.debug,
        samesite="lax",
        path="/",
        max_age=settings.jwt_expire_minutes * 60,
    )


def _request_token(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials]
) -> Optional[str]:
    return credentials.credentials if credentials else request.cookies.get(SESSION_COOKIE)


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Authenticate with mobile (or email) and password and receive a JWT session."""
    user = await user_service.find_by_login(session, mobile=body.mobile, email=body.email)
    identifier = body.mobile or body.email

    if not user or not verify_password(body.password, user.password_hash):
        log.warning("auth.login_failure", identifier=identifier, reason="bad_credentials")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if not user.is_active:
        log.warning("auth.login_failure", identifier=identifier, reason="inactive")
        raise HTTPException(status_code=401, detail="User account is disabled")

    token, _jti = create_jwt(user.id, user.role, user.department_id)
    _set_session_cookies(response, token, generate_csrf_token())

    user_service.touch(user)
    session.add(user)

    log.info("auth.login_success", user_id=str(user.id), role=user.role)
    return LoginResponse(
        user=UserResponse.model_validate(user),
        access_token=token,
        message="Login successful",
    )


# ---------------------------------------------------------------------------
# Session Management
# ---------------------------------------------------------------------------

@router.post("/refresh")
async def refresh_session(
    request: Request,
    response: Response,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_session),
):
    """Refresh the current JWT session by issuing a new token."""
    token = _request_token(request, credentials)
    if not token:
        raise HTTPException(status_code=401, detail="No active session")

    auth = await authenticate_token(token, session)
    old_jti = decode_jwt(token).get("jti")

    # Issue new JWT, revoke old one
    new_token, _new_jti = create_jwt(auth.user_id, auth.role, auth.department_id)
    if old_jti:
        await revoke_jwt(old_jti)

    _set_session_cookies(response, new_token, generate_csrf_token())
    return {"message": "Session refreshed", "access_token": new_token}


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
):
    """Invalidate the current session."""
    token = _request_token(request, credentials)
    if token:
        try:
            jti = decode_jwt(token).get("jti")
        except jwt.PyJWTError:
            jti = None  # already invalid, just clear cookies
        if jti:
            await revoke_jwt(jti)

    response.delete_cookie(SESSION_COOKIE, path="/")
    response.delete_cookie(CSRF_COOKIE, path="/")
    return {"message": "Logged out"}


# ---------------------------------------------------------------------------
# Current user
# ---------------------------------------------------------------------------

@router.get("/me", response_model=UserResponse)
async def me(auth: AuthenticatedUser = Depends(require_member)):
    return auth.user


@router.post("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    user = auth.user
    if not verify_password(body.current_password, user.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    user.password_hash = hash_password(body.new_password)
    session.add(user)
    log.info("auth.password_changed", user_id=str(user.id))
    return {"message": "Password changed"}
