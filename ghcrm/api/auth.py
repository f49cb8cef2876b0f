"""Authentication API endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ghcrm.api.deps import (
    get_optional_account,
    get_session,
    get_settings,
    require_identity,
)
from ghcrm.config import Settings
from ghcrm.exceptions import AuthError, NotFoundError
from ghcrm.models.user import User
from ghcrm.schemas.auth import (
    AuthResponse,
    LoginRequest,
    MeResponse,
    RegisterRequest,
    SessionStatusResponse,
    UserResponse,
)
from ghcrm.services.auth_service import (
    SessionIdentity,
    authenticate_user,
    issue_token,
    register_user,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _user_response(user: User) -> UserResponse:
    return UserResponse(id=user.id, email=user.email, created_at=user.created_at)


def _issue_for(user: User, settings: Settings) -> str:
    return issue_token(
        user.id,
        user.email,
        settings.secret_key,
        lifetime_seconds=settings.token_expire_seconds,
    )


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthResponse:
    """Register a new account and return a session token."""
    user = await register_user(session, body.email, body.password)
    return AuthResponse(
        message="User registered successfully",
        token=_issue_for(user, settings),
        user=_user_response(user),
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthResponse:
    """Login with email and password."""
    user = await authenticate_user(session, body.email, body.password)
    if user is None:
        raise AuthError("Invalid email or password")
    return AuthResponse(
        message="Login successful",
        token=_issue_for(user, settings),
        user=_user_response(user),
    )


@router.get("/me", response_model=MeResponse)
async def me(
    identity: Annotated[SessionIdentity, Depends(require_identity)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> MeResponse:
    """Get current user info."""
    user = await session.get(User, identity.account_id)
    if user is None:
        raise NotFoundError("User not found")
    return MeResponse(user=_user_response(user))


@router.get("/session", response_model=SessionStatusResponse)
async def session_status(
    user: Annotated[User | None, Depends(get_optional_account)],
) -> SessionStatusResponse:
    """Report whether the presented token belongs to a live account."""
    if user is None:
        return SessionStatusResponse(authenticated=False)
    return SessionStatusResponse(authenticated=True, user=_user_response(user))
