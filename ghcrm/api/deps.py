"""Shared API dependencies: DB session, settings, GitHub gateway, auth."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ghcrm.config import Settings
from ghcrm.exceptions import AuthError, InternalServerError
from ghcrm.models.user import User
from ghcrm.services.auth_service import (
    SessionIdentity,
    TokenError,
    TokenExpiredError,
    verify_token,
)
from ghcrm.services.github_service import GitHubGateway

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    """Get application settings from app state."""
    settings: Settings = request.app.state.settings
    return settings


def get_gateway(request: Request) -> GitHubGateway:
    """Get the GitHub gateway from app state."""
    gateway: GitHubGateway = request.app.state.github_gateway
    return gateway


async def get_session(request: Request) -> AsyncGenerator[AsyncSession]:
    """Get a database session."""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        yield session


async def require_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> SessionIdentity:
    """Require a valid bearer token. Raises 401 otherwise.

    Only the token is checked; the account may have been deleted since it
    was issued.
    """
    if credentials is None:
        raise AuthError("Access token required")
    if not settings.secret_key:
        msg = "SECRET_KEY not configured; cannot verify session tokens"
        raise InternalServerError(msg)
    try:
        return verify_token(credentials.credentials, settings.secret_key)
    except TokenExpiredError as exc:
        raise AuthError("Token expired") from exc
    except TokenError as exc:
        raise AuthError("Invalid token") from exc


async def require_account(
    identity: Annotated[SessionIdentity, Depends(require_identity)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> User:
    """Require a valid token for an account that still exists."""
    user = await session.get(User, identity.account_id)
    if user is None:
        raise AuthError("Invalid token - user not found")
    return user


async def get_optional_account(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    settings: Annotated[Settings, Depends(get_settings)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> User | None:
    """Resolve the caller's account, or None for anonymous callers.

    A missing, invalid or expired token, an unconfigured secret and a
    deleted account all mean anonymous; none of them is an error here.
    """
    if credentials is None or not settings.secret_key:
        return None
    try:
        identity = verify_token(credentials.credentials, settings.secret_key)
    except TokenError as exc:
        logger.debug("Ignoring unusable bearer token: %s", exc)
        return None
    return await session.get(User, identity.account_id)
