"""Authentication service: JWT session tokens and password hashing."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ghcrm.exceptions import ConflictError, InternalServerError
from ghcrm.models.user import User
from ghcrm.services.datetime_service import format_iso, now_utc

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
DEFAULT_TOKEN_LIFETIME_SECONDS = 604800
# bcrypt only looks at the first 72 bytes of a password.
_BCRYPT_MAX_BYTES = 72
_DUMMY_PASSWORD_HASH = bcrypt.hashpw(b"ghcrm-dummy-password", bcrypt.gensalt()).decode("utf-8")


class TokenError(Exception):
    """Base class for session token verification failures."""


class TokenInvalidError(TokenError):
    """Token signature, format or claims are wrong."""


class TokenExpiredError(TokenError):
    """Token is past its expiry."""


@dataclass(frozen=True)
class SessionIdentity:
    """Identity asserted by a verified session token."""

    account_id: int
    email: str


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode("utf-8"))


def issue_token(
    account_id: int,
    email: str,
    secret_key: str,
    lifetime_seconds: int = DEFAULT_TOKEN_LIFETIME_SECONDS,
    issued_at: datetime | None = None,
) -> str:
    """Create a signed session token for an account.

    Raises InternalServerError when no signing secret is configured.
    """
    if not secret_key:
        msg = "Cannot issue session token: SECRET_KEY is not configured"
        raise InternalServerError(msg)
    iat = issued_at or datetime.now(UTC)
    claims: dict[str, Any] = {
        "sub": str(account_id),
        "email": email,
        "iat": int(iat.timestamp()),
        "exp": int((iat + timedelta(seconds=lifetime_seconds)).timestamp()),
        "type": "access",
    }
    return str(jwt.encode(claims, secret_key, algorithm=ALGORITHM))


def verify_token(token: str, secret_key: str) -> SessionIdentity:
    """Verify a session token and return the identity it asserts.

    Raises TokenExpiredError past expiry and TokenInvalidError for anything
    else wrong with the token. Does not check that the account still exists.
    """
    try:
        payload: dict[str, Any] = jwt.decode(token, secret_key, algorithms=[ALGORITHM])
    except ExpiredSignatureError as exc:
        raise TokenExpiredError("Token expired") from exc
    except JWTError as exc:
        logger.debug("Failed to decode session token", exc_info=True)
        raise TokenInvalidError("Invalid token") from exc

    if payload.get("type") != "access":
        raise TokenInvalidError("Invalid token")
    subject = payload.get("sub")
    email = payload.get("email")
    if not isinstance(subject, str) or not subject.isdigit() or not isinstance(email, str):
        raise TokenInvalidError("Invalid token")
    return SessionIdentity(account_id=int(subject), email=email)


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    """Look up an account by exact email."""
    result = await session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def authenticate_user(session: AsyncSession, email: str, password: str) -> User | None:
    """Authenticate a user by email and password."""
    user = await get_user_by_email(session, email)
    if user is None:
        # Run a dummy hash check to reduce email timing side channels.
        verify_password(password, _DUMMY_PASSWORD_HASH)
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


async def register_user(session: AsyncSession, email: str, password: str) -> User:
    """Create a new account.

    Raises ConflictError when the email is already registered, including
    when a concurrent registration wins the race to the unique index.
    """
    if await get_user_by_email(session, email) is not None:
        raise ConflictError("User with this email already exists")

    now = format_iso(now_utc())
    user = User(
        email=email,
        password_hash=hash_password(password),
        created_at=now,
        updated_at=now,
    )
    session.add(user)
    try:
        await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        raise ConflictError("User with this email already exists") from exc
    await session.commit()
    await session.refresh(user)
    logger.info("Registered account %d", user.id)
    return user
