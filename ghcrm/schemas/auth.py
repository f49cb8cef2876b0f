"""Authentication schemas."""

from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    """Login request."""

    email: EmailStr
    password: str = Field(min_length=1)


class RegisterRequest(BaseModel):
    """User registration request."""

    email: EmailStr
    password: str = Field(min_length=6, max_length=128)


class UserResponse(BaseModel):
    """Public account info."""

    id: int
    email: str
    created_at: str


class AuthResponse(BaseModel):
    """Session token plus the account it belongs to."""

    message: str
    token: str
    user: UserResponse


class MeResponse(BaseModel):
    user: UserResponse


class SessionStatusResponse(BaseModel):
    """Whether the presented token (if any) identifies a live account."""

    authenticated: bool
    user: UserResponse | None = None
