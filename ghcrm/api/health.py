"""Health check endpoint."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ghcrm import __version__
from ghcrm.api.deps import get_session
from ghcrm.services.github_service import GitHubGateway

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    database: str
    github: str


def _gateway_status(request: Request) -> str:
    """Report whether the GitHub gateway is wired up with an open HTTP client.

    Does not call GitHub, so health checks never spend API rate limit.
    """
    gateway = getattr(request.app.state, "github_gateway", None)
    if not isinstance(gateway, GitHubGateway):
        logger.warning("Health check: GitHub gateway not initialized")
        return "error"
    if gateway.is_closed:
        logger.warning("Health check: GitHub gateway client is closed")
        return "error"
    return "ok"


@router.get("/api/health", response_model=HealthResponse)
async def health_check(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> HealthResponse:
    """Report database connectivity and GitHub gateway readiness."""
    db_status = "ok"
    try:
        await session.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Health check database query failed", exc_info=True)
        db_status = "error"

    github_status = _gateway_status(request)
    healthy = db_status == "ok" and github_status == "ok"
    return HealthResponse(
        status="ok" if healthy else "degraded",
        version=__version__,
        database=db_status,
        github=github_status,
    )
