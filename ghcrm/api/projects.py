"""Project API endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from ghcrm.api.deps import get_gateway, get_session, require_account
from ghcrm.models.user import User
from ghcrm.schemas.project import (
    AddProjectRequest,
    MessageResponse,
    ProjectEnvelope,
    ProjectListResponse,
    ProjectMutationResponse,
    ProjectResponse,
)
from ghcrm.services.github_service import GitHubGateway
from ghcrm.services.project_service import (
    add_project,
    delete_project,
    get_project,
    list_projects,
    refresh_project,
)

router = APIRouter(prefix="/api/projects", tags=["projects"])

# Upper bound is the largest signed 64-bit integer the database can store.
ProjectId = Annotated[int, Path(gt=0, le=2**63 - 1, description="Project ID")]


@router.get("", response_model=ProjectListResponse)
async def list_projects_endpoint(
    session: Annotated[AsyncSession, Depends(get_session)],
    user: Annotated[User, Depends(require_account)],
) -> ProjectListResponse:
    """List the current user's tracked repositories, newest first."""
    projects = await list_projects(session, user.id)
    return ProjectListResponse(
        projects=[ProjectResponse.from_model(p) for p in projects],
        count=len(projects),
    )


@router.post("", response_model=ProjectMutationResponse, status_code=201)
async def add_project_endpoint(
    body: AddProjectRequest,
    session: Annotated[AsyncSession, Depends(get_session)],
    gateway: Annotated[GitHubGateway, Depends(get_gateway)],
    user: Annotated[User, Depends(require_account)],
) -> ProjectMutationResponse:
    """Start tracking a GitHub repository by its owner/repository path."""
    project = await add_project(session, gateway, user.id, body.repository_path)
    return ProjectMutationResponse(
        message="Project added successfully",
        project=ProjectResponse.from_model(project),
    )


@router.get("/{project_id}", response_model=ProjectEnvelope)
async def get_project_endpoint(
    project_id: ProjectId,
    session: Annotated[AsyncSession, Depends(get_session)],
    user: Annotated[User, Depends(require_account)],
) -> ProjectEnvelope:
    """Get one tracked repository."""
    project = await get_project(session, user.id, project_id)
    return ProjectEnvelope(project=ProjectResponse.from_model(project))


@router.put("/{project_id}", response_model=ProjectMutationResponse)
async def refresh_project_endpoint(
    project_id: ProjectId,
    session: Annotated[AsyncSession, Depends(get_session)],
    gateway: Annotated[GitHubGateway, Depends(get_gateway)],
    user: Annotated[User, Depends(require_account)],
) -> ProjectMutationResponse:
    """Refresh a tracked repository's metrics from GitHub."""
    project = await refresh_project(session, gateway, user.id, project_id)
    return ProjectMutationResponse(
        message="Project updated successfully",
        project=ProjectResponse.from_model(project),
    )


@router.delete("/{project_id}", response_model=MessageResponse)
async def delete_project_endpoint(
    project_id: ProjectId,
    session: Annotated[AsyncSession, Depends(get_session)],
    user: Annotated[User, Depends(require_account)],
) -> MessageResponse:
    """Stop tracking a repository."""
    await delete_project(session, user.id, project_id)
    return MessageResponse(message="Project deleted successfully")
