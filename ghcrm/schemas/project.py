"""Project schemas."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ghcrm.exceptions import InvalidRepositoryPathError
from ghcrm.services.github_service import parse_repository_path

if TYPE_CHECKING:
    from ghcrm.models.project import Project


class AddProjectRequest(BaseModel):
    """Request to start tracking a GitHub repository."""

    model_config = ConfigDict(populate_by_name=True)

    repository_path: str = Field(
        alias="repositoryPath",
        min_length=1,
        max_length=512,
        description="Repository path in the form owner/repository",
    )

    @field_validator("repository_path")
    @classmethod
    def _check_repository_path(cls, value: str) -> str:
        try:
            parse_repository_path(value)
        except InvalidRepositoryPathError as exc:
            raise ValueError(exc.message) from exc
        return value


class ProjectResponse(BaseModel):
    """Stored repository snapshot."""

    id: int
    user_id: int
    owner: str
    name: str
    url: str
    stars: int
    forks: int
    open_issues: int
    created_at_unix: int
    created_at: str
    updated_at: str

    @classmethod
    def from_model(cls, project: Project) -> ProjectResponse:
        return cls(
            id=project.id,
            user_id=project.user_id,
            owner=project.owner,
            name=project.name,
            url=project.url,
            stars=project.stars,
            forks=project.forks,
            open_issues=project.open_issues,
            created_at_unix=project.created_at_unix,
            created_at=project.created_at,
            updated_at=project.updated_at,
        )


class ProjectEnvelope(BaseModel):
    project: ProjectResponse


class ProjectMutationResponse(BaseModel):
    message: str
    project: ProjectResponse


class ProjectListResponse(BaseModel):
    projects: list[ProjectResponse]
    count: int


class MessageResponse(BaseModel):
    message: str
