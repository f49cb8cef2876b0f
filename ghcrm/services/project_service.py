"""Project service: tracks GitHub repositories per user and keeps their metrics current."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ghcrm.exceptions import ConflictError, NotFoundError
from ghcrm.models.project import Project
from ghcrm.services.datetime_service import format_iso, now_utc, parse_datetime
from ghcrm.services.github_service import parse_repository_path, to_snapshot

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from ghcrm.services.github_service import GitHubGateway

logger = logging.getLogger(__name__)

# Columns a metrics refresh is allowed to overwrite. Identity columns
# (owner, name, url, created_at_unix) stay pinned to the values captured on add.
UPDATABLE_METRIC_FIELDS = frozenset({"stars", "forks", "open_issues"})


@dataclass(frozen=True)
class MetricsUpdate:
    """Optional metric values to overwrite on a project."""

    stars: int | None = None
    forks: int | None = None
    open_issues: int | None = None

    def changes(self) -> dict[str, int]:
        """Return the set fields, restricted to the allow-list."""
        values: dict[str, int] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None and f.name in UPDATABLE_METRIC_FIELDS:
                values[f.name] = value
        return values


async def list_projects(session: AsyncSession, user_id: int) -> list[Project]:
    """List a user's projects, most recently added first."""
    stmt = (
        select(Project)
        .where(Project.user_id == user_id)
        .order_by(Project.created_at.desc(), Project.id.desc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def find_project(session: AsyncSession, user_id: int, project_id: int) -> Project | None:
    """Return the project if it exists and belongs to the user."""
    stmt = select(Project).where(Project.id == project_id, Project.user_id == user_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_project(session: AsyncSession, user_id: int, project_id: int) -> Project:
    """Return the user's project or raise NotFoundError."""
    project = await find_project(session, user_id, project_id)
    if project is None:
        raise NotFoundError("Project not found")
    return project


async def project_exists(session: AsyncSession, user_id: int, owner: str, name: str) -> bool:
    """Check whether the user already tracks ``owner/name``."""
    stmt = select(Project.id).where(
        Project.user_id == user_id,
        Project.owner == owner,
        Project.name == name,
    )
    result = await session.execute(stmt)
    return result.first() is not None


async def add_project(
    session: AsyncSession,
    gateway: GitHubGateway,
    user_id: int,
    repository_path: str,
) -> Project:
    """Start tracking a GitHub repository for a user.

    Parses the path, rejects repositories the user already tracks, fetches
    the current metrics and stores a new snapshot. The unique constraint on
    (user_id, owner, name) catches concurrent adds that both pass the
    existence check; the loser gets ConflictError.
    """
    owner, name = parse_repository_path(repository_path)

    if await project_exists(session, user_id, owner, name):
        raise ConflictError("Project already exists in your list")

    metrics = await gateway.fetch_repository(owner, name)
    if metrics is None:
        raise NotFoundError(f"Repository '{owner}/{name}' not found on GitHub")

    snapshot = to_snapshot(metrics)
    now = format_iso(now_utc())
    project = Project(
        user_id=user_id,
        owner=snapshot.owner,
        name=snapshot.name,
        url=snapshot.url,
        stars=snapshot.stars,
        forks=snapshot.forks,
        open_issues=snapshot.open_issues,
        created_at_unix=snapshot.created_at_unix,
        created_at=now,
        updated_at=now,
    )
    session.add(project)
    try:
        await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        logger.info(
            "Duplicate project %s/%s for user %d rejected at insert",
            snapshot.owner,
            snapshot.name,
            user_id,
        )
        raise ConflictError("Project already exists in your list") from exc
    await session.commit()
    await session.refresh(project)
    logger.info("User %d added project %s/%s (id=%d)", user_id, owner, name, project.id)
    return project


def _next_updated_at(previous: str) -> str:
    now = now_utc()
    try:
        last = parse_datetime(previous)
    except ValueError:
        return format_iso(now)
    return format_iso(max(now, last))


async def update_project_metrics(
    session: AsyncSession,
    project: Project,
    update: MetricsUpdate,
) -> Project:
    """Overwrite allow-listed metric columns and bump ``updated_at``.

    An update with no fields set leaves the row untouched.
    Raises NotFoundError when the row was deleted concurrently.
    """
    changes = update.changes()
    if not changes:
        return project
    for field_name, value in changes.items():
        setattr(project, field_name, value)
    project_id = project.id
    project.updated_at = _next_updated_at(project.updated_at)
    try:
        await session.commit()
    except StaleDataError as exc:
        await session.rollback()
        logger.info("Project %d was deleted before its metrics update landed", project_id)
        raise NotFoundError("Project not found") from exc
    await session.refresh(project)
    return project


async def refresh_project(
    session: AsyncSession,
    gateway: GitHubGateway,
    user_id: int,
    project_id: int,
) -> Project:
    """Re-fetch a project's metrics from GitHub using its stored owner/name."""
    project = await get_project(session, user_id, project_id)

    metrics = await gateway.fetch_repository(project.owner, project.name)
    if metrics is None:
        raise NotFoundError(f"Repository '{project.owner}/{project.name}' not found on GitHub")

    snapshot = to_snapshot(metrics)
    update = MetricsUpdate(
        stars=snapshot.stars,
        forks=snapshot.forks,
        open_issues=snapshot.open_issues,
    )
    return await update_project_metrics(session, project, update)


async def delete_project(session: AsyncSession, user_id: int, project_id: int) -> None:
    """Delete the user's project or raise NotFoundError."""
    stmt = delete(Project).where(Project.id == project_id, Project.user_id == user_id)
    result = await session.execute(stmt)
    if result.rowcount == 0:  # type: ignore[attr-defined]
        await session.rollback()
        raise NotFoundError("Project not found")
    await session.commit()
    logger.info("User %d deleted project %d", user_id, project_id)
