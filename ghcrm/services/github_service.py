"""GitHub REST API gateway: repository path parsing, metrics fetch and mapping."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ghcrm.exceptions import (
    GatewayError,
    InvalidRepositoryPathError,
    RateLimitedError,
    UpstreamUnavailableError,
)
from ghcrm.services.datetime_service import parse_datetime, to_unix_seconds

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT_SECONDS = 10.0
USER_AGENT = "GitHub-CRM-System"

_PATH_SEGMENT_RE = re.compile(r"[A-Za-z0-9._-]+")


def parse_repository_path(path: str) -> tuple[str, str]:
    """Split ``owner/repository`` into its two parts.

    Surrounding whitespace and leading/trailing slashes are ignored. Both parts
    must be non-empty and contain only letters, digits, ``.``, ``_`` and ``-``.
    """
    clean = path.strip().strip("/")
    parts = clean.split("/")
    if len(parts) != 2:
        msg = "Invalid repository path. Expected format: owner/repository"
        raise InvalidRepositoryPathError(msg, details=[msg])

    owner, name = parts
    if not owner or not name:
        msg = "Invalid repository path. Owner and repository name cannot be empty."
        raise InvalidRepositoryPathError(msg, details=[msg])

    if not _PATH_SEGMENT_RE.fullmatch(owner) or not _PATH_SEGMENT_RE.fullmatch(name):
        msg = (
            "Invalid repository path. Owner and repository name can only contain "
            "letters, numbers, dots, underscores, and hyphens."
        )
        raise InvalidRepositoryPathError(msg, details=[msg])

    return owner, name


class RepositoryOwner(BaseModel):
    model_config = ConfigDict(extra="ignore")

    login: str


class RepositoryMetrics(BaseModel):
    """Subset of the GitHub ``GET /repos/{owner}/{repo}`` payload we rely on."""

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    full_name: str
    html_url: str
    stargazers_count: int = Field(ge=0)
    forks_count: int = Field(ge=0)
    open_issues_count: int = Field(ge=0)
    created_at: str
    owner: RepositoryOwner

    @field_validator("created_at")
    @classmethod
    def _check_created_at(cls, value: str) -> str:
        parse_datetime(value)
        return value


@dataclass(frozen=True)
class RepositorySnapshot:
    """Repository metrics in the shape stored on a project row."""

    owner: str
    name: str
    url: str
    stars: int
    forks: int
    open_issues: int
    created_at_unix: int


def to_snapshot(metrics: RepositoryMetrics) -> RepositorySnapshot:
    """Map GitHub metrics to the stored snapshot shape.

    The owner is GitHub's canonical login, which may differ in case from the
    path the user typed.
    """
    return RepositorySnapshot(
        owner=metrics.owner.login,
        name=metrics.name,
        url=metrics.html_url,
        stars=metrics.stargazers_count,
        forks=metrics.forks_count,
        open_issues=metrics.open_issues_count,
        created_at_unix=to_unix_seconds(metrics.created_at),
    )


class GitHubGateway:
    """Client for repository lookups against the GitHub REST API."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        token: str = "",
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": USER_AGENT,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    @property
    def is_closed(self) -> bool:
        return self.client.is_closed

    async def fetch_repository(self, owner: str, name: str) -> RepositoryMetrics | None:
        """Fetch current metrics for ``owner/name``.

        Returns None when GitHub reports the repository does not exist.
        Raises RateLimitedError on 403/429, UpstreamUnavailableError on 5xx and
        GatewayError for every other failure.
        """
        full_name = f"{owner}/{name}"
        try:
            resp = await self.client.get(f"/repos/{owner}/{name}")
        except httpx.TimeoutException as exc:
            logger.warning("GitHub request for %s timed out", full_name)
            raise GatewayError(f"GitHub request for {full_name} timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            logger.warning("GitHub request for %s failed: %s", full_name, exc)
            raise GatewayError(f"GitHub request for {full_name} failed: {exc}") from exc

        status_code = resp.status_code
        if status_code == 404:
            return None
        if status_code in (403, 429):
            logger.warning("GitHub rate limit hit fetching %s (status %d)", full_name, status_code)
            raise RateLimitedError
        if status_code >= 500:
            logger.warning("GitHub unavailable fetching %s (status %d)", full_name, status_code)
            raise UpstreamUnavailableError
        if not resp.is_success:
            msg = f"GitHub API error for {full_name}: {status_code} {resp.reason_phrase}"
            raise GatewayError(msg, status_code=400 if 400 <= status_code < 500 else 500)

        try:
            return RepositoryMetrics.model_validate(resp.json())
        except ValueError as exc:
            msg = f"Malformed GitHub response for {full_name}: {exc}"
            raise GatewayError(msg) from exc
