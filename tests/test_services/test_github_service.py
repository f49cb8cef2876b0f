"""Tests for the GitHub gateway: path parsing, fetch outcome mapping, snapshot mapping."""

from __future__ import annotations

import httpx
import pytest

from ghcrm.exceptions import (
    GatewayError,
    InvalidRepositoryPathError,
    RateLimitedError,
    UpstreamUnavailableError,
)
from ghcrm.services.github_service import (
    USER_AGENT,
    GitHubGateway,
    RepositoryMetrics,
    parse_repository_path,
    to_snapshot,
)
from tests._github_helpers import FakeGitHub, repo_payload


class TestParseRepositoryPath:
    def test_simple_path(self) -> None:
        assert parse_repository_path("octocat/Hello-World") == ("octocat", "Hello-World")

    def test_strips_whitespace_and_slashes(self) -> None:
        assert parse_repository_path("  /facebook/react/ ") == ("facebook", "react")

    def test_allows_dots_underscores_hyphens(self) -> None:
        assert parse_repository_path("my.org_1/repo-name.js") == ("my.org_1", "repo-name.js")

    @pytest.mark.parametrize(
        "path",
        ["octocat", "", "   ", "/", "a/b/c", "https://github.com/a/b"],
    )
    def test_wrong_number_of_parts(self, path: str) -> None:
        with pytest.raises(InvalidRepositoryPathError, match="Expected format"):
            parse_repository_path(path)

    @pytest.mark.parametrize("path", ["owner//", "a//b"])
    def test_empty_parts(self, path: str) -> None:
        with pytest.raises(InvalidRepositoryPathError):
            parse_repository_path(path)

    @pytest.mark.parametrize("path", ["own er/repo", "owner/re$po", "owner/répo", "o:wner/repo"])
    def test_disallowed_characters(self, path: str) -> None:
        with pytest.raises(InvalidRepositoryPathError, match="can only contain"):
            parse_repository_path(path)

    def test_error_is_a_validation_error_with_details(self) -> None:
        with pytest.raises(InvalidRepositoryPathError) as exc_info:
            parse_repository_path("nope")
        assert exc_info.value.status_code == 400
        assert exc_info.value.details == [exc_info.value.message]


class TestToSnapshot:
    def test_maps_fields(self) -> None:
        metrics = RepositoryMetrics.model_validate(
            repo_payload(owner="Octocat", name="Hello-World", stars=5, forks=3, open_issues=2)
        )
        snapshot = to_snapshot(metrics)
        assert snapshot.owner == "Octocat"
        assert snapshot.name == "Hello-World"
        assert snapshot.url == "https://github.com/Octocat/Hello-World"
        assert (snapshot.stars, snapshot.forks, snapshot.open_issues) == (5, 3, 2)

    def test_created_at_converted_to_epoch_seconds(self) -> None:
        metrics = RepositoryMetrics.model_validate(repo_payload(created_at="2011-01-26T19:01:12Z"))
        assert to_snapshot(metrics).created_at_unix == 1296068472

    def test_created_at_with_offset(self) -> None:
        metrics = RepositoryMetrics.model_validate(
            repo_payload(created_at="2011-01-26T21:01:12+02:00")
        )
        assert to_snapshot(metrics).created_at_unix == 1296068472

    def test_fractional_seconds_floor(self) -> None:
        metrics = RepositoryMetrics.model_validate(
            repo_payload(created_at="2011-01-26T19:01:12.999Z")
        )
        assert to_snapshot(metrics).created_at_unix == 1296068472


class TestFetchRepository:
    @pytest.mark.asyncio
    async def test_success(self) -> None:
        github = FakeGitHub()
        github.add_repo(stars=42)
        gateway = github.gateway()
        try:
            metrics = await gateway.fetch_repository("octocat", "Hello-World")
        finally:
            await gateway.aclose()
        assert metrics is not None
        assert metrics.stargazers_count == 42
        request = github.requests[0]
        assert request.url.path == "/repos/octocat/Hello-World"
        assert request.headers["User-Agent"] == USER_AGENT
        assert request.headers["Accept"] == "application/vnd.github.v3+json"
        assert "Authorization" not in request.headers

    @pytest.mark.asyncio
    async def test_not_found_returns_none(self) -> None:
        gateway = FakeGitHub().gateway()
        try:
            assert await gateway.fetch_repository("ghost", "missing") is None
        finally:
            await gateway.aclose()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status_code", "expected"),
        [
            (403, RateLimitedError),
            (429, RateLimitedError),
            (500, UpstreamUnavailableError),
            (502, UpstreamUnavailableError),
            (503, UpstreamUnavailableError),
        ],
    )
    async def test_status_mapping(self, status_code: int, expected: type[Exception]) -> None:
        github = FakeGitHub()
        github.status_overrides["/repos/octocat/Hello-World"] = status_code
        gateway = github.gateway()
        try:
            with pytest.raises(expected):
                await gateway.fetch_repository("octocat", "Hello-World")
        finally:
            await gateway.aclose()

    @pytest.mark.asyncio
    async def test_other_client_error_is_gateway_error_400(self) -> None:
        github = FakeGitHub()
        github.status_overrides["/repos/octocat/Hello-World"] = 451
        gateway = github.gateway()
        try:
            with pytest.raises(GatewayError) as exc_info:
                await gateway.fetch_repository("octocat", "Hello-World")
        finally:
            await gateway.aclose()
        assert exc_info.value.status_code == 400
        assert "451" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_timeout_is_gateway_error(self) -> None:
        github = FakeGitHub()
        github.raise_error = httpx.ReadTimeout("timed out")
        gateway = github.gateway()
        try:
            with pytest.raises(GatewayError, match="timed out") as exc_info:
                await gateway.fetch_repository("octocat", "Hello-World")
        finally:
            await gateway.aclose()
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_connection_error_is_gateway_error(self) -> None:
        github = FakeGitHub()
        github.raise_error = httpx.ConnectError("Name or service not known")
        gateway = github.gateway()
        try:
            with pytest.raises(GatewayError, match="failed"):
                await gateway.fetch_repository("octocat", "Hello-World")
        finally:
            await gateway.aclose()

    @pytest.mark.asyncio
    async def test_non_json_body_is_gateway_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>oops</html>")

        gateway = GitHubGateway(transport=httpx.MockTransport(handler))
        try:
            with pytest.raises(GatewayError, match="Malformed"):
                await gateway.fetch_repository("octocat", "Hello-World")
        finally:
            await gateway.aclose()

    @pytest.mark.asyncio
    async def test_missing_fields_is_gateway_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"name": "Hello-World"})

        gateway = GitHubGateway(transport=httpx.MockTransport(handler))
        try:
            with pytest.raises(GatewayError, match="Malformed"):
                await gateway.fetch_repository("octocat", "Hello-World")
        finally:
            await gateway.aclose()

    @pytest.mark.asyncio
    async def test_bad_created_at_is_gateway_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=repo_payload(created_at="not a date"))

        gateway = GitHubGateway(transport=httpx.MockTransport(handler))
        try:
            with pytest.raises(GatewayError, match="Malformed"):
                await gateway.fetch_repository("octocat", "Hello-World")
        finally:
            await gateway.aclose()

    @pytest.mark.asyncio
    async def test_token_sent_as_bearer(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=repo_payload())

        gateway = GitHubGateway(token="ghp_test", transport=httpx.MockTransport(handler))
        try:
            await gateway.fetch_repository("octocat", "Hello-World")
        finally:
            await gateway.aclose()
        assert seen[0].headers["Authorization"] == "Bearer ghp_test"

    @pytest.mark.asyncio
    async def test_follows_rename_redirect(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/repos/old/name":
                return httpx.Response(
                    301, headers={"Location": "https://api.github.com/repositories/1296269"}
                )
            return httpx.Response(200, json=repo_payload(owner="new", name="name"))

        gateway = GitHubGateway(transport=httpx.MockTransport(handler))
        try:
            metrics = await gateway.fetch_repository("old", "name")
        finally:
            await gateway.aclose()
        assert metrics is not None
        assert metrics.owner.login == "new"


class TestGatewayLifecycle:
    @pytest.mark.asyncio
    async def test_is_closed_after_aclose(self) -> None:
        gateway = FakeGitHub().gateway()
        assert gateway.is_closed is False
        await gateway.aclose()
        assert gateway.is_closed is True
