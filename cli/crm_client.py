"""Command-line client for the GitHub CRM API."""

from __future__ import annotations

import argparse
import getpass
import json
import sys
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

try:
    import httpx
except ImportError:
    print("Error: httpx is required. Install with: pip install httpx")
    sys.exit(1)

DEFAULT_SESSION_FILE = Path.home() / ".ghcrm-session.json"
DEFAULT_SERVER_URL = "http://localhost:8000"
_LOCALHOST_HOSTS = {"localhost", "127.0.0.1", "::1"}


class CRMClientError(Exception):
    """Error response from the CRM server."""

    def __init__(self, status_code: int, error: str, details: list[str] | None = None) -> None:
        self.status_code = status_code
        self.error = error
        self.details = details or []
        super().__init__(f"{error} ({status_code})")


@dataclass
class CRMSession:
    """Server URL and bearer token for the current user, persisted as JSON."""

    server: str = DEFAULT_SERVER_URL
    token: str | None = None
    email: str | None = None

    def set_token(self, token: str, email: str | None = None) -> None:
        self.token = token
        self.email = email

    def clear(self) -> None:
        self.token = None
        self.email = None

    @property
    def authenticated(self) -> bool:
        return self.token is not None

    @classmethod
    def load(cls, path: Path) -> CRMSession:
        """Load a session file; a missing file yields an empty session."""
        if not path.exists():
            return cls()
        data: dict[str, Any] = json.loads(path.read_text())
        return cls(
            server=data.get("server") or DEFAULT_SERVER_URL,
            token=data.get("token"),
            email=data.get("email"),
        )

    def save(self, path: Path) -> None:
        path.write_text(json.dumps(asdict(self), indent=2))
        path.chmod(0o600)


def validate_server_url(server_url: str, allow_insecure_http: bool = False) -> str:
    """Validate server URL and enforce HTTPS for non-localhost hosts by default."""
    normalized = server_url.strip().rstrip("/")
    parsed = urlparse(normalized)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError("Server URL must include scheme and host (e.g. https://example.com)")

    hostname = parsed.hostname
    if parsed.scheme == "http" and not allow_insecure_http and hostname not in _LOCALHOST_HOSTS:
        raise ValueError(
            "HTTPS is required for non-localhost servers. "
            "Use --allow-insecure-http only on trusted networks."
        )

    return normalized


class CRMClient:
    """Thin client over the CRM HTTP API.

    The bearer token comes from the session object; login and register store
    the returned token on it, logout clears it.
    """

    def __init__(
        self,
        session: CRMSession,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.session = session
        self.client = httpx.Client(
            base_url=session.server.rstrip("/"),
            timeout=30.0,
            transport=transport,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self) -> CRMClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _headers(self) -> dict[str, str]:
        if self.session.token is None:
            return {}
        return {"Authorization": f"Bearer {self.session.token}"}

    def _request(self, method: str, url: str, json_body: Any = None) -> dict[str, Any]:
        try:
            resp = self.client.request(method, url, json=json_body, headers=self._headers())
        except httpx.HTTPError as exc:
            raise CRMClientError(0, f"Network error: {exc}") from exc
        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        if resp.status_code >= 400:
            raise CRMClientError(
                resp.status_code,
                str(data.get("error") or "An error occurred"),
                data.get("details"),
            )
        return data

    def register(self, email: str, password: str) -> dict[str, Any]:
        data = self._request("POST", "/api/auth/register", {"email": email, "password": password})
        self.session.set_token(data["token"], data["user"]["email"])
        return data

    def login(self, email: str, password: str) -> dict[str, Any]:
        data = self._request("POST", "/api/auth/login", {"email": email, "password": password})
        self.session.set_token(data["token"], data["user"]["email"])
        return data

    def logout(self) -> None:
        """Forget the token locally; tokens are stateless so the server is not called."""
        self.session.clear()

    def me(self) -> dict[str, Any]:
        user: dict[str, Any] = self._request("GET", "/api/auth/me")["user"]
        return user

    def list_projects(self) -> list[dict[str, Any]]:
        projects: list[dict[str, Any]] = self._request("GET", "/api/projects")["projects"]
        return projects

    def get_project(self, project_id: int) -> dict[str, Any]:
        project: dict[str, Any] = self._request("GET", f"/api/projects/{project_id}")["project"]
        return project

    def add_project(self, repository_path: str) -> dict[str, Any]:
        project: dict[str, Any] = self._request(
            "POST", "/api/projects", {"repositoryPath": repository_path}
        )["project"]
        return project

    def refresh_project(self, project_id: int) -> dict[str, Any]:
        project: dict[str, Any] = self._request("PUT", f"/api/projects/{project_id}")["project"]
        return project

    def delete_project(self, project_id: int) -> str:
        message: str = self._request("DELETE", f"/api/projects/{project_id}")["message"]
        return message


def format_project(project: dict[str, Any]) -> str:
    """One-line summary of a project."""
    created = datetime.fromtimestamp(project["created_at_unix"], tz=UTC).date().isoformat()
    return (
        f"[{project['id']}] {project['owner']}/{project['name']}  "
        f"stars={project['stars']} forks={project['forks']} "
        f"issues={project['open_issues']}  created={created}  {project['url']}"
    )


def _print_error(exc: CRMClientError) -> None:
    print(f"Error: {exc.error}")
    for detail in exc.details:
        print(f"  - {detail}")


def _prompt_credentials(args: argparse.Namespace) -> tuple[str, str]:
    email = args.email or input("Email: ")
    password = getpass.getpass("Password: ")
    return email, password


def run_command(client: CRMClient, args: argparse.Namespace) -> None:
    """Execute one subcommand against the server."""
    if args.command == "register":
        email, password = _prompt_credentials(args)
        data = client.register(email, password)
        print(f"Registered and logged in as {data['user']['email']}")
    elif args.command == "login":
        email, password = _prompt_credentials(args)
        data = client.login(email, password)
        print(f"Logged in as {data['user']['email']}")
    elif args.command == "logout":
        client.logout()
        print("Logged out")
    elif args.command == "whoami":
        user = client.me()
        print(f"{user['email']} (id {user['id']})")
    elif args.command == "list":
        projects = client.list_projects()
        for project in projects:
            print(format_project(project))
        print(f"{len(projects)} project(s)")
    elif args.command == "add":
        print(format_project(client.add_project(args.repository)))
    elif args.command == "show":
        print(format_project(client.get_project(args.id)))
    elif args.command == "refresh":
        print(format_project(client.refresh_project(args.id)))
    elif args.command == "delete":
        print(client.delete_project(args.id))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ghcrm-cli",
        description="Track GitHub repositories in a GitHub CRM server",
    )
    parser.add_argument("--server", "-s", help="Server URL (saved in the session file)")
    parser.add_argument(
        "--session-file",
        type=Path,
        default=DEFAULT_SESSION_FILE,
        help=f"Session file (default: {DEFAULT_SESSION_FILE})",
    )
    parser.add_argument(
        "--allow-insecure-http",
        action="store_true",
        help="Allow http:// server URLs for non-localhost hosts",
    )

    subparsers = parser.add_subparsers(dest="command")
    for name, help_text in (("register", "Create an account"), ("login", "Log in")):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--email", "-e", help="Account email")
    subparsers.add_parser("logout", help="Forget the stored token")
    subparsers.add_parser("whoami", help="Show the logged-in account")
    subparsers.add_parser("list", help="List tracked repositories")
    add = subparsers.add_parser("add", help="Track a repository")
    add.add_argument("repository", help="Repository path, e.g. octocat/Hello-World")
    for name, help_text in (
        ("show", "Show a tracked repository"),
        ("refresh", "Refresh metrics from GitHub"),
        ("delete", "Stop tracking a repository"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("id", type=int, help="Project ID")
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return

    session = CRMSession.load(args.session_file)
    try:
        session.server = validate_server_url(
            args.server or session.server, args.allow_insecure_http
        )
    except ValueError as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    with CRMClient(session) as client:
        try:
            run_command(client, args)
        except CRMClientError as exc:
            _print_error(exc)
            if exc.status_code == 401:
                session.clear()
                session.save(args.session_file)
            sys.exit(1)
    session.save(args.session_file)


if __name__ == "__main__":
    main()
