"""Application-level exception types.

Convention:
- ``CRMError`` subclasses carry an HTTP status and a message that is safe to
  forward to clients. The global handler in ``ghcrm/main.py`` renders them as
  ``{"error": message, "details": [...]}``.
- ``InternalServerError``: for errors whose details must never reach clients
  (configuration problems, infrastructure failures, etc.). The global handler
  logs the full message at ERROR and returns a generic
  "Internal server error" (500) to the client.
- ``GatewayError`` keeps its diagnostic text for the logs and exposes only a
  generic ``public_message``.
"""

from __future__ import annotations


class CRMError(Exception):
    """Base class for errors with a client-safe message and HTTP status."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, details: list[str] | None = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    @property
    def public_message(self) -> str:
        return self.message


class InputValidationError(CRMError):
    """Malformed client input."""

    status_code = 400
    default_message = "Validation failed"


class InvalidRepositoryPathError(InputValidationError):
    """Repository path is not of the form ``owner/repository``."""


class AuthError(CRMError):
    """Missing, invalid or expired credentials."""

    status_code = 401
    default_message = "Authentication required"


class NotFoundError(CRMError):
    """Missing resource, or one owned by a different account."""

    status_code = 404
    default_message = "Not found"


class ConflictError(CRMError):
    """Uniqueness violation."""

    status_code = 409
    default_message = "Resource already exists"


class RateLimitedError(CRMError):
    """GitHub refused the request because of rate limiting."""

    status_code = 429
    default_message = "GitHub API rate limit exceeded. Please try again later."


class UpstreamUnavailableError(CRMError):
    """GitHub answered with a server error."""

    status_code = 500
    default_message = "GitHub API is currently unavailable. Please try again later."


class GatewayError(CRMError):
    """Any other failure talking to GitHub.

    ``message`` holds diagnostics (transport error, unexpected status, bad
    payload) and is only logged. Upstream 4xx rejections map to 400, transport
    and payload failures to 500.
    """

    default_message = "GitHub API request failed"

    def __init__(self, message: str, status_code: int = 500) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def public_message(self) -> str:
        if self.status_code == 400:
            return "GitHub API rejected the request"
        return "Failed to fetch repository data"


class InternalServerError(Exception):
    """Raised for internal errors whose details must not be exposed to clients.

    The global exception handler in ``ghcrm/main.py`` catches this, logs
    the full message server-side, and returns HTTP 500 with a generic
    ``"Internal server error"`` detail.
    """
