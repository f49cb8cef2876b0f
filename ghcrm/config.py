"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """GitHub CRM application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    secret_key: str = ""
    debug: bool = False
    expose_docs: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///data/db/ghcrm.db"
    database_pool_size: int = Field(default=20, ge=1)
    database_pool_timeout: float = Field(default=2.0, gt=0)
    database_pool_recycle_seconds: int = Field(default=30, ge=1)

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)

    # CORS
    cors_origins: list[str] = Field(default_factory=list)
    trusted_hosts: list[str] = Field(default_factory=list)

    # Auth
    token_expire_seconds: int = Field(default=604800, ge=1)

    # GitHub
    github_api_url: str = "https://api.github.com"
    github_token: str = ""
    github_timeout_seconds: float = Field(default=10.0, gt=0)

    # Response hardening
    security_headers_enabled: bool = True
    content_security_policy: str = "default-src 'none'; frame-ancestors 'none'"

    def validate_runtime_security(self) -> None:
        """Validate security-critical production settings."""
        if self.debug:
            return

        violations: list[str] = []
        if len(self.secret_key) < 32:
            violations.append("SECRET_KEY must be set to a high-entropy value (>=32 chars)")
        if not self.trusted_hosts:
            violations.append("TRUSTED_HOSTS must be configured in production")

        if violations:
            joined = "; ".join(violations)
            raise ValueError(f"Insecure production configuration: {joined}")
