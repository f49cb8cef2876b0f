"""Tests for application configuration."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from ghcrm.config import Settings


class TestSettings:
    def test_default_settings(self) -> None:
        s = Settings(_env_file=None)
        assert s.secret_key == ""
        assert s.debug is False
        assert s.port == 8000
        assert s.token_expire_seconds == 604800
        assert s.github_api_url == "https://api.github.com"
        assert s.github_token == ""

    def test_custom_settings(self) -> None:
        s = Settings(
            _env_file=None,
            secret_key="my-secret",
            debug=True,
            database_url="sqlite+aiosqlite:///test.db",
            github_token="ghp_example",
        )
        assert s.secret_key == "my-secret"
        assert s.debug is True
        assert s.database_url == "sqlite+aiosqlite:///test.db"
        assert s.github_token == "ghp_example"

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SECRET_KEY", "from-env")
        monkeypatch.setenv("TOKEN_EXPIRE_SECONDS", "60")
        monkeypatch.setenv("GITHUB_TIMEOUT_SECONDS", "2.5")
        s = Settings(_env_file=None)
        assert s.secret_key == "from-env"
        assert s.token_expire_seconds == 60
        assert s.github_timeout_seconds == 2.5

    def test_settings_from_fixture(self, test_settings: Settings) -> None:
        assert test_settings.secret_key == "test-secret-key-with-at-least-32-characters"
        assert test_settings.debug is True
        assert test_settings.database_url.endswith("test.db")


class TestRuntimeSecurity:
    def test_debug_skips_checks(self) -> None:
        Settings(_env_file=None, debug=True).validate_runtime_security()

    def test_short_secret_rejected(self) -> None:
        s = Settings(_env_file=None, secret_key="short", trusted_hosts=["crm.example.com"])
        with pytest.raises(ValueError, match="SECRET_KEY"):
            s.validate_runtime_security()

    def test_missing_trusted_hosts_rejected(self) -> None:
        s = Settings(_env_file=None, secret_key="x" * 32)
        with pytest.raises(ValueError, match="TRUSTED_HOSTS"):
            s.validate_runtime_security()

    def test_production_configuration_accepted(self) -> None:
        s = Settings(_env_file=None, secret_key="x" * 32, trusted_hosts=["crm.example.com"])
        s.validate_runtime_security()


class TestCliEntry:
    def test_cli_entry_uses_app_settings(self) -> None:
        """cli_entry() should use the global app's settings, not create a new Settings()."""
        from ghcrm.main import app, cli_entry

        original_settings = getattr(app.state, "settings", None)
        app.state.settings = Settings(_env_file=None, host="127.0.0.1", port=9999, debug=True)

        try:
            with patch("uvicorn.run") as mock_run:
                cli_entry()

            mock_run.assert_called_once_with(
                "ghcrm.main:app",
                host="127.0.0.1",
                port=9999,
                reload=True,
            )
        finally:
            if original_settings is None:
                del app.state.settings
            else:
                app.state.settings = original_settings
