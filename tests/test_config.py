"""Unit tests for core/config.py -- SESSION_SECRET policy and edge settings.

Settings are constructed directly (not through get_settings()) so the cached
singleton used by the app is never disturbed.
"""

import pytest

from core.config import EdgeSettings, Settings


class TestSessionSecretPolicy:
    def test_debug_generates_secret(self) -> None:
        settings = Settings(debug=True, session_secret="")
        assert len(settings.session_secret) >= 32
        assert settings.is_production is False

    def test_production_requires_secret(self) -> None:
        # ConfigurationError is a ValueError; pydantic reports it as a ValidationError.
        with pytest.raises(ValueError, match="SESSION_SECRET"):
            Settings(debug=False, session_secret="")

    @pytest.mark.parametrize("debug", [True, False])
    def test_short_secret_rejected(self, debug: bool) -> None:
        with pytest.raises(ValueError, match="at least 32"):
            Settings(debug=debug, session_secret="too-short")

    def test_production_with_secret(self) -> None:
        settings = Settings(debug=False, session_secret="p" * 32)
        assert settings.is_production is True


class TestDefaults:
    def test_backend_defaults(self) -> None:
        settings = Settings(debug=True)
        assert settings.login_rate_limit == "10/minute"
        assert settings.session_expire_seconds == 86400

    def test_edge_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("API_URL", "PROXY_MAX_BODY_BYTES", "PROXY_TIMEOUT_SECONDS"):
            monkeypatch.delenv(name, raising=False)
        settings = EdgeSettings()
        assert settings.api_url == ""
        assert settings.proxy_max_body_bytes == 10 * 1024 * 1024
        assert settings.proxy_timeout_seconds == 30.0

    def test_edge_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("API_URL", "http://api:8000")
        monkeypatch.setenv("PROXY_TIMEOUT_SECONDS", "2.5")
        settings = EdgeSettings()
        assert settings.api_url == "http://api:8000"
        assert settings.proxy_timeout_seconds == 2.5
