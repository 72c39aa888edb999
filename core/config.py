"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Pennant happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() (API
process) or EdgeSettings (edge process) instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. session_secret -> SESSION_SECRET). Type coercion and validation are
      built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Implements the DEBUG-conditional
      SESSION_SECRET policy: dev mode generates a secret with a warning,
      production mode refuses to start without one.

  EdgeSettings is NOT cached. The edge process constructs it per request so
  API_URL can be injected by the deployment environment without a rebuild
  or restart.

Runtime mode:
  DEBUG=true is development mode. Anything else (including unset) is
  production mode -- production is the safe default.

Layer rule: core/ is the kernel. This module may not import from api/, edge/,
auth/, or flags/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.errors import ConfigurationError

logger = logging.getLogger("pennant.config")

_MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Backend API settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev secret or raises, so callers never see "".
    session_secret: str = ""
    database_url: str = ""

    # ------------------------------------------------------------------
    # Admin identity (single operator, sourced from configuration)
    # ------------------------------------------------------------------

    admin_email: str = ""
    admin_password: str = ""
    admin_password_hash: str = ""

    # ------------------------------------------------------------------
    # Session cookie
    # ------------------------------------------------------------------

    session_expire_seconds: int = 24 * 60 * 60

    # ------------------------------------------------------------------
    # HTTP surface
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["*"]
    cors_origins: list[str] = ["http://localhost:3000"]

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"

    @property
    def is_production(self) -> bool:
        return not self.debug

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_session_secret(self) -> "Settings":
        """Enforce the SESSION_SECRET policy.

        Dev mode (DEBUG=true): auto-generate a random secret with a warning.
            Sessions will not survive restart -- acceptable for local dev.

        Production mode: refuse to start if SESSION_SECRET is missing. The
            session encryption key is derived from it; a random fallback would
            silently log every operator out on each restart.

        Both modes: reject secrets shorter than 32 characters.
        """
        if not self.session_secret:
            if self.debug:
                self.session_secret = secrets.token_hex(32)
                logger.warning("Using auto-generated SESSION_SECRET. Sessions will not persist across restarts.")
            else:
                raise ConfigurationError(
                    "SESSION_SECRET is required in production mode. "
                    "Set SESSION_SECRET in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.session_secret) < _MIN_SECRET_LENGTH:
            raise ConfigurationError(f"SESSION_SECRET must be at least {_MIN_SECRET_LENGTH} characters.")
        return self


class EdgeSettings(BaseSettings):
    """Settings for the browser-facing edge process.

    Only the forwarding knobs live here so the edge can start without any of
    the backend's secrets. An empty api_url is a request-time "not configured"
    outcome, never a startup crash.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = False
    api_url: str = ""
    proxy_max_body_bytes: int = 10 * 1024 * 1024
    # Matches a typical load-balancer timeout.
    proxy_timeout_seconds: float = 30.0


@lru_cache
def get_settings() -> Settings:
    """Return the backend Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    All modules should call get_settings() rather than constructing Settings()
    directly.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
