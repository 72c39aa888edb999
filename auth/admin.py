"""
auth/admin.py -- Resolve the single administrator from configuration.

Pennant has exactly one operator account per deployment. Its email and
credential come from ADMIN_EMAIL plus ADMIN_PASSWORD or ADMIN_PASSWORD_HASH
-- never from the database.

Runtime modes:
  Development (DEBUG=true): unset values fall back to fixed defaults so a
      fresh checkout can log in. The fallback is logged loudly, once per
      resolver lifetime.
  Production: missing email or missing credential is a ConfigurationError.
      The API lifespan calls resolve() at startup so this aborts boot
      instead of surfacing on the first login.

The warn-once latch belongs to the resolver instance, not the module. The
API builds one resolver in its lifespan and stores it on app.state.

Layer rule: no imports from api/, edge/, or flags/.
"""

from __future__ import annotations

import logging
from typing import Callable

from auth.models import AdminCredentials, AdminIdentity, Role
from auth.passwords import verify_password
from core.config import Settings, get_settings
from core.errors import ConfigurationError

logger = logging.getLogger("pennant.auth")

DEFAULT_ADMIN_EMAIL = "admin@pennant.local"
DEFAULT_ADMIN_PASSWORD = "pennant-admin"  # noqa: S105 # nosec B105 -- dev-only fallback


class AdminIdentityResolver:
    """Reads admin identity and credential material from Settings.

    Usage:
        resolver = AdminIdentityResolver()
        resolver.resolve()                      # fail fast at startup
        ok = resolver.verify_credentials(email, password)

    settings_factory is called on every resolve() so a configuration reload
    (get_settings.cache_clear()) is picked up without rebuilding the resolver.
    """

    def __init__(self, settings_factory: Callable[[], Settings] = get_settings) -> None:
        self._settings_factory = settings_factory
        # One-shot latch. Races between threads can at worst log twice.
        self._warned = False

    def resolve(self) -> AdminCredentials:
        settings = self._settings_factory()

        email = settings.admin_email or None
        password = settings.admin_password or None
        password_hash = settings.admin_password_hash.strip() or None

        if not settings.is_production:
            defaulted = []
            if email is None:
                email = DEFAULT_ADMIN_EMAIL
                defaulted.append("ADMIN_EMAIL")
            if password is None and password_hash is None:
                password = DEFAULT_ADMIN_PASSWORD
                defaulted.append("ADMIN_PASSWORD")
            if defaulted:
                self._warn_defaults(defaulted)

        if not email or (not password_hash and not password):
            raise ConfigurationError("ADMIN_EMAIL and ADMIN_PASSWORD or ADMIN_PASSWORD_HASH are required")

        return AdminCredentials(
            identity=AdminIdentity(user_id=email, email=email, role=Role.admin),
            password=password,
            password_hash=password_hash,
        )

    def verify_credentials(self, email: str, password: str) -> bool:
        """Return True if email/password match the configured administrator.

        The email comparison is exact and case-sensitive. A hash, when
        configured, takes precedence over a plaintext password.
        """
        creds = self.resolve()

        if email != creds.identity.email:
            return False

        if creds.password_hash:
            return verify_password(password, creds.password_hash)

        if not creds.password:
            return False

        return verify_password(password, creds.password)

    def _warn_defaults(self, names: list[str]) -> None:
        if self._warned:
            return
        self._warned = True
        logger.warning(
            "%s not set; using development fallback credentials (%s). Never run like this in production.",
            " and ".join(names),
            DEFAULT_ADMIN_EMAIL,
        )
