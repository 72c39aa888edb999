"""
auth/session.py -- Encrypted admin session cookie.

Security design decisions:
  Encryption, not just signing: the cookie is a JWE compact token
       (python-jose, alg "dir", enc "A256GCM"). The client holds it but can
       neither read nor forge the claims -- any tampering fails the GCM tag
       check and decode_session() returns None.

  Key derivation: the 32-byte AES key is SHA-256(SESSION_SECRET). The raw
       secret is never used as the key directly, and rotating the secret is
       the only step needed to rotate the key.

  No server-side session table: the cookie is the source of truth.
       Invalidation paths are (a) the client deleting the cookie (logout),
       (b) the embedded exp claim passing, (c) rotating SESSION_SECRET.

  Fail closed: any decode error, missing claim, or expired session is
       "unauthenticated". A role claim other than admin is "forbidden" --
       the claim is client-held, so the role check stays explicit even
       though admin is the only role today.

  Cookie flags: httponly and samesite="lax" always; secure whenever the
       process runs in production mode.

Layer rule: no imports from api/, edge/, or flags/.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from typing import Any

from jose import jwe
from jose.constants import ALGORITHMS
from jose.exceptions import JOSEError

from auth.models import AdminIdentity, Role
from core.errors import AuthenticationError, AuthorizationError

logger = logging.getLogger("pennant.auth")

SESSION_COOKIE_NAME = "pennant_session"


def derive_session_key(secret: str) -> bytes:
    """Return the AES-256 key for the session cookie: SHA-256 of the secret."""
    return hashlib.sha256(secret.encode("utf-8")).digest()


def encode_session(claims: dict[str, Any], key: bytes) -> str:
    """Encrypt a claims dict into a JWE compact token."""
    plaintext = json.dumps(claims, separators=(",", ":")).encode("utf-8")
    token = jwe.encrypt(plaintext, key, algorithm=ALGORITHMS.DIR, encryption=ALGORITHMS.A256GCM)
    return token.decode("ascii") if isinstance(token, bytes) else token


def decode_session(token: str, key: bytes) -> dict[str, Any] | None:
    """Decrypt a session token. Returns the claims dict or None on any failure.

    Returning None (rather than raising) keeps the caller simple: anything
    that is not a well-formed, unexpired session is treated as no session.
    """
    try:
        plaintext = jwe.decrypt(token, key)
        claims = json.loads(plaintext)
    except (JOSEError, ValueError, TypeError):
        return None
    if not isinstance(claims, dict):
        return None
    exp = claims.get("exp")
    if exp is not None and (not isinstance(exp, (int, float)) or exp <= time.time()):
        return None
    return claims


def session_cookie_options(production: bool) -> dict[str, Any]:
    """Cookie attributes for the session cookie.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POST (CSRF mitigation).
    secure: HTTPS-only in production.
    """
    return {
        "httponly": True,
        "samesite": "lax",
        "secure": production,
        "path": "/",
    }


class AdminSessions:
    """Issue, validate and clear the admin session cookie.

    Built once in the API lifespan from Settings and stored on
    app.state.sessions. The derived key is read-only for the process
    lifetime.
    """

    def __init__(self, secret: str, production: bool, expire_seconds: int) -> None:
        self._key = derive_session_key(secret)
        self.production = production
        self.expire_seconds = expire_seconds

    def __repr__(self) -> str:
        return f"AdminSessions(production={self.production})"

    def issue(self, response, identity: AdminIdentity) -> str:
        """Write a fresh session cookie for identity onto the response."""
        claims = {
            "userId": identity.user_id,
            "role": identity.role.value,
            "exp": int(time.time()) + self.expire_seconds,
        }
        token = encode_session(claims, self._key)
        response.set_cookie(
            SESSION_COOKIE_NAME,
            value=token,
            max_age=self.expire_seconds,
            **session_cookie_options(self.production),
        )
        return token

    def authenticate(self, cookie_value: str | None) -> AdminIdentity:
        """Resolve a cookie value to the admin identity.

        Raises AuthenticationError when the cookie is absent, undecryptable,
        expired or missing a claim; AuthorizationError when the role claim is
        anything but admin.
        """
        if not cookie_value:
            raise AuthenticationError("session cookie missing")

        claims = decode_session(cookie_value, self._key)
        if claims is None:
            raise AuthenticationError("session cookie invalid or expired")

        user_id = claims.get("userId")
        role = claims.get("role")
        if not user_id or not role:
            raise AuthenticationError("session cookie missing claims")

        try:
            parsed_role = Role(role)
        except ValueError:
            parsed_role = None
        if parsed_role is not Role.admin:
            raise AuthorizationError(f"session role {role!r} is not admin")

        return AdminIdentity(user_id=str(user_id), email=str(user_id), role=parsed_role)

    def clear(self, response) -> None:
        """Expire the session cookie on the client. Idempotent."""
        options = session_cookie_options(self.production)
        response.delete_cookie(SESSION_COOKIE_NAME, **options)
