"""
auth/tokens.py -- SDK service token issuance, validation and revocation.

Security design decisions:
  Format: "pennant_sdk_" + 64 hex chars (secrets.token_hex(32), 256 bits of
       entropy). The fixed prefix lets authenticate_token() reject obviously
       wrong credentials before touching the store.

  Hashing: plain SHA-256, not scrypt. Tokens are machine-generated and
       high-entropy, so brute force is infeasible and a slow KDF would only
       add latency to every SDK request. Passwords are the opposite case
       (see auth/passwords.py) -- the two schemes are intentionally separate.

  Storage: only the hash and a 12-char display prefix are persisted. The
       plaintext is returned once by issue_token() and is unrecoverable.

  No caching: every authenticate_token() call re-queries the store, so a
       revocation is visible to the very next request.

The store is reached only through the narrow TokenRepository protocol below.
flags.store.FlagStore implements it; tests can pass any object with the same
methods.

Layer rule: no imports from api/, edge/, or flags/.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from typing import Optional, Protocol

from auth.models import IssuedToken, ScopeBinding, ServiceToken
from core.errors import AuthenticationError, NotFoundError

logger = logging.getLogger("pennant.auth")

TOKEN_PREFIX = "pennant_sdk_"  # noqa: S105 # nosec B105 -- namespace marker, not a secret
TOKEN_BYTES = 32
TOKEN_PREFIX_LENGTH = 12


class TokenRepository(Protocol):
    """The lookups this module needs from the store -- nothing more."""

    def find_scope(self, scope_id: str) -> Optional[ScopeBinding]: ...

    def find_token_by_hash(self, token_hash: str) -> Optional[ServiceToken]: ...

    def insert_token(self, token: ServiceToken) -> ServiceToken: ...

    def revoke_token(self, token_id: str) -> bool: ...

    def delete_token(self, token_id: str) -> bool: ...

    def list_tokens(self, project_id: Optional[str] = None, env_id: Optional[str] = None) -> list[ServiceToken]: ...


# ---------------------------------------------------------------------------
# Generation and hashing
# ---------------------------------------------------------------------------


def generate_token() -> str:
    return f"{TOKEN_PREFIX}{secrets.token_hex(TOKEN_BYTES)}"


def hash_token(raw_token: str) -> str:
    """Return SHA-256(raw_token) as a hex string. Deterministic for O(1) lookup."""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Issuance
# ---------------------------------------------------------------------------


def issue_token(repo: TokenRepository, scope_id: str, name: str = "") -> IssuedToken:
    """Mint a token bound to an environment or project id.

    The scope is validated before anything is generated. Raises NotFoundError
    if scope_id matches neither an environment nor a project.
    """
    scope = repo.find_scope(scope_id)
    if scope is None:
        raise NotFoundError(f"scope {scope_id} not found")

    raw_token = generate_token()
    stored = repo.insert_token(
        ServiceToken(
            project_id=scope.project_id,
            env_id=scope.env_id,
            name=name,
            token_hash=hash_token(raw_token),
            token_prefix=raw_token[:TOKEN_PREFIX_LENGTH],
        )
    )
    logger.info("Issued SDK token %s for project=%s env=%s", stored.id, stored.project_id, stored.env_id)
    return IssuedToken(
        id=stored.id,
        project_id=stored.project_id,
        env_id=stored.env_id,
        name=stored.name,
        token_prefix=stored.token_prefix,
        created_at=stored.created_at,
        token=raw_token,
    )


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


def parse_bearer(header_value: Optional[str]) -> Optional[str]:
    """Extract the token from an "Authorization: Bearer <token>" value.

    Returns None for a missing header, any other scheme, or an empty token.
    The scheme match is case-sensitive.
    """
    if not header_value:
        return None
    parts = header_value.split(" ")
    if len(parts) != 2:
        return None
    scheme, value = parts
    if scheme != "Bearer" or not value.strip():
        return None
    return value.strip()


def authenticate_token(repo: TokenRepository, authorization: Optional[str]) -> ScopeBinding:
    """Resolve an Authorization header to the scope its token is bound to.

    Fails closed with AuthenticationError when:
      - the header is missing or not a Bearer header,
      - the token lacks TOKEN_PREFIX (rejected before any store lookup),
      - no record matches the token hash,
      - the record is revoked.
    """
    token = parse_bearer(authorization)
    if token is None or not token.startswith(TOKEN_PREFIX):
        raise AuthenticationError("malformed bearer credential")

    record = repo.find_token_by_hash(hash_token(token))
    if record is None:
        raise AuthenticationError("unknown SDK token")
    if not record.is_active:
        raise AuthenticationError(f"revoked SDK token {record.id}")

    return ScopeBinding(project_id=record.project_id, env_id=record.env_id, token_id=record.id)


# ---------------------------------------------------------------------------
# Revocation and listing
# ---------------------------------------------------------------------------


def revoke_token(repo: TokenRepository, token_id: str, hard: bool = False) -> None:
    """Revoke a token. hard=True deletes the row, otherwise revoked_at is set.

    Raises NotFoundError if the token does not exist (or, for a soft
    revocation, is already revoked).
    """
    changed = repo.delete_token(token_id) if hard else repo.revoke_token(token_id)
    if not changed:
        raise NotFoundError(f"SDK token {token_id} not found")
    logger.info("Revoked SDK token %s (hard=%s)", token_id, hard)


def list_tokens(
    repo: TokenRepository, project_id: Optional[str] = None, env_id: Optional[str] = None
) -> list[ServiceToken]:
    """Return active tokens, newest first. Callers must not expose token_hash."""
    return repo.list_tokens(project_id=project_id, env_id=env_id)
