"""
auth/models.py -- Domain types for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work; these dataclasses own the domain shape.

Layer rule: no imports from api/, edge/, or flags/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Role(str, Enum):
    """Closed set of roles an authenticated session may claim.

    admin is the only variant today. The session check compares against
    Role.admin explicitly, so adding a variant never widens access.
    """

    admin = "admin"


@dataclass(frozen=True)
class AdminIdentity:
    """The deployment's single administrator.

    user_id is the configured email -- there is no user table, so the email
    is the stable identifier carried in the session cookie.
    """

    user_id: str
    email: str
    role: Role = Role.admin


@dataclass(frozen=True)
class AdminCredentials:
    """AdminIdentity plus the configured credential material. Never serialized.

    password_hash takes precedence over password when both are set.
    """

    identity: AdminIdentity
    password: Optional[str] = None
    password_hash: Optional[str] = None

    def __repr__(self) -> str:
        return f"AdminCredentials(identity={self.identity!r})"


@dataclass
class ServiceToken:
    """A long-lived bearer credential for SDK clients.

    Security design:
    - token_hash is SHA-256(raw_token). Tokens carry 256 bits of entropy, so
      a fast digest is enough and keeps lookup O(1) via the UNIQUE index.
    - token_prefix (first 12 chars of the raw token) is stored for display
      only so operators can tell tokens apart.
    - The raw token is never persisted. It is returned ONCE at issuance.

    env_id is None for project-scoped tokens.
    """

    project_id: str
    token_hash: str
    token_prefix: str
    name: str = ""
    env_id: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[str] = None
    revoked_at: Optional[str] = None

    @property
    def scope_id(self) -> str:
        return self.env_id or self.project_id

    @property
    def is_active(self) -> bool:
        return self.revoked_at is None


@dataclass(frozen=True)
class ScopeBinding:
    """The resource an authenticated SDK request is allowed to read.

    Attached to request.state.sdk by require_sdk_token(). Never carries the
    token itself. token_id is None when the binding describes a scope that
    has not been resolved from a token (e.g. a scope lookup before issuance).
    """

    project_id: str
    env_id: Optional[str] = None
    token_id: Optional[str] = None


@dataclass(frozen=True)
class IssuedToken:
    """Result of a token issuance. The only place the plaintext ever appears."""

    id: str
    project_id: str
    env_id: Optional[str]
    name: str
    token_prefix: str
    created_at: str
    token: str

    def __repr__(self) -> str:
        return f"IssuedToken(id={self.id!r}, token_prefix={self.token_prefix!r})"
