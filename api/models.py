"""
API request and response models for Pennant REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
flags/models.py, which own the internal domain representation. Route handlers
map between the two.

JSON field names are camelCase (userId, projectId, ...) via the alias
generator on _CamelModel; Python attributes stay snake_case. Input models
accept either spelling.

Security: no response model has a token_hash field, and only
TokenCreatedResponse has the plaintext token -- returned once, at issuance.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from auth.models import IssuedToken, ServiceToken
from flags.models import AuditEntry, Environment, Project

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

KEY_PATTERN = r"^[a-z0-9][a-z0-9_-]*$"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _CamelResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(_CamelModel):
    """Request body for POST /api/v1/auth/login.

    max_length bounds the scrypt input so a huge password cannot be used to
    burn CPU on the login path.
    """

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class LoginResponse(_CamelResponse):
    user_id: str
    role: str
    email: str


class MeResponse(_CamelResponse):
    user_id: str
    role: str


# ---------------------------------------------------------------------------
# Projects and environments
# ---------------------------------------------------------------------------


class ProjectCreate(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    key: str = Field(min_length=1, max_length=100, pattern=KEY_PATTERN)
    name: str = Field(min_length=1, max_length=255)


class ProjectResponse(_CamelResponse):
    id: str
    key: str
    name: str
    created_at: str

    @classmethod
    def from_project(cls, project: Project) -> "ProjectResponse":
        return cls(id=project.id, key=project.key, name=project.name, created_at=project.created_at)


class EnvironmentCreate(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    key: str = Field(min_length=1, max_length=100, pattern=KEY_PATTERN)
    name: str = Field(min_length=1, max_length=255)


class EnvironmentResponse(_CamelResponse):
    id: str
    project_id: str
    key: str
    name: str
    config_version: int
    created_at: str

    @classmethod
    def from_environment(cls, env: Environment) -> "EnvironmentResponse":
        return cls(
            id=env.id,
            project_id=env.project_id,
            key=env.key,
            name=env.name,
            config_version=env.config_version,
            created_at=env.created_at,
        )


# ---------------------------------------------------------------------------
# SDK tokens
# ---------------------------------------------------------------------------


class EnvTokenCreate(_CamelModel):
    """Request body for POST /api/v1/environments/{env_id}/sdk-tokens."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(default="", max_length=100)


class OrgTokenCreate(_CamelModel):
    """Request body for POST /api/v1/tokens.

    env_id is optional: without it the token is project-scoped.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    project_id: UUID
    env_id: Optional[UUID] = None
    name: str = Field(min_length=1, max_length=100)


class TokenResponse(_CamelResponse):
    """A token record as listed. Never includes the hash or the plaintext."""

    id: str
    project_id: str
    env_id: Optional[str]
    name: str
    token_prefix: str
    created_at: str

    @classmethod
    def from_token(cls, token: ServiceToken) -> "TokenResponse":
        return cls(
            id=token.id,
            project_id=token.project_id,
            env_id=token.env_id,
            name=token.name,
            token_prefix=token.token_prefix,
            created_at=token.created_at or "",
        )


class TokenCreatedResponse(TokenResponse):
    """Issuance response -- the only time the raw token is ever returned."""

    token: str

    @classmethod
    def from_issued(cls, issued: IssuedToken) -> "TokenCreatedResponse":
        return cls(
            id=issued.id,
            project_id=issued.project_id,
            env_id=issued.env_id,
            name=issued.name,
            token_prefix=issued.token_prefix,
            created_at=issued.created_at,
            token=issued.token,
        )


# ---------------------------------------------------------------------------
# Audit trail
# ---------------------------------------------------------------------------

AUDIT_PAGE_SIZE = 50


class AuditEntryResponse(_CamelResponse):
    id: str
    action: str
    entity_type: str
    entity_id: str
    project_id: Optional[str]
    env_id: Optional[str]
    actor_id: str
    actor_email: str
    details: Optional[str]
    created_at: str

    @classmethod
    def from_entry(cls, entry: AuditEntry) -> "AuditEntryResponse":
        return cls(
            id=entry.id,
            action=entry.action.value,
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            project_id=entry.project_id,
            env_id=entry.env_id,
            actor_id=entry.actor_id,
            actor_email=entry.actor_email,
            details=entry.details,
            created_at=entry.created_at,
        )


class AuditPageResponse(_CamelResponse):
    """One page of the audit trail, newest first."""

    total: int
    page: int
    page_size: int
    entries: list[AuditEntryResponse]


# ---------------------------------------------------------------------------
# SDK
# ---------------------------------------------------------------------------


class SnapshotResponse(_CamelResponse):
    """Response for GET /sdk/v1/snapshot -- the scope the token resolved to."""

    version: int
    project_id: str
    project_key: str
    env_id: str
    env_key: str
