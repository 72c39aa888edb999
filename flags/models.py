"""
flags/models.py -- Domain dataclasses for token scopes and the audit trail.

Projects own environments; SDK tokens are bound to one of them. These are
pure data containers with zero logic -- flags/store.py does the work.

Flag definitions themselves are managed elsewhere; this package only models
what the trust boundary needs to resolve a token's scope.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass
class Project:
    """A top-level grouping of environments. key is unique and URL-safe.

    id is None before the record is written to the database.
    """

    key: str
    name: str
    id: Optional[str] = None
    created_at: str = ""  # ISO 8601, set by store on insert


@dataclass
class Environment:
    """A deployment stage of a project (e.g. "production", "staging").

    config_version increases whenever the environment's flag configuration
    changes; the SDK snapshot endpoint uses it as the ETag.
    """

    project_id: str
    key: str
    name: str
    id: Optional[str] = None
    config_version: int = 1
    created_at: str = ""


class AuditAction(str, Enum):
    """Admin mutations that leave an audit record."""

    project_create = "project.create"
    environment_create = "environment.create"
    sdk_token_create = "sdk_token.create"
    sdk_token_revoke = "sdk_token.revoke"
    sdk_token_delete = "sdk_token.delete"


@dataclass
class AuditEntry:
    """Append-only record of who changed which trust-boundary entity.

    Entries are never updated or deleted. actor_id and actor_email come from
    the admin session that made the change; the raw token never appears here.
    """

    action: AuditAction
    entity_type: str  # "project" | "environment" | "sdk_token"
    entity_id: str
    actor_id: str
    actor_email: str
    project_id: Optional[str] = None
    env_id: Optional[str] = None
    details: Optional[str] = None  # short free text, e.g. the token name
    id: Optional[str] = None
    created_at: str = ""  # ISO 8601, set by store on insert
