"""
flags/store.py -- SQLAlchemy Core persistence for projects, environments,
SDK tokens and the admin audit trail.

Pattern: Repository + Data Mapper. FlagStore is the repository; the _row_to_*
functions are the mappers. Route and dependency code never touches SQL
directly.

FlagStore satisfies auth.tokens.TokenRepository (find_scope,
find_token_by_hash, insert_token, revoke_token, delete_token, list_tokens).
The auth layer depends on that protocol only, never on this module.

Security:
  All queries use bound parameters. No f-strings in SQL.
  sdk_tokens.token_hash is UNIQUE; lookups always go through the hash.
  There is no caching layer: a revocation committed here is visible to the
  next authenticate_token() call.

Usage:
    store = FlagStore()                               # SQLite default
    store = FlagStore("postgresql://user:pw@host/db") # PostgreSQL
    project = store.create_project(Project(key="web", name="Web"))
    env = store.create_environment(Environment(project_id=project.id, key="prod", name="Production"))
    store.close()

Layer rule: may import auth.models (token/scope dataclasses). No imports from
api/ or edge/.
"""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import (
    Column,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
    create_engine,
    event,
    func,
    select,
    true,
)
from sqlalchemy.engine import Engine

from auth.models import ScopeBinding, ServiceToken
from flags.models import AuditAction, AuditEntry, Environment, Project

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'pennant.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_projects = Table(
    "projects",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("key", String(100), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
    Column("created_at", String(32), nullable=False),
)

_environments = Table(
    "environments",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("project_id", String(36), nullable=False),
    Column("key", String(100), nullable=False),
    Column("name", String(255), nullable=False),
    Column("config_version", Integer, nullable=False, server_default="1"),
    Column("created_at", String(32), nullable=False),
    UniqueConstraint("project_id", "key", name="uq_environment_project_key"),
)

_sdk_tokens = Table(
    "sdk_tokens",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("project_id", String(36), nullable=False),
    Column("env_id", String(36)),  # NULL = project-scoped token
    Column("name", String(100), nullable=False, server_default=""),
    Column("token_hash", String(64), nullable=False, unique=True),  # SHA-256 hex
    Column("token_prefix", String(12), nullable=False),  # first 12 chars, display only
    Column("created_at", String(32), nullable=False),
    Column("revoked_at", String(32)),  # NULL = active
)

# Append-only. Rows are inserted by record_audit() and never updated.
_audit_log = Table(
    "audit_log",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),  # insertion order
    Column("id", String(36), nullable=False, unique=True),
    Column("action", String(50), nullable=False),
    Column("entity_type", String(50), nullable=False),
    Column("entity_id", String(36), nullable=False),
    Column("project_id", String(36)),
    Column("env_id", String(36)),
    Column("actor_id", String(255), nullable=False),
    Column("actor_email", String(255), nullable=False),
    Column("details", String(255)),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so token lookups are not blocked by writes."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class FlagStore:
    """Repository for Project, Environment, ServiceToken and AuditEntry entities."""

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def create_project(self, project: Project) -> Project:
        """Insert a project and return it with id and created_at filled in.

        Raises sqlalchemy.exc.IntegrityError if the key is already taken.
        """
        created = replace(project, id=_new_id(), created_at=_now_iso())
        with self.engine.connect() as conn:
            conn.execute(
                _projects.insert().values(
                    id=created.id,
                    key=created.key,
                    name=created.name,
                    created_at=created.created_at,
                )
            )
            conn.commit()
        return created

    def get_project(self, project_id: str) -> Project | None:
        with self.engine.connect() as conn:
            row = conn.execute(_projects.select().where(_projects.c.id == project_id)).fetchone()
        return _row_to_project(row) if row is not None else None

    def list_projects(self) -> list[Project]:
        with self.engine.connect() as conn:
            rows = conn.execute(_projects.select().order_by(_projects.c.key)).fetchall()
        return [_row_to_project(r) for r in rows]

    # ------------------------------------------------------------------
    # Environments
    # ------------------------------------------------------------------

    def create_environment(self, environment: Environment) -> Environment:
        """Insert an environment. The caller must have checked the project exists.

        Raises sqlalchemy.exc.IntegrityError if the key is taken within the project.
        """
        created = replace(environment, id=_new_id(), created_at=_now_iso())
        with self.engine.connect() as conn:
            conn.execute(
                _environments.insert().values(
                    id=created.id,
                    project_id=created.project_id,
                    key=created.key,
                    name=created.name,
                    config_version=created.config_version,
                    created_at=created.created_at,
                )
            )
            conn.commit()
        return created

    def get_environment(self, env_id: str) -> Environment | None:
        with self.engine.connect() as conn:
            row = conn.execute(_environments.select().where(_environments.c.id == env_id)).fetchone()
        return _row_to_environment(row) if row is not None else None

    def list_environments(self, project_id: str) -> list[Environment]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                _environments.select().where(_environments.c.project_id == project_id).order_by(_environments.c.key)
            ).fetchall()
        return [_row_to_environment(r) for r in rows]

    # ------------------------------------------------------------------
    # Token scopes
    # ------------------------------------------------------------------

    def find_scope(self, scope_id: str) -> Optional[ScopeBinding]:
        """Resolve an environment or project id to the scope a token would bind.

        Environments are checked first: an environment id binds the
        environment and, transitively, its owning project.
        """
        environment = self.get_environment(scope_id)
        if environment is not None:
            return ScopeBinding(project_id=environment.project_id, env_id=environment.id)
        project = self.get_project(scope_id)
        if project is not None:
            return ScopeBinding(project_id=project.id)
        return None

    # ------------------------------------------------------------------
    # SDK tokens
    # ------------------------------------------------------------------

    def insert_token(self, token: ServiceToken) -> ServiceToken:
        """Insert a token record and return it with id and created_at set."""
        created = replace(token, id=_new_id(), created_at=_now_iso(), revoked_at=None)
        with self.engine.connect() as conn:
            conn.execute(
                _sdk_tokens.insert().values(
                    id=created.id,
                    project_id=created.project_id,
                    env_id=created.env_id,
                    name=created.name,
                    token_hash=created.token_hash,
                    token_prefix=created.token_prefix,
                    created_at=created.created_at,
                )
            )
            conn.commit()
        return created

    def find_token_by_hash(self, token_hash: str) -> Optional[ServiceToken]:
        """Look up a token by hash, revoked or not. O(1) via the UNIQUE index.

        Revoked records are returned so the caller can distinguish (in logs
        only) a revoked token from an unknown one.
        """
        with self.engine.connect() as conn:
            row = conn.execute(_sdk_tokens.select().where(_sdk_tokens.c.token_hash == token_hash)).fetchone()
        return _row_to_token(row) if row is not None else None

    def get_token(self, token_id: str) -> Optional[ServiceToken]:
        with self.engine.connect() as conn:
            row = conn.execute(_sdk_tokens.select().where(_sdk_tokens.c.id == token_id)).fetchone()
        return _row_to_token(row) if row is not None else None

    def list_tokens(self, project_id: Optional[str] = None, env_id: Optional[str] = None) -> list[ServiceToken]:
        """Return active (non-revoked) tokens, newest first, optionally filtered."""
        query = _sdk_tokens.select().where(_sdk_tokens.c.revoked_at.is_(None))
        if project_id is not None:
            query = query.where(_sdk_tokens.c.project_id == project_id)
        if env_id is not None:
            query = query.where(_sdk_tokens.c.env_id == env_id)
        with self.engine.connect() as conn:
            rows = conn.execute(query.order_by(_sdk_tokens.c.created_at.desc())).fetchall()
        return [_row_to_token(r) for r in rows]

    def revoke_token(self, token_id: str) -> bool:
        """Stamp revoked_at on an active token.

        Returns True if a token was revoked, False if not found or already revoked.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _sdk_tokens.update()
                .where((_sdk_tokens.c.id == token_id) & (_sdk_tokens.c.revoked_at.is_(None)))
                .values(revoked_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def delete_token(self, token_id: str) -> bool:
        """Permanently delete a token. Returns True if deleted, False if not found."""
        with self.engine.connect() as conn:
            result = conn.execute(_sdk_tokens.delete().where(_sdk_tokens.c.id == token_id))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Audit trail
    # ------------------------------------------------------------------

    def record_audit(self, entry: AuditEntry) -> AuditEntry:
        """Append an audit entry and return it with id and created_at set."""
        created = replace(entry, id=_new_id(), created_at=_now_iso())
        with self.engine.connect() as conn:
            conn.execute(
                _audit_log.insert().values(
                    id=created.id,
                    action=AuditAction(created.action).value,
                    entity_type=created.entity_type,
                    entity_id=created.entity_id,
                    project_id=created.project_id,
                    env_id=created.env_id,
                    actor_id=created.actor_id,
                    actor_email=created.actor_email,
                    details=created.details,
                    created_at=created.created_at,
                )
            )
            conn.commit()
        return created

    def list_audit(
        self,
        project_id: Optional[str] = None,
        env_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[int, list[AuditEntry]]:
        """Return (total matching, one page of entries newest first)."""
        condition = true()
        if project_id is not None:
            condition = condition & (_audit_log.c.project_id == project_id)
        if env_id is not None:
            condition = condition & (_audit_log.c.env_id == env_id)
        with self.engine.connect() as conn:
            total = conn.execute(select(func.count()).select_from(_audit_log).where(condition)).scalar_one()
            rows = conn.execute(
                _audit_log.select()
                .where(condition)
                .order_by(_audit_log.c.seq.desc())
                .limit(limit)
                .offset(offset)
            ).fetchall()
        return total, [_row_to_audit(r) for r in rows]

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.exec_driver_sql("SELECT 1")
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_project(row) -> Project:
    return Project(id=row.id, key=row.key, name=row.name, created_at=row.created_at)


def _row_to_environment(row) -> Environment:
    return Environment(
        id=row.id,
        project_id=row.project_id,
        key=row.key,
        name=row.name,
        config_version=row.config_version,
        created_at=row.created_at,
    )


def _row_to_token(row) -> ServiceToken:
    return ServiceToken(
        id=row.id,
        project_id=row.project_id,
        env_id=row.env_id,
        name=row.name,
        token_hash=row.token_hash,
        token_prefix=row.token_prefix,
        created_at=row.created_at,
        revoked_at=row.revoked_at,
    )


def _row_to_audit(row) -> AuditEntry:
    return AuditEntry(
        id=row.id,
        action=AuditAction(row.action),
        entity_type=row.entity_type,
        entity_id=row.entity_id,
        project_id=row.project_id,
        env_id=row.env_id,
        actor_id=row.actor_id,
        actor_email=row.actor_email,
        details=row.details,
        created_at=row.created_at,
    )
