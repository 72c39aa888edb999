"""
api/routes/v1/audit.py -- Read-only admin audit trail.

Routes:
  GET /api/v1/audit -- newest-first page of audit entries

Query params (all optional):
  projectId  UUID, filter to one project
  envId      UUID, filter to one environment
  page       int >= 1 (default 1), AUDIT_PAGE_SIZE entries per page

record() is the single write path used by the mutating admin routes. It runs
after the mutation succeeded, so a failed create or revoke leaves no entry.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request

from api.models import AUDIT_PAGE_SIZE, AuditEntryResponse, AuditPageResponse
from auth.dependencies import require_admin_session
from auth.models import AdminIdentity
from flags.models import AuditAction, AuditEntry
from flags.store import FlagStore

logger = logging.getLogger("pennant.audit")

router = APIRouter(dependencies=[Depends(require_admin_session)])


def record(
    store: FlagStore,
    admin: AdminIdentity,
    action: AuditAction,
    entity_type: str,
    entity_id: str,
    project_id: Optional[str] = None,
    env_id: Optional[str] = None,
    details: Optional[str] = None,
) -> AuditEntry:
    entry = store.record_audit(
        AuditEntry(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            project_id=project_id,
            env_id=env_id,
            actor_id=admin.user_id,
            actor_email=admin.email,
            details=details,
        )
    )
    logger.info("%s %s %s by %s", action.value, entity_type, entity_id, admin.email)
    return entry


@router.get("/audit", response_model=AuditPageResponse)
def list_audit(
    request: Request,
    project_id: Optional[UUID] = Query(default=None, alias="projectId"),
    env_id: Optional[UUID] = Query(default=None, alias="envId"),
    page: int = Query(default=1, ge=1),
) -> AuditPageResponse:
    store: FlagStore = request.app.state.store
    total, entries = store.list_audit(
        project_id=str(project_id) if project_id else None,
        env_id=str(env_id) if env_id else None,
        limit=AUDIT_PAGE_SIZE,
        offset=(page - 1) * AUDIT_PAGE_SIZE,
    )
    return AuditPageResponse(
        total=total,
        page=page,
        page_size=AUDIT_PAGE_SIZE,
        entries=[AuditEntryResponse.from_entry(e) for e in entries],
    )
