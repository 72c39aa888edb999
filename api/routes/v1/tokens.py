"""
api/routes/v1/tokens.py -- SDK token management (admin only).

Routes:
  POST   /api/v1/environments/{env_id}/sdk-tokens -- issue env-scoped token (201, raw token once)
  GET    /api/v1/environments/{env_id}/sdk-tokens -- list active tokens for an environment
  DELETE /api/v1/sdk-tokens/{token_id}            -- hard delete (204 / 404)
  POST   /api/v1/tokens                           -- issue project- or env-scoped token (201)
  GET    /api/v1/tokens                           -- list all active tokens
  DELETE /api/v1/tokens/{token_id}                -- soft revoke (204 / 404 if absent or already revoked)

Both revocation surfaces take effect on the next SDK request: nothing in
the authentication path caches a positive lookup.

Every issuance and revocation is written to the audit trail with the acting
administrator (api/routes/v1/audit.py).

Listings never include the token hash or the plaintext -- TokenResponse has
no field for either.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response

from api.models import EnvTokenCreate, OrgTokenCreate, TokenCreatedResponse, TokenResponse
from api.routes.v1 import audit
from auth.dependencies import require_admin_session
from auth.models import AdminIdentity
from auth.tokens import issue_token, list_tokens, revoke_token
from core.errors import NotFoundError
from flags.models import AuditAction
from flags.store import FlagStore

# Auth policy: every route requires an admin session (router-level dependency).
router = APIRouter(dependencies=[Depends(require_admin_session)])


def _revoke(store: FlagStore, admin: AdminIdentity, token_id: str, hard: bool) -> None:
    # Looked up first: after a hard delete the row (and its scope) is gone.
    token = store.get_token(token_id)
    revoke_token(store, token_id, hard=hard)
    audit.record(
        store,
        admin,
        AuditAction.sdk_token_delete if hard else AuditAction.sdk_token_revoke,
        "sdk_token",
        token_id,
        project_id=token.project_id if token else None,
        env_id=token.env_id if token else None,
        details=token.name if token else None,
    )


# ---------------------------------------------------------------------------
# Environment-scoped tokens
# ---------------------------------------------------------------------------


@router.post("/environments/{env_id}/sdk-tokens", response_model=TokenCreatedResponse, status_code=201)
def create_env_token(
    request: Request,
    env_id: UUID,
    body: Optional[EnvTokenCreate] = None,
    admin: AdminIdentity = Depends(require_admin_session),
) -> TokenCreatedResponse:
    """Issue a token bound to one environment. 404 if the environment is unknown.

    The body is optional; without it the token is unnamed.
    """
    store: FlagStore = request.app.state.store
    if store.get_environment(str(env_id)) is None:
        raise NotFoundError(f"environment {env_id} not found")
    issued = issue_token(store, str(env_id), name=body.name if body else "")
    audit.record(
        store,
        admin,
        AuditAction.sdk_token_create,
        "sdk_token",
        issued.id,
        project_id=issued.project_id,
        env_id=issued.env_id,
        details=issued.name,
    )
    return TokenCreatedResponse.from_issued(issued)


@router.get("/environments/{env_id}/sdk-tokens", response_model=list[TokenResponse])
def list_env_tokens(request: Request, env_id: UUID) -> list[TokenResponse]:
    store: FlagStore = request.app.state.store
    if store.get_environment(str(env_id)) is None:
        raise NotFoundError(f"environment {env_id} not found")
    return [TokenResponse.from_token(t) for t in list_tokens(store, env_id=str(env_id))]


@router.delete("/sdk-tokens/{token_id}", status_code=204)
def delete_token(
    request: Request,
    token_id: UUID,
    admin: AdminIdentity = Depends(require_admin_session),
) -> Response:
    """Hard-delete a token. The row is gone; so is every future lookup."""
    _revoke(request.app.state.store, admin, str(token_id), hard=True)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Organization-wide tokens
# ---------------------------------------------------------------------------


@router.post("/tokens", response_model=TokenCreatedResponse, status_code=201)
def create_org_token(
    request: Request,
    body: OrgTokenCreate,
    admin: AdminIdentity = Depends(require_admin_session),
) -> TokenCreatedResponse:
    """Issue a project-scoped token, or an env-scoped one when envId is given.

    The environment must belong to the given project; a mismatch is reported
    as 404 so callers cannot probe for environments in other projects.
    """
    store: FlagStore = request.app.state.store
    project_id = str(body.project_id)
    if store.get_project(project_id) is None:
        raise NotFoundError(f"project {project_id} not found")

    scope_id = project_id
    if body.env_id is not None:
        env = store.get_environment(str(body.env_id))
        if env is None or env.project_id != project_id:
            raise NotFoundError(f"environment {body.env_id} not found in project {project_id}")
        scope_id = env.id

    issued = issue_token(store, scope_id, name=body.name)
    audit.record(
        store,
        admin,
        AuditAction.sdk_token_create,
        "sdk_token",
        issued.id,
        project_id=issued.project_id,
        env_id=issued.env_id,
        details=issued.name,
    )
    return TokenCreatedResponse.from_issued(issued)


@router.get("/tokens", response_model=list[TokenResponse])
def list_org_tokens(request: Request) -> list[TokenResponse]:
    return [TokenResponse.from_token(t) for t in list_tokens(request.app.state.store)]


@router.delete("/tokens/{token_id}", status_code=204)
def revoke_org_token(
    request: Request,
    token_id: UUID,
    admin: AdminIdentity = Depends(require_admin_session),
) -> Response:
    """Soft-revoke a token. The record stays for audit; authentication stops at once."""
    _revoke(request.app.state.store, admin, str(token_id), hard=False)
    return Response(status_code=204)
