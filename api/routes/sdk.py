"""
api/routes/sdk.py -- SDK-facing endpoints, authenticated by bearer token.

Routes:
  GET /sdk/v1/snapshot -- scope snapshot for the token's environment

Every route here depends on require_sdk_token(); admin session cookies are
ignored on this router. The resolved ScopeBinding is also available to
handlers as request.state.sdk.

ETag / If-None-Match: the environment's config_version is the ETag, so
polling SDKs get a cheap 304 when nothing changed.
"""

from fastapi import APIRouter, Depends, Request, Response

from api.models import SnapshotResponse
from auth.dependencies import require_sdk_token
from auth.models import ScopeBinding
from core.errors import AuthenticationError
from flags.store import FlagStore

router = APIRouter()


@router.get("/snapshot", response_model=SnapshotResponse)
def snapshot(request: Request, response: Response, scope: ScopeBinding = Depends(require_sdk_token)):
    """Return the environment and project the calling token is bound to.

    Project-scoped tokens have no environment and cannot read a snapshot --
    they get the same generic 401 as an invalid token. An environment that
    was deleted or moved since issuance also fails closed.
    """
    if scope.env_id is None:
        raise AuthenticationError(f"project-scoped token {scope.token_id} cannot read snapshots")

    store: FlagStore = request.app.state.store
    environment = store.get_environment(scope.env_id)
    if environment is None or environment.project_id != scope.project_id:
        raise AuthenticationError(f"token {scope.token_id} scope no longer resolves")
    project = store.get_project(environment.project_id)
    if project is None:
        raise AuthenticationError(f"token {scope.token_id} project no longer exists")

    etag = str(environment.config_version)
    if request.headers.get("if-none-match") == etag:
        return Response(status_code=304, headers={"ETag": etag})

    response.headers["ETag"] = etag
    return SnapshotResponse(
        version=environment.config_version,
        project_id=project.id,
        project_key=project.key,
        env_id=environment.id,
        env_key=environment.key,
    )
