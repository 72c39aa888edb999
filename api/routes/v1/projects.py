"""
api/routes/v1/projects.py -- Minimal project and environment endpoints.

Just enough surface to create the scopes SDK tokens are bound to. Flag
definitions and their configuration live outside this service.

Routes:
  POST /api/v1/projects                          -- create project (201)
  GET  /api/v1/projects                          -- list projects
  POST /api/v1/projects/{project_id}/environments -- create environment (201)
  GET  /api/v1/projects/{project_id}/environments -- list environments

Creates are written to the audit trail with the acting administrator.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError

from api.models import EnvironmentCreate, EnvironmentResponse, ProjectCreate, ProjectResponse
from api.routes.v1 import audit
from auth.dependencies import require_admin_session
from auth.models import AdminIdentity
from core.errors import NotFoundError
from flags.models import AuditAction, Environment, Project
from flags.store import FlagStore

# Auth policy: every route requires an admin session (router-level dependency).
router = APIRouter(dependencies=[Depends(require_admin_session)])


@router.post("/projects", response_model=ProjectResponse, status_code=201)
def create_project(
    request: Request,
    body: ProjectCreate,
    admin: AdminIdentity = Depends(require_admin_session),
) -> ProjectResponse:
    store: FlagStore = request.app.state.store
    try:
        project = store.create_project(Project(key=body.key, name=body.name))
    except IntegrityError as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "conflict", "message": "A project with that key already exists."},
        ) from exc
    audit.record(
        store,
        admin,
        AuditAction.project_create,
        "project",
        project.id,
        project_id=project.id,
        details=project.key,
    )
    return ProjectResponse.from_project(project)


@router.get("/projects", response_model=list[ProjectResponse])
def list_projects(request: Request) -> list[ProjectResponse]:
    store: FlagStore = request.app.state.store
    return [ProjectResponse.from_project(p) for p in store.list_projects()]


@router.post("/projects/{project_id}/environments", response_model=EnvironmentResponse, status_code=201)
def create_environment(
    request: Request,
    project_id: UUID,
    body: EnvironmentCreate,
    admin: AdminIdentity = Depends(require_admin_session),
) -> EnvironmentResponse:
    """Create an environment under an existing project. 404 if the project is unknown."""
    store: FlagStore = request.app.state.store
    project = store.get_project(str(project_id))
    if project is None:
        raise NotFoundError(f"project {project_id} not found")
    try:
        env = store.create_environment(Environment(project_id=project.id, key=body.key, name=body.name))
    except IntegrityError as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "conflict", "message": "An environment with that key already exists."},
        ) from exc
    audit.record(
        store,
        admin,
        AuditAction.environment_create,
        "environment",
        env.id,
        project_id=env.project_id,
        env_id=env.id,
        details=env.key,
    )
    return EnvironmentResponse.from_environment(env)


@router.get("/projects/{project_id}/environments", response_model=list[EnvironmentResponse])
def list_environments(request: Request, project_id: UUID) -> list[EnvironmentResponse]:
    store: FlagStore = request.app.state.store
    if store.get_project(str(project_id)) is None:
        raise NotFoundError(f"project {project_id} not found")
    return [EnvironmentResponse.from_environment(e) for e in store.list_environments(str(project_id))]
