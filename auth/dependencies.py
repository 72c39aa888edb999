"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Two mutually exclusive route classes:
  1. Admin routes -- encrypted session cookie ("pennant_session"), set by
     POST /api/v1/auth/login. require_admin_session().
  2. SDK routes -- "Authorization: Bearer pennant_sdk_..." service tokens.
     require_sdk_token().

A route depends on exactly one of them; the two never run on the same
request.

Both helpers are plain (sync) functions. FastAPI runs sync dependencies in
its threadpool, so the store lookup behind require_sdk_token() never blocks
the event loop.

Failures raise AuthenticationError / AuthorizationError from core.errors; the
exception handlers in api/main.py turn them into generic 401 / 403 bodies
and log the detail.

Layer rule: no imports from api/, edge/, or flags/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.models import AdminIdentity, ScopeBinding
from auth.session import SESSION_COOKIE_NAME, AdminSessions
from auth.tokens import authenticate_token


def require_admin_session(request: Request) -> AdminIdentity:
    """Require a valid admin session cookie.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(admin: AdminIdentity = Depends(require_admin_session)): ...
    """
    sessions: AdminSessions = request.app.state.sessions
    identity = sessions.authenticate(request.cookies.get(SESSION_COOKIE_NAME))
    request.state.admin = identity
    return identity


def require_sdk_token(request: Request) -> ScopeBinding:
    """Require a valid, unrevoked SDK bearer token.

    The resolved scope is attached to request.state.sdk for downstream
    handlers. The token itself is never stored on the request.
    """
    binding = authenticate_token(request.app.state.store, request.headers.get("Authorization"))
    request.state.sdk = binding
    return binding
