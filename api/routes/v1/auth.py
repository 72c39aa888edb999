"""
api/routes/v1/auth.py -- Admin login, logout and identity endpoints.

Routes:
  POST /api/v1/auth/login   -- password login; sets the encrypted session cookie
  POST /api/v1/auth/logout  -- clears the cookie; 204 (requires session)
  GET  /api/v1/auth/me      -- current identity claim (requires session)

Security:
  [H2] POST /login is rate-limited per client address (LOGIN_RATE_LIMIT,
       default 10/minute). The limiter wrapper rejects throttled attempts
       with 429 before the handler body -- and therefore before any scrypt
       work -- runs. SlowAPIMiddleware skips decorated routes.
  [C1] Wrong email and wrong password produce the same 401 bad_credentials
       body, so the response never reveals which part was wrong.
  [M5] Cache-Control: no-store on login responses.

login() is a sync def on purpose: FastAPI runs it in the threadpool, so the
scrypt derivation inside verify_credentials() never stalls the event loop.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import LoginRequest, LoginResponse, MeResponse
from auth.admin import AdminIdentityResolver
from auth.dependencies import require_admin_session
from auth.models import AdminIdentity
from auth.session import AdminSessions
from core.config import get_settings

logger = logging.getLogger("pennant.api")

# Auth policy:
# - POST /api/v1/auth/login:   public, rate-limited
# - POST /api/v1/auth/logout:  requires admin session
# - GET  /api/v1/auth/me:      requires admin session
router = APIRouter()


@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit(get_settings().login_rate_limit)  # [H2] must be BELOW @router so the limiting wrapper is what gets registered
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Verify the administrator's email and password; set the session cookie.

    Returns the same generic error for an unknown email and a wrong password
    ("bad_credentials") to avoid leaking which one was wrong.
    """
    resolver: AdminIdentityResolver = request.app.state.admin_resolver
    sessions: AdminSessions = request.app.state.sessions

    if not resolver.verify_credentials(body.email, body.password):
        logger.warning("Login rejected from %s", request.client.host if request.client else "unknown")
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": "bad_credentials", "message": "Invalid email or password."}},
        )
        resp.headers["Cache-Control"] = "no-store"  # [M5]
        return resp

    identity = resolver.resolve().identity
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            user_id=identity.user_id,
            role=identity.role.value,
            email=identity.email,
        ).model_dump(by_alias=True),
    )
    sessions.issue(resp, identity)
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.post("/auth/logout", status_code=204)
async def logout(request: Request, admin: AdminIdentity = Depends(require_admin_session)) -> Response:
    """Expire the session cookie. Safe to repeat while the cookie is still valid."""
    sessions: AdminSessions = request.app.state.sessions
    resp = Response(status_code=204)
    sessions.clear(resp)
    return resp


@router.get("/auth/me", response_model=MeResponse)
async def me(admin: AdminIdentity = Depends(require_admin_session)) -> MeResponse:
    """Return the identity claim carried by the current session."""
    return MeResponse(user_id=admin.user_id, role=admin.role.value)
