"""
edge/main.py -- FastAPI application for the browser-facing edge.

The edge serves the browser on the same origin as the dashboard and relays
everything under /api/v1/ and /sdk/v1/ to the separately deployed API
process. It holds no credentials and performs no authentication itself --
the API authenticates every forwarded request.

Run with:  uvicorn edge.main:edge_app
           python main.py serve edge

Configuration (read per request via EdgeSettings, never cached):
  API_URL                upstream base URL, e.g. http://api:8000
  PROXY_MAX_BODY_BYTES   request body cap (default 10 MiB)
  PROXY_TIMEOUT_SECONDS  upstream deadline (default 30)

Lifespan owns one shared httpx.AsyncClient so connections to the API are
pooled across requests and closed cleanly on shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.responses import Response

from core.config import EdgeSettings
from core.errors import PennantError
from edge.proxy import forward

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("pennant.edge")

_PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the pooled upstream client on startup; close it on shutdown.

    follow_redirects stays off: redirects are relayed to the browser as-is.
    The per-request deadline is enforced by forward(); the client timeout
    only bounds reads while the body streams.
    """
    settings = EdgeSettings()
    app.state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.proxy_timeout_seconds),
        follow_redirects=False,
    )
    logger.info("Pennant edge starting up (api_url configured=%s)", bool(settings.api_url))

    yield

    await app.state.http_client.aclose()
    logger.info("Pennant edge shutdown complete")


edge_app = FastAPI(
    title="Pennant Edge",
    version="0.1.0",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)


@edge_app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


@edge_app.exception_handler(PennantError)
async def pennant_error_handler(request: Request, exc: PennantError) -> JSONResponse:
    """Render gateway failures as a generic error envelope.

    exc.detail (target, cause) was already logged by forward(); it is never
    sent to the browser.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": exc.code, "message": exc.message}},
    )


@edge_app.get("/health", include_in_schema=False)
async def health() -> dict:
    return {"status": "ok"}


async def _proxy(request: Request) -> Response:
    # Read at call time so API_URL can change without a restart.
    settings = EdgeSettings()
    return await forward(
        request,
        settings.api_url,
        request.app.state.http_client,
        max_body_bytes=settings.proxy_max_body_bytes,
        timeout=settings.proxy_timeout_seconds,
    )


@edge_app.api_route("/api/v1/{path:path}", methods=_PROXY_METHODS, include_in_schema=False)
async def proxy_api(request: Request, path: str) -> Response:
    """Relay dashboard API calls (cookies included) to the API process."""
    return await _proxy(request)


@edge_app.api_route("/sdk/v1/{path:path}", methods=_PROXY_METHODS, include_in_schema=False)
async def proxy_sdk(request: Request, path: str) -> Response:
    """Relay SDK calls (bearer tokens included) to the API process."""
    return await _proxy(request)
