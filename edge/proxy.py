"""
edge/proxy.py -- Forwarding gateway from the browser-facing edge to the API.

forward() relays one inbound Starlette request to the upstream API and
streams the answer back. It protects both sides:

  Header hygiene: host-identifying and hop-by-hop request headers are dropped
      so the upstream sees a clean request; transfer-encoding and connection
      are dropped from the response because this layer re-frames the body.

  Body bound: for methods that carry a body, a declared Content-Length over
      the cap is rejected before a single byte is read, and the body is then
      read in chunks and rejected as soon as the running total passes the
      cap. Both checks are needed -- a client can omit or understate the
      header.

  Time bound: the upstream call runs under asyncio.wait_for(). On expiry the
      in-flight request is cancelled, not left to finish in the background.

  Failure containment: timeouts and network errors become a generic 502 for
      the browser; method, target and cause go to the log. Nothing is retried
      -- the request may not be idempotent.

  Streaming: the response body is relayed chunk by chunk (aiter_raw, so any
      content-encoding passes through untouched) and never buffered whole.

Layer rule: edge/ may import core/ and third-party libraries only. It never
imports api/, auth/ or flags/ -- the edge is deployed separately.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

import httpx
from starlette.requests import Request
from starlette.responses import StreamingResponse

from core.errors import (
    GatewayNotConfiguredError,
    PayloadTooLargeError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)

logger = logging.getLogger("pennant.edge")

MAX_BODY_BYTES = 10 * 1024 * 1024
UPSTREAM_TIMEOUT_SECONDS = 30.0

STRIPPED_REQUEST_HEADERS: frozenset[str] = frozenset(
    {
        "host",
        "forwarded",
        "x-forwarded-for",
        "x-forwarded-host",
        "x-forwarded-port",
        "x-forwarded-proto",
        "x-real-ip",
        "connection",
        "keep-alive",
        # The body is re-framed by httpx, which sets its own length.
        "content-length",
        "transfer-encoding",
    }
)

# Meaningless once the body is re-framed by this layer.
STRIPPED_RESPONSE_HEADERS: frozenset[str] = frozenset({"transfer-encoding", "connection", "keep-alive"})

METHODS_WITH_BODY: frozenset[str] = frozenset({"POST", "PUT", "PATCH", "DELETE"})


def build_target_url(base_url: str, raw_path: bytes, query_string: bytes = b"") -> httpx.URL:
    """Join the inbound path and query onto the upstream base URL.

    The inbound path replaces any path on the base URL. raw_path is used as
    received so percent-encoding survives the hop unchanged.
    """
    full_path = raw_path or b"/"
    if query_string:
        full_path += b"?" + query_string
    return httpx.URL(base_url).copy_with(raw_path=full_path)


def filter_headers(headers: list[tuple[bytes, bytes]], stripped: frozenset[str]) -> list[tuple[bytes, bytes]]:
    """Drop headers whose lowercased name is in stripped. Keeps duplicates (Set-Cookie)."""
    return [(name, value) for name, value in headers if name.decode("latin-1").lower() not in stripped]


async def read_body_with_limit(stream: AsyncIterator[bytes], max_bytes: int) -> bytes | None:
    """Read a body stream, stopping as soon as it grows past max_bytes.

    Returns None when the limit is exceeded so the caller can answer 413
    without having buffered the whole oversized payload.
    """
    chunks: list[bytes] = []
    total = 0
    async for chunk in stream:
        total += len(chunk)
        if total > max_bytes:
            return None
        chunks.append(chunk)
    return b"".join(chunks)


def _declared_length(request: Request) -> int | None:
    raw = request.headers.get("content-length")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


async def _relay(upstream: httpx.Response, method: str, target: httpx.URL) -> AsyncIterator[bytes]:
    try:
        async for chunk in upstream.aiter_raw():
            yield chunk
    except httpx.HTTPError as exc:
        # Headers are already sent; the only option left is to abort the stream.
        logger.error("Upstream stream aborted: %s %s: %r", method, target, exc)
        raise
    finally:
        await upstream.aclose()


async def forward(
    request: Request,
    target_base_url: str | None,
    client: httpx.AsyncClient,
    *,
    max_body_bytes: int = MAX_BODY_BYTES,
    timeout: float = UPSTREAM_TIMEOUT_SECONDS,
) -> StreamingResponse:
    """Relay request to target_base_url and stream the upstream response back.

    Raises:
        GatewayNotConfiguredError: target_base_url is empty.
        PayloadTooLargeError: declared or actual body size exceeds max_body_bytes.
        UpstreamTimeoutError: no upstream response within timeout seconds.
        UpstreamUnavailableError: connection or protocol failure talking upstream.
    """
    if not target_base_url:
        raise GatewayNotConfiguredError("API_URL is not set")

    method = request.method.upper()
    raw_path = request.scope.get("raw_path") or request.url.path.encode("utf-8")
    target = build_target_url(target_base_url, raw_path, request.scope.get("query_string", b""))
    headers = filter_headers(request.headers.raw, STRIPPED_REQUEST_HEADERS)

    body: bytes | None = None
    if method in METHODS_WITH_BODY:
        declared = _declared_length(request)
        if declared is not None and declared > max_body_bytes:
            logger.warning("Rejected %s %s: declared body %d bytes > %d", method, target, declared, max_body_bytes)
            raise PayloadTooLargeError(f"declared content-length {declared}")
        body = await read_body_with_limit(request.stream(), max_body_bytes)
        if body is None:
            logger.warning("Rejected %s %s: body exceeded %d bytes", method, target, max_body_bytes)
            raise PayloadTooLargeError("body exceeded limit while reading")

    upstream_request = client.build_request(method, target, headers=headers, content=body)
    try:
        upstream = await asyncio.wait_for(client.send(upstream_request, stream=True), timeout=timeout)
    except asyncio.TimeoutError:
        logger.error("Upstream timed out after %.1fs: %s %s", timeout, method, target)
        raise UpstreamTimeoutError(f"{method} {target} timed out") from None
    except (httpx.HTTPError, OSError) as exc:
        logger.error("Upstream fetch failed: %s %s: %r", method, target, exc)
        raise UpstreamUnavailableError(f"{method} {target}: {exc!r}") from exc

    response = StreamingResponse(_relay(upstream, method, target), status_code=upstream.status_code)
    response.raw_headers = filter_headers(upstream.headers.raw, STRIPPED_RESPONSE_HEADERS)
    return response
