"""
core/errors.py -- Error taxonomy shared by the API and edge processes.

Every error carries the HTTP status it maps to, a stable machine-readable
code, and a generic client-safe message. The exception handlers in
api/main.py and edge/main.py render them into the ErrorResponse envelope.

Security:
  Messages are deliberately generic. Authentication failures never say
  whether the email, the password, the cookie or the token was wrong --
  the detail goes to the operational log, not the response body.

Layer rule: core/ is the kernel. This module may not import from api/, edge/,
auth/, or flags/.
"""

from __future__ import annotations


class PennantError(Exception):
    """Base class for errors that terminate a request with a known status."""

    status_code: int = 500
    code: str = "internal_error"
    message: str = "An unexpected error occurred."

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.message)
        # detail is for logs only; handlers never echo it to clients.
        self.detail = detail


class ConfigurationError(PennantError, ValueError):
    """Required configuration is missing or invalid. Fatal at startup.

    Subclasses ValueError so pydantic model validators can raise it directly
    and have it reported as a settings validation failure.
    """

    code = "configuration_error"
    message = "Service is misconfigured."


class AuthenticationError(PennantError):
    status_code = 401
    code = "unauthorized"
    message = "Authentication required."


class AuthorizationError(PennantError):
    status_code = 403
    code = "forbidden"
    message = "Admin access required."


class NotFoundError(PennantError):
    status_code = 404
    code = "not_found"
    message = "Resource not found."


class PayloadTooLargeError(PennantError):
    status_code = 413
    code = "payload_too_large"
    message = "Request too large."


class UpstreamUnavailableError(PennantError):
    status_code = 502
    code = "bad_gateway"
    message = "Bad gateway."


class UpstreamTimeoutError(UpstreamUnavailableError):
    """The upstream did not answer within the gateway deadline."""


class GatewayNotConfiguredError(PennantError):
    status_code = 502
    code = "not_configured"
    message = "API not configured."
