"""Typed errors for the account/invitation flows and their JSON rendering."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

log = logging.getLogger(__name__)


class PortalError(Exception):
    """Base for errors that map onto a typed HTTP response."""

    status_code = 500
    default_message = "Internal server error"
    code: str | None = None

    def __init__(self, message: str | None = None, *, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        if self.code:
            body["code"] = self.code
        return body


class ValidationError(PortalError):
    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(PortalError):
    status_code = 401
    default_message = "Not authenticated"


class PermissionDeniedError(PortalError):
    status_code = 403
    default_message = "Access denied"


class AccountPendingError(PermissionDeniedError):
    default_message = "Your account is awaiting administrator approval."
    code = "pending_approval"


class AccountDeactivatedError(PermissionDeniedError):
    default_message = "Your account has been deactivated. Please contact support."
    code = "account_deactivated"


class NotFoundError(PortalError):
    status_code = 404
    default_message = "Not found"


class NotFoundOrUsedError(PortalError):
    """Token is unknown or already consumed. The two cases share one message."""

    status_code = 404
    default_message = "Invalid invitation token"
    code = "invalid_token"


class ExpiredError(PortalError):
    status_code = 410
    default_message = "Invitation token has expired"
    code = "expired_token"


class ConflictError(PortalError):
    status_code = 409
    default_message = "An account with this email already exists"


class UpstreamServiceError(PortalError):
    """Identity or store operation failed; details are meant for operators."""

    status_code = 500
    default_message = "Upstream service failed"


class NotificationDeliveryError(PortalError):
    """Raised only where sending the email is the whole request."""

    status_code = 502
    default_message = "Failed to send email"


def register_exception_handlers(app: FastAPI) -> None:
    """Render PortalError, HTTPException, request validation and crashes as {"error": ...} bodies."""

    @app.exception_handler(PortalError)
    async def portal_error_handler(request: Request, exc: PortalError):
        level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
        log.log(
            level,
            "%s %s %s -> %s | %s | details=%r",
            type(exc).__name__,
            request.method,
            request.url.path,
            exc.status_code,
            exc.message,
            exc.details,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "HTTP error"
        body: dict[str, Any] = {"error": message}
        if isinstance(exc.detail, dict):
            body["details"] = exc.detail
        return JSONResponse(status_code=exc.status_code, content=body, headers=dict(exc.headers or {}))

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        log.warning("RequestValidationError %s %s -> 422 | errors=%s", request.method, request.url.path, errors)
        return JSONResponse(
            status_code=422,
            content={"error": "Validation failed.", "details": jsonable_errors(errors)},
        )

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):
        log.exception("Unhandled exception %s %s -> 500", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def jsonable_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Pydantic v2 puts the raw exception under ctx; keep only JSON-friendly bits."""
    out = []
    for err in errors:
        out.append({"loc": list(err.get("loc", ())), "msg": str(err.get("msg", "")), "type": err.get("type")})
    return out
