"""Error taxonomy and the FastAPI handlers that render it.

Every failure a request can end in is a TrackerError carrying an HTTP status
and a short machine-readable code. Handlers turn them into
`{"error": code, "detail": message}` bodies.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .logging_config import get_logger

logger = get_logger(__name__)


class TrackerError(Exception):
    """Base for all request-terminating errors."""

    code = "tracker_error"
    status = HTTPStatus.INTERNAL_SERVER_ERROR
    default_detail = "Internal error"

    def __init__(self, detail: Optional[str] = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.detail}


# --- Auth ---


class AuthError(TrackerError):
    code = "auth_error"
    status = HTTPStatus.FORBIDDEN
    default_detail = "Not authorized"


class MissingTokenError(AuthError):
    code = "missing_token"
    status = HTTPStatus.UNAUTHORIZED
    default_detail = "Token required"


class InvalidTokenError(AuthError):
    code = "invalid_token"
    default_detail = "Token expired or invalid"


class WrongPasswordError(AuthError):
    code = "wrong_password"
    default_detail = "Wrong password"


# --- Validation ---


class ValidationError(TrackerError):
    code = "validation_error"
    status = HTTPStatus.BAD_REQUEST
    default_detail = "Invalid request"


class MissingFieldError(ValidationError):
    code = "missing_field"

    def __init__(self, *fields: str) -> None:
        self.fields = fields
        super().__init__(f"Required: {', '.join(fields)}")


class InvalidFieldError(ValidationError):
    code = "invalid_field"

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        super().__init__(f"{field}: {reason}")


# --- Storage ---


class StoreError(TrackerError):
    code = "store_error"
    default_detail = "Could not persist user record"


class ConflictError(TrackerError):
    code = "conflict"
    status = HTTPStatus.CONFLICT
    default_detail = "User already exists"


# --- Image proxy ---


class ProxyError(TrackerError):
    code = "proxy_error"


class InvalidUrlError(ProxyError):
    code = "invalid_url"
    status = HTTPStatus.BAD_REQUEST
    default_detail = "Invalid URL"


class ProxyFetchError(ProxyError):
    code = "fetch_failed"
    default_detail = "Could not fetch the image"


def _tracker_error_handler(request: Request, exc: TrackerError) -> JSONResponse:
    if exc.status >= HTTPStatus.INTERNAL_SERVER_ERROR:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.detail}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.code}")
    return JSONResponse(status_code=int(exc.status), content=exc.to_dict())


def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [".".join(str(part) for part in err.get("loc", ())[1:]) for err in exc.errors()]
    detail = "Malformed field(s): " + ", ".join(f for f in fields if f) if fields else "Malformed request body"
    logger.info(f"{request.method} {request.url.path} rejected: invalid_request")
    return JSONResponse(
        status_code=int(HTTPStatus.BAD_REQUEST),
        content={"error": "invalid_request", "detail": detail},
    )


def install_error_handlers(app: FastAPI) -> None:
    """Register JSON renderers for TrackerError and body schema errors."""
    app.add_exception_handler(TrackerError, _tracker_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
