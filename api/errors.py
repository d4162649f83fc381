# ============================================================================
# API ERROR HANDLING
# ============================================================================
# STATUS: Core - HTTP error responses
# PURPOSE: One ApiError type, uniform JSON error bodies, request logging
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
API Error Handling

HTTP-facing errors are a single ApiError carrying an ApiErrorKind (status
code + machine-readable code) and an optional field-level validation map.

Every error response has the same body:

    {
        "status_code": 404,
        "message": "The requested resource was not found.",
        "error_code": "NOT_FOUND",
        "correlation_id": "3f2c...",
        "timestamp": "2026-10-18T12:00:00Z",
        "path": "/todos/42",
        "method": "GET",
        "validation_errors": {"title": ["field required"]}   # when present
    }

Development mode adds ``details``, ``stack_trace`` and ``inner_exception``.

Non-ApiError exceptions are mapped:
    psycopg.Error        -> 400 DATABASE_ERROR (classified user message)
    TimeoutError         -> 408 TIMEOUT
    KeyError             -> 404 NOT_FOUND
    ValueError           -> 400 INVALID_ARGUMENT
    PermissionError      -> 401 UNAUTHORIZED
    NotImplementedError  -> 501 NOT_IMPLEMENTED
    anything else        -> 500 INTERNAL_SERVER_ERROR

Usage:
    app = FastAPI()
    install_error_handling(app, development=settings.environment.is_development)

    raise ApiError(ApiErrorKind.NOT_FOUND, f"Todo {todo_id} not found")
"""

import asyncio
import time
import traceback
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import psycopg
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from core.contracts import ApiErrorKind
from core.errors import classify, inner_exception
from core.logging import ComponentType, get_logger, log_context

logger = get_logger(__name__, ComponentType.API)

CORRELATION_HEADER = "X-Correlation-ID"
SLOW_REQUEST_MS = 5000


class ApiError(Exception):
    """HTTP-facing error."""

    def __init__(
        self,
        kind: ApiErrorKind,
        message: Optional[str] = None,
        validation_errors: Optional[Dict[str, List[str]]] = None,
    ):
        self.kind = kind
        self.message = message or kind.default_message
        self.validation_errors = validation_errors
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    @classmethod
    def validation(cls, errors: Dict[str, List[str]], message: str = None) -> "ApiError":
        """422 with a field-level error map."""
        return cls(ApiErrorKind.VALIDATION_ERROR, message, validation_errors=errors)


@dataclass
class ErrorDescriptor:
    """Status, code and message chosen for an exception."""
    status_code: int
    error_code: str
    message: str
    validation_errors: Optional[Dict[str, List[str]]] = None


def _kind_for_status(status_code: int) -> Optional[ApiErrorKind]:
    for kind in ApiErrorKind:
        if kind.status_code == status_code:
            return kind
    return None


def _validation_map(exc: RequestValidationError) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        # Drop the "body"/"query" prefix
        loc = [str(part) for part in error.get("loc", ())[1:]] or ["request"]
        errors.setdefault(".".join(loc), []).append(error.get("msg", "invalid value"))
    return errors


def describe_exception(exc: Exception) -> ErrorDescriptor:
    """Map an exception to the response status, code and message."""
    if isinstance(exc, ApiError):
        return ErrorDescriptor(exc.status_code, exc.kind.value, exc.message, exc.validation_errors)

    if isinstance(exc, RequestValidationError):
        kind = ApiErrorKind.VALIDATION_ERROR
        return ErrorDescriptor(kind.status_code, kind.value, kind.default_message, _validation_map(exc))

    if isinstance(exc, StarletteHTTPException):
        kind = _kind_for_status(exc.status_code)
        return ErrorDescriptor(
            exc.status_code,
            kind.value if kind else "HTTP_ERROR",
            str(exc.detail) if exc.detail else (kind.default_message if kind else "HTTP error"),
        )

    if isinstance(exc, psycopg.Error):
        return ErrorDescriptor(400, "DATABASE_ERROR", classify(exc, "A database error occurred.").user_message)

    if isinstance(exc, (TimeoutError, asyncio.TimeoutError)):
        return ErrorDescriptor(408, "TIMEOUT", "The request timed out.")

    if isinstance(exc, KeyError):
        kind = ApiErrorKind.NOT_FOUND
        return ErrorDescriptor(kind.status_code, kind.value, kind.default_message)

    if isinstance(exc, ValueError):
        return ErrorDescriptor(400, "INVALID_ARGUMENT", "Invalid request data.")

    if isinstance(exc, PermissionError):
        kind = ApiErrorKind.UNAUTHORIZED
        return ErrorDescriptor(kind.status_code, kind.value, kind.default_message)

    if isinstance(exc, NotImplementedError):
        return ErrorDescriptor(501, "NOT_IMPLEMENTED", "This feature is not implemented yet.")

    kind = ApiErrorKind.INTERNAL_SERVER_ERROR
    return ErrorDescriptor(kind.status_code, kind.value, kind.default_message)


def _correlation_id(request: Request) -> str:
    cid = getattr(request.state, "correlation_id", None)
    if not cid:
        cid = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = cid
    return cid


def build_error_response(request: Request, exc: Exception, development: bool = False) -> JSONResponse:
    """Log ``exc`` and render the uniform error body."""
    descriptor = describe_exception(exc)
    correlation_id = _correlation_id(request)

    log_message = (
        f"Exception occurred. CorrelationId: {correlation_id}, "
        f"Path: {request.url.path}, Method: {request.method}: {exc!r}"
    )
    if descriptor.status_code < 500:
        logger.warning(log_message)
    else:
        logger.error(log_message, exc_info=(type(exc), exc, exc.__traceback__))

    body: Dict[str, Any] = {
        "status_code": descriptor.status_code,
        "message": descriptor.message,
        "error_code": descriptor.error_code,
        "correlation_id": correlation_id,
        "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "path": request.url.path,
        "method": request.method,
    }
    if descriptor.validation_errors:
        body["validation_errors"] = descriptor.validation_errors

    if development:
        inner = inner_exception(exc)
        body["details"] = str(exc)
        body["stack_trace"] = "".join(traceback.format_tb(exc.__traceback__))
        body["inner_exception"] = str(inner) if inner is not None else None

    return JSONResponse(
        status_code=descriptor.status_code,
        content=body,
        headers={CORRELATION_HEADER: correlation_id},
    )


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Correlation id, request log line and last-resort error rendering.

    Exceptions no handler claimed are rendered here, so every error response
    has the same shape and carries the correlation id.
    """

    def __init__(self, app, development: bool = False):
        super().__init__(app)
        self.development = development

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        start_time = time.monotonic()

        with log_context(
            correlation_id=correlation_id,
            request_path=request.url.path,
            request_method=request.method,
            component=ComponentType.API.value,
        ):
            try:
                response = await call_next(request)
            except Exception as e:
                response = build_error_response(request, e, self.development)

            elapsed_ms = (time.monotonic() - start_time) * 1000
            message = (
                f"HTTP {request.method} {request.url.path} responded "
                f"{response.status_code} in {elapsed_ms:.4f} ms"
            )
            if elapsed_ms > SLOW_REQUEST_MS:
                logger.warning(message)
            else:
                logger.info(message)

        response.headers[CORRELATION_HEADER] = correlation_id
        return response


def install_error_handling(app: FastAPI, development: bool = False) -> None:
    """Register exception handlers and the request middleware on ``app``."""

    async def handle(request: Request, exc: Exception) -> JSONResponse:
        return build_error_response(request, exc, development)

    app.add_exception_handler(ApiError, handle)
    app.add_exception_handler(RequestValidationError, handle)
    app.add_exception_handler(StarletteHTTPException, handle)
    app.add_middleware(RequestContextMiddleware, development=development)


__all__ = [
    "ApiError",
    "ErrorDescriptor",
    "describe_exception",
    "build_error_response",
    "RequestContextMiddleware",
    "install_error_handling",
    "CORRELATION_HEADER",
]
