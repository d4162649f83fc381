# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# STATUS: Foundation - Core enums shared across layers
# PURPOSE: Error taxonomies used by health checks and the HTTP layer
# LAST_REVIEWED: 18 OCT 2026
# EXPORTS: ErrorKind, ApiErrorKind
# ============================================================================
"""
Base contracts for the Todo service.

Two taxonomies cross module boundaries:
- ErrorKind: classification of a failure (database/transport level),
  produced only by core.errors.classify()
- ApiErrorKind: HTTP-facing error category with its status code and
  machine-readable code, carried by api.errors.ApiError
"""

from enum import Enum


class ErrorKind(str, Enum):
    """
    Failure classification for an exception chain.

    Evaluation order (first match wins):
        CONNECTION -> TIMEOUT -> CONSTRAINT_VIOLATION
                   -> DUPLICATE_KEY -> FOREIGN_KEY_VIOLATION -> UNKNOWN
    """
    CONNECTION = "connection_error"
    TIMEOUT = "timeout_error"
    CONSTRAINT_VIOLATION = "constraint_violation"
    DUPLICATE_KEY = "duplicate_key"
    FOREIGN_KEY_VIOLATION = "foreign_key_violation"
    UNKNOWN = "unknown_error"


class ApiErrorKind(str, Enum):
    """HTTP-facing error categories."""
    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    @property
    def status_code(self) -> int:
        """HTTP status code for this kind."""
        return {
            ApiErrorKind.BAD_REQUEST: 400,
            ApiErrorKind.UNAUTHORIZED: 401,
            ApiErrorKind.FORBIDDEN: 403,
            ApiErrorKind.NOT_FOUND: 404,
            ApiErrorKind.CONFLICT: 409,
            ApiErrorKind.VALIDATION_ERROR: 422,
            ApiErrorKind.INTERNAL_SERVER_ERROR: 500,
            ApiErrorKind.SERVICE_UNAVAILABLE: 503,
        }[self]

    @property
    def default_message(self) -> str:
        """Message used when the caller supplies none."""
        return {
            ApiErrorKind.BAD_REQUEST: "Invalid request.",
            ApiErrorKind.UNAUTHORIZED: "Unauthorized access.",
            ApiErrorKind.FORBIDDEN: "Access to this resource is forbidden.",
            ApiErrorKind.NOT_FOUND: "The requested resource was not found.",
            ApiErrorKind.CONFLICT: "The request conflicts with the current state.",
            ApiErrorKind.VALIDATION_ERROR: "One or more validation errors occurred.",
            ApiErrorKind.INTERNAL_SERVER_ERROR: "An unexpected error occurred. Please try again later.",
            ApiErrorKind.SERVICE_UNAVAILABLE: "Service temporarily unavailable.",
        }[self]


__all__ = [
    "ErrorKind",
    "ApiErrorKind",
]
