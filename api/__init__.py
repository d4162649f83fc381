# ============================================================================
# API MODULE
# ============================================================================
# STATUS: Core - HTTP layer
# PURPOSE: Error responses and request middleware
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
API Module

HTTP-facing error handling for the Todo service.
"""

from .errors import (
    ApiError,
    RequestContextMiddleware,
    install_error_handling,
)

__all__ = [
    "ApiError",
    "RequestContextMiddleware",
    "install_error_handling",
]
