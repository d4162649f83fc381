# ============================================================================
# CORE MODULE
# ============================================================================
# STATUS: Core module initialization
# PURPOSE: Export contracts, error classification and configuration
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================

from core.contracts import ErrorKind, ApiErrorKind
from core.errors import ErrorInfo, classify
from core.config import Settings, get_settings

__all__ = [
    # Enums
    "ErrorKind",
    "ApiErrorKind",
    # Errors
    "ErrorInfo",
    "classify",
    # Config
    "Settings",
    "get_settings",
]
