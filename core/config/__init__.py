# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# ============================================================================
"""
Configuration Module

Provides centralized configuration and defaults for the Todo service.
"""

from core.config.defaults import (
    DatabaseDefaults,
    EnvironmentDefaults,
    HealthCheckDefaults,
    InitializerDefaults,
    MonitorDefaults,
    PublisherDefaults,
    Settings,
    get_settings,
    reset_settings,
)

__all__ = [
    "DatabaseDefaults",
    "EnvironmentDefaults",
    "HealthCheckDefaults",
    "InitializerDefaults",
    "MonitorDefaults",
    "PublisherDefaults",
    "Settings",
    "get_settings",
    "reset_settings",
]
