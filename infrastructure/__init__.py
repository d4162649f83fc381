# ============================================================================
# INFRASTRUCTURE MODULE
# ============================================================================
# STATUS: Infrastructure - Startup database work
# PURPOSE: Schema migration at process start
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
Infrastructure module for the Todo service.

Provides:
- DatabaseInitializer: Applies migrations in the background with retry
- InitializationState: Lifecycle read by the database_context health check

Usage:
    from infrastructure import DatabaseInitializer

    initializer = DatabaseInitializer(db)
    initializer.start()
"""

from infrastructure.database_initializer import (
    DatabaseInitializer,
    InitializationState,
    retry_delays,
)

__all__ = [
    'DatabaseInitializer',
    'InitializationState',
    'retry_delays',
]
