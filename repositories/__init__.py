# ============================================================================
# REPOSITORIES MODULE
# ============================================================================
# STATUS: Core - Database access layer
# PURPOSE: Connection pool, data-access facade and schema migrations
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
Repositories Module

Provides database access for the Todo service.
Uses psycopg3 async with connection pooling.

Usage:
    from repositories import init_pool, TodoDatabase

    pool = await init_pool(settings.database)
    db = TodoDatabase(pool, settings.database.connection_string)
"""

from .database import init_pool, get_pool, close_pool, TodoDatabase
from .migrations import MIGRATIONS, apply_pending_migrations

__all__ = [
    "init_pool",
    "get_pool",
    "close_pool",
    "TodoDatabase",
    "MIGRATIONS",
    "apply_pending_migrations",
]
