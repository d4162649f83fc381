# ============================================================================
# DATABASE CONNECTION POOL
# ============================================================================
# STATUS: Core - Async PostgreSQL connection management
# PURPOSE: Shared psycopg3 pool and the data-access facade used by health code
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
Database Connection Pool

Manages async PostgreSQL connections using psycopg3 and psycopg_pool.
One pool per application, shared by request handlers, health checks,
the background monitor and the startup initializer.

The pool is opened without waiting for the first connection, so the HTTP
server starts even when the database is down. Callers that need a
connection get a PoolTimeout after ``pool_timeout`` seconds instead.

Usage:
    from repositories.database import init_pool, TodoDatabase

    pool = await init_pool(settings.database)
    db = TodoDatabase(pool, settings.database.connection_string)

    if await db.can_connect():
        print(await db.count_todos())
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from psycopg import sql
from psycopg_pool import AsyncConnectionPool

from core.config import DatabaseDefaults
from core.logging import redact_connection_string
from repositories.migrations import apply_pending_migrations

logger = logging.getLogger(__name__)

# Global pool instance
_pool: Optional[AsyncConnectionPool] = None


# ============================================================================
# TABLE IDENTIFIERS
# ============================================================================

TABLE_USERS = sql.Identifier("users")
TABLE_TODOS = sql.Identifier("todos")


# ============================================================================
# POOL LIFECYCLE
# ============================================================================

async def init_pool(config: DatabaseDefaults) -> AsyncConnectionPool:
    """
    Initialize the global connection pool.

    Args:
        config: Database settings (connection string, pool bounds)

    Returns:
        AsyncConnectionPool instance (opened, possibly not yet connected)
    """
    global _pool

    if _pool is not None:
        logger.warning("Pool already initialized, returning existing pool")
        return _pool

    conninfo = config.connection_string
    logger.info(f"Initializing connection pool: {redact_connection_string(conninfo)}")

    _pool = AsyncConnectionPool(
        conninfo=conninfo,
        min_size=config.pool_min_size,
        max_size=config.pool_max_size,
        timeout=config.pool_timeout,
        open=False,
    )

    # Do not block startup on the first connection
    await _pool.open(wait=False)
    logger.info(
        f"Connection pool opened (min={config.pool_min_size}, max={config.pool_max_size})"
    )

    return _pool


def get_pool() -> Optional[AsyncConnectionPool]:
    """Get the global connection pool (None before init_pool)."""
    return _pool


async def close_pool() -> None:
    """Close the global connection pool."""
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("Connection pool closed")


# ============================================================================
# DATA ACCESS FACADE
# ============================================================================

class TodoDatabase:
    """
    Data-access operations the health subsystem depends on.

    Every method acquires its own pooled connection and releases it before
    returning; nothing is held across calls.
    """

    def __init__(
        self,
        pool: AsyncConnectionPool,
        connection_string: str,
        probe_timeout: float = 5.0,
    ):
        self.pool = pool
        self._connection_string = connection_string
        self.probe_timeout = probe_timeout

    @property
    def connection_string(self) -> str:
        """Configured connection string (contains credentials, redact before logging)."""
        return self._connection_string

    async def can_connect(self) -> bool:
        """
        Round-trip a trivial query.

        Returns:
            True when the server answered SELECT 1

        Raises:
            psycopg.Error / PoolTimeout / TimeoutError on failure
        """
        async with self.pool.connection(timeout=self.probe_timeout) as conn:
            cur = await asyncio.wait_for(
                conn.execute("SELECT 1"),
                timeout=self.probe_timeout,
            )
            row = await cur.fetchone()
            return row is not None and row[0] == 1

    async def describe_session(self) -> Dict[str, Any]:
        """Open a session and report what it is connected to."""
        async with self.pool.connection(timeout=self.probe_timeout) as conn:
            cur = await conn.execute(
                "SELECT current_database(), current_user, "
                "current_setting('server_version')"
            )
            database, user, version = await cur.fetchone()
            return {
                "databaseName": database,
                "user": user,
                "serverVersion": version,
            }

    async def _count(self, table: sql.Identifier) -> int:
        async with self.pool.connection(timeout=self.probe_timeout) as conn:
            cur = await conn.execute(
                sql.SQL("SELECT count(*) FROM {}").format(table)
            )
            row = await cur.fetchone()
            return int(row[0])

    async def count_todos(self) -> int:
        """Number of rows in the todos table."""
        return await self._count(TABLE_TODOS)

    async def count_users(self) -> int:
        """Number of rows in the users table."""
        return await self._count(TABLE_USERS)

    async def apply_pending_migrations(self) -> List[str]:
        """
        Apply schema migrations that have not run yet.

        Idempotent: returns an empty list when the schema is current.
        """
        async with self.pool.connection() as conn:
            return await apply_pending_migrations(conn)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "TABLE_USERS",
    "TABLE_TODOS",
    "init_pool",
    "get_pool",
    "close_pool",
    "TodoDatabase",
]
