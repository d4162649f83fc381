# ============================================================================
# SCHEMA MIGRATIONS
# ============================================================================
# STATUS: Infrastructure - Versioned DDL for users/todos
# PURPOSE: Idempotent schema migration applied at startup
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
Schema Migrations

Ordered, versioned DDL for the Todo schema. Applied versions are recorded
in ``schema_migrations``; a transaction-scoped advisory lock keeps two
starting instances from applying the same migration twice.

Running ``apply_pending_migrations`` on a current schema is a no-op.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Set

from psycopg import AsyncConnection, sql

logger = logging.getLogger(__name__)

# Stable advisory lock id for migrations (hash of "todoapp:migrations")
MIGRATION_LOCK_ID = 7311480915305842217

TABLE_MIGRATIONS = sql.Identifier("schema_migrations")


@dataclass(frozen=True)
class Migration:
    """A single schema change."""
    version: str
    name: str
    statement: sql.Composable


MIGRATIONS: List[Migration] = [
    Migration(
        version="0001",
        name="create_users",
        statement=sql.SQL("""
            CREATE TABLE IF NOT EXISTS users (
                id SERIAL PRIMARY KEY,
                name VARCHAR(100) NOT NULL,
                email VARCHAR(256) NOT NULL,
                birth_date DATE,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                CONSTRAINT uq_users_email UNIQUE (email)
            )
        """),
    ),
    Migration(
        version="0002",
        name="create_todos",
        statement=sql.SQL("""
            CREATE TABLE IF NOT EXISTS todos (
                id SERIAL PRIMARY KEY,
                title VARCHAR(200) NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                is_complete BOOLEAN NOT NULL DEFAULT FALSE,
                avatar_image_path TEXT,
                user_id INTEGER NOT NULL,
                CONSTRAINT fk_todos_users FOREIGN KEY (user_id)
                    REFERENCES users (id) ON DELETE RESTRICT
            )
        """),
    ),
    Migration(
        version="0003",
        name="index_todos_user_id",
        statement=sql.SQL(
            "CREATE INDEX IF NOT EXISTS ix_todos_user_id ON todos (user_id)"
        ),
    ),
]


def pending_migrations(
    applied: Iterable[str],
    migrations: Iterable[Migration] = MIGRATIONS,
) -> List[Migration]:
    """Migrations whose version is not in ``applied``, in order."""
    done: Set[str] = set(applied)
    return [m for m in migrations if m.version not in done]


async def apply_pending_migrations(conn: AsyncConnection) -> List[str]:
    """
    Apply every pending migration in one transaction.

    Args:
        conn: Connection checked out from the pool

    Returns:
        Versions applied by this call (empty when already current)
    """
    async with conn.transaction():
        await conn.execute("SELECT pg_advisory_xact_lock(%s)", (MIGRATION_LOCK_ID,))
        await conn.execute(
            sql.SQL("""
                CREATE TABLE IF NOT EXISTS {} (
                    version VARCHAR(32) PRIMARY KEY,
                    name VARCHAR(128) NOT NULL,
                    applied_at TIMESTAMPTZ NOT NULL DEFAULT now()
                )
            """).format(TABLE_MIGRATIONS)
        )

        cur = await conn.execute(
            sql.SQL("SELECT version FROM {}").format(TABLE_MIGRATIONS)
        )
        applied = [row[0] for row in await cur.fetchall()]

        newly_applied = []
        for migration in pending_migrations(applied):
            logger.info(f"Applying migration {migration.version} ({migration.name})")
            await conn.execute(migration.statement)
            await conn.execute(
                sql.SQL("INSERT INTO {} (version, name) VALUES (%s, %s)").format(
                    TABLE_MIGRATIONS
                ),
                (migration.version, migration.name),
            )
            newly_applied.append(migration.version)

    if newly_applied:
        logger.info(f"Applied {len(newly_applied)} migration(s): {', '.join(newly_applied)}")
    else:
        logger.info("Database schema is up to date")

    return newly_applied


__all__ = [
    "Migration",
    "MIGRATIONS",
    "MIGRATION_LOCK_ID",
    "pending_migrations",
    "apply_pending_migrations",
]
