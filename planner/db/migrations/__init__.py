"""Database migrations module.

Migrations are versioned SQL files in this directory (``001_plans.sql`` is
version 1), applied in order and recorded in ``schema_migrations``.
"""

import logging
from pathlib import Path
from typing import Any

from planner.db.core import _get_connection

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent

_CREATE_MIGRATIONS_TABLE = """
    CREATE TABLE IF NOT EXISTS schema_migrations (
        version INTEGER PRIMARY KEY,
        applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        description TEXT
    );
"""


async def get_current_version() -> int:
    """Get the current migration version from the database."""
    async with _get_connection() as conn:
        await conn.execute(_CREATE_MIGRATIONS_TABLE)
        row = await (
            await conn.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
        ).fetchone()
        return int(row[0]) if row and row[0] else 0


async def apply_migration(version: int, sql: str, description: str = "") -> bool:
    """Apply a single migration inside a transaction.

    Returns:
        True if migration was applied, False if already applied.
    """
    current = await get_current_version()
    if version <= current:
        logger.debug("Migration %d already applied", version)
        return False

    async with _get_connection(autocommit=False) as conn:
        try:
            async with conn.transaction():
                await conn.execute(sql)
                await conn.execute(
                    "INSERT INTO schema_migrations (version, description) VALUES (%s, %s)",
                    (version, description),
                )
        except Exception as e:
            logger.error("Failed to apply migration %d: %s", version, e)
            raise

    logger.info("Applied migration %d: %s", version, description)
    return True


def get_migration_files(after_version: int = 0) -> list[dict[str, Any]]:
    """List migration files newer than ``after_version``, ordered by version."""
    found = []
    for path in sorted(MIGRATIONS_DIR.glob("*.sql")):
        try:
            version = int(path.stem.split("_")[0])
        except ValueError:
            continue
        if version > after_version:
            found.append({
                "version": version,
                "filename": path.name,
                "description": "_".join(path.stem.split("_")[1:]),
                "path": path,
            })
    return sorted(found, key=lambda m: m["version"])


async def get_pending_migrations() -> list[dict[str, Any]]:
    return get_migration_files(await get_current_version())


async def run_migrations() -> int:
    """Run all pending migrations.

    Returns:
        Number of migrations applied.
    """
    applied = 0
    for migration in await get_pending_migrations():
        sql = migration["path"].read_text()
        if await apply_migration(migration["version"], sql, migration["description"]):
            applied += 1

    if applied:
        logger.info("Applied %d migrations", applied)
    else:
        logger.debug("No pending migrations")
    return applied
