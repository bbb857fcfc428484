"""PostgreSQL connection pool for the plans store."""

import logging
from contextlib import asynccontextmanager

import psycopg
from psycopg_pool import AsyncConnectionPool

from planner.config import get_settings

logger = logging.getLogger(__name__)

_pool: AsyncConnectionPool | None = None


async def init_pool() -> None:
    """Open the shared pool once and migrate the schema."""
    global _pool
    if _pool is not None:
        return
    cfg = get_settings().postgres
    _pool = AsyncConnectionPool(
        cfg.get_dsn(),
        min_size=cfg.pool_min_size,
        max_size=cfg.pool_max_size,
        timeout=cfg.pool_timeout,
        max_lifetime=cfg.pool_max_lifetime,
        max_idle=cfg.pool_max_idle,
        check=AsyncConnectionPool.check_connection,
        open=False,
    )
    await _pool.open()
    logger.info(
        "Connection pool open on %s:%d/%s (min=%d, max=%d)",
        cfg.host, cfg.port, cfg.database, cfg.pool_min_size, cfg.pool_max_size,
    )
    # schema imports the migration runner, which imports this module
    from planner.db.schema import _ensure_schema

    await _ensure_schema()


async def close_pool() -> None:
    global _pool
    if _pool is None:
        return
    await _pool.close()
    _pool = None
    logger.info("Connection pool closed")


@asynccontextmanager
async def _get_connection(autocommit: bool = True):
    """Borrow a pooled connection, or open a one-off one before the pool exists."""
    if _pool is None:
        dsn = get_settings().postgres.get_dsn()
        async with await psycopg.AsyncConnection.connect(dsn, autocommit=autocommit) as conn:
            yield conn
        return
    async with _pool.connection() as conn:
        if autocommit:
            await conn.set_autocommit(True)
        yield conn


def get_pool_stats() -> dict[str, object]:
    if _pool is None:
        return {"status": "not_initialized"}
    stats = _pool.get_stats()
    return {
        "status": "active",
        "size": stats.get("pool_size", 0),
        "available": stats.get("pool_available", 0),
        "waiting": stats.get("requests_waiting", 0),
    }
