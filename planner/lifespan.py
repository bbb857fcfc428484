"""Application startup and shutdown.

``setup_resources`` opens the Redis client, the event bus and the database
pool according to the feature flags; ``cleanup_resources`` releases them and
clears :mod:`planner.state`.
"""

import logging
from dataclasses import dataclass

import redis.asyncio as redis

from planner import db, state
from planner.bus import EventBus
from planner.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class LifespanResources:
    redis_client: redis.Redis | None = None
    event_bus: EventBus | None = None
    db_enabled: bool = False


async def init_redis() -> redis.Redis:
    """Create the Redis client on a blocking connection pool."""
    cfg = get_settings().redis
    pool = redis.BlockingConnectionPool(
        host=cfg.host,
        port=cfg.port,
        password=cfg.password or None,
        max_connections=cfg.max_connections,
        timeout=cfg.pool_timeout_sec,
        health_check_interval=cfg.health_check_interval,
        socket_timeout=cfg.socket_timeout,
        socket_connect_timeout=cfg.socket_connect_timeout,
        retry_on_timeout=cfg.retry_on_timeout,
    )
    client = redis.Redis(connection_pool=pool, decode_responses=True)
    logger.info("Redis client created for %s:%d", cfg.host, cfg.port)
    return client


async def init_database() -> bool:
    """Open the connection pool and run migrations.

    Returns:
        True if the database is ready, False if disabled or unreachable.
    """
    if not get_settings().features.database:
        logger.info("Database disabled by ENABLE_DB")
        return False
    try:
        await db.init_pool()
    except Exception as e:
        logger.warning("Failed to initialize database: %s", e)
        return False
    return True


async def setup_resources() -> LifespanResources:
    resources = LifespanResources()

    if get_settings().features.events:
        resources.redis_client = await init_redis()
        resources.event_bus = EventBus(resources.redis_client)
    else:
        logger.info("Plan events disabled by ENABLE_EVENTS")

    resources.db_enabled = await init_database()

    state.redis_client = resources.redis_client
    state.event_bus = resources.event_bus
    state.db_enabled = resources.db_enabled
    return resources


async def cleanup_resources(resources: LifespanResources) -> None:
    if resources.db_enabled:
        await db.close_pool()
    if resources.redis_client is not None:
        await resources.redis_client.aclose()

    state.redis_client = None
    state.event_bus = None
    state.db_enabled = False
