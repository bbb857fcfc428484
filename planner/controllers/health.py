from typing import Any, Dict

from fastapi import APIRouter
from redis.exceptions import RedisError

from planner import db, state

router = APIRouter()


@router.get("/health")
async def health() -> Dict[str, Any]:
    redis_status = "disconnected"
    if state.redis_client:
        try:
            await state.redis_client.ping()
            redis_status = "healthy"
        except RedisError:
            redis_status = "unhealthy"

    database: Dict[str, Any] = {"status": "disabled"}
    if state.db_enabled:
        database = db.get_pool_stats()

    return {"status": "ok", "redis": redis_status, "database": database}
