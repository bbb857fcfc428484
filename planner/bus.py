"""
Plan activity events, published over Redis pub/sub.
"""
import json
import logging
from typing import Final

import redis.asyncio as redis
from redis.exceptions import RedisError

from planner.events import PlanEvent

CHANNEL_PLAN_PREFIX: Final[str] = "plan:"

logger = logging.getLogger("planner.bus")


class EventBus:
    def __init__(self, redis_client: redis.Redis):
        self.redis_client = redis_client

    @staticmethod
    def plan_channel(slug: str) -> str:
        return f"{CHANNEL_PLAN_PREFIX}{slug}"

    async def publish(self, event: PlanEvent) -> None:
        await self.redis_client.publish(self.plan_channel(event["slug"]), json.dumps(event))

    async def try_publish(self, event: PlanEvent) -> bool:
        """Publish without letting a Redis failure reach the caller."""
        try:
            await self.publish(event)
            return True
        except RedisError as e:
            logger.warning("Failed to publish %s for plan %s: %r", event["type"], event["slug"], e)
            return False
