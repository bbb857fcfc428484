from typing import Optional

import redis.asyncio as redis

from planner.bus import EventBus

# Global runtime state initialized in planner.lifespan
redis_client: Optional[redis.Redis] = None
event_bus: Optional[EventBus] = None
db_enabled: bool = False
