# socialdash/infrastructure/redis_cache.py
import os
from typing import Optional

import redis.asyncio as aioredis
import structlog

logger = structlog.get_logger(__name__)

REDIS_URL = os.getenv("REDIS_URL")
redis_client: Optional[aioredis.Redis] = aioredis.from_url(REDIS_URL, decode_responses=True) if REDIS_URL else None


class StateLedger:
    """
    Records OAuth state values that a callback has already accepted.
    The cookie alone cannot stop two near-simultaneous callbacks carrying the same state.
    """

    def __init__(self, client: aioredis.Redis, prefix: str = "oauth_state_used"):
        self.client = client
        self.prefix = prefix

    async def consume(self, platform: str, state: str, ttl: int) -> bool:
        """Return True the first time a state is seen, False on any later attempt."""
        key = f"{self.prefix}:{platform}:{state}"
        first = await self.client.set(key, "1", ex=max(1, ttl), nx=True)
        if not first:
            logger.warning("oauth_state_replayed", platform=platform)
        return bool(first)
