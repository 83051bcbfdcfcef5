# socialdash/dependencies/oauth.py
from typing import AsyncGenerator, Optional

import httpx

from socialdash import config
from socialdash.infrastructure import redis_cache
from socialdash.infrastructure.oauth_client import OAuthHTTPClient
from socialdash.infrastructure.redis_cache import StateLedger


async def get_oauth_client() -> AsyncGenerator[OAuthHTTPClient, None]:
    async with httpx.AsyncClient(timeout=config.oauth_http_timeout_seconds()) as client:
        yield OAuthHTTPClient(client)


def get_state_ledger() -> Optional[StateLedger]:
    if redis_cache.redis_client is None:
        return None
    return StateLedger(redis_cache.redis_client)
