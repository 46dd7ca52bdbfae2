"""
Optional Redis cache for composed replies.

Keyed by the structured query (year, speed count, tokens) so "Accord 2000" and
"accord  00" share an entry. Best-effort: Redis errors are logged and the
request carries on uncached.
"""

import json
import logging

import redis.asyncio as redis

from transfinder.config import settings
from transfinder.utils.query_parser import ParsedQuery

logger = logging.getLogger(__name__)


def cache_key(parsed: ParsedQuery) -> str:
    year = parsed.explicit_year or "-"
    speeds = parsed.explicit_speed_count or "-"
    tokens = "_".join(parsed.keyword_tokens) or "-"
    return f"transmission:{year}:{speeds}:{tokens}"


class ReplyCache:
    def __init__(
        self,
        ttl_seconds: int = 21600,
        degraded_ttl_seconds: int = 300,
        client: redis.Redis | None = None,
    ):
        self.ttl_seconds = ttl_seconds
        self.degraded_ttl_seconds = degraded_ttl_seconds
        self._client = client

    async def get_client(self) -> redis.Redis:
        """Get or create the Redis client."""
        if self._client is None:
            self._client = await redis.Redis(
                host=settings.redis_host,
                port=settings.redis_port,
                db=settings.redis_db,
                password=settings.redis_password,
                decode_responses=True,
            )
        return self._client

    async def get(self, key: str) -> dict | None:
        try:
            client = await self.get_client()
            cached = await client.get(key)
            if cached:
                return json.loads(cached)
        except Exception as e:
            logger.warning(f"Redis cache read error: {e}")
        return None

    async def set(self, key: str, value: dict, degraded: bool = False) -> None:
        ttl = self.degraded_ttl_seconds if degraded else self.ttl_seconds
        try:
            client = await self.get_client()
            await client.setex(key, ttl, json.dumps(value))
        except Exception as e:
            logger.warning(f"Redis cache write error: {e}")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
