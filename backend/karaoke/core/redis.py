from redis.asyncio import Redis

from karaoke.core.config import settings

_client: Redis | None = None


async def get_redis_client() -> Redis:
    """Shared Redis connection pool for the process."""
    global _client
    if _client is None:
        _client = Redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _client


async def close_redis_client():
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
