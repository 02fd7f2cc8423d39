from typing import Optional

from redis.asyncio import Redis

from app.platform.config import settings

_redis: Optional[Redis] = None


def get_redis() -> Optional[Redis]:
    """Shared Redis client, or None when REDIS_URL is not configured."""
    global _redis
    if not settings.REDIS_URL:
        return None
    if _redis is None:
        _redis = Redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=settings.DB_TIMEOUT_SECONDS,
            socket_connect_timeout=settings.DB_TIMEOUT_SECONDS,
        )
    return _redis
