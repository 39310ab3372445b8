"""Redis client for rate limiting and caching"""
import json
import logging
from typing import Dict, Optional

import redis

from videotube.core.config import settings

logger = logging.getLogger(__name__)

# Lazy initialization - no connection at import time
_client = None


def get_redis_client():
    """Get or create Redis client (lazy initialization)

    This prevents connection attempts during import, allowing mocks to be applied first.
    """
    global _client
    if _client is None:
        _client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _client


def increment_rate_limit(identifier: str, window: int) -> int:
    """Increment rate limit counter and return current count (fixed window)"""
    key = f"ratelimit:{identifier}"
    client = get_redis_client()

    count = client.incr(key)
    if count == 1:
        client.expire(key, window)
    return int(count)


def check_rate_limit(identifier: str, strict: bool = False) -> bool:
    """Check if request is within rate limit using Redis. Returns True if allowed, False if rate limited."""
    max_requests = settings.RATE_LIMIT_STRICT_REQUESTS if strict else settings.RATE_LIMIT_REQUESTS
    bucket = f"{identifier}:strict" if strict else identifier

    current_count = increment_rate_limit(bucket, settings.RATE_LIMIT_WINDOW)
    return current_count <= max_requests


def get_rate_limit_count(identifier: str) -> int:
    """Get current rate limit count"""
    count = get_redis_client().get(f"ratelimit:{identifier}")
    return int(count) if count else 0


def get_cached_channel_stats(channel_id: str) -> Optional[Dict]:
    """Get cached dashboard stats from Redis"""
    cached = get_redis_client().get(f"cache:channel_stats:{channel_id}")
    if cached:
        return json.loads(cached)
    return None


def set_cached_channel_stats(channel_id: str, stats: Dict) -> None:
    """Cache dashboard stats in Redis"""
    key = f"cache:channel_stats:{channel_id}"
    get_redis_client().setex(key, settings.STATS_CACHE_TTL, json.dumps(stats))


def invalidate_channel_stats(channel_id: str) -> None:
    """Drop cached dashboard stats for a channel

    Gracefully handles Redis failures - cache invalidation should not break user operations.
    """
    try:
        get_redis_client().delete(f"cache:channel_stats:{channel_id}")
    except redis.RedisError as e:
        logger.warning(f"Failed to invalidate stats cache for channel {channel_id}: {e}")
