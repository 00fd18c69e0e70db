"""
Redis client configuration (RQ job queue backend)
"""

import logging

import redis
from rq import Queue

from shopvest.infrastructure.settings import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

# RQ stores pickled job payloads, so the pool must not decode responses
redis_pool = redis.ConnectionPool.from_url(settings.REDIS_URL)
redis_client = redis.Redis(connection_pool=redis_pool)


def get_redis() -> redis.Redis:
    """Get Redis client instance"""
    return redis_client


def get_queue(name: str = None) -> Queue:
    """Get the RQ queue used for background jobs"""
    return Queue(name or settings.JOBS_QUEUE_NAME, connection=redis_client)


def ping_redis() -> bool:
    """Ping Redis to check connectivity"""
    try:
        return bool(redis_client.ping())
    except redis.RedisError as exc:
        logger.warning("Redis ping failed", extra={"error": str(exc)})
        return False
