"""Redis connection and the statistics cache built on it."""

import json
from typing import Any, cast
from uuid import UUID

import redis
import structlog

from app.config import settings

logger = structlog.get_logger(__name__)

STATISTICS_KEY_PREFIX = "appointments:stats"

# Global Redis client instance
_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """Shared Redis client, created lazily on first use."""
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username,
            password=settings.redis_password,
            decode_responses=settings.redis_decode_responses,
            socket_connect_timeout=2,
            socket_timeout=2,
            health_check_interval=30,
        )

    return _redis_client


async def check_redis_connection() -> bool:
    """Ping Redis. Scheduling does not depend on it, so False is not fatal."""
    try:
        return bool(get_redis_client().ping())
    except redis.RedisError as e:
        logger.debug("redis_ping_failed", error=str(e))
        return False


def close_redis_connection() -> None:
    """Drop the shared client; the next call to get_redis_client reconnects."""
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None


def statistics_cache_key(hospital_id: UUID) -> str:
    return f"{STATISTICS_KEY_PREFIX}:{hospital_id}"


class CacheManager:
    """
    JSON values in Redis, keyed per hospital for the statistics rollup.

    Redis is an optimization here, never a source of truth: a read error
    is a miss and a write error is ignored, the database answers instead.
    """

    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client

    def get_json(self, key: str) -> Any | None:
        try:
            raw = cast(str | bytes | None, self.redis.get(key))
        except Exception as e:
            logger.warning("cache_read_failed", key=key, error=str(e))
            return None

        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("cache_entry_corrupt", key=key)
            return None

    def set_json(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """
        Store ``value`` as JSON, expiring after ``ttl`` seconds when given.

        Returns:
            Whether Redis accepted the write
        """
        payload = json.dumps(value, default=str)
        try:
            if ttl:
                self.redis.setex(key, ttl, payload)
            else:
                self.redis.set(key, payload)
        except Exception as e:
            logger.warning("cache_write_failed", key=key, error=str(e))
            return False
        return True

    def delete(self, key: str) -> bool:
        try:
            self.redis.delete(key)
        except Exception as e:
            logger.warning("cache_invalidation_failed", key=key, error=str(e))
            return False
        return True

    # Statistics rollup

    def get_statistics(self, hospital_id: UUID) -> dict[str, Any] | None:
        cached = self.get_json(statistics_cache_key(hospital_id))
        return cached if isinstance(cached, dict) else None

    def set_statistics(self, hospital_id: UUID, stats: dict[str, Any]) -> bool:
        return self.set_json(
            statistics_cache_key(hospital_id), stats, ttl=settings.statistics_cache_ttl
        )

    def invalidate_statistics(self, hospital_id: UUID) -> bool:
        return self.delete(statistics_cache_key(hospital_id))
