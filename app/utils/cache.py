"""
Redis cache utility for analytics snapshots
"""
import redis
import json
import logging
from typing import Optional, Any
from uuid import UUID
from app.config import settings

logger = logging.getLogger(__name__)


class CacheService:
    """Redis-based cache; every operation degrades to a miss when Redis is unavailable"""

    def __init__(self, redis_url: Optional[str] = None):
        redis_url = settings.REDIS_URL if redis_url is None else redis_url
        self.redis_client = None

        if not redis_url:
            logger.info("REDIS_URL not set. Caching disabled.")
            return

        try:
            self.redis_client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=5
            )
            # Test connection
            self.redis_client.ping()
            logger.info("Redis connection established")
        except Exception as e:
            logger.warning(f"Redis connection failed: {str(e)}. Caching disabled.")
            self.redis_client = None

    @staticmethod
    def quiz_analytics_key(quiz_id: UUID, top_n: int) -> str:
        return f"analytics:quiz:{quiz_id}:top{top_n}"

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache

        Args:
            key: Cache key

        Returns:
            Cached value or None
        """
        if not self.redis_client:
            return None

        try:
            value = self.redis_client.get(key)
            if value:
                logger.debug(f"Cache hit: {key}")
                return json.loads(value)
            logger.debug(f"Cache miss: {key}")
            return None
        except Exception as e:
            logger.error(f"Cache get error: {str(e)}")
            return None

    def set(self, key: str, value: Any, ttl: int = None) -> bool:
        """
        Set value in cache

        Args:
            key: Cache key
            value: Value to cache (JSON serializable; UUIDs and datetimes are stringified)
            ttl: Time to live in seconds (default from settings)

        Returns:
            Success status
        """
        if not self.redis_client:
            return False

        try:
            ttl = ttl or settings.ANALYTICS_CACHE_TTL
            serialized = json.dumps(value, default=str)
            self.redis_client.setex(key, ttl, serialized)
            logger.debug(f"Cache set: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"Cache set error: {str(e)}")
            return False

    def clear_quiz_analytics(self, quiz_id: UUID) -> bool:
        """Evict every cached analytics snapshot for a quiz"""
        if not self.redis_client:
            return False

        try:
            keys = self.redis_client.keys(f"analytics:quiz:{quiz_id}:*")
            if keys:
                self.redis_client.delete(*keys)
                logger.debug(f"Cleared {len(keys)} analytics cache entries for quiz {quiz_id}")
            return True
        except Exception as e:
            logger.error(f"Cache clear error: {str(e)}")
            return False


# Global instance
cache_service = CacheService()
