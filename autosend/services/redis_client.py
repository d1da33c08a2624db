# autosend/services/redis_client.py
import redis
from redis.connection import ConnectionPool

from autosend.config import settings
from autosend.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class RateLimitRedisClient:
    """Pooled synchronous Redis connection for the shared rate limit store"""

    def __init__(self):
        self.pool = None
        self.client = None
        self._initialized = False

    @property
    def enabled(self) -> bool:
        return settings.AUTOSEND_RATE_LIMIT_BACKEND.lower() == "redis" and bool(settings.REDIS_URL)

    def initialize(self):
        """Initialize connection pool on startup"""
        if self._initialized or not self.enabled:
            return

        try:
            logger.info("Attempting Redis connection", url_preview=settings.REDIS_URL[:30] + "...")

            self.pool = ConnectionPool.from_url(
                settings.REDIS_URL,
                max_connections=20,
                retry_on_timeout=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                health_check_interval=30,
                decode_responses=True,
            )
            self.client = redis.Redis(connection_pool=self.pool)

            result = self.client.ping()
            logger.info("Redis ping successful", result=result)

            self._initialized = True
            logger.info("Rate limit Redis client initialized", max_connections=20)

        except Exception as e:
            logger.error("Failed to initialize rate limit Redis client", error=str(e))
            self._initialized = False
            raise RuntimeError("Redis initialization failed") from e

    def close(self):
        """Clean shutdown"""
        try:
            if self.client:
                self.client.close()
            if self.pool:
                self.pool.disconnect()
            self._initialized = False
            logger.info("Rate limit Redis client closed")
        except Exception as e:
            logger.error("Error closing Redis client", error=str(e))

    def ping(self) -> bool:
        """Test Redis connection"""
        if not self._initialized:
            return False
        try:
            return bool(self.client.ping())
        except Exception as e:
            logger.error("Redis ping failed", error=str(e))
            return False


redis_client = RateLimitRedisClient()
