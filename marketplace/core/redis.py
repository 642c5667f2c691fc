import redis.asyncio as redis
from redis.exceptions import RedisError, ConnectionError, TimeoutError

from marketplace.core.config import settings
from marketplace.core.logging import get_logger

logger = get_logger(__name__)


class RedisClient:
    """Async Redis client wrapper with proper error handling"""

    def __init__(self):
        self.client: redis.Redis | None = None

    async def connect(self):
        """
        Connect to Redis

        Raises:
            ConnectionError: If unable to connect to Redis
        """
        try:
            self.client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_keepalive=True,
                health_check_interval=30,
            )
            await self.client.ping()
            logger.info("redis_connected", host=settings.REDIS_HOST, port=settings.REDIS_PORT)
        except Exception as e:
            logger.error("redis_connect_failed", error_message=str(e))
            raise

    async def disconnect(self):
        if self.client:
            await self.client.aclose()
            logger.info("redis_disconnected")

    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        """
        Set value in Redis with optional TTL

        Raises:
            RuntimeError: If Redis client not connected
            RedisError: On Redis operation failures
        """
        if not self.client:
            raise RuntimeError("Redis client not connected")

        try:
            if ttl:
                await self.client.setex(key, ttl, value)
            else:
                await self.client.set(key, value)
            return True
        except (ConnectionError, TimeoutError) as e:
            logger.error("redis_connection_error", command="set", key=key, error_message=str(e))
            raise
        except RedisError as e:
            logger.error("redis_error", command="set", key=key, error_message=str(e))
            raise

    async def exists(self, key: str) -> bool:
        """
        Check if key exists in Redis

        Raises:
            RuntimeError: If Redis client not connected
            RedisError: On Redis operation failures
        """
        if not self.client:
            raise RuntimeError("Redis client not connected")

        try:
            return bool(await self.client.exists(key))
        except (ConnectionError, TimeoutError) as e:
            logger.error("redis_connection_error", command="exists", key=key, error_message=str(e))
            raise
        except RedisError as e:
            logger.error("redis_error", command="exists", key=key, error_message=str(e))
            raise


# Global Redis client instance
redis_client = RedisClient()
