import redis
import logging
import time
from typing import Callable, Optional, Tuple

from src.core.entities.account import AccountState

logger = logging.getLogger(__name__)


class RedisService:
    """
    Redis-backed balance cache, shared across worker processes.
    Same get/set surface as BalanceCache; a Redis outage degrades to cache misses.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        ttl_seconds: float = 30.0,
        client=None,
        clock: Callable[[], float] = time.time,
    ):
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self.client = client
        if self.client is None and self.redis_url:
            try:
                self.client = redis.from_url(self.redis_url, decode_responses=True)
                # Test connection
                self.client.ping()
                logger.info("Connected to Redis for balance caching.")
            except redis.RedisError as e:
                logger.warning(f"Failed to connect to Redis: {e}. Caching disabled.")
                self.client = None
        elif self.client is None:
            logger.info("REDIS_URL not set. Caching disabled.")

    @staticmethod
    def _redis_key(key: Tuple[str, str]) -> str:
        chain, address = key
        return f"account:{chain}:{address}"

    def get(self, key: Tuple[str, str]) -> Optional[AccountState]:
        if not self.client:
            return None
        try:
            data = self.client.get(self._redis_key(key))
            if data:
                return AccountState.model_validate_json(data)
            return None
        except (redis.RedisError, ValueError) as e:
            logger.warning(f"Redis get error: {e}")
            return None

    def set(self, key: Tuple[str, str], value: AccountState, timestamp: Optional[float] = None):
        if not self.client:
            return
        age = self._clock() - timestamp if timestamp is not None else 0.0
        ttl_ms = int((self.ttl_seconds - age) * 1000)
        if ttl_ms <= 0:
            return
        try:
            self.client.psetex(self._redis_key(key), ttl_ms, value.model_dump_json())
        except redis.RedisError as e:
            logger.warning(f"Redis set error: {e}")
