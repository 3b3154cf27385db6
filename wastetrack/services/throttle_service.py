# wastetrack/services/throttle_service.py
"""
Declaration throttle backed by Redis.
One key per (actor, container): throttle:<actorId>:<containerId>, value "1", TTL 60s.

The store is an anti-spam layer only. Every Redis failure is logged and treated
as "not throttled" so a dead Redis never blocks a declaration.
"""

from typing import Optional

from redis import Redis
from redis.exceptions import RedisError

from wastetrack.config import settings
from wastetrack.utils.logger import get_logger

logger = get_logger(__name__)


def throttle_key(actor_id, container_id) -> str:
    return f"throttle:{actor_id}:{container_id}"


class ThrottleStore:
    def __init__(self, client: Optional[Redis], ttl_seconds: int = 60):
        self.client = client
        self.ttl_seconds = ttl_seconds

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def exists(self, key: str) -> bool:
        if self.client is None:
            return False
        try:
            return bool(self.client.exists(key))
        except RedisError as e:
            logger.error(f"Throttle store unavailable (exists {key}), throttling disabled: {e}", exc_info=True)
            return False

    def remaining_ttl(self, key: str) -> Optional[int]:
        """Seconds left on the key, or None when unknown."""
        if self.client is None:
            return None
        try:
            ttl = int(self.client.ttl(key))
        except (RedisError, TypeError, ValueError) as e:
            logger.error(f"Throttle store unavailable (ttl {key}): {e}")
            return None
        # -2: key gone, -1: key without expiry
        return ttl if ttl > 0 else None

    def set_with_ttl(self, key: str, ttl_seconds: Optional[int] = None) -> None:
        if self.client is None:
            return
        try:
            self.client.set(key, "1", ex=ttl_seconds or self.ttl_seconds)
        except RedisError as e:
            logger.error(f"Throttle store unavailable (set {key}), key not written: {e}", exc_info=True)

    def ping(self) -> str:
        if self.client is None:
            return "disabled"
        try:
            self.client.ping()
            return "ok"
        except RedisError:
            return "unavailable"


_store: Optional[ThrottleStore] = None


def get_throttle_store() -> ThrottleStore:
    """FastAPI dependency: process-wide store, Redis connection created lazily."""
    global _store
    if _store is None:
        client = None
        if settings.REDIS_URL.strip():
            client = Redis.from_url(
                settings.REDIS_URL,
                socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
                socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
                decode_responses=True,
            )
            logger.info(f"Throttle store: {settings.REDIS_URL}")
        else:
            logger.warning("REDIS_URL empty, declaration throttling disabled")
        _store = ThrottleStore(client, ttl_seconds=settings.THROTTLE_TTL_SECONDS)
    return _store
