"""
@file        token_blacklist.py
@brief       Revoked-token registry keyed by JWT ID (Redis with in-memory fallback)
@copyright   (c) 2025 FtsCoDe GmbH. All rights reserved.
@author      Heinstein F.
@date        2026-10-17

@details
Revoked tokens are stored as blacklist:{jti} with a TTL equal to the token's
remaining lifetime, so entries disappear once the token would have expired anyway.

When Redis is not configured or not reachable, revocations are kept in process
memory. On a Redis error during a lookup the check fails closed in production
and falls back to the in-memory registry elsewhere.
"""

from typing import Dict, Optional
import logging
import threading
import time

from fastapi import status
import redis

from config import Settings
from services.errors import AppError, ErrorCode

logger = logging.getLogger(__name__)

BLACKLIST_KEY_PREFIX = "blacklist:"


def create_redis_client(settings: Settings) -> Optional[redis.Redis]:
    """
    Connect to Redis for the blacklist.

    Returns:
        redis.Redis, or None when the connection cannot be established
    """
    try:
        client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        client.ping()
        logger.info(f"Redis connected: {settings.redis_host}:{settings.redis_port}")
        return client
    except redis.RedisError as e:
        logger.error(f"Redis connection failed: {e}")
        return None


class TokenBlacklist:
    """Registry of revoked JWT IDs"""

    def __init__(self, redis_client: Optional[redis.Redis] = None, fail_closed: bool = False):
        self.redis_client = redis_client
        self.fail_closed = fail_closed
        self._lock = threading.Lock()
        self._revoked: Dict[str, float] = {}  # jti -> expires_at (epoch seconds)

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenBlacklist":
        client = None
        if settings.token_blacklist_backend == "redis":
            client = create_redis_client(settings)
            if client is None:
                logger.warning("Redis unavailable - token blacklist kept in memory")
        return cls(redis_client=client, fail_closed=settings.is_production)

    def revoke(self, jti: Optional[str], ttl_seconds: int) -> None:
        """Revoke a token ID for ttl_seconds (at least one second)"""
        if not jti:
            return
        ttl = max(1, int(ttl_seconds))

        if self.redis_client is not None:
            try:
                self.redis_client.setex(f"{BLACKLIST_KEY_PREFIX}{jti}", ttl, "1")
                return
            except redis.RedisError as e:
                logger.error(f"Redis blacklist write failed, keeping revocation in memory: {e}")

        with self._lock:
            self._revoked[jti] = time.time() + ttl

    def is_revoked(self, jti: Optional[str]) -> bool:
        if not jti:
            return False

        if self.redis_client is not None:
            try:
                if self.redis_client.exists(f"{BLACKLIST_KEY_PREFIX}{jti}"):
                    return True
            except redis.RedisError as e:
                logger.error(f"Redis blacklist check failed: {e}")
                if self.fail_closed:
                    raise AppError(
                        "Authentication service temporarily unavailable. Please try again.",
                        status.HTTP_503_SERVICE_UNAVAILABLE,
                        ErrorCode.INTERNAL_ERROR,
                    )

        with self._lock:
            expires_at = self._revoked.get(jti)
            if expires_at is None:
                return False
            if expires_at <= time.time():
                del self._revoked[jti]
                return False
            return True

    def purge_expired(self) -> int:
        """Drop in-memory entries whose TTL has passed; returns the number removed"""
        now = time.time()
        with self._lock:
            expired = [jti for jti, expires_at in self._revoked.items() if expires_at <= now]
            for jti in expired:
                del self._revoked[jti]
        return len(expired)
