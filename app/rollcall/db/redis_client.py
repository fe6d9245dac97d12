import logging
from typing import Optional
import redis.asyncio as redis

logger = logging.getLogger(__name__)


class RedisClient:
    """
    Redis client for the identity side of the API: revoked access tokens.

    Attendance state is never kept here; PostgreSQL is the only source of truth.
    """

    def __init__(self, pool: redis.ConnectionPool):
        self._redis = redis.Redis(connection_pool=pool, decode_responses=True)

    # ===== Token Revocation =====

    async def revoke_token(self, jti: str, ttl: int):
        """Marks a token id as revoked until the token would have expired anyway."""
        key = f"revoked_tokens:{jti}"
        await self._redis.set(key, "1", ex=max(ttl, 1))

    async def is_token_revoked(self, jti: Optional[str]) -> bool:
        if not jti:
            return False
        key = f"revoked_tokens:{jti}"
        return bool(await self._redis.exists(key))
