import os
import pytest
import pytest_asyncio
import redis.asyncio as redis
from redis.exceptions import RedisError

from app.rollcall.db.redis_client import RedisClient

TEST_REDIS_URL = os.environ.get("TEST_REDIS_URL", "redis://localhost:6379/1")


@pytest_asyncio.fixture(scope="function")
async def redis_pool():
    pool = redis.ConnectionPool.from_url(TEST_REDIS_URL, decode_responses=True)
    client = redis.Redis(connection_pool=pool)
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        await pool.disconnect()
        pytest.skip(f"Test Redis unreachable: {e}")
    await client.flushdb()
    yield pool
    await client.flushdb()
    await client.aclose()

@pytest.fixture
def redis_client(redis_pool):
    return RedisClient(pool=redis_pool)


@pytest.mark.asyncio
class TestTokenRevocation:

    async def test_revoked_token_is_reported(self, redis_client):
        await redis_client.revoke_token("jti-1", ttl=60)

        assert await redis_client.is_token_revoked("jti-1") is True
        assert await redis_client.is_token_revoked("jti-2") is False

    async def test_revocation_expires_with_token(self, redis_client):
        await redis_client.revoke_token("jti-3", ttl=0)
        assert 0 < await redis_client._redis.ttl("revoked_tokens:jti-3") <= 1

    async def test_token_without_id_is_never_revoked(self, redis_client):
        assert await redis_client.is_token_revoked(None) is False
