"""
Tests for sliding-window rate limiting.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.core import rate_limit
from app.core.rate_limit import check_rate_limit


@pytest.fixture(autouse=True)
def clear_memory_store():
    rate_limit._memory_store.clear()
    yield
    rate_limit._memory_store.clear()


class TestMemoryFallback:
    """Rate limiting without Redis."""

    @pytest.mark.asyncio
    async def test_allows_up_to_limit(self):
        with patch("app.core.redis.redis_client", None):
            results = [await check_rate_limit("admin:bulk_users:a", 3, 60) for _ in range(4)]

        assert results == [True, True, True, False]

    @pytest.mark.asyncio
    async def test_keys_are_independent(self):
        with patch("app.core.redis.redis_client", None):
            assert await check_rate_limit("admin:bulk_users:a", 1, 60) is True
            assert await check_rate_limit("admin:bulk_users:a", 1, 60) is False
            assert await check_rate_limit("admin:bulk_users:b", 1, 60) is True

    def test_expired_entries_leave_window(self):
        with patch("app.core.rate_limit.time.time", return_value=1000.0):
            assert rate_limit._check_rate_limit_memory("k", 1, 60) is True
            assert rate_limit._check_rate_limit_memory("k", 1, 60) is False

        with patch("app.core.rate_limit.time.time", return_value=1061.0):
            assert rate_limit._check_rate_limit_memory("k", 1, 60) is True


class TestRedisBackend:
    """Rate limiting through the shared Redis client."""

    @staticmethod
    def _client(count: int):
        pipe = MagicMock()
        pipe.execute = AsyncMock(return_value=[0, count, 1, True])
        client = MagicMock()
        client.pipeline.return_value = pipe
        return client

    @pytest.mark.asyncio
    async def test_under_limit(self):
        with patch("app.core.redis.redis_client", self._client(count=2)):
            assert await check_rate_limit("k", 10, 60) is True

    @pytest.mark.asyncio
    async def test_at_limit(self):
        with patch("app.core.redis.redis_client", self._client(count=10)):
            assert await check_rate_limit("k", 10, 60) is False

    @pytest.mark.asyncio
    async def test_redis_error_falls_back_to_memory(self):
        client = self._client(count=0)
        client.pipeline.return_value.execute.side_effect = ConnectionError("down")

        with patch("app.core.redis.redis_client", client):
            assert await check_rate_limit("k", 1, 60) is True

        assert "k" in rate_limit._memory_store
