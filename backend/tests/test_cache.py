"""Tests for caching utilities."""

import pytest
from cachetools import TTLCache

from models.admin import LoginAttemptCounter
from utils.cache import (
    CACHE_CONTROL_NO_STORE,
    CACHE_CONTROL_PRIVATE,
    LOGIN_ATTEMPT_MAX_CLIENTS,
    LOGIN_ATTEMPT_TTL_SECONDS,
    create_login_attempt_cache,
)


class TestCacheConstants:
    """Test cache constant values."""

    def test_login_attempt_ttl(self):
        """Test attempts are kept for 15 minutes."""
        assert LOGIN_ATTEMPT_TTL_SECONDS == 900

    def test_login_attempt_max_clients(self):
        assert LOGIN_ATTEMPT_MAX_CLIENTS == 10000

    def test_cache_control_values(self):
        assert CACHE_CONTROL_NO_STORE == "no-store"
        assert CACHE_CONTROL_PRIVATE == "private, no-cache"


class TestLoginAttemptCache:
    """Tests for create_login_attempt_cache."""

    @pytest.fixture
    def now(self):
        return [0.0]

    @pytest.fixture
    def cache(self, now):
        return create_login_attempt_cache(maxsize=3, ttl=60, timer=lambda: now[0])

    def test_default_cache(self):
        cache = create_login_attempt_cache()

        assert isinstance(cache, TTLCache)
        assert cache.maxsize == LOGIN_ATTEMPT_MAX_CLIENTS
        assert cache.ttl == LOGIN_ATTEMPT_TTL_SECONDS

    def test_entry_survives_within_ttl(self, cache, now):
        cache["10.0.0.1"] = LoginAttemptCounter(count=1, window_start=0.0)
        now[0] = 59

        assert cache["10.0.0.1"].count == 1

    def test_entry_expires_after_ttl(self, cache, now):
        cache["10.0.0.1"] = LoginAttemptCounter(count=5, window_start=0.0)
        now[0] = 61

        assert "10.0.0.1" not in cache

    def test_oldest_client_evicted_when_full(self, cache):
        for i in range(4):
            cache[f"10.0.0.{i}"] = LoginAttemptCounter(count=1, window_start=0.0)

        assert len(cache) == 3
        assert "10.0.0.0" not in cache
