"""Tests for the async TTL cache with stale fallback."""

from __future__ import annotations

import asyncio
import time

import pytest

from shared.cache import MISSING, AsyncTTLCache, cached


class Upstream:
    def __init__(self):
        self.calls = 0
        self.fail = False

    async def fetch(self) -> dict:
        self.calls += 1
        if self.fail:
            raise ConnectionError("upstream down")
        return {"77": f"Owner v{self.calls}"}


def _wrap(upstream: Upstream, cache: AsyncTTLCache):
    @cached(cache, key_func=lambda: "owners", retry=2, retry_delay=0)
    async def owners():
        return await upstream.fetch()

    return owners


class TestAsyncTTLCache:
    def test_missing_until_set(self):
        cache = AsyncTTLCache()
        assert cache.get("k") is MISSING
        cache.set("k", None)
        assert cache.get("k") is None

    def test_expired_entry_keeps_stale_copy(self):
        cache = AsyncTTLCache(ttl=0.01)
        cache.set("k", 1)
        time.sleep(0.02)
        assert cache.get("k") is MISSING
        assert cache.get_stale("k") == 1

    def test_stale_tier_is_bounded(self):
        cache = AsyncTTLCache(maxsize=2)
        for key in ("a", "b", "c"):
            cache.set(key, key)
        assert cache.get_stale("a") is MISSING
        assert cache.get_stale("c") == "c"


class TestCachedDecorator:
    async def test_second_call_is_served_from_cache(self):
        upstream = Upstream()
        owners = _wrap(upstream, AsyncTTLCache())
        assert await owners() == {"77": "Owner v1"}
        assert await owners() == {"77": "Owner v1"}
        assert upstream.calls == 1

    async def test_stale_value_served_when_upstream_fails(self):
        upstream = Upstream()
        cache = AsyncTTLCache(ttl=0.01)
        owners = _wrap(upstream, cache)
        await owners()

        await asyncio.sleep(0.02)
        upstream.fail = True
        assert await owners() == {"77": "Owner v1"}
        assert upstream.calls == 3

    async def test_error_propagates_without_stale_value(self):
        upstream = Upstream()
        upstream.fail = True
        owners = _wrap(upstream, AsyncTTLCache())
        with pytest.raises(ConnectionError):
            await owners()
        assert upstream.calls == 2
