"""Tests for the fingerprint cache."""

from __future__ import annotations

import asyncio

import pytest

from conftest import list_response
from playfetch.cache.cache import FingerprintCache
from playfetch.exceptions import RequestError
from playfetch.models import DecodedResponse


class CountingProducer:
    """Producer that records how often it was started."""

    def __init__(self, response: DecodedResponse, delay: float = 0.0) -> None:
        self.response = response
        self.delay = delay
        self.calls = 0

    async def __call__(self) -> DecodedResponse:
        self.calls += 1
        await asyncio.sleep(self.delay)
        return self.response


class FailingProducer:
    def __init__(self) -> None:
        self.calls = 0

    async def __call__(self) -> DecodedResponse:
        self.calls += 1
        raise RequestError("boom", status_code=500)


# ------------------------------------------------------------------ #
# resolve
# ------------------------------------------------------------------ #


class TestResolve:
    def test_concurrent_calls_share_one_production(self) -> None:
        async def scenario() -> None:
            cache = FingerprintCache()
            producer = CountingProducer(list_response("a.app"), delay=0.01)
            first = cache.resolve("fp", producer)
            second = cache.resolve("fp", producer)
            assert first is second
            results = await asyncio.gather(first, second)
            assert results[0] == results[1] == producer.response
            assert producer.calls == 1

        asyncio.run(scenario())

    def test_entry_is_stored_before_it_resolves(self) -> None:
        async def scenario() -> None:
            cache = FingerprintCache()
            future = cache.resolve("fp", CountingProducer(DecodedResponse(), delay=0.01))
            assert "fp" in cache
            assert not future.done()
            await future

        asyncio.run(scenario())

    def test_resolved_entry_is_reused(self) -> None:
        async def scenario() -> None:
            cache = FingerprintCache()
            producer = CountingProducer(list_response("a.app"))
            await cache.resolve("fp", producer)
            await cache.resolve("fp", producer)
            assert producer.calls == 1

        asyncio.run(scenario())

    def test_different_fingerprints_do_not_share(self) -> None:
        async def scenario() -> None:
            cache = FingerprintCache()
            producer = CountingProducer(DecodedResponse())
            await asyncio.gather(cache.resolve("a", producer), cache.resolve("b", producer))
            assert producer.calls == 2
            assert cache.keys() == ["a", "b"]

        asyncio.run(scenario())

    def test_failure_reaches_every_waiter_and_is_evicted(self) -> None:
        async def scenario() -> None:
            cache = FingerprintCache()
            producer = FailingProducer()
            first = cache.resolve("fp", producer)
            second = cache.resolve("fp", producer)
            results = await asyncio.gather(first, second, return_exceptions=True)
            assert all(isinstance(r, RequestError) for r in results)
            assert producer.calls == 1
            assert "fp" not in cache

            retry = cache.resolve("fp", producer)
            with pytest.raises(RequestError):
                await retry
            assert producer.calls == 2

        asyncio.run(scenario())


# ------------------------------------------------------------------ #
# Expiry
# ------------------------------------------------------------------ #


class TestExpiry:
    def test_entry_expires_after_ttl(self) -> None:
        async def scenario() -> None:
            cache = FingerprintCache(ttl_ms=20)
            producer = CountingProducer(DecodedResponse())
            await cache.resolve("fp", producer)
            assert "fp" in cache
            await asyncio.sleep(0.06)
            assert "fp" not in cache

            await cache.resolve("fp", producer)
            assert producer.calls == 2

        asyncio.run(scenario())

    def test_expire_after_replaces_previous_timer(self) -> None:
        async def scenario() -> None:
            cache = FingerprintCache(ttl_ms=20)
            await cache.resolve("fp", CountingProducer(DecodedResponse()))
            cache.expire_after("fp", 10_000)
            await asyncio.sleep(0.06)
            assert "fp" in cache
            cache.invalidate_all()

        asyncio.run(scenario())

    def test_timer_does_not_remove_a_newer_entry(self) -> None:
        async def scenario() -> None:
            cache = FingerprintCache(ttl_ms=10_000)
            await cache.resolve("fp", CountingProducer(DecodedResponse()))
            cache.expire_after("fp", 20)
            stale = cache.get("fp")
            # Replace the entry without touching the timer map.
            cache._entries["fp"] = asyncio.get_running_loop().create_future()
            await asyncio.sleep(0.06)
            assert cache.get("fp") is not stale
            assert "fp" in cache
            cache.invalidate_all()

        asyncio.run(scenario())

    def test_expire_after_on_missing_key_is_noop(self) -> None:
        async def scenario() -> None:
            cache = FingerprintCache()
            cache.expire_after("missing", 10)
            assert len(cache) == 0

        asyncio.run(scenario())


# ------------------------------------------------------------------ #
# seed
# ------------------------------------------------------------------ #


class TestSeed:
    def test_seed_inserts_resolved_entry(self) -> None:
        async def scenario() -> None:
            cache = FingerprintCache()
            response = list_response("a.app")
            assert cache.seed("fp", response) is True
            future = cache.get("fp")
            assert future is not None and future.done()
            producer = CountingProducer(DecodedResponse())
            assert await cache.resolve("fp", producer) == response
            assert producer.calls == 0

        asyncio.run(scenario())

    def test_seed_never_overwrites_pending_entry(self) -> None:
        async def scenario() -> None:
            cache = FingerprintCache()
            real = list_response("real.app")
            pending = cache.resolve("fp", CountingProducer(real, delay=0.01))
            assert cache.seed("fp", list_response("hint.app")) is False
            assert cache.get("fp") is pending
            assert await pending == real

        asyncio.run(scenario())

    def test_seed_never_overwrites_resolved_entry(self) -> None:
        async def scenario() -> None:
            cache = FingerprintCache()
            cache.seed("fp", list_response("first.app"))
            assert cache.seed("fp", list_response("second.app")) is False
            assert await cache.get("fp") == list_response("first.app")

        asyncio.run(scenario())


# ------------------------------------------------------------------ #
# Disabled cache and invalidation
# ------------------------------------------------------------------ #


class TestDisabledCache:
    def test_every_call_produces(self) -> None:
        async def scenario() -> None:
            cache = FingerprintCache(enabled=False)
            producer = CountingProducer(DecodedResponse())
            await asyncio.gather(cache.resolve("fp", producer), cache.resolve("fp", producer))
            assert producer.calls == 2
            assert len(cache) == 0

        asyncio.run(scenario())

    def test_seed_is_ignored(self) -> None:
        async def scenario() -> None:
            cache = FingerprintCache(enabled=False)
            assert cache.seed("fp", DecodedResponse()) is False
            assert cache.keys() == []

        asyncio.run(scenario())


class TestInvalidate:
    def test_invalidate_single_key(self) -> None:
        async def scenario() -> None:
            cache = FingerprintCache()
            cache.seed("a", DecodedResponse())
            cache.seed("b", DecodedResponse())
            cache.invalidate("a")
            assert cache.keys() == ["b"]
            cache.invalidate("missing")

        asyncio.run(scenario())

    def test_invalidate_all_cancels_timers(self) -> None:
        async def scenario() -> None:
            cache = FingerprintCache(ttl_ms=20)
            await cache.resolve("a", CountingProducer(DecodedResponse()))
            timer = cache._timers["a"]
            cache.invalidate_all()
            assert len(cache) == 0
            assert timer.cancelled()

        asyncio.run(scenario())


class TestExpiryOfPendingEntries:
    def test_zero_ttl_keeps_in_flight_entry_shared(self) -> None:
        async def scenario() -> None:
            cache = FingerprintCache(ttl_ms=0)
            producer = CountingProducer(DecodedResponse(), delay=0.02)
            first = cache.resolve("fp", producer)
            for _ in range(5):
                await asyncio.sleep(0)
            second = cache.resolve("fp", producer)
            assert second is first
            await asyncio.gather(first, second)
            assert producer.calls == 1

        asyncio.run(scenario())

    def test_in_flight_entry_expires_once_settled(self) -> None:
        async def scenario() -> None:
            cache = FingerprintCache(ttl_ms=5)
            future = cache.resolve("fp", CountingProducer(DecodedResponse(), delay=0.03))
            await asyncio.sleep(0.01)
            assert "fp" in cache
            await future
            await asyncio.sleep(0)
            assert "fp" not in cache

        asyncio.run(scenario())

    def test_newer_timer_wins_over_settled_expiry(self) -> None:
        async def scenario() -> None:
            cache = FingerprintCache(ttl_ms=5)
            future = cache.resolve("fp", CountingProducer(DecodedResponse(), delay=0.03))
            await asyncio.sleep(0.01)
            cache.expire_after("fp", 10_000)
            await future
            await asyncio.sleep(0)
            assert "fp" in cache
            cache.invalidate_all()

        asyncio.run(scenario())
