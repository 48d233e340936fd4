import asyncio

import pytest

from ledgersync.cache import CacheStore, RequestCoalescer
from ledgersync.errors import NetworkError


def test_concurrent_callers_share_one_fetch(clock):
    calls = []

    async def fetcher():
        calls.append(1)
        await asyncio.sleep(0.01)
        return {"value": 42}

    async def scenario():
        coalescer = RequestCoalescer(CacheStore(clock=clock))
        return await asyncio.gather(
            *(coalescer.fetch_or_get("k", fetcher) for _ in range(5))
        )

    results = asyncio.run(scenario())

    assert len(calls) == 1
    assert all(result is results[0] for result in results)


def test_concurrent_callers_share_the_same_error(clock):
    calls = []

    async def fetcher():
        calls.append(1)
        await asyncio.sleep(0.01)
        raise NetworkError("boom")

    async def scenario():
        coalescer = RequestCoalescer(CacheStore(clock=clock))
        return await asyncio.gather(
            *(coalescer.fetch_or_get("k", fetcher) for _ in range(3)),
            return_exceptions=True,
        )

    results = asyncio.run(scenario())

    assert len(calls) == 1
    assert all(isinstance(r, NetworkError) for r in results)
    assert results[0] is results[1] is results[2]


def test_failed_fetch_is_not_cached_and_key_recovers(clock):
    attempts = []

    async def flaky():
        attempts.append(1)
        if len(attempts) == 1:
            raise NetworkError("down")
        return "ok"

    async def scenario():
        store = CacheStore(clock=clock)
        coalescer = RequestCoalescer(store)
        with pytest.raises(NetworkError):
            await coalescer.fetch_or_get("k", flaky)
        assert store.entry("k") is None
        assert not coalescer.in_flight("k")
        return await coalescer.fetch_or_get("k", flaky)

    assert asyncio.run(scenario()) == "ok"
    assert len(attempts) == 2


def test_dedup_under_latency(clock):
    calls = []

    async def slow_fetcher():
        calls.append(1)
        await asyncio.sleep(0.05)
        return ["payload"]

    async def scenario():
        coalescer = RequestCoalescer(CacheStore(clock=clock))
        first = asyncio.create_task(coalescer.fetch_or_get("k", slow_fetcher, ttl=5))
        await asyncio.sleep(0.01)
        second = asyncio.create_task(coalescer.fetch_or_get("k", slow_fetcher, ttl=5))
        return await first, await second

    first, second = asyncio.run(scenario())

    assert len(calls) == 1
    assert first == second == ["payload"]


def test_fresh_entry_skips_fetcher_unless_skip_cache(clock):
    calls = []

    async def fetcher():
        calls.append(1)
        return len(calls)

    async def scenario():
        coalescer = RequestCoalescer(CacheStore(clock=clock))
        a = await coalescer.fetch_or_get("k", fetcher, ttl=10)
        b = await coalescer.fetch_or_get("k", fetcher, ttl=10)
        c = await coalescer.fetch_or_get("k", fetcher, ttl=10, skip_cache=True)
        return a, b, c

    assert asyncio.run(scenario()) == (1, 1, 2)


def test_cancelled_caller_does_not_cancel_shared_fetch(clock):
    release = None

    async def fetcher():
        await release.wait()
        return "done"

    async def scenario():
        nonlocal release
        release = asyncio.Event()
        store = CacheStore(clock=clock)
        coalescer = RequestCoalescer(store)

        impatient = asyncio.create_task(coalescer.fetch_or_get("k", fetcher))
        patient = asyncio.create_task(coalescer.fetch_or_get("k", fetcher))
        await asyncio.sleep(0)
        impatient.cancel()
        await asyncio.sleep(0)
        release.set()

        result = await patient
        assert impatient.cancelled()
        return result, store.get("k")

    assert asyncio.run(scenario()) == ("done", "done")


def test_without_dedupe_each_call_fetches(clock):
    calls = []

    async def fetcher():
        calls.append(1)
        await asyncio.sleep(0.01)
        return len(calls)

    async def scenario():
        coalescer = RequestCoalescer(CacheStore(clock=clock))
        await asyncio.gather(
            coalescer.fetch_or_get("k", fetcher, dedupe=False),
            coalescer.fetch_or_get("k", fetcher, dedupe=False),
        )

    asyncio.run(scenario())
    assert len(calls) == 2


def test_fresh_none_payload_is_a_cache_hit(clock):
    calls = []

    async def fetcher():
        calls.append(1)
        return None

    async def scenario():
        store = CacheStore(clock=clock)
        coalescer = RequestCoalescer(store)
        first = await coalescer.fetch_or_get("k", fetcher, ttl=10)
        second = await coalescer.fetch_or_get("k", fetcher, ttl=10)
        return first, second, store.fresh_entry("k")

    first, second, entry = asyncio.run(scenario())

    assert first is None and second is None
    assert entry is not None
    assert len(calls) == 1
