import asyncio
import json

from research_engine.cache.keys import bulk_complete_key, section_key, timestamp_key
from research_engine.cache.stores import MemoryCache, PersistentCache

DAY = 24 * 3600


def test_section_key_is_case_and_whitespace_insensitive():
    assert section_key("  Apple ", "keyMetrics") == "apple_keyMetrics"
    assert section_key("APPLE", "keyMetrics") == section_key("apple", "keyMetrics")
    assert timestamp_key("apple_news") == "apple_news_timestamp"
    assert bulk_complete_key("TestCo") == "testco_cloud_function_complete"


def test_memory_round_trip_and_expiry(memory, clock):
    async def run():
        await memory.set("k", {"a": 1})
        assert await memory.get("k", DAY) == {"a": 1}
        clock.advance(DAY + 1)
        assert await memory.get("k", DAY) is None
        assert len(memory) == 0

    asyncio.run(run())


def test_memory_without_max_age_never_expires(memory, clock):
    async def run():
        await memory.set("k", [1, 2])
        clock.advance(10 * DAY)
        assert await memory.get("k") == [1, 2]

    asyncio.run(run())


def test_persistent_layout_and_round_trip(persistent, fake_redis, clock):
    async def run():
        await persistent.set("apple_swotAnalysis", {"strengths": ["A"]})
        assert json.loads(fake_redis.data["test_apple_swotAnalysis"]) == {"strengths": ["A"]}
        assert fake_redis.data["test_apple_swotAnalysis_timestamp"] == str(int(clock() * 1000))
        assert await persistent.get("apple_swotAnalysis", DAY) == {"strengths": ["A"]}

    asyncio.run(run())


def test_persistent_entry_25_hours_old_is_a_miss_and_purged(persistent, fake_redis, clock):
    async def run():
        await persistent.set("apple_keyMetrics", {"metrics": []})
        clock.advance(25 * 3600)
        assert await persistent.get("apple_keyMetrics", DAY) is None
        assert "test_apple_keyMetrics" not in fake_redis.data
        assert "test_apple_keyMetrics_timestamp" not in fake_redis.data

    asyncio.run(run())


def test_persistent_malformed_entries_are_absent(persistent, fake_redis):
    async def run():
        fake_redis.data["test_bad_json"] = "{not json"
        fake_redis.data["test_bad_json_timestamp"] = "1700000000000"
        fake_redis.data["test_no_stamp"] = '{"a": 1}'
        assert await persistent.get("bad_json", DAY) is None
        assert await persistent.get("no_stamp", DAY) is None

    asyncio.run(run())


def test_persistent_swallows_storage_failures(persistent, fake_redis):
    async def run():
        await persistent.set("ok", {"v": 1})
        fake_redis.fail = True
        await persistent.set("ok", {"v": 2})
        assert await persistent.get("ok", DAY) is None
        fake_redis.fail = False
        assert await persistent.get("ok", DAY) == {"v": 1}

    asyncio.run(run())


def test_persistent_unserializable_payload_leaves_prior_state(persistent):
    async def run():
        await persistent.set("k", {"v": 1})
        await persistent.set("k", {"v": object()})
        assert await persistent.get("k", DAY) == {"v": 1}

    asyncio.run(run())


def test_persistent_without_redis_is_a_silent_miss(clock):
    async def no_redis():
        return None

    cache = PersistentCache(client_getter=no_redis, clock=clock)

    async def run():
        await cache.set("k", {"v": 1})
        assert await cache.get("k", DAY) is None
        assert await cache.get_flag("k") is None

    asyncio.run(run())


def test_flags_are_raw_strings(persistent, fake_redis):
    async def run():
        await persistent.set_flag("testco_cloud_function_complete", "true")
        assert fake_redis.data["test_testco_cloud_function_complete"] == "true"
        assert await persistent.get_flag("testco_cloud_function_complete") == "true"

    asyncio.run(run())


def test_memory_and_persistent_share_contract(memory, persistent):
    async def run():
        for tier in (memory, persistent):
            assert await tier.get("missing", DAY) is None
            await tier.set("k", {"x": [1, 2]})
            assert await tier.get("k", DAY) == {"x": [1, 2]}
            await tier.delete("k")
            assert await tier.get("k", DAY) is None

    asyncio.run(run())


def test_entry_exactly_at_its_expiry_is_still_served(memory, persistent, clock):
    async def run():
        await memory.set("k", {"a": 1})
        await persistent.set("k", {"a": 1})
        clock.advance(DAY)
        assert await memory.get("k", DAY) == {"a": 1}
        assert await persistent.get("k", DAY) == {"a": 1}
        clock.advance(1)
        assert await memory.get("k", DAY) is None
        assert await persistent.get("k", DAY) is None

    asyncio.run(run())


def test_memory_writes_sweep_entries_nobody_reads_again(clock):
    cache = MemoryCache(clock=clock, retention_s=DAY, sweep_interval_s=60)

    async def run():
        await cache.set("apple_news", {"articles": []})
        await cache.set("banana_news", {"articles": []})
        clock.advance(DAY + 61)
        await cache.set("cherry_news", {"articles": []})
        assert len(cache) == 1
        assert await cache.get("cherry_news") == {"articles": []}

    asyncio.run(run())
