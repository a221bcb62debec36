import asyncio

import pytest

from research_engine.cache.stores import MemoryCache, PersistentCache
from research_engine.catalog.sections import Section
from sources.base import SourceResult


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeRedis:
    """In-process stand-in for redis.asyncio with decode_responses=True."""

    def __init__(self):
        self.data = {}
        self.fail = False

    def _check(self):
        if self.fail:
            raise ConnectionError("redis down")

    async def ping(self):
        self._check()
        return True

    async def get(self, key):
        self._check()
        return self.data.get(key)

    async def set(self, key, value):
        self._check()
        self.data[key] = str(value)
        return True

    async def mget(self, *keys):
        self._check()
        return [self.data.get(k) for k in keys]

    async def mset(self, mapping):
        self._check()
        for k, v in mapping.items():
            self.data[k] = str(v)
        return True

    async def delete(self, *keys):
        self._check()
        return sum(1 for k in keys if self.data.pop(k, None) is not None)


class ScriptedResolver:
    """Resolver returning canned payloads per section, counting calls."""

    def __init__(self, payloads=None, delay: float = 0.0, error: str = None, raises: Exception = None):
        self.payloads = payloads or {}
        self.delay    = delay
        self.error    = error
        self.raises   = raises
        self.calls    = []

    async def __call__(self, company: str, section: Section) -> SourceResult:
        self.calls.append((company, section))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raises:
            raise self.raises
        if self.error:
            return SourceResult("scripted", company, error=self.error)
        return SourceResult("scripted", company, payload=self.payloads.get(section))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def memory(clock):
    return MemoryCache(clock=clock)


@pytest.fixture
def persistent(fake_redis, clock):
    async def getter():
        return fake_redis
    return PersistentCache(client_getter=getter, namespace="test_", clock=clock)
