"""
Company Lens: Cache Tiers
───────────────────────────
Two key/value stores with the same contract:

  get(key, max_age_s) -> payload | None
      None when absent, expired (age > max_age_s) or unreadable.
      Expired entries are deleted on the way out. Never raises.

  set(key, payload)
      Overwrites unconditionally and stamps the current time.
      Storage failures are logged and swallowed.

MemoryCache is process-local. PersistentCache sits on Redis and keeps
the write time (epoch ms) in a sibling "<key>_timestamp" entry so that
expiry can be decided by the reader.
"""

import json
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from redis.exceptions import RedisError

from research_engine.cache.keys import timestamp_key
from research_engine.cache.redis_client import get_redis
from research_engine.cache.ttl_config import MEMORY_RETENTION, MEMORY_SWEEP_INTERVAL, _fmt_age
from research_engine.config import CACHE_NAMESPACE

log = logging.getLogger("cl.cache")

Clock = Callable[[], float]


class MemoryCache:
    """
    In-process tier. Entries are {ts, data} keyed by cache key.

    Writes sweep out entries older than `retention_s` (the longest expiry
    any reader applies) at most once per `sweep_interval_s`, so keys that
    are never read again do not accumulate.
    """

    def __init__(
        self,
        clock: Clock = time.time,
        retention_s: float = MEMORY_RETENTION,
        sweep_interval_s: float = MEMORY_SWEEP_INTERVAL,
    ):
        self._clock            = clock
        self._retention_s      = retention_s
        self._sweep_interval_s = sweep_interval_s
        self._last_sweep       = clock()
        self._entries: Dict[str, dict] = {}

    async def get(self, key: str, max_age_s: Optional[float] = None) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        age_s = self._clock() - entry["ts"]
        if max_age_s is not None and age_s > max_age_s:
            self._entries.pop(key, None)
            log.debug(f"memory: {key} expired ({_fmt_age(age_s)} old)")
            return None
        return entry["data"]

    async def set(self, key: str, payload: Any) -> None:
        now = self._clock()
        self._entries[key] = {"ts": now, "data": payload}
        if now - self._last_sweep >= self._sweep_interval_s:
            self._sweep(now)

    def _sweep(self, now: float):
        self._last_sweep = now
        stale = [k for k, e in self._entries.items() if now - e["ts"] > self._retention_s]
        for k in stale:
            del self._entries[k]
        if stale:
            log.debug(f"memory: swept {len(stale)} expired entries")

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


class PersistentCache:
    """
    Redis-backed tier.

    `client_getter` is an async callable returning a connected client or
    None; the default re-uses the shared connection from redis_client.
    Every stored key is prefixed with `namespace`.
    """

    def __init__(
        self,
        client_getter: Callable[[], Awaitable[Any]] = get_redis,
        namespace: str = CACHE_NAMESPACE,
        clock: Clock = time.time,
    ):
        self._client_getter = client_getter
        self._namespace     = namespace
        self._clock         = clock

    def _k(self, key: str) -> str:
        return f"{self._namespace}{key}"

    async def get(self, key: str, max_age_s: Optional[float] = None) -> Optional[Any]:
        client = await self._client_getter()
        if client is None:
            return None
        stored_key, stamp_key = self._k(key), self._k(timestamp_key(key))
        try:
            raw, raw_ts = await client.mget(stored_key, stamp_key)
        except (RedisError, OSError) as e:
            log.warning(f"persistent: read failed for {key}: {e}")
            return None
        if raw is None:
            return None

        try:
            written_ms = int(raw_ts)
        except (TypeError, ValueError):
            log.warning(f"persistent: {key} has no readable timestamp - treating as absent")
            return None

        age_s = self._clock() - written_ms / 1000
        if max_age_s is not None and age_s > max_age_s:
            log.debug(f"persistent: {key} expired ({_fmt_age(age_s)} old)")
            await self._purge(client, stored_key, stamp_key)
            return None

        try:
            return json.loads(raw)
        except ValueError as e:
            log.warning(f"persistent: {key} is not valid JSON ({e}) - treating as absent")
            return None

    async def set(self, key: str, payload: Any) -> None:
        try:
            raw = json.dumps(payload)
        except (TypeError, ValueError) as e:
            log.error(f"persistent: cannot serialize {key}: {e}")
            return
        client = await self._client_getter()
        if client is None:
            return
        written_ms = int(self._clock() * 1000)
        try:
            await client.mset({self._k(key): raw, self._k(timestamp_key(key)): str(written_ms)})
        except (RedisError, OSError) as e:
            log.error(f"persistent: write failed for {key}: {e}")

    async def delete(self, key: str) -> None:
        client = await self._client_getter()
        if client is None:
            return
        await self._purge(client, self._k(key), self._k(timestamp_key(key)))

    # ── Raw string flags (no JSON, no timestamp sibling) ─────────
    async def get_flag(self, key: str) -> Optional[str]:
        client = await self._client_getter()
        if client is None:
            return None
        try:
            return await client.get(self._k(key))
        except (RedisError, OSError) as e:
            log.warning(f"persistent: flag read failed for {key}: {e}")
            return None

    async def set_flag(self, key: str, value: str) -> None:
        client = await self._client_getter()
        if client is None:
            return
        try:
            await client.set(self._k(key), value)
        except (RedisError, OSError) as e:
            log.error(f"persistent: flag write failed for {key}: {e}")

    async def _purge(self, client, *keys: str):
        try:
            await client.delete(*keys)
        except (RedisError, OSError) as e:
            log.warning(f"persistent: could not delete {keys}: {e}")
