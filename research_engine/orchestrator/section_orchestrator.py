"""
Company Lens: Section Orchestrator
────────────────────────────────────
Resolves dashboard sections independently of one another.

Per section, in order:
  1. memory tier hit                -> done
  2. persistent tier hit            -> warm memory, done
  3. live call, raced against the section deadline
  4. timeout / failure / bad shape  -> fallback payload, errored
  5. success                        -> write through both tiers

`loading` is always cleared when a resolution ends. Every resolution
bumps a per-(company, section) generation; a result whose generation
has been superseded is dropped without touching state or cache.

At most `max_dashboards` companies are kept in process. The least
recently used company with no subscribers and nothing loading is
released first; its cached sections remain in the cache tiers.

Usage:
    orchestrator = SectionOrchestrator(resolvers=build_resolvers(client))
    state = await orchestrator.resolve_section("Apple", Section.STOCK_PERFORMANCE)
"""

import asyncio
import inspect
import logging
import time
from collections import OrderedDict
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from research_engine.cache.keys import normalize_company, section_key
from research_engine.cache.stores import MemoryCache, PersistentCache
from research_engine.catalog.fallback import fallback_payload, matches_fallback_shape
from research_engine.catalog.sections import SECTION_SPECS, Section, SectionSpec
from research_engine.config import MAX_DASHBOARDS
from research_engine.models.section_state import DashboardState, SectionState
from research_engine.orchestrator.deadline import DeadlineExceeded, run_with_deadline
from research_engine.orchestrator.rate_limiter import CallLimiter

log = logging.getLogger("cl.orchestrator")

Subscriber = Callable[[dict], Any]


class SectionOrchestrator:

    def __init__(
        self,
        memory: Optional[MemoryCache] = None,
        persistent: Optional[PersistentCache] = None,
        resolvers: Optional[Dict[str, Callable]] = None,
        limiter: Optional[CallLimiter] = None,
        specs: Optional[Dict[Section, SectionSpec]] = None,
        max_dashboards: int = MAX_DASHBOARDS,
        clock: Callable[[], float] = time.time,
    ):
        if resolvers is None:
            from research_engine.orchestrator.resolvers import build_resolvers
            resolvers = build_resolvers()
        self.memory     = memory if memory is not None else MemoryCache()
        self.persistent = persistent if persistent is not None else PersistentCache()
        self.resolvers  = resolvers
        self.limiter    = limiter or CallLimiter()
        self.specs      = {**SECTION_SPECS, **(specs or {})}
        self.clock      = clock
        self.max_dashboards = max_dashboards

        self._dashboards:  "OrderedDict[str, DashboardState]" = OrderedDict()
        self._generations: Dict[str, Dict[Section, int]] = {}
        self._subscribers: Dict[str, List[Subscriber]] = {}
        self._holds:       Dict[str, int] = {}

    # ── State access ──────────────────────────────────────────
    def dashboard(self, company: str) -> DashboardState:
        name = normalize_company(company)
        if name in self._dashboards:
            self._dashboards.move_to_end(name)
        else:
            self._dashboards[name] = DashboardState(company=company.strip())
            self._evict()
        return self._dashboards[name]

    def tracked(self) -> List[str]:
        return list(self._dashboards)

    def release(self, company: str) -> bool:
        """Forget the in-process state of an idle company. False when it is still in use."""
        name = normalize_company(company)
        state = self._dashboards.get(name)
        if state is None:
            return True
        if self._subscribers.get(name) or self._holds.get(name) or state.loading_sections():
            return False
        del self._dashboards[name]
        self._generations.pop(name, None)
        log.debug(f"{name}: released dashboard state")
        return True

    @contextmanager
    def hold(self, company: str):
        """Keep `company` from being released for the duration of a multi-step load."""
        name = normalize_company(company)
        self._holds[name] = self._holds.get(name, 0) + 1
        try:
            yield
        finally:
            self._holds[name] -= 1
            if not self._holds[name]:
                del self._holds[name]

    def _evict(self):
        excess = len(self._dashboards) - self.max_dashboards
        if excess <= 0:
            return
        # Oldest first; the newest entry is the one being created
        for name in list(self._dashboards)[:-1]:
            if excess <= 0:
                break
            if self.release(name):
                excess -= 1

    def snapshot(self, company: str) -> dict:
        return self.dashboard(company).to_dict()

    def subscribe(self, company: str, callback: Subscriber) -> Callable[[], None]:
        """Register for every state change of `company`. Returns an unsubscribe callable."""
        name = normalize_company(company)
        subs = self._subscribers.setdefault(name, [])
        subs.append(callback)

        def _unsubscribe():
            if callback in subs:
                subs.remove(callback)
            if not subs and self._subscribers.get(name) is subs:
                del self._subscribers[name]

        return _unsubscribe

    async def notify(self, company: str, event: dict):
        for callback in list(self._subscribers.get(normalize_company(company), [])):
            try:
                outcome = callback(event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                log.warning(f"{company}: subscriber failed ({type(e).__name__}: {e})")

    async def _publish_section(self, company: str, state: SectionState):
        await self.notify(company, {"type": "section", "company": company, "state": state.to_dict()})

    async def publish_bulk(self, company: str):
        d = self.dashboard(company)
        await self.notify(company, {
            "type":        "bulk",
            "company":     company,
            "bulk_status": d.bulk_status,
            "bulk_error":  d.bulk_error,
        })

    # ── Generations ───────────────────────────────────────────
    def _begin(self, company: str, section: Section) -> int:
        gens = self._generations.setdefault(normalize_company(company), {})
        gens[section] = gens.get(section, 0) + 1
        return gens[section]

    def is_current(self, company: str, section: Section, generation: int) -> bool:
        return self._generations.get(normalize_company(company), {}).get(section) == generation

    # ── Resolution ────────────────────────────────────────────
    async def resolve_section(self, company: str, section: Section, force: bool = False) -> SectionState:
        spec  = self.specs[section]
        key   = section_key(company, section)
        state = self.dashboard(company).section(section)
        gen   = self._begin(company, section)

        state.loading = True
        await self._publish_section(company, state)

        try:
            if not force:
                data = await self.memory.get(key, spec.ttl)
                if data is not None:
                    log.debug(f"{key}: memory hit")
                    return await self._finish(company, section, gen, data, "memory")

                data = await self.persistent.get(key, spec.ttl)
                if data is not None:
                    log.debug(f"{key}: persistent hit")
                    await self.memory.set(key, data)
                    return await self._finish(company, section, gen, data, "persistent")

            payload, error = await self._live(company, section, spec)
            if error is None:
                if self.is_current(company, section, gen):
                    await self.memory.set(key, payload)
                    await self.persistent.set(key, payload)
                return await self._finish(company, section, gen, payload, "live")

            log.warning(f"{key}: using fallback ({error})")
            return await self._finish(
                company, section, gen, fallback_payload(section, company), "fallback",
                errored=True, error=error,
            )

        except Exception as e:
            log.exception(f"{key}: unexpected error during resolution")
            return await self._finish(
                company, section, gen, fallback_payload(section, company), "fallback",
                errored=True, error=f"{type(e).__name__}: {e}",
            )

        finally:
            if self.is_current(company, section, gen) and state.loading:
                state.loading = False

    async def _live(self, company: str, section: Section, spec: SectionSpec) -> Tuple[Any, Optional[str]]:
        resolver = self.resolvers.get(spec.source)
        if resolver is None:
            return None, f"no resolver for source '{spec.source}'"

        async with self.limiter:
            try:
                result = await run_with_deadline(
                    resolver(company, section), spec.timeout, label=f"{company}/{section}",
                )
            except DeadlineExceeded as e:
                return None, str(e)

        if not result.ok:
            return None, result.error or "no data"
        if not matches_fallback_shape(section, result.payload):
            return None, f"unexpected payload shape ({type(result.payload).__name__})"
        return result.payload, None

    async def _finish(
        self,
        company: str,
        section: Section,
        generation: int,
        data: Any,
        origin: str,
        errored: bool = False,
        error: Optional[str] = None,
    ) -> SectionState:
        state = self.dashboard(company).section(section)
        if not self.is_current(company, section, generation):
            log.debug(f"{company}/{section}: dropping superseded result (gen {generation})")
            return state

        state.data       = data
        state.origin     = origin
        state.errored    = errored
        state.error      = error
        state.loading    = False
        state.updated_at = self.clock()
        await self._publish_section(company, state)
        return state

    async def resolve_many(
        self, company: str, sections: Iterable[Section], force: bool = False,
    ) -> Dict[Section, SectionState]:
        """Resolve concurrently. One section failing never affects another."""
        sections = list(sections)
        states = await asyncio.gather(
            *(self.resolve_section(company, s, force=force) for s in sections)
        )
        return dict(zip(sections, states))

    async def refresh_idle(self, company: str, sections: Iterable[Section]) -> Dict[Section, SectionState]:
        """Re-read sections from cache unless they are mid-flight or already hold live data."""
        dashboard = self.dashboard(company)
        idle = []
        for section in sections:
            state = dashboard.section(section)
            if state.loading or state.origin in ("live", "memory", "persistent"):
                continue
            idle.append(section)
        if not idle:
            return {}
        return await self.resolve_many(company, idle)
