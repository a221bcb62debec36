import asyncio

from research_engine.api.dashboard_endpoint import DashboardService
from research_engine.catalog.fallback import fallback_payload
from research_engine.catalog.prompts import build_prompt
from research_engine.catalog.sections import Section
from research_engine.orchestrator.priority_tiers import COMPETITOR, SECONDARY, TIER1
from research_engine.orchestrator.resolvers import build_resolvers, pick_section_result
from research_engine.orchestrator.section_orchestrator import SectionOrchestrator
from sources.base import SourceResult
from tests.conftest import ScriptedResolver

HOUR = 3600


class FakeRemote:
    def __init__(self, results=None, error=None, events=None):
        self.results = results or []
        self.error   = error
        self.events  = events
        self.calls   = []

    async def run(self, company, params):
        self.calls.append((company, params["sections"]))
        if self.events is not None:
            self.events.append(("bulk", None))
        if self.error:
            return SourceResult("RemoteCompute", company, error=self.error)
        return SourceResult("RemoteCompute", company, payload={"results": self.results})


class RecordingResolver:
    """Logs start/end of every live call; tier-1 sections are slow."""

    def __init__(self, events, slow=(), delay=0.02):
        self.events = events
        self.slow   = set(slow)
        self.delay  = delay

    async def __call__(self, company, section):
        self.events.append(("start", section))
        if section in self.slow:
            await asyncio.sleep(self.delay)
        self.events.append(("end", section))
        return SourceResult("recording", company, payload=fallback_payload(section, company))


def make_service(memory, persistent, clock, resolver, remote):
    orch = SectionOrchestrator(
        memory=memory, persistent=persistent, clock=clock,
        resolvers={kind: resolver for kind in ("ai", "remote", "news", "filings", "market")},
    )
    return DashboardService(orch, remote=remote, assistant=object())


async def settle(service):
    while service._tasks:
        await asyncio.gather(*list(service._tasks))


def test_tier_one_settles_before_secondary_competitor_and_bulk(memory, persistent, clock):
    events = []
    resolver = RecordingResolver(events, slow=TIER1)
    service = make_service(memory, persistent, clock, resolver, FakeRemote(events=events))

    asyncio.run(service.load("Apple"))

    last_tier1_end = max(i for i, (kind, s) in enumerate(events) if kind == "end" and s in TIER1)
    later = [i for i, (kind, s) in enumerate(events)
             if kind == "bulk" or (kind == "start" and s in SECONDARY + COMPETITOR)]
    assert len(later) == len(SECONDARY) + len(COMPETITOR) + 1
    assert min(later) > last_tier1_end


def test_concurrent_opens_share_one_background_load(memory, persistent, clock):
    resolver = ScriptedResolver()
    remote = FakeRemote(error="offline")
    service = make_service(memory, persistent, clock, resolver, remote)

    async def run():
        first = service.open("Apple")
        second = service.open("  apple ")
        assert "_message" in first
        assert "_message" not in second
        assert len(service._tasks) == 1
        await settle(service)

    asyncio.run(run())
    assert len(resolver.calls) == len(Section)
    assert len(remote.calls) == 1


def test_reopen_retries_sections_left_on_fallback(memory, persistent, clock):
    resolver = ScriptedResolver(error="HTTP 503")
    service = make_service(memory, persistent, clock, resolver, FakeRemote(error="offline"))

    async def run():
        service.open("Apple")
        await settle(service)
        news = service.orchestrator.dashboard("Apple").section(Section.NEWS)
        assert (news.origin, news.errored) == ("fallback", True)
        assert len(resolver.calls) == len(Section)

        resolver.error = None
        resolver.payloads = {Section.NEWS: {"articles": [{"title": "Apple beats estimates"}]}}
        snapshot = service.open("Apple")
        assert "_message" in snapshot
        await settle(service)

        assert len(resolver.calls) == 2 * len(Section)
        news = service.orchestrator.dashboard("Apple").section(Section.NEWS)
        assert (news.origin, news.errored) == ("live", False)

    asyncio.run(run())


def test_reopen_reloads_only_expired_sections(memory, persistent, clock):
    resolver = ScriptedResolver({s: fallback_payload(s, "Apple") for s in Section})
    remote = FakeRemote()
    service = make_service(memory, persistent, clock, resolver, remote)

    async def run():
        service.open("Apple")
        await settle(service)
        assert len(resolver.calls) == len(Section)

        snapshot = service.open("Apple")
        assert "_message" not in snapshot
        assert not service._tasks

        clock.advance(2 * HOUR + 1)
        service.open("Apple")
        await settle(service)

    asyncio.run(run())
    reloaded = {section for _, section in resolver.calls[len(Section):]}
    assert reloaded == {Section.NEWS, Section.RECENT_FILINGS, Section.MARKET_DATA}
    # bulk flags are still fresh
    assert len(remote.calls) == 1


def swot_item(company):
    return {"prompt": build_prompt(Section.SWOT_ANALYSIS, company),
            "response": '{"strengths": ["Brand"]}'}


def competitor_item(company):
    return {"prompt": build_prompt(Section.COMPETITOR_LANDSCAPE, company),
            "response": '```json\n{"analysis": "crowded", "mainCompetitors": []}\n```'}


def test_pick_section_result_finds_the_requested_section():
    result = SourceResult("RemoteCompute", "Apple",
                          payload={"results": [swot_item("Apple"), competitor_item("Apple")]})
    picked = pick_section_result(result, Section.COMPETITOR_LANDSCAPE)
    assert picked.ok
    assert picked.payload == {"analysis": "crowded", "mainCompetitors": []}


def test_pick_section_result_without_the_section_is_an_error():
    result = SourceResult("RemoteCompute", "Apple", payload={"results": [swot_item("Apple")]})
    picked = pick_section_result(result, Section.COMPETITOR_LANDSCAPE)
    assert not picked.ok
    assert picked.error == "no competitorLandscape result in response"


def test_pick_section_result_passes_failures_through():
    failed = SourceResult("RemoteCompute", "Apple", error="Request timed out")
    assert pick_section_result(failed, Section.COMPETITOR_LANDSCAPE) is failed


def test_competitor_resolver_sends_a_single_prompt():
    remote = FakeRemote(results=[competitor_item("Apple")])
    resolvers = build_resolvers(ai=object(), remote=remote)

    result = asyncio.run(resolvers["remote"]("Apple", Section.COMPETITOR_LANDSCAPE))

    assert remote.calls == [("Apple", [Section.COMPETITOR_LANDSCAPE])]
    assert result.payload["analysis"] == "crowded"
