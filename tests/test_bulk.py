import asyncio

from research_engine.cache.keys import section_key
from research_engine.catalog.prompts import build_prompt
from research_engine.catalog.sections import Section
from research_engine.orchestrator.bulk_ingest import (
    bulk_recently_completed,
    ingest_bulk_results,
    run_bulk_compute,
)
from research_engine.orchestrator.section_orchestrator import SectionOrchestrator
from sources.base import SourceResult
from tests.conftest import ScriptedResolver


class FakeRemote:
    def __init__(self, results=None, error=None):
        self.results = results or []
        self.error   = error
        self.calls   = []

    async def run(self, company, params):
        self.calls.append((company, params["sections"]))
        if self.error:
            return SourceResult("RemoteCompute", company, error=self.error)
        return SourceResult("RemoteCompute", company, payload={"results": self.results})


def make_orchestrator(memory, persistent, resolver=None):
    resolver = resolver or ScriptedResolver()
    return SectionOrchestrator(
        memory=memory, persistent=persistent,
        resolvers={kind: resolver for kind in ("ai", "remote", "news", "filings", "market")},
    )


def test_swot_result_lands_under_company_key(memory, persistent, fake_redis):
    results = [{
        "prompt": build_prompt(Section.SWOT_ANALYSIS, "testco"),
        "response": '```json\n{"strengths":["A"]}\n```',
    }]

    async def run():
        written = await ingest_bulk_results("testco", results, [Section.SWOT_ANALYSIS], memory, persistent)
        assert written == [Section.SWOT_ANALYSIS]
        assert await persistent.get("testco_swotAnalysis") == {"strengths": ["A"]}
        assert await memory.get("testco_swotAnalysis") == {"strengths": ["A"]}

    asyncio.run(run())
    assert "test_testco_swotAnalysis_timestamp" in fake_redis.data


def test_unknown_and_misshapen_results_are_skipped(memory, persistent):
    results = [
        {"prompt": "Tell me a joke", "response": '{"joke": "no"}'},
        {"prompt": build_prompt(Section.EXECUTIVES, "testco"), "response": "Sorry, I can't."},
        {"prompt": build_prompt(Section.AI_SUGGESTIONS, "testco"), "response": '["Why?", "How?"]'},
        "not even a dict",
    ]

    async def run():
        written = await ingest_bulk_results("testco", results, [], memory, persistent)
        assert written == [Section.AI_SUGGESTIONS]
        assert await memory.get(section_key("testco", Section.EXECUTIVES)) is None

    asyncio.run(run())


def test_results_are_routed_by_prompt_not_position(memory, persistent):
    sent = [Section.SWOT_ANALYSIS, Section.KEY_TOPICS]
    results = [
        {"prompt": build_prompt(Section.KEY_TOPICS, "testco"), "response": {"topics": []}},
        {"prompt": build_prompt(Section.SWOT_ANALYSIS, "testco"), "response": {"strengths": ["A"]}},
    ]

    async def run():
        await ingest_bulk_results("testco", results, sent, memory, persistent)
        assert await memory.get("testco_keyTopics") == {"topics": []}
        assert await memory.get("testco_swotAnalysis") == {"strengths": ["A"]}

    asyncio.run(run())


def test_run_bulk_sets_flags_and_refreshes_idle_sections(memory, persistent, clock):
    remote = FakeRemote([{
        "prompt": build_prompt(Section.SWOT_ANALYSIS, "testco"),
        "response": '{"strengths":["A"]}',
    }])
    orch = make_orchestrator(memory, persistent)

    async def run():
        dashboard = await run_bulk_compute(orch, remote, "testco", clock=clock)
        assert dashboard.bulk_status == "complete"
        assert await bulk_recently_completed("testco", persistent, clock) is True
        swot = dashboard.section(Section.SWOT_ANALYSIS)
        assert swot.origin == "memory"
        assert swot.data == {"strengths": ["A"]}

        await run_bulk_compute(orch, remote, "testco", clock=clock)
        assert len(remote.calls) == 1

        clock.advance(25 * 3600)
        assert await bulk_recently_completed("testco", persistent, clock) is False

    asyncio.run(run())


def test_bulk_failure_is_an_advisory(memory, persistent, clock):
    remote = FakeRemote(error="Request timeout - remote compute service took too long to respond")
    orch = make_orchestrator(memory, persistent)
    events = []
    orch.subscribe("testco", events.append)

    async def run():
        dashboard = await run_bulk_compute(orch, remote, "testco", clock=clock)
        assert dashboard.bulk_status == "error"
        assert "timeout" in dashboard.bulk_error
        assert await bulk_recently_completed("testco", persistent, clock) is False

    asyncio.run(run())
    assert [e["bulk_status"] for e in events if e["type"] == "bulk"] == ["loading", "error"]


def test_company_name_matching_a_keyword_still_ingests(memory, persistent):
    name = "Structure Therapeutics"
    results = [{
        "prompt": build_prompt(Section.GEOGRAPHY, name),
        "response": '{"headquarters": "South San Francisco", "majorLocations": [], "revenueByRegion": {}}',
    }]

    async def run():
        written = await ingest_bulk_results(name, results, [Section.GEOGRAPHY], memory, persistent)
        assert written == [Section.GEOGRAPHY]
        assert (await memory.get(section_key(name, Section.GEOGRAPHY)))["headquarters"] == "South San Francisco"

    asyncio.run(run())
