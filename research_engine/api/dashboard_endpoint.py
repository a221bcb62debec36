"""
Company Lens: Dashboard Endpoint
──────────────────────────────────
/api/dashboard/{company}

Opening a dashboard validates the name and returns whatever state exists
right now. A background load is started, once at a time per company,
unless every section already holds unexpired non-fallback data. The
load reads through the cache tiers, so fresh sections cost nothing.
Section updates then arrive over the websocket or by polling this endpoint.

Background load:
  1. tier 1 (basic + priority sections), awaited together
  2. then, concurrently: secondary sections, competitor landscape,
     and the bulk remote-compute pre-fetch
"""

import asyncio
import logging
from typing import Optional

from research_engine.catalog.sections import Section
from research_engine.models.section_state import DashboardState
from research_engine.models.company_query import format_company_name, validate_company_name
from research_engine.orchestrator.bulk_ingest import run_bulk_compute
from research_engine.orchestrator.priority_tiers import COMPETITOR, REFRESHABLE, SECONDARY, TIER1
from research_engine.orchestrator.section_orchestrator import SectionOrchestrator
from sources.assistant import AssistantClient
from sources.remote_compute import RemoteComputeSource

log = logging.getLogger("cl.api.dashboard")


DASHBOARD_SECTIONS = TIER1 + SECONDARY + COMPETITOR


class SectionNotRefreshable(ValueError):
    pass


class DashboardService:

    def __init__(
        self,
        orchestrator: SectionOrchestrator,
        remote: Optional[RemoteComputeSource] = None,
        assistant: Optional[AssistantClient] = None,
    ):
        self.orchestrator = orchestrator
        self.remote       = remote or RemoteComputeSource()
        self.assistant    = assistant or AssistantClient()
        # Track in-flight loads to avoid duplicate triggers
        self._in_flight: set = set()
        self._tasks:     set = set()

    def open(self, company: str) -> dict:
        """
        Main handler for GET /api/dashboard/{company}.
        Raises InvalidCompanyName before any network call.
        """
        company = format_company_name(validate_company_name(company))
        dashboard = self.orchestrator.dashboard(company)
        if company.lower() not in self._in_flight and self._needs_load(dashboard):
            self._trigger_background_load(company)
            snapshot = dashboard.to_dict()
            snapshot["_message"] = "Dashboard load started. Sections will update as they resolve."
            return snapshot
        return dashboard.to_dict()

    def _needs_load(self, dashboard: DashboardState) -> bool:
        """False only when every section holds unexpired data that did not come from a fallback."""
        if any(s not in dashboard.sections for s in DASHBOARD_SECTIONS):
            return True
        now = self.orchestrator.clock()
        for section, state in dashboard.sections.items():
            if state.loading:
                continue
            if state.errored or state.origin == "fallback" or state.data is None:
                return True
            if now - state.updated_at > self.orchestrator.specs[section].ttl:
                log.info(f"{dashboard.company}: {section} is past its expiry - reloading")
                return True
        return False

    def _trigger_background_load(self, company: str):
        """Start the load without blocking the response."""
        name = company.lower()
        if name in self._in_flight:
            return
        self._in_flight.add(name)

        async def _do():
            try:
                await self.load(company)
            except Exception as e:
                log.error(f"Background load failed for {company}: {e}")
            finally:
                self._in_flight.discard(name)

        task = asyncio.create_task(_do())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def load(self, company: str):
        orch = self.orchestrator
        with orch.hold(company):
            await orch.resolve_many(company, TIER1)
            log.info(f"{company}: tier 1 settled - loading secondary sections")
            await asyncio.gather(
                orch.resolve_many(company, SECONDARY),
                orch.resolve_many(company, COMPETITOR),
                run_bulk_compute(orch, self.remote, company, clock=orch.clock),
            )
        log.info(f"{company}: dashboard load complete")

    async def refresh(self, company: str, section: Section) -> dict:
        """Force a live re-fetch of a refreshable section."""
        company = format_company_name(validate_company_name(company))
        if section not in REFRESHABLE:
            raise SectionNotRefreshable(f"{section} cannot be refreshed")
        state = await self.orchestrator.resolve_section(company, section, force=True)
        return state.to_dict()

    def section_state(self, company: str, section: Section) -> dict:
        company = format_company_name(validate_company_name(company))
        return self.orchestrator.dashboard(company).section(section).to_dict()

    async def ask(self, company: str, question: str, session_id: Optional[str] = None) -> dict:
        company = format_company_name(validate_company_name(company))
        answer = await self.assistant.ask(company, question, session_id)
        return {"company": company, "question": question, "answer": answer}

    async def shutdown(self):
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
