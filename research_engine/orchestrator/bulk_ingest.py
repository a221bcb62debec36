"""
Company Lens: Bulk Remote-Compute Ingestion
─────────────────────────────────────────────
Pre-fetches every AI section in one remote call and writes the usable
answers into the section keyspace of both cache tiers.

Results come back as {prompt, response} pairs in no guaranteed order,
so each pair is classified from its prompt text. Unclassifiable pairs
and payloads that do not fit their section are skipped. A failed call
is reported on the dashboard as an advisory and nothing else changes.

On success two flags are written for the company:
  <company>_cloud_function_complete   "true"
  <company>_cloud_function_timestamp  epoch ms
and a repeat call within the AI expiry is skipped.
"""

import logging
import time
from typing import Any, List, Optional

from research_engine.cache.keys import bulk_complete_key, bulk_time_key, section_key
from research_engine.cache.ttl_config import BULK_FLAG_TTL
from research_engine.catalog.fallback import matches_fallback_shape
from research_engine.catalog.sections import AI_SECTIONS, Section
from research_engine.models.section_state import DashboardState
from research_engine.routing.ai_router import route_result

log = logging.getLogger("cl.orchestrator.bulk")


async def ingest_bulk_results(
    company: str,
    results: List[Any],
    sent: List[Section],
    memory,
    persistent,
) -> List[Section]:
    """Write classifiable, well-shaped results to both tiers. Returns sections written."""
    written: List[Section] = []
    for index, item in enumerate(results):
        section, payload = route_result(item, company)
        if section is None:
            log.warning(f"{company}: skipping unclassified result #{index}")
            continue
        if index < len(sent) and sent[index] != section:
            log.warning(f"{company}: result #{index} was sent as {sent[index]} "
                        f"but classifies as {section}")
        if not matches_fallback_shape(section, payload):
            log.warning(f"{company}: {section} result has the wrong shape - skipped")
            continue
        key = section_key(company, section)
        await memory.set(key, payload)
        await persistent.set(key, payload)
        written.append(section)

    log.info(f"{company}: bulk ingest wrote {len(written)}/{len(results)} sections")
    return written


async def bulk_recently_completed(company: str, persistent, clock=time.time) -> bool:
    if await persistent.get_flag(bulk_complete_key(company)) != "true":
        return False
    stamp = await persistent.get_flag(bulk_time_key(company))
    try:
        age_s = clock() - int(stamp) / 1000
    except (TypeError, ValueError):
        return False
    return age_s < BULK_FLAG_TTL


async def mark_bulk_complete(company: str, persistent, clock=time.time):
    await persistent.set_flag(bulk_complete_key(company), "true")
    await persistent.set_flag(bulk_time_key(company), str(int(clock() * 1000)))


async def run_bulk_compute(
    orchestrator,
    source,
    company: str,
    sections: Optional[List[Section]] = None,
    force: bool = False,
    clock=time.time,
) -> DashboardState:
    """
    Run the bulk call for `company` and ingest its results.
    Never raises for remote failures; the outcome is on the dashboard.
    """
    sections  = list(sections or AI_SECTIONS)
    dashboard = orchestrator.dashboard(company)

    if not force and await bulk_recently_completed(company, orchestrator.persistent, clock):
        log.info(f"{company}: bulk results still fresh - skipping remote call")
        dashboard.bulk_status = "complete"
        await orchestrator.publish_bulk(company)
        return dashboard

    dashboard.bulk_status = "loading"
    dashboard.bulk_error  = None
    await orchestrator.publish_bulk(company)

    result = await source.run(company, {"sections": sections})
    if not result.ok:
        log.warning(f"{company}: bulk call failed: {result.error}")
        dashboard.bulk_status = "error"
        dashboard.bulk_error  = result.error
        await orchestrator.publish_bulk(company)
        return dashboard

    written = await ingest_bulk_results(
        company, result.payload.get("results") or [], sections,
        orchestrator.memory, orchestrator.persistent,
    )
    await mark_bulk_complete(company, orchestrator.persistent, clock)

    dashboard.bulk_status = "complete"
    await orchestrator.publish_bulk(company)
    await orchestrator.refresh_idle(company, written)
    return dashboard
