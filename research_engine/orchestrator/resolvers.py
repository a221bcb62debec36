"""
Company Lens: Live Resolvers
──────────────────────────────
Binds each section source kind to the adapter that resolves it live.
A resolver is `async (company, section) -> SourceResult`.
"""

import logging
from typing import Awaitable, Callable, Dict, Optional

import httpx

from research_engine.catalog.sections import Section
from research_engine.routing.ai_router import route_result
from sources.ai import GenerativeSource
from sources.alpha_vantage import AlphaVantageSource
from sources.base import SourceResult
from sources.news import NewsSource
from sources.remote_compute import RemoteComputeSource
from sources.sec_filings import SecFilingsSource

log = logging.getLogger("cl.resolvers")

Resolver = Callable[[str, Section], Awaitable[SourceResult]]


def pick_section_result(result: SourceResult, section: Section) -> SourceResult:
    """Narrow a remote compute result down to the payload for one section."""
    if not result.ok:
        return result
    items = result.payload.get("results") or []
    for item in items:
        routed, payload = route_result(item, result.query)
        if routed == section:
            return SourceResult(result.source, result.query, payload=payload, elapsed_s=result.elapsed_s)
    log.warning(f"{result.query}: remote compute returned no {section} result ({len(items)} items)")
    return SourceResult(result.source, result.query, error=f"no {section} result in response")


def build_resolvers(
    client: Optional[httpx.AsyncClient] = None,
    ai: Optional[GenerativeSource] = None,
    remote: Optional[RemoteComputeSource] = None,
) -> Dict[str, Resolver]:
    ai      = ai or GenerativeSource(client)
    remote  = remote or RemoteComputeSource(client)
    news    = NewsSource(client)
    filings = SecFilingsSource(client)
    market  = AlphaVantageSource(client)

    async def resolve_ai(company: str, section: Section) -> SourceResult:
        return await ai.run(company, {"section": section})

    async def resolve_remote(company: str, section: Section) -> SourceResult:
        result = await remote.run(company, {"sections": [section]})
        return pick_section_result(result, section)

    async def resolve_news(company: str, section: Section) -> SourceResult:
        return await news.run(company)

    async def resolve_filings(company: str, section: Section) -> SourceResult:
        return await filings.run(company)

    async def resolve_market(company: str, section: Section) -> SourceResult:
        return await market.run(company)

    return {
        "ai":      resolve_ai,
        "remote":  resolve_remote,
        "news":    resolve_news,
        "filings": resolve_filings,
        "market":  resolve_market,
    }
