"""
Company Lens: Section Catalog
───────────────────────────────
Every dashboard section, the source that resolves it live,
and how long its results stay valid.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict

from research_engine.cache.ttl_config import TTL
from research_engine.config import TIMEOUTS


class Section(str, Enum):
    STOCK_PERFORMANCE     = "stockPerformance"
    REVENUE_BREAKDOWN     = "revenueBreakdown"
    KEY_METRICS           = "keyMetrics"
    COMPANY_OVERVIEW      = "companyOverview"
    COMPANY_INFO          = "companyInfo"
    SWOT_ANALYSIS         = "swotAnalysis"
    RECENT_FILINGS        = "recentFilings"
    REVENUE_GROWTH        = "revenueGrowth"
    PROFIT_MARGINS        = "profitMargins"
    EXPENSE_BREAKDOWN     = "expenseBreakdown"
    FINANCIAL_HIGHLIGHTS  = "financialHighlights"
    NEWS                  = "news"
    SENTIMENT             = "sentiment"
    KEY_TOPICS            = "keyTopics"
    EXECUTIVES            = "executives"
    STRUCTURE             = "structure"
    GEOGRAPHY             = "geography"
    AI_SUGGESTIONS        = "aiSuggestions"
    COMPETITOR_LANDSCAPE  = "competitorLandscape"
    MARKET_DATA           = "marketData"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SectionSpec:
    section:     Section
    source:      str      # "ai" | "remote" | "filings" | "news" | "market"
    timeout:     float    # live-call deadline, seconds
    ttl:         int      # cache expiry, seconds
    refreshable: bool = False


def _ai(section: Section, timeout: float = TIMEOUTS["ai_section"]) -> SectionSpec:
    return SectionSpec(section, "ai", timeout, TTL["ai"])


SECTION_SPECS: Dict[Section, SectionSpec] = {
    Section.COMPANY_INFO:         _ai(Section.COMPANY_INFO, TIMEOUTS["company_info"]),
    Section.NEWS:                 SectionSpec(Section.NEWS, "news", TIMEOUTS["news"], TTL["news"], refreshable=True),
    Section.RECENT_FILINGS:       SectionSpec(Section.RECENT_FILINGS, "filings", TIMEOUTS["filings"], TTL["filings"], refreshable=True),
    Section.MARKET_DATA:          SectionSpec(Section.MARKET_DATA, "market", TIMEOUTS["market"], TTL["market"]),
    Section.COMPETITOR_LANDSCAPE: SectionSpec(Section.COMPETITOR_LANDSCAPE, "remote", TIMEOUTS["competitor"], TTL["remote"], refreshable=True),
}

for _section in Section:
    SECTION_SPECS.setdefault(_section, _ai(_section))

# Sections whose live source is the generative model; the bulk call covers these
AI_SECTIONS = [s for s in Section if SECTION_SPECS[s].source == "ai"]


def parse_section(value: str) -> Section:
    """Section from its camelCase key. Raises ValueError on unknown keys."""
    return Section(value)
