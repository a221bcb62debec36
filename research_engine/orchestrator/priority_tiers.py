"""
Company Lens: Priority Tiers
──────────────────────────────
Which sections load first when a dashboard opens.

Tier 1: awaited before the dashboard is considered up
  - basic data (company info, news, filings, market data)
  - priority AI sections (overview, metrics, stock, revenue split)
Tier 2: started once tier 1 settles
  - secondary AI sections
  - competitor landscape (single remote-compute prompt)
  - bulk remote-compute pre-fetch
"""

from typing import List

from research_engine.catalog.sections import SECTION_SPECS, Section

BASIC: List[Section] = [
    Section.COMPANY_INFO,
    Section.NEWS,
    Section.RECENT_FILINGS,
    Section.MARKET_DATA,
]

PRIORITY: List[Section] = [
    Section.COMPANY_OVERVIEW,
    Section.KEY_METRICS,
    Section.STOCK_PERFORMANCE,
    Section.REVENUE_BREAKDOWN,
]

SECONDARY: List[Section] = [
    Section.SWOT_ANALYSIS,
    Section.SENTIMENT,
    Section.KEY_TOPICS,
    Section.EXECUTIVES,
    Section.STRUCTURE,
    Section.GEOGRAPHY,
    Section.AI_SUGGESTIONS,
    Section.FINANCIAL_HIGHLIGHTS,
    Section.REVENUE_GROWTH,
    Section.PROFIT_MARGINS,
    Section.EXPENSE_BREAKDOWN,
]

COMPETITOR: List[Section] = [Section.COMPETITOR_LANDSCAPE]

TIER1: List[Section] = BASIC + PRIORITY

REFRESHABLE: List[Section] = [s for s in Section if SECTION_SPECS[s].refreshable]
