"""
Company Lens: Fallback Payloads
─────────────────────────────────
Static, deterministic placeholder content per section. Shown when a
live call fails or times out; never written to either cache tier.

Each payload has the same shape a live result for that section has,
so the view renders both the same way.
"""

import logging
from typing import Any, Dict, List

from research_engine.catalog.sections import Section

log = logging.getLogger("cl.catalog.fallback")


def _fallback_table(company: str) -> Dict[Section, Any]:
    return {
        Section.STOCK_PERFORMANCE: {
            "analysis": f"{company} stock has shown moderate volatility over the past year with an overall positive trend.",
            "chartDescription": "12-month stock price movement with key events marked",
            "keyPoints": [
                "Outperformed sector index by 5.2%",
                "Highest price reached after Q3 earnings",
                "Recovered quickly from market-wide correction in March",
            ],
        },
        Section.REVENUE_BREAKDOWN: {
            "analysis": f"{company}'s revenue is spread across several business segments.",
            "summary": f"No segment reporting is available for {company} right now.",
            "segments": [
                {"name": "Products", "percentage": 55, "trend": "stable"},
                {"name": "Services", "percentage": 30, "trend": "increasing"},
                {"name": "Other",    "percentage": 15, "trend": "decreasing"},
            ],
            "keyInsight": "Services show the strongest growth",
        },
        Section.KEY_METRICS: {
            "metrics": [
                {"name": "Revenue",    "value": "$42.5B", "change": 12.3},
                {"name": "Net Income", "value": "$8.7B",  "change": 7.8},
                {"name": "EPS",        "value": "$3.45",  "change": 9.2},
                {"name": "P/E Ratio",  "value": "24.3",   "change": -2.1},
            ],
            "summary": f"{company} maintains steady financial health.",
        },
        Section.COMPANY_OVERVIEW: {
            "description": f"{company} is an established company offering a range of products and services.",
            "businessModel": "Product sales complemented by recurring services revenue",
            "differentiators": "Brand recognition and scale",
            "recentDevelopments": [],
        },
        Section.COMPANY_INFO: {
            "sector": "Unknown",
            "employees": 0,
            "founded": "Unknown",
        },
        Section.SWOT_ANALYSIS: {
            "strengths":     ["Strong brand recognition", "Robust financial position"],
            "weaknesses":    ["High dependency on key markets", "Regulatory challenges"],
            "opportunities": ["Expansion into emerging markets", "Strategic acquisitions"],
            "threats":       ["Intense industry competition", "Economic downturns"],
        },
        Section.REVENUE_GROWTH: {
            "analysis": f"Quarterly revenue data for {company} is not available right now.",
            "quarters": ["Q1", "Q2", "Q3", "Q4"],
            "values":   [1000, 1100, 1200, 1300],
        },
        Section.PROFIT_MARGINS: {
            "analysis": f"Margin history for {company} is not available right now.",
            "years":           ["2020", "2021", "2022", "2023", "2024"],
            "grossMargin":     [60, 61, 62, 63, 64],
            "operatingMargin": [25, 26, 27, 28, 29],
            "netMargin":       [15, 16, 17, 18, 19],
        },
        Section.EXPENSE_BREAKDOWN: {
            "analysis": f"Expense detail for {company} is not available right now.",
            "categories":  ["R&D", "Sales & Marketing", "G&A", "COGS", "Other"],
            "percentages": [20, 30, 15, 25, 10],
        },
        Section.FINANCIAL_HIGHLIGHTS: {
            "highlights": [
                {"title": "Data unavailable", "description": f"Financial highlights for {company} could not be loaded."},
            ],
        },
        Section.SENTIMENT: {
            "analystRating": 3.0,
            "newsSentiment": 50,
            "socialSentiment": 50,
            "analysis": f"Sentiment data for {company} is not available right now.",
        },
        Section.KEY_TOPICS: {
            "topics": [
                {"name": "Innovation",      "weight": 85},
                {"name": "Market Share",    "weight": 75},
                {"name": "Growth Strategy", "weight": 70},
                {"name": "Earnings",        "weight": 55},
            ],
        },
        Section.EXECUTIVES: {"executives": []},
        Section.STRUCTURE: {
            "boardSize": 0,
            "independentDirectors": 0,
            "businessUnits": [],
            "subsidiaries": [],
        },
        Section.GEOGRAPHY: {
            "headquarters": "Unknown",
            "majorLocations": [],
            "revenueByRegion": {},
        },
        Section.AI_SUGGESTIONS: [
            f"What are {company}'s main growth drivers?",
            f"How does {company} compare to its competitors?",
            f"What are {company}'s biggest challenges?",
            f"What is {company}'s international expansion strategy?",
            f"How is {company} addressing sustainability?",
        ],
        Section.COMPETITOR_LANDSCAPE: {
            "analysis": f"{company} operates in a market with several established players.",
            "mainCompetitors": [],
        },
        Section.NEWS: {"articles": []},
        Section.RECENT_FILINGS: {"filings": []},
        Section.MARKET_DATA: {
            "symbol": None,
            "pricePoints": [],
            "overview": {},
            "revenueSplit": {},
            "annualRevenue": [],
            "margins": [],
            "expenses": {},
        },
    }


def fallback_payload(section: Section, company: str) -> Any:
    """Placeholder payload for `section`, personalised with the company name."""
    return _fallback_table(company)[section]


def expected_keys(section: Section) -> List[str]:
    payload = _fallback_table("")[section]
    return list(payload) if isinstance(payload, dict) else []


def matches_fallback_shape(section: Section, payload: Any) -> bool:
    """
    True when `payload` can stand in for the section's fallback.
    Top-level type must match; objects need at least one expected key.
    Missing keys are tolerated but logged.
    """
    template = _fallback_table("")[section]
    if isinstance(template, list):
        return isinstance(payload, list)
    if not isinstance(payload, dict):
        return False
    present = [k for k in template if k in payload]
    if not present:
        return False
    missing = [k for k in template if k not in payload]
    if missing:
        log.warning(f"{section}: payload missing keys {missing}")
    return True
