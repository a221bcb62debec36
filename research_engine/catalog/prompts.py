"""
Company Lens: Prompt Catalog
──────────────────────────────
One prompt template per AI-resolved section, plus generation options.

Each prompt names its section with the phrase the AI router keys on
(see routing/ai_router.py), so a prompt echoed back from the bulk
remote-compute call classifies to the section it was written for.
Phrases belonging to other sections must not appear in a template.
"""

from typing import Dict

from research_engine.catalog.sections import Section

_JSON_OBJECT = "Reply with one JSON object and nothing else, using these keys:"

PROMPTS: Dict[Section, str] = {
    Section.STOCK_PERFORMANCE: (
        "Review the stock performance of {company} over the last 12 months, "
        "covering price movement, volatility and how it compares with its index. "
        f"{_JSON_OBJECT} "
        '{{"analysis": string, "chartDescription": string, "keyPoints": [string]}}'
    ),
    Section.REVENUE_BREAKDOWN: (
        "Produce a revenue breakdown for {company} across its business segments. "
        f"{_JSON_OBJECT} "
        '{{"analysis": string, "summary": string, '
        '"segments": [{{"name": string, "percentage": number, "trend": "increasing" | "decreasing" | "stable"}}], '
        '"keyInsight": string}}'
    ),
    Section.KEY_METRICS: (
        "Give the key metrics for {company}: revenue, net income, EPS and P/E ratio, "
        "each with its latest value and year-over-year change. "
        f"{_JSON_OBJECT} "
        '{{"metrics": [{{"name": string, "value": string, "change": number}}], "summary": string}}'
    ),
    Section.COMPANY_OVERVIEW: (
        "Write a company overview of {company}: what it does, how it makes money, "
        "what sets it apart and what it has done recently. "
        f"{_JSON_OBJECT} "
        '{{"description": string, "businessModel": string, "differentiators": string, '
        '"recentDevelopments": [string]}}'
    ),
    Section.COMPANY_INFO: (
        "Provide basic information about {company}: its sector, headcount and founding year. "
        f"{_JSON_OBJECT} "
        '{{"sector": string, "employees": number, "founded": string}}'
    ),
    Section.SWOT_ANALYSIS: (
        "Carry out a SWOT analysis of {company}. "
        f"{_JSON_OBJECT} "
        '{{"strengths": [string], "weaknesses": [string], "opportunities": [string], "threats": [string]}}'
    ),
    Section.REVENUE_GROWTH: (
        "Chart the quarterly revenue growth of {company} over the last six quarters, "
        "figures in millions. "
        f"{_JSON_OBJECT} "
        '{{"analysis": string, "quarters": [string], "values": [number]}}'
    ),
    Section.PROFIT_MARGINS: (
        "Track the profit margins of {company} over the last five years: gross, operating and net. "
        f"{_JSON_OBJECT} "
        '{{"analysis": string, "years": [string], "grossMargin": [number], '
        '"operatingMargin": [number], "netMargin": [number]}}'
    ),
    Section.EXPENSE_BREAKDOWN: (
        "Give an expense breakdown for {company} for the current fiscal year, "
        "as the share of total spend per major category. "
        f"{_JSON_OBJECT} "
        '{{"analysis": string, "categories": [string], "percentages": [number]}}'
    ),
    Section.FINANCIAL_HIGHLIGHTS: (
        "List the financial highlights of {company} from its most recent reporting period: "
        "top-line results, margins, capital allocation and balance sheet. "
        f"{_JSON_OBJECT} "
        '{{"highlights": [{{"title": string, "description": string}}]}}'
    ),
    Section.SENTIMENT: (
        "Summarise the sentiment towards {company} among analysts, the press and social media, "
        "scoring news and social on 0-100 and the analyst rating on 1-5. "
        f"{_JSON_OBJECT} "
        '{{"analystRating": number, "newsSentiment": number, "socialSentiment": number, "analysis": string}}'
    ),
    Section.KEY_TOPICS: (
        "Identify the key topics people are discussing about {company}, weighted 0-100 by prominence. "
        f"{_JSON_OBJECT} "
        '{{"topics": [{{"name": string, "weight": number}}]}}'
    ),
    Section.EXECUTIVES: (
        "Profile the senior executives of {company}. "
        f"{_JSON_OBJECT} "
        '{{"executives": [{{"name": string, "position": string, "background": string}}]}}'
    ),
    Section.STRUCTURE: (
        "Describe the corporate structure of {company}: board size, independent directors, "
        "business units and principal subsidiaries. "
        f"{_JSON_OBJECT} "
        '{{"boardSize": number, "independentDirectors": number, "businessUnits": [string], '
        '"subsidiaries": [string]}}'
    ),
    Section.GEOGRAPHY: (
        "Outline the geography of {company}: headquarters, major locations and the percentage "
        "of sales earned in each region. "
        f"{_JSON_OBJECT} "
        '{{"headquarters": string, "majorLocations": [string], "revenueByRegion": {{"<region>": number}}}}'
    ),
    Section.AI_SUGGESTIONS: (
        "Suggest five insightful questions an investor might ask about {company}. "
        "Reply with a JSON array of five strings and nothing else."
    ),
    Section.COMPETITOR_LANDSCAPE: (
        "Map the competitor landscape for {company}: its main rivals, their market share, "
        "strengths and focus. "
        f"{_JSON_OBJECT} "
        '{{"analysis": string, "mainCompetitors": [{{"name": string, "marketShare": string, '
        '"strengths": [string], "focus": string}}]}}'
    ),
}

# ── Generation options ────────────────────────────────────────
DEFAULT_OPTIONS = {"temperature": 0.2, "max_output_tokens": 1024}

GENERATION_OPTIONS: Dict[Section, dict] = {
    Section.COMPANY_INFO: {"temperature": 0.1, "max_output_tokens": 1024},
}


def build_prompt(section: Section, company: str) -> str:
    """Prompt text for `section`. Raises KeyError for sections with no prompt."""
    return PROMPTS[section].format(company=company)


def generation_options(section: Section) -> dict:
    return dict(GENERATION_OPTIONS.get(section, DEFAULT_OPTIONS))
