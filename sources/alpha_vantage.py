"""
Company Lens: Alpha Vantage Market Data
─────────────────────────────────────────
Daily prices, company overview and annual income statements for a
listed company, normalised into the marketData section payload:

  symbol          ticker used for the lookups
  pricePoints     last 30 daily closes, oldest first
  overview        sector, employees, IPO year, listed name
  revenueSplit    cost of revenue vs gross profit, latest year
  annualRevenue   up to 5 years, revenue in millions, oldest first
  margins         gross margin % per year, oldest first
  expenses        R&D, SG&A and other operating expense, latest year

Free tier: 25 requests/day. Results are cached for an hour upstream.
Ticker lookup uses a fixed name table and fails closed for unknown names.

Setup:
  Set ALPHA_VANTAGE_KEY environment variable.
"""

import asyncio
import logging
import os
import re
from typing import Dict, Optional

from sources.base import DataSource, SourceResult

log = logging.getLogger("cl.sources.alpha_vantage")

ALPHA_VANTAGE_KEY = os.environ.get("ALPHA_VANTAGE_KEY", "demo")
ALPHA_VANTAGE_URL = "https://www.alphavantage.co/query"

PRICE_POINTS   = 30
REVENUE_YEARS  = 5

SYMBOL_MAP: Dict[str, str] = {
    "apple":      "AAPL",
    "microsoft":  "MSFT",
    "google":     "GOOGL",
    "alphabet":   "GOOGL",
    "amazon":     "AMZN",
    "tesla":      "TSLA",
    "meta":       "META",
    "facebook":   "META",
    "netflix":    "NFLX",
    "nvidia":     "NVDA",
    "intel":      "INTC",
    "ibm":        "IBM",
    "oracle":     "ORCL",
    "salesforce": "CRM",
    "adobe":      "ADBE",
    "paypal":     "PYPL",
    "uber":       "UBER",
    "airbnb":     "ABNB",
    "zoom":       "ZM",
    "slack":      "WORK",
    "twitter":    "TWTR",
    "snapchat":   "SNAP",
    "pinterest":  "PINS",
    "spotify":    "SPOT",
    "shopify":    "SHOP",
    "square":     "SQ",
    "robinhood":  "HOOD",
    "coinbase":   "COIN",
    "palantir":   "PLTR",
    "snowflake":  "SNOW",
}

# Keys Alpha Vantage uses to report errors and quota exhaustion in a 200 body
_ERROR_KEYS = ("Error Message", "Note", "Information")


def lookup_symbol(company: str) -> Optional[str]:
    normalized = re.sub(r"[^a-z]", "", company.lower())
    return SYMBOL_MAP.get(normalized)


def _num(value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _year(report: dict) -> str:
    return (report.get("fiscalDateEnding") or "").split("-")[0]


def price_points(series: dict) -> list:
    daily = series.get("Time Series (Daily)") or {}
    dates = sorted(daily, reverse=True)[:PRICE_POINTS]
    return [{"date": d, "close": _num(daily[d].get("4. close"))} for d in reversed(dates)]


def revenue_split(report: dict) -> dict:
    total = _num(report.get("totalRevenue"))
    cost  = _num(report.get("costOfRevenue"))
    return {"costOfRevenue": cost, "grossProfit": total - cost}


def annual_revenue(reports: list) -> list:
    recent = list(reversed(reports[:REVENUE_YEARS]))
    return [{"year": _year(r), "revenueMillions": _num(r.get("totalRevenue")) / 1_000_000} for r in recent]


def gross_margins(reports: list) -> list:
    margins = []
    for r in reversed(reports[:REVENUE_YEARS]):
        revenue = _num(r.get("totalRevenue"))
        cost    = _num(r.get("costOfRevenue"))
        margin  = (revenue - cost) / revenue * 100 if revenue > 0 else 0.0
        margins.append({"year": _year(r), "grossMargin": round(margin, 2)})
    return margins


def expense_split(report: dict) -> dict:
    rnd   = _num(report.get("researchAndDevelopment"))
    sga   = _num(report.get("sellingGeneralAndAdministrative"))
    total = _num(report.get("operatingExpenses"))
    return {
        "researchAndDevelopment": rnd,
        "sellingGeneralAdmin":    sga,
        "otherOperating":         max(0.0, total - rnd - sga),
    }


class AlphaVantageSource(DataSource):
    """Market data bundle for one company."""

    @property
    def name(self) -> str:
        return "AlphaVantage"

    async def _query(self, client, function: str, symbol: str) -> Optional[dict]:
        params = {"function": function, "symbol": symbol, "apikey": ALPHA_VANTAGE_KEY}
        r = await client.get(ALPHA_VANTAGE_URL, params=params)
        if r.status_code != 200:
            log.warning(f"Alpha Vantage {function} {symbol}: HTTP {r.status_code}")
            return None
        data = r.json()
        for key in _ERROR_KEYS:
            if key in data:
                log.warning(f"Alpha Vantage {function} {symbol}: {data[key]}")
                return None
        return data

    async def _fetch(self, query: str, params: dict) -> SourceResult:
        symbol = params.get("symbol") or lookup_symbol(query)
        if not symbol:
            return self._empty_result(query, "no ticker symbol known for this company")

        async with self._http() as client:
            series, overview, income = await asyncio.gather(
                self._query(client, "TIME_SERIES_DAILY", symbol),
                self._query(client, "OVERVIEW", symbol),
                self._query(client, "INCOME_STATEMENT", symbol),
            )

        if not (series or overview or income):
            return self._empty_result(query, f"Alpha Vantage returned nothing for {symbol}")

        reports = (income or {}).get("annualReports") or []
        latest  = reports[0] if reports else {}
        overview = overview or {}

        payload = {
            "symbol":        symbol,
            "pricePoints":   price_points(series or {}),
            "overview": {
                "name":      overview.get("Name"),
                "sector":    overview.get("Sector"),
                "employees": int(_num(overview.get("FullTimeEmployees"))) or None,
                "ipoYear":   (overview.get("IPODate") or "").split("-")[0] or None,
            },
            "revenueSplit":  revenue_split(latest) if latest else {},
            "annualRevenue": annual_revenue(reports),
            "margins":       gross_margins(reports),
            "expenses":      expense_split(latest) if latest else {},
        }
        return self._result(query, payload)
