"""
Company Lens: SEC EDGAR Filings
─────────────────────────────────
Recent regulatory filings for a company, straight from EDGAR.

  company name -> ticker   best containment match against company_tickers.json
  ticker -> CIK            same file, zero-padded to 10 digits
  CIK -> filings           data.sec.gov submissions, last 12 months only

Unresolvable names or tickers are a not-found, never an exception.
EDGAR requires a descriptive User-Agent; set SEC_USER_AGENT.
"""

import logging
import os
import re
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional

from sources.base import DataSource, SourceResult

log = logging.getLogger("cl.sources.sec")

SEC_USER_AGENT  = os.environ.get("SEC_USER_AGENT", "Company Lens research tool (admin@example.com)")
TICKERS_URL     = "https://www.sec.gov/files/company_tickers.json"
SUBMISSIONS_URL = "https://data.sec.gov/submissions/CIK{cik}.json"
ARCHIVE_URL     = "https://www.sec.gov/Archives/edgar/data/{cik}/{accession}/{document}"

DEFAULT_FORM_TYPES = ["10-K", "10-Q", "8-K"]

FORM_DESCRIPTIONS = {
    "10-K": "Annual Report",
    "10-Q": "Quarterly Report",
    "8-K":  "Current Report",
}

HEADERS = {"User-Agent": SEC_USER_AGENT, "Accept": "application/json"}


def _squash(text: str) -> str:
    return re.sub(r"[^a-z0-9]", "", (text or "").lower())


def best_ticker_match(company: str, tickers: Dict[str, dict]) -> Optional[str]:
    """Ticker whose registered title best contains (or is contained by) the name."""
    wanted = _squash(company)
    if not wanted:
        return None
    best, best_score = None, 0.0
    for entry in tickers.values():
        title = _squash(entry.get("title"))
        if not title or (wanted not in title and title not in wanted):
            continue
        score = min(len(title), len(wanted)) / max(len(title), len(wanted))
        if score > best_score:
            best, best_score = entry.get("ticker"), score
    return best


def cik_for_ticker(ticker: str, tickers: Dict[str, dict]) -> Optional[str]:
    for entry in tickers.values():
        if (entry.get("ticker") or "").lower() == ticker.lower():
            return str(entry["cik_str"]).zfill(10)
    return None


def filing_summary(form: str, report_date: str) -> str:
    try:
        d = date.fromisoformat(report_date)
        shown = f"{d.strftime('%b')} {d.day}, {d.year}"
    except ValueError:
        shown = report_date
    if form == "10-K":
        return (f"Annual report for the fiscal year ending {shown}. Contains audited financial "
                f"statements, business overview, risk factors, and management discussion.")
    if form == "10-Q":
        return (f"Quarterly report for the period ending {shown}. Includes unaudited financial "
                f"statements and operational updates.")
    if form == "8-K":
        return (f"Current report filed on {shown}. Discloses material events or corporate changes "
                f"that are of importance to shareholders.")
    return f"SEC filing submitted on {shown}."


def parse_filings(cik: str, submissions: dict, form_types: List[str], today: date) -> List[dict]:
    recent = submissions["filings"]["recent"]
    cutoff = today - timedelta(days=365)
    filings = []
    for i, form in enumerate(recent["form"]):
        if form not in form_types:
            continue
        if date.fromisoformat(recent["filingDate"][i]) < cutoff:
            continue
        accession   = recent["accessionNumber"][i]
        report_date = (recent.get("reportDate") or [""] * len(recent["form"]))[i] or recent["filingDate"][i]
        filings.append({
            "type":            form,
            "date":            report_date,
            "description":     FORM_DESCRIPTIONS.get(form, "SEC Filing"),
            "summary":         filing_summary(form, report_date),
            "url":             ARCHIVE_URL.format(
                                   cik=int(cik),
                                   accession=accession.replace("-", ""),
                                   document=recent["primaryDocument"][i],
                               ),
            "accessionNumber": accession,
        })
    return filings


class SecFilingsSource(DataSource):
    """
    params:
      ticker  explicit ticker, skips the name lookup
      types   comma-separated form types (default 10-K,10-Q,8-K)
    """

    def __init__(self, client=None, today: Callable[[], date] = date.today):
        super().__init__(client)
        self._today = today

    @property
    def name(self) -> str:
        return "SEC EDGAR"

    async def _fetch(self, query: str, params: dict) -> SourceResult:
        types = params.get("types")
        form_types = [t.strip() for t in types.split(",") if t.strip()] if types else DEFAULT_FORM_TYPES

        async with self._http() as client:
            r = await client.get(TICKERS_URL, headers=HEADERS)
            if r.status_code != 200:
                return self._empty_result(query, f"ticker list unavailable (HTTP {r.status_code})")
            tickers = r.json()

            ticker = params.get("ticker") or best_ticker_match(query, tickers)
            if not ticker:
                return self._empty_result(query, "Company not found")
            cik = cik_for_ticker(ticker, tickers)
            if not cik:
                return self._empty_result(query, "Company not found")

            r = await client.get(SUBMISSIONS_URL.format(cik=cik), headers=HEADERS)
            if r.status_code != 200:
                return self._empty_result(query, f"submissions unavailable (HTTP {r.status_code})")
            submissions = r.json()

        filings = parse_filings(cik, submissions, form_types, self._today())
        log.info(f"{query}: {len(filings)} filings for {ticker} (CIK {cik})")
        return self._result(query, {"filings": filings})
