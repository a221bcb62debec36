"""
Company Lens: AI Response Router
──────────────────────────────────
Two jobs:

  extract_json(text)      best-effort recovery of a JSON value from
                          model output that may wrap it in prose or
                          markdown fences.

  classify_prompt(prompt) map a prompt back to the section it was
                          written for, by ordered keyword match. The
                          company name is blanked out first so that a
                          name like "Structure Therapeutics" cannot
                          steer the match.
"""

import json
import logging
import re
from typing import Any, List, Optional, Tuple

from research_engine.catalog.sections import Section

log = logging.getLogger("cl.router")

_JSON_FENCE = re.compile(r"```json\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_ANY_FENCE  = re.compile(r"```[^\n`]*\n?(.*?)```", re.DOTALL)


def _try_parse(candidate: str) -> Tuple[bool, Any]:
    try:
        return True, json.loads(candidate)
    except ValueError:
        return False, None


def _balanced_span(text: str, opener: str, closer: str) -> Optional[str]:
    """First balanced opener..closer span, ignoring brackets inside JSON strings."""
    start = text.find(opener)
    while start != -1:
        depth     = 0
        in_string = False
        escaped   = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == opener:
                depth += 1
            elif ch == closer:
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        start = text.find(opener, start + 1)
    return None


def extract_json(text: Any) -> Any:
    """
    Parsed JSON value recovered from `text`, or `text` itself when
    nothing parses. Non-string input is returned unchanged.

    Order: ```json fence, any fence, the whole text, the first balanced
    {...}, the widest {...}, the first balanced [...].
    """
    if not isinstance(text, str):
        return text

    candidates: List[str] = []
    fenced = _JSON_FENCE.search(text)
    if fenced:
        candidates.append(fenced.group(1))
    else:
        fenced = _ANY_FENCE.search(text)
        if fenced:
            candidates.append(fenced.group(1))
    candidates.append(text)

    for candidate in candidates:
        ok, value = _try_parse(candidate.strip())
        if ok:
            return value

    for candidate in candidates:
        obj = _balanced_span(candidate, "{", "}")
        if obj:
            ok, value = _try_parse(obj)
            if ok:
                return value
        first, last = candidate.find("{"), candidate.rfind("}")
        if first != -1 and last > first:
            ok, value = _try_parse(candidate[first:last + 1])
            if ok:
                return value
        arr = _balanced_span(candidate, "[", "]")
        if arr:
            ok, value = _try_parse(arr)
            if ok:
                return value

    log.debug(f"No JSON found in response ({len(text)} chars) - passing text through")
    return text


# ── Prompt classification ─────────────────────────────────────
# Order matters: first match wins.
KEYWORD_MAP: List[Tuple[str, Section]] = [
    ("competitor",           Section.COMPETITOR_LANDSCAPE),
    ("competitive",          Section.COMPETITOR_LANDSCAPE),
    ("market position",      Section.COMPETITOR_LANDSCAPE),
    ("revenue breakdown",    Section.REVENUE_BREAKDOWN),
    ("revenue segments",     Section.REVENUE_BREAKDOWN),
    ("business segments",    Section.REVENUE_BREAKDOWN),
    ("stock performance",    Section.STOCK_PERFORMANCE),
    ("key metrics",          Section.KEY_METRICS),
    ("company overview",     Section.COMPANY_OVERVIEW),
    ("swot analysis",        Section.SWOT_ANALYSIS),
    ("sentiment",            Section.SENTIMENT),
    ("key topics",           Section.KEY_TOPICS),
    ("executives",           Section.EXECUTIVES),
    ("structure",            Section.STRUCTURE),
    ("geography",            Section.GEOGRAPHY),
    ("financial highlights", Section.FINANCIAL_HIGHLIGHTS),
    ("revenue growth",       Section.REVENUE_GROWTH),
    ("profit margins",       Section.PROFIT_MARGINS),
    ("expense breakdown",    Section.EXPENSE_BREAKDOWN),
    ("basic information",    Section.COMPANY_INFO),
    ("insightful questions", Section.AI_SUGGESTIONS),
]

_COMPETE_HINTS = ("compete", "rival", "market share")
_SEGMENT_HINTS = ("segment", "breakdown", "division")


def classify_prompt(prompt: str, company: Optional[str] = None) -> Optional[Section]:
    """Section a prompt belongs to, or None when nothing matches."""
    lower = (prompt or "").lower()
    name = (company or "").strip().lower()
    if name:
        lower = lower.replace(name, " ")
    for keyword, section in KEYWORD_MAP:
        if keyword in lower:
            return section

    if any(h in lower for h in _COMPETE_HINTS):
        return Section.COMPETITOR_LANDSCAPE
    if "revenue" in lower and any(h in lower for h in _SEGMENT_HINTS):
        return Section.REVENUE_BREAKDOWN

    log.warning(f"Could not classify prompt: {lower[:80]!r}")
    return None


def route_result(item: Any, company: Optional[str] = None) -> Tuple[Optional[Section], Any]:
    """(section, payload) for one {prompt, response} pair from the remote compute call."""
    if not isinstance(item, dict):
        log.warning(f"Skipping malformed remote result: {item!r:.80}")
        return None, None
    section = classify_prompt(item.get("prompt") or "", company)
    return section, extract_json(item.get("response"))
