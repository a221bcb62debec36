"""
Company Lens: News Source
───────────────────────────
Recent articles about a company from NewsAPI's /everything search.
Only articles whose title names the company are kept; each is
normalised for the news section and given a word-vote sentiment.

Setup:
  Set NEWS_API_KEY environment variable.
  Get a free key at https://newsapi.org
"""

import logging
import os
import re
from datetime import datetime
from typing import List, Optional

from sources.base import DataSource, SourceResult

log = logging.getLogger("cl.sources.news")

NEWS_API_KEY = os.environ.get("NEWS_API_KEY", "")
NEWS_API_URL = "https://newsapi.org/v2/everything"
PAGE_SIZE    = 20
SUMMARY_CHARS = 150

NO_DESCRIPTION = "No description available for this article."

# Sentiment word lists
POSITIVE_WORDS = [
    "gain", "rise", "up", "growth", "profit", "success", "positive", "beat",
    "exceed", "improve", "increase", "higher", "boost", "strong",
    "opportunity", "innovation",
]
NEGATIVE_WORDS = [
    "loss", "fall", "down", "decline", "drop", "fail", "negative", "miss",
    "below", "decrease", "lower", "weak", "struggle", "concern", "risk",
    "problem", "issue",
]

_CHARS_MARKER = re.compile(r"\[\+\d+ chars\]$")


def score_sentiment(title: str, description: Optional[str]) -> str:
    """'positive', 'negative' or 'neutral' by counting matched words."""
    text = f"{title} {description or ''}".lower()
    pos = sum(1 for w in POSITIVE_WORDS if w in text)
    neg = sum(1 for w in NEGATIVE_WORDS if w in text)
    if pos > neg:
        return "positive"
    if neg > pos:
        return "negative"
    return "neutral"


def summarize(article: dict) -> str:
    if article.get("description"):
        return article["description"]
    content = article.get("content")
    if content:
        content = _CHARS_MARKER.sub("", content)
        if len(content) > SUMMARY_CHARS:
            content = content[:SUMMARY_CHARS] + "..."
        return content
    return NO_DESCRIPTION


def format_date(published_at: str) -> str:
    """ISO timestamp -> 'March 5, 2024'. Unparseable input is returned as-is."""
    try:
        d = datetime.fromisoformat((published_at or "").replace("Z", "+00:00"))
    except ValueError:
        return published_at or ""
    return f"{d.strftime('%B')} {d.day}, {d.year}"


def convert_article(article: dict) -> dict:
    title = article.get("title") or ""
    return {
        "title":     title,
        "source":    (article.get("source") or {}).get("name") or "Unknown",
        "date":      format_date(article.get("publishedAt")),
        "summary":   summarize(article),
        "sentiment": score_sentiment(title, article.get("description")),
        "url":       article.get("url"),
        "imageUrl":  article.get("urlToImage"),
    }


def filter_by_title(articles: List[dict], company: str) -> List[dict]:
    needle = company.strip().lower()
    return [a for a in articles if needle in (a.get("title") or "").lower()]


class NewsSource(DataSource):
    """Fetches and normalises company headlines."""

    @property
    def name(self) -> str:
        return "NewsAPI"

    async def _fetch(self, query: str, params: dict) -> SourceResult:
        if not NEWS_API_KEY:
            return self._empty_result(query, "NEWS_API_KEY not set")

        request_params = {
            "q":        query,
            "sortBy":   "relevancy",
            "language": "en",
            "pageSize": PAGE_SIZE,
            "apiKey":   NEWS_API_KEY,
        }
        async with self._http() as client:
            r = await client.get(NEWS_API_URL, params=request_params)
        if r.status_code == 429:
            return self._empty_result(query, "NewsAPI rate limit reached")
        if r.status_code != 200:
            return self._empty_result(query, f"NewsAPI error {r.status_code}")

        data = r.json()
        if data.get("status") != "ok":
            return self._empty_result(query, f"NewsAPI returned status: {data.get('status')}")

        articles = filter_by_title(data.get("articles") or [], query)
        if not articles:
            return self._empty_result(query, "no articles mention the company in the title")

        return self._result(query, {"articles": [convert_article(a) for a in articles]})
