"""
Company Lens: Ask-AI Assistant
────────────────────────────────
Free-form question answering about the company on screen. The question
is scoped to the company before it is sent, and every failure becomes
a short message the user can act on.

Setup:
  Set ASSISTANT_URL environment variable.
"""

import logging
import os
from typing import Optional

import httpx

from research_engine.config import TIMEOUTS
from sources.base import DataSource, SourceResult

log = logging.getLogger("cl.sources.assistant")

ASSISTANT_URL = os.environ.get("ASSISTANT_URL", "")

DEFAULT_ANSWER  = "I'm sorry, I couldn't find a specific answer to your question."
TIMEOUT_ANSWER  = "The request timed out. Please try again with a shorter question."
NETWORK_ANSWER  = "There was a network issue. Please check your connection and try again."
GENERIC_ANSWER  = "Sorry, there was an error contacting the AI."

_FRIENDLY = {TIMEOUT_ANSWER, NETWORK_ANSWER, GENERIC_ANSWER}


def scope_question(company: str, question: str) -> str:
    if company.lower() in question.lower():
        return question
    return f"About {company}: {question}"


def read_answer(data) -> str:
    if isinstance(data, str):
        return data
    if not isinstance(data, dict):
        return DEFAULT_ANSWER
    for outer, inner in (("response", "text"), ("answer", "answerText"), ("reply", "reply")):
        value = data.get(outer)
        if isinstance(value, dict) and value.get(inner):
            return value[inner]
    return DEFAULT_ANSWER


class AssistantClient(DataSource):
    """params: company (required), session_id (optional)."""

    http_timeout = TIMEOUTS["assistant"]

    def __init__(self, client=None, url: Optional[str] = None):
        super().__init__(client)
        self.url = url if url is not None else ASSISTANT_URL

    @property
    def name(self) -> str:
        return "Assistant"

    async def _fetch(self, query: str, params: dict) -> SourceResult:
        if not self.url:
            return self._empty_result(query, GENERIC_ANSWER)
        payload = {
            "queryText":  scope_question(params["company"], query),
            "sessionId":  params.get("session_id"),
            "newSession": False,
        }
        try:
            async with self._http() as client:
                r = await client.post(self.url, json=payload, timeout=self.http_timeout)
        except httpx.TimeoutException:
            return self._empty_result(query, TIMEOUT_ANSWER)
        except httpx.TransportError:
            return self._empty_result(query, NETWORK_ANSWER)

        if r.status_code != 200:
            log.error(f"Assistant error ({r.status_code}): {r.text[:200]}")
            return self._empty_result(query, GENERIC_ANSWER)
        return self._result(query, {"answer": read_answer(r.json())})

    async def ask(self, company: str, question: str, session_id: Optional[str] = None) -> str:
        """Answer text, or a friendly error message. Never raises for I/O failures."""
        result = await self.run(question, {"company": company, "session_id": session_id})
        if result.ok:
            return result.payload["answer"]
        return result.error if result.error in _FRIENDLY else GENERIC_ANSWER
