"""
Company Lens: Generative AI Source
────────────────────────────────────
Resolves one AI section by sending its catalog prompt to Claude and
recovering the JSON value from the reply.

Sampling follows the catalog: temperature 0.2, 1024 output tokens,
0.1 for companyInfo. Transient API errors are retried twice by the SDK.

Setup:
  Set ANTHROPIC_API_KEY environment variable.
  AI_MODEL overrides the model name.
"""

import logging
import os
from typing import Optional

from anthropic import APIError, AsyncAnthropic

from research_engine.catalog.prompts import build_prompt, generation_options
from research_engine.catalog.sections import Section
from research_engine.routing.ai_router import extract_json
from sources.base import DataSource, SourceResult

log = logging.getLogger("cl.sources.ai")

ANTHROPIC_KEY = os.environ.get("ANTHROPIC_API_KEY", "")
AI_MODEL      = os.environ.get("AI_MODEL", "claude-sonnet-4-20250514")
AI_RETRIES    = 2


def response_text(response) -> str:
    return "".join(
        getattr(block, "text", "") for block in (response.content or [])
        if getattr(block, "type", "text") == "text"
    ).strip()


class GenerativeSource(DataSource):
    """
    params:
      section  the Section to generate (required)
      prompt   raw prompt text, overrides the catalog
    """

    def __init__(self, client=None, ai_client: Optional[AsyncAnthropic] = None):
        super().__init__(client)
        if ai_client is None and ANTHROPIC_KEY:
            ai_client = AsyncAnthropic(api_key=ANTHROPIC_KEY, max_retries=AI_RETRIES)
        self._ai = ai_client

    @property
    def name(self) -> str:
        return "Claude"

    async def _fetch(self, query: str, params: dict) -> SourceResult:
        if self._ai is None:
            return self._empty_result(query, "AI disabled - set ANTHROPIC_API_KEY")

        section = Section(params["section"])
        prompt  = params.get("prompt") or build_prompt(section, query)
        options = generation_options(section)

        try:
            response = await self._ai.messages.create(
                model=AI_MODEL,
                max_tokens=options["max_output_tokens"],
                temperature=options["temperature"],
                messages=[{"role": "user", "content": prompt}],
            )
        except APIError as e:
            return self._empty_result(query, f"{section}: AI request failed: {e}")

        text = response_text(response)
        if not text:
            return self._empty_result(query, f"{section}: empty AI response")
        return self._result(query, extract_json(text))
