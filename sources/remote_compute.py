"""
Company Lens: Remote Compute Source
─────────────────────────────────────
One POST that runs many section prompts server-side:

    request   {company, prompts, promptTypes, timestamp}
    response  {results: [{prompt, response}, ...]}  or  {error}

Used for the bulk pre-fetch of every AI section and, with a single
prompt, for the competitor landscape. Each attempt has its own
deadline; a failed attempt is retried once after a fixed delay.
The final failure is reported as a readable message, never raised.

Setup:
  Set REMOTE_COMPUTE_URL environment variable.
"""

import asyncio
import logging
import os
from datetime import datetime, timezone
from typing import List, Optional, Tuple

import httpx

from research_engine.catalog.prompts import build_prompt
from research_engine.catalog.sections import Section
from research_engine.config import BULK_RETRY_ATTEMPTS, BULK_RETRY_DELAY, TIMEOUTS
from sources.base import DataSource, SourceResult

log = logging.getLogger("cl.sources.remote")

REMOTE_COMPUTE_URL = os.environ.get("REMOTE_COMPUTE_URL", "")

TIMEOUT_ERROR  = "Request timeout - remote compute service took too long to respond"
NETWORK_ERROR  = ("Network error - Unable to reach remote compute service. "
                  "This may be due to CORS policy or network connectivity issues.")
INVALID_ERROR  = "Invalid response structure from remote compute service"
REJECTED_CODES = (403, 405)


class RemoteCallError(Exception):
    """One failed attempt, carrying the message shown to the user."""


class RemoteComputeSource(DataSource):
    """
    params:
      sections  list of Section to request (required)
    """

    def __init__(
        self,
        client=None,
        url: Optional[str] = None,
        attempts: int = BULK_RETRY_ATTEMPTS,
        retry_delay: float = BULK_RETRY_DELAY,
        attempt_timeout: float = TIMEOUTS["bulk"],
    ):
        super().__init__(client)
        self.url             = url if url is not None else REMOTE_COMPUTE_URL
        self.attempts        = attempts
        self.retry_delay     = retry_delay
        self.attempt_timeout = attempt_timeout
        self.http_timeout    = attempt_timeout

    @property
    def name(self) -> str:
        return "RemoteCompute"

    def build_payload(self, company: str, sections: List[Section]) -> dict:
        return {
            "company":     company,
            "prompts":     [build_prompt(s, company) for s in sections],
            "promptTypes": [s.value for s in sections],
            "timestamp":   datetime.now(timezone.utc).isoformat(),
        }

    async def check_access(self) -> Tuple[bool, Optional[str]]:
        """Preflight the endpoint. Any HTTP answer counts as reachable."""
        if not self.url:
            return False, "REMOTE_COMPUTE_URL not set"
        headers = {
            "Access-Control-Request-Method":  "POST",
            "Access-Control-Request-Headers": "Content-Type",
        }
        try:
            async with self._http() as client:
                r = await client.options(self.url, headers=headers, timeout=10)
            log.debug(f"Remote compute preflight: HTTP {r.status_code}")
            return True, None
        except httpx.HTTPError as e:
            return False, f"{type(e).__name__}: {e}"

    async def _attempt(self, client, payload: dict) -> list:
        try:
            r = await client.post(self.url, json=payload, timeout=self.attempt_timeout)
        except httpx.TimeoutException:
            raise RemoteCallError(TIMEOUT_ERROR)
        except httpx.TransportError:
            raise RemoteCallError(NETWORK_ERROR)

        if r.status_code in REJECTED_CODES:
            raise RemoteCallError(
                f"Request rejected by remote compute service (HTTP {r.status_code}) - "
                f"the service may not accept requests from this origin"
            )
        if r.status_code != 200:
            raise RemoteCallError(f"Remote compute HTTP error ({r.status_code}): {r.text[:200]}")

        try:
            data = r.json()
        except ValueError:
            raise RemoteCallError(INVALID_ERROR)
        if not isinstance(data, dict):
            raise RemoteCallError(INVALID_ERROR)
        if not isinstance(data.get("results"), list):
            if data.get("error"):
                raise RemoteCallError(f"Remote compute error: {data['error']}")
            raise RemoteCallError(INVALID_ERROR)
        return data["results"]

    async def _fetch(self, query: str, params: dict) -> SourceResult:
        sections = params["sections"]
        accessible, reason = await self.check_access()
        if not accessible:
            return self._empty_result(query, f"Remote compute not accessible: {reason}")

        payload = self.build_payload(query, sections)
        last_error = "Unknown error"
        async with self._http() as client:
            for attempt in range(self.attempts):
                try:
                    results = await self._attempt(client, payload)
                    log.info(f"{query}: remote compute returned {len(results)} results "
                             f"(attempt {attempt+1})")
                    return self._result(query, {"results": results})
                except RemoteCallError as e:
                    last_error = str(e)
                    log.warning(f"{query}: remote compute attempt {attempt+1} failed: {e}")
                if attempt < self.attempts - 1:
                    await asyncio.sleep(self.retry_delay)
        return self._empty_result(query, last_error)
