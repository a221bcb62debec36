"""
Company Lens: Data Source Base
────────────────────────────────
All adapters inherit from DataSource.

Each adapter produces a SourceResult:
  - payload:   normalised data for one section, or None
  - error:     why there is no payload (None on success)
  - elapsed_s: wall time spent in the adapter

An HTTP client can be injected for connection reuse and for tests;
without one the adapter opens a short-lived client per call.
"""

import logging
import time
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

log = logging.getLogger("cl.sources")

DEFAULT_HTTP_TIMEOUT = 10


@dataclass
class SourceResult:
    source:    str
    query:     str
    payload:   Any = None
    error:     Optional[str] = None
    elapsed_s: float = 0.0
    timestamp: float = field(default_factory=time.time)

    @property
    def ok(self) -> bool:
        return self.error is None and self.payload is not None


class DataSource(ABC):
    """
    Base class for all adapters.

    Subclasses must implement:
      - name: str property
      - _fetch(query, params) -> SourceResult

    run() times the call and turns transport and parsing failures
    into an error result.
    """

    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    async def _fetch(self, query: str, params: dict) -> SourceResult: ...

    async def run(self, query: str, params: Optional[dict] = None) -> SourceResult:
        started = time.monotonic()
        try:
            result = await self._fetch(query, params or {})
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            log.error(f"{self.name} failed for {query}: {e}")
            result = self._empty_result(query, f"{type(e).__name__}: {e}")
        if result.payload is None and result.error is None:
            result.error = "no data"
        result.elapsed_s = time.monotonic() - started
        return result

    @asynccontextmanager
    async def _http(self):
        if self._client is not None:
            yield self._client
        else:
            async with httpx.AsyncClient(timeout=self.http_timeout) as client:
                yield client

    def _result(self, query: str, payload: Any) -> SourceResult:
        return SourceResult(source=self.name, query=query, payload=payload)

    def _empty_result(self, query: str, reason: str) -> SourceResult:
        log.info(f"{self.name}: no data for {query} ({reason})")
        return SourceResult(source=self.name, query=query, error=reason)
