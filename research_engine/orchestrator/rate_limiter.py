"""
Company Lens: Call Limiter
────────────────────────────
Optional cap on concurrent live calls across all sections.
A limit of 0 or less leaves calls unbounded.
"""

import asyncio
import logging
from typing import Optional

from research_engine.config import MAX_CONCURRENT_CALLS

log = logging.getLogger("cl.rate_limiter")


class CallLimiter:
    """Semaphore limiting parallel live calls to avoid pile-on."""

    def __init__(self, max_concurrent: int = MAX_CONCURRENT_CALLS):
        self.max_concurrent = max_concurrent
        self._sem: Optional[asyncio.Semaphore] = (
            asyncio.Semaphore(max_concurrent) if max_concurrent > 0 else None
        )
        self._active = 0

    @property
    def active(self) -> int:
        return self._active

    async def __aenter__(self):
        if self._sem is not None:
            await self._sem.acquire()
        self._active += 1
        return self

    async def __aexit__(self, *args):
        self._active -= 1
        if self._sem is not None:
            self._sem.release()
