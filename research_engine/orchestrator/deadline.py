"""
Company Lens: Deadline Tasks
──────────────────────────────
Races a coroutine against a timer. When the timer wins the coroutine's
task is cancelled so its result can never arrive late.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Optional

log = logging.getLogger("cl.deadline")


class DeadlineExceeded(Exception):
    def __init__(self, label: str, timeout: float):
        super().__init__(f"{label} exceeded {timeout:.1f}s deadline")
        self.label   = label
        self.timeout = timeout


class DeadlineTask:
    """A cancellable task that carries its own deadline."""

    def __init__(self, coro: Awaitable, timeout: float, label: str = "task"):
        self.timeout  = timeout
        self.label    = label
        self.deadline = time.monotonic() + timeout
        self._task    = asyncio.ensure_future(coro)

    def remaining(self) -> float:
        return max(0.0, self.deadline - time.monotonic())

    def cancel(self):
        self._task.cancel()

    async def result(self) -> Any:
        try:
            done, _ = await asyncio.wait({self._task}, timeout=self.remaining())
        except asyncio.CancelledError:
            self._task.cancel()
            raise
        if not done:
            self._task.cancel()
            log.warning(f"{self.label} timed out after {self.timeout:.1f}s - cancelled")
            raise DeadlineExceeded(self.label, self.timeout)
        return self._task.result()


async def run_with_deadline(coro: Awaitable, timeout: Optional[float], label: str = "task") -> Any:
    """Await `coro` for at most `timeout` seconds. None means no deadline."""
    if timeout is None:
        return await coro
    return await DeadlineTask(coro, timeout, label).result()
