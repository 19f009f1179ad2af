"""
Fire-and-forget cost logging.

Providers hand a cost-log coroutine to the hook and return immediately. A
failed write is logged and dropped; it never reaches the query.
"""

import asyncio
import logging
from typing import Awaitable, Set

from errors import log_error

logger = logging.getLogger(__name__)


class CostLogHook:
    """Schedules cost writes as background tasks."""

    def __init__(self):
        # Strong references keep pending tasks from being garbage collected
        self._pending: Set[asyncio.Task] = set()

    def submit(self, write: Awaitable[None], label: str = "cost log") -> None:
        task = asyncio.ensure_future(write)
        self._pending.add(task)
        task.add_done_callback(lambda t: self._finished(t, label))

    def _finished(self, task: asyncio.Task, label: str) -> None:
        self._pending.discard(task)
        if task.cancelled():
            logger.debug(f"{label} cancelled")
            return
        error = task.exception()
        if error is not None:
            log_error(logger, error, context=label, include_traceback=False)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for all outstanding writes (tests, shutdown)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


class NullCostLogHook(CostLogHook):
    """Discards writes without running them."""

    def submit(self, write: Awaitable[None], label: str = "cost log") -> None:
        close = getattr(write, "close", None)
        if close is not None:
            close()
