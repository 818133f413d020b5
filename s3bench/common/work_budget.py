"""
Shared countdown of remaining work units for one benchmark run.
"""

import asyncio
import threading
import logging

logger = logging.getLogger(__name__)


class WorkBudget:
    """Lock-guarded counter that hands out work units to worker threads.

    Every successful :meth:`claim` consumes exactly one unit, so the number of
    ``True`` results across all workers equals the initial sample count.
    """

    def __init__(self, samples: int):
        if samples < 0:
            raise ValueError(f"Work budget must be >= 0, got {samples}")
        self._initial = samples
        self._remaining = samples
        self._lock = threading.Lock()

        logger.debug(f"Initialized WorkBudget with {samples} units")

    def claim(self) -> bool:
        """Take one unit of work. Returns False once the budget is exhausted."""
        with self._lock:
            if self._remaining <= 0:
                return False
            self._remaining -= 1
            return True

    @property
    def remaining(self) -> int:
        with self._lock:
            return self._remaining

    @property
    def claimed(self) -> int:
        with self._lock:
            return self._initial - self._remaining

    def __repr__(self) -> str:
        return f"WorkBudget(remaining={self._remaining}/{self._initial})"


class AsyncWorkBudget:
    """Asyncio flavour of :class:`WorkBudget` for workers running as tasks.

    ``asyncio.Lock`` wakes waiters in FIFO order, so no task is starved.
    """

    def __init__(self, samples: int):
        if samples < 0:
            raise ValueError(f"Work budget must be >= 0, got {samples}")
        self._initial = samples
        self._remaining = samples
        self._lock = asyncio.Lock()

        logger.debug(f"Initialized AsyncWorkBudget with {samples} units")

    async def claim(self) -> bool:
        """Take one unit of work. Returns False once the budget is exhausted."""
        async with self._lock:
            if self._remaining <= 0:
                return False
            self._remaining -= 1
            return True

    @property
    def remaining(self) -> int:
        return self._remaining

    @property
    def claimed(self) -> int:
        return self._initial - self._remaining

    def __repr__(self) -> str:
        return f"AsyncWorkBudget(remaining={self._remaining}/{self._initial})"
