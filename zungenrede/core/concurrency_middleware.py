"""
Bound on concurrently processed updates.

aiogram starts a task per update; the semaphore caps how many reach the
handlers at once so a burst cannot queue unbounded store writes.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware

logger = logging.getLogger(__name__)


class ConcurrencyLimiterMiddleware(BaseMiddleware):
    """Outer update middleware holding one semaphore slot per update."""

    def __init__(self, limit: int):
        super().__init__()
        if limit < 1:
            raise ValueError(f"concurrency limit must be positive, got {limit}")
        self._limit = limit
        self._semaphore = asyncio.Semaphore(limit)
        self._in_flight = 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    async def __call__(
        self,
        handler: Callable[[Any, Dict[str, Any]], Awaitable[Any]],
        event: Any,
        data: Dict[str, Any],
    ) -> Any:
        if self._semaphore.locked():
            logger.debug("Update waiting for a slot (limit=%s)", self._limit)
        async with self._semaphore:
            self._in_flight += 1
            try:
                return await handler(event, data)
            finally:
                self._in_flight -= 1
