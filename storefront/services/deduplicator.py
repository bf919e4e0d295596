"""
RequestDeduplicator - Prevents duplicate concurrent requests.

When multiple callers request the same resource simultaneously,
only one actual request is made and the result is shared.
"""

import asyncio
from typing import Any, Awaitable, TypeVar

from loguru import logger

T = TypeVar("T")


class RequestDeduplicator:
    """
    Tracks in-flight requests by identity.

    ``acquire``/``register`` are synchronous so that a caller can check for
    an existing request and register its own without yielding to the event
    loop in between. The registration is released by the task itself when
    it settles, on success and failure alike.

    Usage:
        dedup = RequestDeduplicator()

        task = dedup.acquire(key)
        if task is None:
            task = dedup.register(key, fetch(url))
        data = await asyncio.shield(task)
    """

    def __init__(self, debug: bool = False):
        self._in_flight: dict[str, asyncio.Task[Any]] = {}
        self._debug = debug
        self._stats = DeduplicatorStats()

    def acquire(self, key: str) -> asyncio.Task[Any] | None:
        """Return the in-flight task for key, if any."""
        task = self._in_flight.get(key)
        if task is not None:
            self._stats.deduplicated += 1
            self._log(f"DEDUPE: Waiting for in-flight request: {key[:50]}...")
        return task

    def register(self, key: str, request: Awaitable[T]) -> asyncio.Task[T]:
        """
        Start ``request`` as a task tracked under key.

        Raises RuntimeError if a request with the same key is already in
        flight.
        """
        if key in self._in_flight:
            if asyncio.iscoroutine(request):
                request.close()
            raise RuntimeError(f"Request already in flight: {key[:50]}")

        self._stats.total += 1
        self._log(f"NEW: Starting request: {key[:50]}...")
        task = asyncio.ensure_future(self._execute_and_cleanup(key, request))
        self._in_flight[key] = task
        return task

    def release(self, key: str, task: asyncio.Task[Any] | None = None) -> bool:
        """
        Drop the registration for key.

        When task is given, the registration is only dropped if it still
        belongs to that task.
        """
        current = self._in_flight.get(key)
        if current is None or (task is not None and current is not task):
            return False
        del self._in_flight[key]
        self._log(f"DONE: Request completed: {key[:50]}...")
        return True

    async def _execute_and_cleanup(self, key: str, request: Awaitable[T]) -> T:
        """Await the request and release its key when done."""
        try:
            return await request
        finally:
            self.release(key, asyncio.current_task())

    def cancel(self, key: str) -> bool:
        """Cancel an in-flight request."""
        task = self._in_flight.pop(key, None)
        if task is None:
            return False
        task.cancel()
        self._log(f"CANCEL: Request cancelled: {key[:50]}...")
        return True

    def cancel_all(self) -> int:
        """Cancel all in-flight requests."""
        count = len(self._in_flight)
        for task in self._in_flight.values():
            task.cancel()
        self._in_flight.clear()
        if count:
            self._log(f"CANCEL_ALL: {count} requests cancelled")
        return count

    def get_in_flight_count(self) -> int:
        """Get number of in-flight requests."""
        return len(self._in_flight)

    def get_in_flight_keys(self) -> list[str]:
        """Get keys of all in-flight requests."""
        return list(self._in_flight.keys())

    def get_stats(self) -> "DeduplicatorStats":
        """Get deduplication statistics."""
        self._stats.in_flight = len(self._in_flight)
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[Deduplicator] {message}")


class DeduplicatorStats:
    """Statistics for request deduplication."""

    def __init__(self):
        self.total: int = 0  # Total unique requests made
        self.deduplicated: int = 0  # Requests that were deduplicated
        self.in_flight: int = 0  # Current in-flight requests

    @property
    def dedup_rate(self) -> float:
        """Calculate deduplication rate."""
        total = self.total + self.deduplicated
        if total == 0:
            return 0.0
        return self.deduplicated / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_requests": self.total,
            "deduplicated": self.deduplicated,
            "in_flight": self.in_flight,
            "dedup_rate": f"{self.dedup_rate:.2%}",
        }
