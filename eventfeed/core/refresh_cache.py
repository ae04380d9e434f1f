"""Single-entry TTL cache with single-flighted asyncio refresh.

The cache holds one value, the monotonic time it was stored, and the task of
the refresh currently in flight. Callers arriving while a refresh runs await
that same task, so an expired entry causes exactly one upstream load no
matter how many requests are waiting. Failed loads are never stored: the
error reaches every waiter and the previous value stays in place.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 600.0


class RefreshCache(Generic[T]):
    """Memoize one async loader result for ``ttl_seconds``."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        name: str = "default",
    ):
        """Initialize the cache.

        Args:
            ttl_seconds: Age after which the stored value is refreshed
            clock: Monotonic clock in seconds (injectable for tests)
            name: Label used in log messages
        """
        self.ttl_seconds = ttl_seconds
        self.name = name
        self._clock = clock
        self._value: Optional[T] = None
        self._stored_at: Optional[float] = None
        self._inflight: Optional[asyncio.Task[T]] = None
        self._lock = asyncio.Lock()

    @property
    def has_value(self) -> bool:
        return self._stored_at is not None

    @property
    def age_seconds(self) -> Optional[float]:
        if self._stored_at is None:
            return None
        return self._clock() - self._stored_at

    @property
    def refresh_in_flight(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def _is_fresh(self) -> bool:
        age = self.age_seconds
        return age is not None and age < self.ttl_seconds

    def invalidate(self) -> None:
        """Drop the stored value; the next ``get`` reloads."""
        self._value = None
        self._stored_at = None

    async def get(self, loader: Callable[[], Awaitable[T]]) -> T:
        """Return the cached value, refreshing it through ``loader`` when stale.

        Raises:
            Exception: Whatever the in-flight refresh raised
        """
        if self._is_fresh():
            return self._value  # type: ignore[return-value]

        async with self._lock:
            if self._is_fresh():
                return self._value  # type: ignore[return-value]
            if self.refresh_in_flight:
                logger.debug("Cache '%s' joining in-flight refresh", self.name)
                task = self._inflight
            else:
                logger.debug("Cache '%s' stale (age=%s), starting refresh", self.name, self.age_seconds)
                task = asyncio.create_task(self._refresh(loader))
                self._inflight = task

        # Shield so a cancelled waiter does not cancel the shared refresh
        return await asyncio.shield(task)  # type: ignore[arg-type]

    async def _refresh(self, loader: Callable[[], Awaitable[T]]) -> T:
        started = self._clock()
        try:
            value = await loader()
        except Exception as e:
            if self.has_value:
                logger.warning("Cache '%s' refresh failed, keeping previous value: %s", self.name, e)
            else:
                logger.warning("Cache '%s' refresh failed, nothing cached yet: %s", self.name, e)
            raise
        else:
            self._value = value
            self._stored_at = self._clock()
            logger.debug(
                "Cache '%s' refreshed in %.1fms", self.name, (self._stored_at - started) * 1000
            )
            return value
        finally:
            self._inflight = None
