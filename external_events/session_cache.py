from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Generic, TypeVar

import structlog

from external_events.utils.date_and_time import Clock, utc_now

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_TTL = timedelta(minutes=5)


class SessionCache(Generic[T]):
    """Keeps the last loaded value in memory for a limited time.

    Meant for callers that serve the external events repeatedly, e.g. an
    HTTP handler wrapping ``CacheStore.refresh_if_needed``, so that the cache
    file is not re-read on every request.

    Usage::

        events = SessionCache(store.refresh_if_needed, ttl=timedelta(minutes=5))
        events.get()  # loads
        events.get()  # served from memory until the ttl expires
    """

    def __init__(
        self,
        loader: Callable[[], T],
        ttl: timedelta = DEFAULT_TTL,
        clock: Clock = utc_now,
    ) -> None:
        self.loader = loader
        self.ttl = ttl
        self.clock = clock
        self._value: T | None = None
        self._loaded_at: datetime | None = None

    def age(self) -> timedelta | None:
        """Age of the held value, or None if nothing is loaded."""
        if self._loaded_at is None:
            return None
        return self.clock() - self._loaded_at

    def is_expired(self) -> bool:
        age = self.age()
        return age is None or age >= self.ttl

    def get(self) -> T:
        """Returns the held value, reloading it once the ttl has passed."""
        if self.is_expired():
            self._value = self.loader()
            self._loaded_at = self.clock()
            logger.debug("session_cache_loaded", ttl_seconds=self.ttl.total_seconds())
        return self._value  # type: ignore[return-value]

    def invalidate(self) -> None:
        """Forgets the held value; the next ``get()`` reloads."""
        self._value = None
        self._loaded_at = None
