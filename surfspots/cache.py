"""
In-process cache for upstream marine-weather responses.

Entries are keyed by the coordinate pair exactly as received, so
``(36.97, -122.03)`` and ``(36.970, -122.030)`` passed as strings are
different keys. An entry is fresh while ``now - stored_at < ttl``.
"""
import logging
import time
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Optional, Tuple

logger = logging.getLogger(__name__)

FetchFn = Callable[[Any, Any], Awaitable[Any]]


class WeatherCache:
    """
    Memoizes ``fetch_fn(lat, lon)`` results for ``ttl_seconds``.

    Concurrent misses on the same cold key may each call ``fetch_fn``;
    the last one to finish wins. With ``max_entries`` set, the least
    recently used key is evicted once the bound is exceeded.
    """

    def __init__(
        self,
        ttl_seconds: float = 300,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries or None
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[Any, float]]" = OrderedDict()

    @staticmethod
    def make_key(lat, lon) -> str:
        return f"{lat},{lon}"

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def clear(self) -> None:
        self._entries.clear()

    def _fresh(self, stored_at: float) -> bool:
        return self._clock() - stored_at < self.ttl_seconds

    async def get_or_fetch(self, lat, lon, fetch_fn: FetchFn) -> Any:
        key = self.make_key(lat, lon)
        entry = self._entries.get(key)
        if entry is not None and self._fresh(entry[1]):
            self._entries.move_to_end(key)
            return entry[0]

        logger.debug("weather cache miss for %s", key)
        payload = await fetch_fn(lat, lon)

        self._entries[key] = (payload, self._clock())
        self._entries.move_to_end(key)
        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("weather cache evicted %s", evicted)
        return payload
