# src/tradecraft/infrastructure/cache.py
import time
from typing import Any, Callable, Dict, Optional, Tuple


class InMemoryCache:
    """
    A simple in-memory cache with item-specific Time-To-Live (TTL) support.
    Entries are replaced on write and dropped when read after expiry; there is
    no size bound.
    """

    def __init__(self, ttl_seconds: float = 60, clock: Callable[[], float] = time.time):
        """
        :param ttl_seconds: The default lifespan for an item if not specified otherwise.
        :param clock: Returns the current time in seconds.
        """
        self._default_ttl_seconds = ttl_seconds
        self._clock = clock
        # { key: (value, expiry_timestamp) }
        self._cache: Dict[str, Tuple[Any, float]] = {}

    def get(self, key: str) -> Optional[Any]:
        """
        Retrieves an item from the cache if it exists and has not expired.
        The stored object itself is returned, not a copy.
        """
        entry = self._cache.get(key)
        if entry is None:
            return None

        value, expiry_timestamp = entry
        if self._clock() >= expiry_timestamp:
            del self._cache[key]
            return None

        return value

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        """
        Adds an item to the cache with a specific or default TTL.
        """
        ttl = ttl_seconds if ttl_seconds is not None else self._default_ttl_seconds
        self._cache[key] = (value, self._clock() + ttl)

    def __len__(self) -> int:
        return len(self._cache)
