from __future__ import annotations

from time import monotonic
from typing import Any, Callable, Dict, Hashable, Optional, Tuple
import threading


class TTLCache:
    """Small in-memory cache whose entries expire after a per-entry TTL.

    Used for Xray access tokens so every GraphQL call does not authenticate
    again. Thread-safe; expired entries are dropped lazily on access.
    """

    def __init__(self, max_items: int = 64, clock: Callable[[], float] = monotonic) -> None:
        self._data: Dict[Hashable, Tuple[float, Any]] = {}
        self._max = max_items
        self._clock = clock
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            item = self._data.get(key)
            if item is None:
                return None
            expires_at, value = item
            if expires_at <= self._clock():
                self._data.pop(key, None)
                return None
            return value

    def set(self, key: Hashable, value: Any, ttl_seconds: float) -> None:
        with self._lock:
            self._data[key] = (self._clock() + float(ttl_seconds), value)
            if len(self._data) > self._max:
                # evict whatever expires soonest
                oldest = min(self._data, key=lambda k: self._data[k][0])
                self._data.pop(oldest, None)

    def clear(self, key: Hashable) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear_all(self) -> None:
        with self._lock:
            self._data.clear()


XRAY_TOKEN_CACHE = TTLCache(max_items=16)
