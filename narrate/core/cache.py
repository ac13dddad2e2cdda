"""
Process-local TTL cache.

Owned by the application (created in its lifespan, served by
`get_eligibility_cache`), never by the summary pipeline. Used to avoid
re-counting a user's window on every eligibility poll; entry writes
invalidate the user's keys in the worker that handled them.
"""
from __future__ import annotations

import threading
import time
from typing import Any, Callable, Optional

from fastapi import Request

from narrate.core.config import settings


class TTLCache:
    """
    Thread-safe key/value map with per-key expiry.

    - Expired keys are dropped lazily on `get` and eagerly on `cleanup`.
    - `clock` is injectable so tests can advance time.
    """

    def __init__(
        self,
        default_ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl = default_ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._items: dict[str, tuple[Any, float]] = {}

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            value, expires_at = item
            if self._clock() >= expires_at:
                del self._items[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._items[key] = (value, self._clock() + ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def delete_prefix(self, prefix: str) -> int:
        """Drop every key starting with `prefix`. Returns how many were removed."""
        with self._lock:
            doomed = [k for k in self._items if k.startswith(prefix)]
            for k in doomed:
                del self._items[k]
            return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def cleanup(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [k for k, (_, exp) in self._items.items() if now >= exp]
            for k in expired:
                del self._items[k]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


# ---------------------------------------------------------------------------
# Key helpers
# ---------------------------------------------------------------------------

def eligibility_key(user_id: str, window_start: str) -> str:
    return f"eligibility:{user_id}:{window_start}"


def invalidate_user(cache: TTLCache, user_id: str) -> int:
    return cache.delete_prefix(f"eligibility:{user_id}:")


# ---------------------------------------------------------------------------
# FastAPI dependency
# ---------------------------------------------------------------------------

def build_eligibility_cache() -> TTLCache:
    return TTLCache(default_ttl=settings.ELIGIBILITY_CACHE_TTL_SECONDS)


def get_eligibility_cache(request: Request) -> TTLCache:
    """The cache the application created at startup (`app.state`)."""
    return request.app.state.eligibility_cache
