from __future__ import annotations

from asyncio import Lock
import time
from typing import Any

from .config import STANDINGS_CACHE_TTL


class TTLCache:
    """A simple in-memory TTL cache with async-safe access."""

    def __init__(self, ttl_seconds: float = 300.0) -> None:
        self._ttl = ttl_seconds
        self._lock = Lock()
        self._store: dict[Any, tuple[Any, float]] = {}

    async def get(self, key: Any) -> Any | None:
        now = time.monotonic()
        async with self._lock:
            entry = self._store.get(key)
            if not entry:
                return None
            value, expires_at = entry
            if expires_at <= now:
                self._store.pop(key, None)
                return None
            return value

    async def set(self, key: Any, value: Any, ttl_seconds: float | None = None) -> None:
        ttl = self._ttl if ttl_seconds is None else ttl_seconds
        now = time.monotonic()
        expires_at = now + max(ttl, 0.0)
        async with self._lock:
            expired = [k for k, (_, exp) in self._store.items() if exp <= now]
            for k in expired:
                self._store.pop(k, None)
            if ttl <= 0:
                self._store.pop(key, None)
            else:
                self._store[key] = (value, expires_at)

    async def invalidate_league(self, league_id: str) -> None:
        """Drop every entry whose tuple key starts with ``league_id``."""
        async with self._lock:
            keys_to_remove = [
                key
                for key in self._store
                if isinstance(key, tuple) and key and key[0] == league_id
            ]
            for key in keys_to_remove:
                self._store.pop(key, None)

    async def clear(self) -> None:
        async with self._lock:
            self._store.clear()


standings_cache = TTLCache(ttl_seconds=STANDINGS_CACHE_TTL)
