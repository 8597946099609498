"""Polled query cache — the pull side of the dashboard.

Learn: Views read REST query results through this cache. Entries are
keyed by API path ("/api/events/1/participants/tracking"). A live
message never carries data into the cache; it only marks entries stale
(invalidate), and the next poll (refresh_stale()) or the next get()
fetches them again. The REST API stays the source of truth.
"""

from dataclasses import dataclass
from typing import Any, Optional

import httpx
import structlog

logger = structlog.get_logger()


@dataclass
class CacheEntry:
    data: Any
    stale: bool = False


class QueryCache:
    """Caches GET responses by path; invalidation marks, polling refetches."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client
        self._entries: dict[str, CacheEntry] = {}

    async def get(self, key: str) -> Any:
        """Cached data for a path, fetching it on a miss or when stale."""
        entry = self._entries.get(key)
        if entry is None or entry.stale:
            return await self.fetch(key)
        return entry.data

    async def fetch(self, key: str) -> Any:
        r = await self.client.get(key)
        r.raise_for_status()
        data = r.json()
        self._entries[key] = CacheEntry(data=data)
        return data

    def peek(self, key: str) -> Optional[Any]:
        """Cached data without fetching (None if never fetched)."""
        entry = self._entries.get(key)
        return entry.data if entry else None

    def invalidate(self, key: str) -> bool:
        """Mark an entry stale. Returns False when the path was never fetched."""
        entry = self._entries.get(key)
        if entry is None:
            return False
        entry.stale = True
        return True

    def is_stale(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.stale

    def keys(self) -> list[str]:
        return list(self._entries)

    async def refresh_stale(self) -> list[str]:
        """Refetch every stale entry. Returns the paths refreshed.

        A failed refetch leaves the entry stale for the next poll.
        """
        refreshed = []
        for key in [k for k, e in self._entries.items() if e.stale]:
            try:
                await self.fetch(key)
            except httpx.HTTPError as e:
                logger.warning("query_cache.refresh_failed", key=key, error=str(e))
                continue
            refreshed.append(key)
        return refreshed
