"""In-memory TTL cache for GET responses."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Callable


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


# Sentinel returned on a cache miss; ``None`` is a valid cached payload
MISS = object()


@dataclass
class CacheEntry:
    data: Any
    expires: float


def build_cache_key(method: str, endpoint: str, body: Any = None) -> str:
    """Deterministic fingerprint of one request."""
    serialized = json.dumps(body, sort_keys=True, separators=(",", ":")) if body else ""
    return f"{method.upper()}:{endpoint}:{serialized}"


class ResponseCache:
    """Maps request fingerprints to payloads until they expire.

    Every operation is a single synchronous step, so tasks sharing one
    event loop never observe a half-updated entry.
    """

    def __init__(self, ttl_ms: float, clock: Callable[[], float] = _monotonic_ms):
        self.ttl_ms = ttl_ms
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Any:
        """Return the cached payload for *key*, or :data:`MISS`."""
        entry = self._entries.get(key)
        if entry is None:
            return MISS
        if entry.expires > self._clock():
            return entry.data

        del self._entries[key]
        return MISS

    def set(self, key: str, data: Any) -> None:
        self._entries[key] = CacheEntry(data=data, expires=self._clock() + self.ttl_ms)

    def clear(self) -> None:
        self._entries.clear()

    def live_keys(self) -> list[str]:
        now = self._clock()
        return [key for key, entry in self._entries.items() if entry.expires > now]

    def __len__(self) -> int:
        return len(self._entries)
