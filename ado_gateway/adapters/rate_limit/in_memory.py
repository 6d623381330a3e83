"""In-memory partition store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: a store lock guards insertion and removal only; counting is
  protected by each entry's own lock.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from ado_gateway.adapters.rate_limit.base import AbstractRateLimitStore, RateLimitInfo

logger = logging.getLogger(__name__)


class InMemoryRateLimitStore(AbstractRateLimitStore):
    """Dictionary-backed store of partition counting windows.

    Important:
        This store is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(self) -> None:
        self._entries: dict[str, RateLimitInfo] = {}
        self._lock = threading.Lock()

    def get_or_add(self, key: str, factory: Callable[[], RateLimitInfo]) -> RateLimitInfo:
        """Fetch-or-create the entry for ``key``.

        The lock-free read serves the common case. Creation re-checks under
        the store lock so concurrent callers all receive the same instance.
        """
        info = self._entries.get(key)
        if info is not None:
            return info

        with self._lock:
            info = self._entries.get(key)
            if info is None:
                info = factory()
                self._entries[key] = info
            return info

    def get(self, key: str) -> RateLimitInfo | None:
        return self._entries.get(key)

    def evict_stale(self, now: float) -> int:
        """Remove entries idle for more than twice their window.

        Iterates over a snapshot. An entry is only removed if the map still
        holds the same instance that was found stale; requests still holding
        a removed instance keep working on an orphan, and later requests for
        that key allocate a fresh entry.
        """
        removed = 0
        for key, info in list(self._entries.items()):
            if not info.is_stale(now):
                continue
            with self._lock:
                if self._entries.get(key) is info:
                    del self._entries[key]
                    removed += 1

        if removed:
            logger.debug(
                "rate_limit.store.evicted",
                extra={"removed": removed, "remaining_entries": len(self._entries)},
            )
        return removed

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
