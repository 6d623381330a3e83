"""Rate limit store interfaces.

The limiter depends on this abstraction (not the concrete implementation) so
the partition store can be swapped (e.g., for a shared backend) and so tests
can own an isolated store instead of process-wide state.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable


@dataclass
class RateLimitInfo:
    """Counting window for a single partition.

    ``last_reset`` and ``request_count`` are mutable and must only be read or
    written while holding ``lock``. ``limit`` and ``window_seconds`` are fixed
    at creation.

    Attributes:
        last_reset: Clock reading at the start of the current window.
        request_count: Requests admitted in the current window.
        limit: Maximum admitted requests per window.
        window_seconds: Window length in seconds.
    """

    last_reset: float
    request_count: int
    limit: int
    window_seconds: int
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def is_stale(self, now: float) -> bool:
        """Return True when the entry has been idle for more than two windows."""
        with self.lock:
            return now - self.last_reset > 2 * self.window_seconds


class AbstractRateLimitStore(ABC):
    """Interface for partition stores."""

    @abstractmethod
    def get_or_add(self, key: str, factory: Callable[[], RateLimitInfo]) -> RateLimitInfo:
        """Return the entry for ``key``, creating it with ``factory`` if absent.

        Implementations must publish at most one instance per key even when
        called concurrently.

        Args:
            key: Partition key.
            factory: Builds a fresh entry when none exists.

        Returns:
            The entry stored for ``key``.
        """
        raise NotImplementedError

    @abstractmethod
    def get(self, key: str) -> RateLimitInfo | None:
        """Return the entry for ``key`` without creating it."""
        raise NotImplementedError

    @abstractmethod
    def evict_stale(self, now: float) -> int:
        """Remove entries idle for more than twice their window.

        Args:
            now: Current clock reading.

        Returns:
            Number of entries removed.
        """
        raise NotImplementedError

    @abstractmethod
    def __len__(self) -> int:
        raise NotImplementedError
