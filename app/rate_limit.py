"""In-memory two-tier sliding-window rate limiter for the chatbot endpoint.

Every client gets a single list of admission timestamps. The short window
(3 per minute by default) catches bursts, the long window (10 per five minutes)
catches sustained traffic that stays under the per-minute cap. Both limits are
read from the same purged list, so the two windows always agree on what
"recent" means.

State lives only in process memory and is lost on restart.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from threading import Lock
from typing import Callable, Deque, Dict, Optional, Tuple

LOGGER = logging.getLogger(__name__)


@dataclass
class ClientWindow:
    """Admission history for a single client identifier."""

    identifier: str
    timestamps: Deque[float] = field(default_factory=deque)
    last_seen: Optional[float] = None

    def purge(self, cutoff: float) -> None:
        """Drop timestamps at or before ``cutoff``."""

        while self.timestamps and self.timestamps[0] <= cutoff:
            self.timestamps.popleft()

    def count_since(self, cutoff: float) -> int:
        # Timestamps are appended in arrival order, so scan from the newest end.
        count = 0
        for ts in reversed(self.timestamps):
            if ts <= cutoff:
                break
            count += 1
        return count


class RateLimiter:
    """Tracks chatbot admissions per client within a short and a long window.

    One instance is built at application startup and owned by the app; it is
    never shared between processes. All reads and writes of the registry happen
    under a single lock, and each ``is_allowed`` call is one critical section so
    two concurrent requests from the same client cannot both be admitted as the
    last allowed request.
    """

    def __init__(
        self,
        short_limit: int = 3,
        short_window_seconds: float = 60,
        long_limit: int = 10,
        long_window_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if short_window_seconds > long_window_seconds:
            raise ValueError("short window must not exceed the long window")
        self.short_limit = short_limit
        self.short_window = short_window_seconds
        self.long_limit = long_limit
        self.long_window = long_window_seconds
        self._clock = clock
        self._clients: Dict[str, ClientWindow] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)

    def is_allowed(self, identifier: str, now: Optional[float] = None) -> bool:
        """Admit and record a request, or reject it without recording anything."""

        if now is None:
            now = self._clock()
        with self._lock:
            window = self._clients.get(identifier)
            if window is None:
                window = ClientWindow(identifier=identifier)
                self._clients[identifier] = window

            window.purge(now - self.long_window)
            recent = window.count_since(now - self.short_window)
            if recent >= self.short_limit or len(window.timestamps) >= self.long_limit:
                return False

            window.timestamps.append(now)
            window.last_seen = now
            return True

    def cleanup(self, now: Optional[float] = None) -> int:
        """Remove windows with no timestamps left inside the long window.

        Returns the number of windows removed. Windows still holding a live
        timestamp are never touched beyond purging expired entries.
        """

        if now is None:
            now = self._clock()
        cutoff = now - self.long_window
        with self._lock:
            stale = []
            for identifier, window in self._clients.items():
                window.purge(cutoff)
                if not window.timestamps:
                    stale.append(identifier)
            for identifier in stale:
                del self._clients[identifier]
        return len(stale)

    def window(self, identifier: str) -> Optional[Tuple[float, ...]]:
        """Return a snapshot of the recorded timestamps for ``identifier``."""

        with self._lock:
            window = self._clients.get(identifier)
            if window is None:
                return None
            return tuple(window.timestamps)


async def run_cleanup_loop(limiter: RateLimiter, interval_seconds: float) -> None:
    """Sweep ``limiter`` every ``interval_seconds`` until cancelled."""

    while True:
        await asyncio.sleep(interval_seconds)
        removed = limiter.cleanup()
        if removed:
            LOGGER.info(
                "rate limiter cleanup removed %d idle clients",
                removed,
                extra={"detail": {"remaining": len(limiter)}},
            )
