"""Per-client request accounting and rate limiting."""
from __future__ import annotations

import threading
import time
from typing import Callable, Dict, List, Optional

LOOPBACK_ADDRESSES = frozenset({"127.0.0.1", "::1", "::ffff:127.0.0.1"})

ClientKey = Optional[str]


class RequestCounter:
    """Request attempts per client since the last reset."""

    def __init__(self) -> None:
        self._counts: Dict[ClientKey, int] = {}
        self._lock = threading.Lock()

    def increment(self, ip: ClientKey) -> int:
        with self._lock:
            count = self._counts.get(ip, 0) + 1
            self._counts[ip] = count
            return count

    def top_n(self, n: int) -> List[Dict[str, object]]:
        with self._lock:
            items = list(self._counts.items())
        # sorted() is stable, so ties keep first-seen order
        ranked = sorted(items, key=lambda item: item[1], reverse=True)[:n]
        return [{"ip": ip if ip is not None else "unknown", "count": count} for ip, count in ranked]

    def reset_all(self) -> None:
        with self._lock:
            self._counts = {}

    def __len__(self) -> int:
        return len(self._counts)


class RateLimiter:
    """Enforce a minimum spacing between allowed requests from one client."""

    def __init__(self, min_interval_seconds: int, clock: Callable[[], float] = time.monotonic) -> None:
        if min_interval_seconds < 1:
            raise ValueError("min_interval_seconds must be a positive integer")
        self.min_interval_seconds = min_interval_seconds
        self._clock = clock
        self._last_allowed: Dict[ClientKey, float] = {}
        self._lock = threading.Lock()

    def allow(self, ip: ClientKey) -> bool:
        if ip in LOOPBACK_ADDRESSES:
            return True

        with self._lock:
            now = self._clock()
            last = self._last_allowed.get(ip)
            if last is not None and now - last < self.min_interval_seconds:
                return False
            self._last_allowed[ip] = now
            return True
