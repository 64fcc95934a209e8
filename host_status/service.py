"""Composition of the status endpoint and its periodic jobs."""
from __future__ import annotations

import asyncio
import datetime as dt
import logging
import time
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from .cache import StatsCache
from .clients import ClientIdentityResolver
from .config import Settings
from .history import HistoryBuffer
from .limits import RateLimiter, RequestCounter
from .metrics import CpuSampler

TOP_IP_COUNT = 5
RATE_LIMITED_MESSAGE = "Too many requests, please try again later"
FAILURE_MESSAGE = "Failed to get status"


class StatusService:
    """Owns all per-process state behind ``GET /api/status``."""

    def __init__(
        self,
        settings: Settings,
        clock: Callable[[], float] = time.monotonic,
        sampler: Optional[CpuSampler] = None,
        cache: Optional[StatsCache] = None,
    ) -> None:
        self.settings = settings
        self.resolver = ClientIdentityResolver(
            trust_forward_header=settings.trust_forward_header,
            count_from_start=settings.count_from_start,
            forward_header_index=settings.forward_header_index,
        )
        self.counter = RequestCounter()
        self.limiter = RateLimiter(settings.min_seconds_after_last_request, clock=clock)
        self.history = HistoryBuffer(settings.max_history_length)
        self.cache = cache or StatsCache(
            sampler or CpuSampler(),
            self.history,
            interval=settings.update_interval,
            clock=clock,
        )

    def handle(self, headers: Mapping[str, str], peer: Optional[str]) -> Tuple[int, Dict[str, Any]]:
        """Return ``(status_code, body)`` for one status request."""
        client_ip = self.resolver.resolve(headers, peer)
        self.counter.increment(client_ip)

        if self.settings.enable_rate_limit and not self.limiter.allow(client_ip):
            logging.info("Rate limited status request from %s", client_ip)
            return 429, {"success": False, "message": RATE_LIMITED_MESSAGE}

        try:
            body = {
                "success": True,
                "system": self.cache.get(),
                "topIPs": self.counter.top_n(TOP_IP_COUNT),
                "timestamp": dt.datetime.now(dt.timezone.utc).isoformat(),
            }
        except Exception:  # pylint: disable=broad-except
            logging.exception("Failed to build status response for %s", client_ip)
            return 500, {"success": False, "message": FAILURE_MESSAGE}
        return 200, body

    def reset_counts(self) -> None:
        self.counter.reset_all()
        logging.info("Cleared request counts")

    async def refresh_loop(self) -> None:
        interval = self.settings.update_interval
        while True:
            await asyncio.sleep(interval)
            try:
                self.cache.refresh()
            except Exception as exc:  # pylint: disable=broad-except
                logging.warning("Background stats refresh failed: %s", exc)

    async def reset_loop(self) -> None:
        interval = self.settings.ip_request_count_reset_minutes * 60
        while True:
            await asyncio.sleep(interval)
            self.reset_counts()
