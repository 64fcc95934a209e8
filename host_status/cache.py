"""Interval-based cache around the host stats snapshot."""
from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

import psutil

from .history import HistoryBuffer
from .metrics import CpuSampler, collect_system_metrics, unavailable_snapshot

Snapshot = Dict[str, Any]


class StatsCache:
    """Serve the last snapshot until ``interval`` seconds have passed.

    Refreshing samples the host, appends the sample to the history buffer and
    then builds the snapshot, so the snapshot always includes its own sample.
    """

    def __init__(
        self,
        sampler: CpuSampler,
        history: HistoryBuffer,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
        collect: Callable[[CpuSampler], Any] = collect_system_metrics,
    ) -> None:
        self.sampler = sampler
        self.history = history
        self.interval = interval
        self._clock = clock
        self._collect = collect
        self._snapshot: Optional[Snapshot] = None
        self._last_update = 0.0
        self._lock = threading.RLock()

    def get(self) -> Snapshot:
        with self._lock:
            if self._snapshot is not None and self._clock() - self._last_update < self.interval:
                return self._snapshot
            return self.refresh()

    def refresh(self) -> Snapshot:
        with self._lock:
            try:
                sample, stats = self._collect(self.sampler)
            except (psutil.Error, OSError) as exc:
                logging.error("Failed to read host metrics: %s", exc)
                return unavailable_snapshot()

            self.history.append(sample)
            snapshot = dict(stats)
            snapshot["history"] = self.history.view()
            self._snapshot = snapshot
            self._last_update = self._clock()
            return snapshot
