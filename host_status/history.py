"""Rolling window of recent host samples."""
from __future__ import annotations

import threading
from collections import deque
from typing import Any, Deque, Dict, List

from .metrics import Sample


class HistoryBuffer:
    """Bounded FIFO of samples, oldest first."""

    def __init__(self, max_length: int) -> None:
        if max_length < 1:
            raise ValueError("max_length must be a positive integer")
        self.max_length = max_length
        self._samples: Deque[Sample] = deque()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._samples)

    def append(self, sample: Sample) -> None:
        with self._lock:
            self._samples.append(sample)
            while len(self._samples) > self.max_length:
                self._samples.popleft()

    def samples(self) -> List[Sample]:
        with self._lock:
            return list(self._samples)

    def view(self) -> Dict[str, List[Any]]:
        """Parallel arrays consumed by the dashboard charts.

        An unavailable CPU reading is plotted as ``0.0``.
        """
        samples = self.samples()
        return {
            "timestamp": [sample.timestamp.isoformat() for sample in samples],
            "cpu": [sample.cpu_percent if sample.cpu_percent is not None else 0.0 for sample in samples],
            "memory": [sample.memory_percent for sample in samples],
        }
