import datetime as dt
from collections import namedtuple

import pytest

from host_status.cache import StatsCache
from host_status.config import Settings
from host_status.history import HistoryBuffer
from host_status.metrics import CpuSampler, Sample
from host_status.service import StatusService

CpuTimes = namedtuple("CpuTimes", ["user", "system", "idle"])


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TickSource:
    """Feeds a CpuSampler a scripted sequence of per-core tick readings."""

    def __init__(self, *readings):
        self.readings = list(readings)

    def push(self, *cores):
        self.readings.append([CpuTimes(*core) for core in cores])

    def __call__(self):
        return self.readings.pop(0)


class FakeCollector:
    """Stands in for host reads; counts how often the host was sampled."""

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, sampler):
        self.calls += 1
        sample = Sample(
            timestamp=dt.datetime(2026, 1, 1, tzinfo=dt.timezone.utc) + dt.timedelta(seconds=self.calls),
            cpu_percent=float(self.calls),
            memory_percent=40.0 + self.calls,
        )
        stats = {
            "memory": {"total": "16.00 GB", "used": "6.00 GB", "free": "10.00 GB", "usagePercent": sample.memory_percent},
            "cpu": {"count": 4, "model": "Test CPU", "usagePercent": sample.cpu_percent},
            "system": {"uptime": "1h 5m", "hostname": "test-host", "platform": "linux", "arch": "x86_64"},
        }
        return sample, stats


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ticks():
    return TickSource()


@pytest.fixture
def collector():
    return FakeCollector()


@pytest.fixture
def settings():
    return Settings(
        enable_rate_limit=True,
        min_seconds_after_last_request=10,
        update_interval=10,
        max_history_length=5,
    )


@pytest.fixture
def make_service(clock, collector):
    def _make(settings: Settings) -> StatusService:
        history = HistoryBuffer(settings.max_history_length)
        cache = StatsCache(
            CpuSampler(read_ticks=lambda: [], clock=clock),
            history,
            interval=settings.update_interval,
            clock=clock,
            collect=collector,
        )
        return StatusService(settings, clock=clock, cache=cache)

    return _make


@pytest.fixture
def service(make_service, settings):
    return make_service(settings)
