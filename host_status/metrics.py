"""Helpers for collecting host system metrics."""
from __future__ import annotations

import datetime as dt
import platform
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import psutil

# psutil already counts guest time inside user/nice on Linux.
_EXCLUDED_TICK_FIELDS = ("guest", "guest_nice")
_IDLE_TICK_FIELDS = ("idle", "iowait")
GIB = 1024 ** 3

TickReader = Callable[[], Sequence[Any]]


@dataclass(frozen=True)
class Sample:
    timestamp: dt.datetime
    cpu_percent: Optional[float]
    memory_percent: float


def _core_ticks(core: Any) -> Tuple[float, float]:
    """Return ``(total, idle)`` ticks for one psutil ``scputimes`` entry."""
    fields = core._asdict() if hasattr(core, "_asdict") else dict(core)
    total = sum(value for name, value in fields.items() if name not in _EXCLUDED_TICK_FIELDS)
    return total, sum(fields.get(name, 0.0) for name in _IDLE_TICK_FIELDS)


class CpuSampler:
    """Delta-based CPU utilization across all cores.

    Utilization needs two readings, so the first call only records a baseline
    and reports ``None``. The baseline advances only when a usable delta was
    computed.
    """

    def __init__(
        self,
        read_ticks: Optional[TickReader] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._read_ticks = read_ticks or (lambda: psutil.cpu_times(percpu=True))
        self._clock = clock
        self._previous: Optional[List[Tuple[float, float]]] = None
        self._previous_at = 0.0

    def sample(self) -> Optional[float]:
        ticks = [_core_ticks(core) for core in self._read_ticks()]
        now = self._clock()

        if self._previous is None or len(self._previous) != len(ticks):
            self._previous = ticks
            self._previous_at = now
            return None

        if now - self._previous_at == 0:
            return None

        total_delta = 0.0
        idle_delta = 0.0
        for (total, idle), (prev_total, prev_idle) in zip(ticks, self._previous):
            total_delta += total - prev_total
            idle_delta += idle - prev_idle

        if total_delta <= 0:
            return None

        self._previous = ticks
        self._previous_at = now
        return round((total_delta - idle_delta) / total_delta * 100, 2)


def _human_readable_duration(seconds: int) -> str:
    seconds = int(max(0, seconds))
    delta = dt.timedelta(seconds=seconds)
    days = delta.days
    hours, remainder = divmod(delta.seconds, 3600)
    minutes, _ = divmod(remainder, 60)
    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes or not parts:
        parts.append(f"{minutes}m")
    return " ".join(parts)


def _gigabytes(value: float) -> str:
    return f"{value / GIB:.2f} GB"


def _detect_cpu_model() -> Optional[str]:
    cpuinfo = Path("/proc/cpuinfo")
    if cpuinfo.exists():
        for line in cpuinfo.read_text(encoding="utf-8", errors="ignore").splitlines():
            key, _, value = line.partition(":")
            if key.strip() in ("model name", "Model", "Hardware") and value.strip():
                return value.strip()
    return platform.uname().processor or platform.processor() or None


def read_memory() -> Dict[str, Any]:
    memory = psutil.virtual_memory()
    used = memory.total - memory.available
    return {
        "total": _gigabytes(memory.total),
        "used": _gigabytes(used),
        "free": _gigabytes(memory.available),
        "usagePercent": round(used / memory.total * 100, 2) if memory.total else None,
    }


def read_system() -> Dict[str, Any]:
    uname = platform.uname()
    uptime_seconds = int(time.time() - psutil.boot_time())
    return {
        "uptime": _human_readable_duration(uptime_seconds),
        "hostname": uname.node,
        "platform": uname.system.lower(),
        "arch": uname.machine,
    }


def collect_system_metrics(sampler: CpuSampler) -> Tuple[Sample, Dict[str, Any]]:
    """Read CPU, memory and uptime data from the host.

    Returns the history sample together with the instantaneous part of a
    snapshot. Platform errors propagate; the stats cache turns them into the
    unavailable snapshot.
    """
    cpu_percent = sampler.sample()
    memory = read_memory()
    stats = {
        "memory": memory,
        "cpu": {
            "count": psutil.cpu_count(logical=True),
            "model": _detect_cpu_model(),
            "usagePercent": cpu_percent,
        },
        "system": read_system(),
    }
    sample = Sample(
        timestamp=dt.datetime.now(dt.timezone.utc),
        cpu_percent=cpu_percent,
        memory_percent=memory["usagePercent"] or 0.0,
    )
    return sample, stats


def unavailable_snapshot() -> Dict[str, Any]:
    """Snapshot returned when the host metrics cannot be read."""
    return {
        "memory": {"total": None, "used": None, "free": None, "usagePercent": None},
        "cpu": {"count": None, "model": None, "usagePercent": None},
        "system": {"uptime": None, "hostname": None, "platform": None, "arch": None},
        "history": {"timestamp": [], "cpu": [], "memory": []},
    }
