"""CPU time collector."""

from __future__ import annotations

import os
from datetime import datetime

import psutil

from ..errors import CollectionError
from ..rate import RateTracker
from ..samples import CpuSample
from .base import BaseCollector

_FIELDS = (
    "user", "nice", "system", "idle", "iowait",
    "irq", "softirq", "guest", "steal", "guest_nice",
)


def _clock_ticks() -> int:
    try:
        return os.sysconf("SC_CLK_TCK")
    except (AttributeError, ValueError, OSError):
        return 100


class CpuCollector(BaseCollector):
    """Emits per-CPU jiffy deltas between consecutive ticks.

    psutil reports CPU times in seconds; they are converted back to kernel
    clock ticks so the stored values match ``/proc/stat``.
    """

    def __init__(self, hostname: str, tracker: RateTracker, ticks_per_second: int | None = None) -> None:
        super().__init__(hostname)
        self._tracker = tracker
        self._ticks = ticks_per_second or _clock_ticks()

    @property
    def name(self) -> str:
        return "cpu"

    def collect(self, timestamp: datetime) -> list[CpuSample]:
        try:
            per_cpu = psutil.cpu_times(percpu=True)
        except OSError as exc:
            raise CollectionError(self.name, f"cannot read cpu times: {exc}") from exc

        samples: list[CpuSample] = []
        for idx, times in enumerate(per_cpu):
            # fields missing on non-Linux platforms read as zero
            jiffies = tuple(int(round(getattr(times, f, 0.0) * self._ticks)) for f in _FIELDS)
            delta = self._tracker.update(self.name, str(idx), jiffies, timestamp)
            if delta is None:
                continue
            samples.append(CpuSample(
                self.hostname, timestamp, idx,
                *(int(v) for v in delta.values),
            ))

        self._tracker.retain(self.name, (str(i) for i in range(len(per_cpu))))
        return samples
