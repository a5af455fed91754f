"""Block device I/O collector."""

from __future__ import annotations

from datetime import datetime

import psutil

from ..errors import CollectionError
from ..rate import RateTracker
from ..samples import IoSample
from .base import BaseCollector


class IoCollector(BaseCollector):
    """Collects per-device read/write throughput in bytes/sec."""

    def __init__(self, hostname: str, tracker: RateTracker) -> None:
        super().__init__(hostname)
        self._tracker = tracker

    @property
    def name(self) -> str:
        return "io"

    def collect(self, timestamp: datetime) -> list[IoSample]:
        try:
            counters = psutil.disk_io_counters(perdisk=True) or {}
        except OSError as exc:
            raise CollectionError(self.name, f"cannot read disk counters: {exc}") from exc

        samples: list[IoSample] = []
        for device, dio in counters.items():
            delta = self._tracker.update(self.name, device, (dio.read_bytes, dio.write_bytes), timestamp)
            if delta is None:
                continue
            read_rate, write_rate = delta.rates()
            samples.append(IoSample(self.hostname, timestamp, device, read_rate, write_rate))

        self._tracker.retain(self.name, counters.keys())
        return samples
