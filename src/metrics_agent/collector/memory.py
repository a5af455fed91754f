"""Memory usage collector."""

from __future__ import annotations

from datetime import datetime

import psutil

from ..errors import CollectionError
from ..samples import MemorySample
from .base import BaseCollector


class MemoryCollector(BaseCollector):
    """Collects memory and swap figures in bytes."""

    @property
    def name(self) -> str:
        return "memory"

    def collect(self, timestamp: datetime) -> list[MemorySample]:
        try:
            mem = psutil.virtual_memory()
            swap = psutil.swap_memory()
        except OSError as exc:
            raise CollectionError(self.name, f"cannot read memory info: {exc}") from exc

        # buffers/cached only exist on Linux and BSD
        return [MemorySample(
            self.hostname,
            timestamp,
            total=int(mem.total),
            free=int(mem.free),
            available=int(mem.available),
            buffers=int(getattr(mem, "buffers", 0)),
            cached=int(getattr(mem, "cached", 0)),
            swap_total=int(swap.total),
            swap_free=int(swap.free),
        )]
