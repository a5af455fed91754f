"""Load average collector."""

from __future__ import annotations

from datetime import datetime

import psutil

from ..errors import CollectionError
from ..samples import LoadAverageSample
from .base import BaseCollector


class LoadAverageCollector(BaseCollector):

    @property
    def name(self) -> str:
        return "load_average"

    def collect(self, timestamp: datetime) -> list[LoadAverageSample]:
        try:
            one, five, fifteen = psutil.getloadavg()
        except OSError as exc:
            raise CollectionError(self.name, f"cannot read load average: {exc}") from exc
        return [LoadAverageSample(self.hostname, timestamp, float(one), float(five), float(fifteen))]
