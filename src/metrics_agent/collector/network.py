"""Network resource collector."""

from __future__ import annotations

from datetime import datetime

import psutil

from ..errors import CollectionError
from ..rate import RateTracker
from ..samples import NetworkSample
from .base import BaseCollector


class NetworkCollector(BaseCollector):
    """Collects per-interface receive/transmit rates in bytes/sec."""

    def __init__(self, hostname: str, tracker: RateTracker, interface: str = "") -> None:
        super().__init__(hostname)
        self._tracker = tracker
        self._interface = interface

    @property
    def name(self) -> str:
        return "network"

    def collect(self, timestamp: datetime) -> list[NetworkSample]:
        try:
            counters = psutil.net_io_counters(pernic=True)
        except OSError as exc:
            raise CollectionError(self.name, f"cannot read interface counters: {exc}") from exc

        # a configured interface that is absent yields nothing rather than every NIC
        interfaces = [self._interface] if self._interface else list(counters.keys())

        samples: list[NetworkSample] = []
        seen: list[str] = []
        for iface in interfaces:
            if iface == "lo":
                continue
            nio = counters.get(iface)
            if nio is None:
                continue
            seen.append(iface)
            delta = self._tracker.update(self.name, iface, (nio.bytes_recv, nio.bytes_sent), timestamp)
            if delta is None:
                continue
            rx_rate, tx_rate = delta.rates()
            samples.append(NetworkSample(self.hostname, timestamp, iface, rx_rate, tx_rate))

        self._tracker.retain(self.name, seen)
        return samples
