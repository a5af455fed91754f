"""nginx stub_status collector."""

from __future__ import annotations

from datetime import datetime

import requests

from ..errors import CollectionError
from ..rate import RateTracker
from ..samples import NginxSample
from .base import BaseCollector


def parse_stub_status(body: str) -> int:
    """Extract the total request counter from an nginx ``stub_status`` page.

    The page looks like::

        Active connections: 2
        server accepts handled requests
         112 112 230
        Reading: 0 Writing: 1 Waiting: 1

    and the counter is the third number on the third line.
    """
    lines = body.splitlines()
    if len(lines) < 3:
        raise ValueError("stub_status response is too short")
    numbers = lines[2].split()
    if len(numbers) < 3:
        raise ValueError(f"unexpected counters line: {lines[2]!r}")
    return int(numbers[2])


class NginxCollector(BaseCollector):
    """Reports the number of requests handled since the previous tick."""

    def __init__(self, hostname: str, tracker: RateTracker, status_url: str, timeout: float = 5.0) -> None:
        super().__init__(hostname)
        self._tracker = tracker
        self._url = status_url
        self._timeout = timeout
        self._session = requests.Session()

    @property
    def name(self) -> str:
        return "nginx"

    def collect(self, timestamp: datetime) -> list[NginxSample]:
        try:
            resp = self._session.get(self._url, timeout=self._timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise CollectionError(self.name, f"status request to {self._url} failed: {exc}") from exc

        try:
            handled = parse_stub_status(resp.text)
        except ValueError as exc:
            raise CollectionError(self.name, f"malformed status page: {exc}") from exc

        delta = self._tracker.update(self.name, self._url, handled, timestamp)
        if delta is None:
            return []
        return [NginxSample(self.hostname, timestamp, int(delta.value))]

    def close(self) -> None:
        self._session.close()
