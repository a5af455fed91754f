"""Base interface for metric collectors."""

from __future__ import annotations

import abc
from datetime import datetime
from typing import Sequence

from ..samples import Sample


class BaseCollector(abc.ABC):
    """Abstract base class for metric collectors.

    A collector is invoked once per tick with the tick timestamp, which it
    stamps on every sample it emits. Read failures are raised as
    :class:`~metrics_agent.errors.CollectionError`; the scheduler logs them
    and moves on.
    """

    def __init__(self, hostname: str) -> None:
        self.hostname = hostname

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Collector name used in configuration and logs."""

    @abc.abstractmethod
    def collect(self, timestamp: datetime) -> Sequence[Sample]:
        """Collect samples for the tick at *timestamp*."""

    def close(self) -> None:
        """Release connections held across ticks."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
