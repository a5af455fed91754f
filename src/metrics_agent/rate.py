"""Keyed tracker turning successive absolute counter readings into deltas."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Sequence, Union

logger = logging.getLogger(__name__)

Number = Union[int, float]
Counters = Union[Number, Sequence[Number]]


@dataclass(frozen=True)
class Delta:
    """Difference between two observations of the same key."""

    values: tuple[Number, ...]
    elapsed: float

    def rates(self) -> tuple[float, ...]:
        """Per-second rates for every counter in the observation."""
        return tuple(v / self.elapsed for v in self.values)

    @property
    def value(self) -> Number:
        return self.values[0]

    @property
    def rate(self) -> float:
        return self.values[0] / self.elapsed


class RateTracker:
    """Remembers the last raw reading per ``(kind, key)``.

    :meth:`update` returns ``None`` when no rate can be produced: on the
    first observation of a key, when any counter went backwards (counter
    reset or wraparound), or when the clock did not advance. In all three
    cases the new reading becomes the baseline for the next tick.
    """

    def __init__(self) -> None:
        self._state: dict[tuple[str, str], tuple[tuple[Number, ...], datetime]] = {}
        self._lock = threading.Lock()

    def update(self, kind: str, key: str, counters: Counters, timestamp: datetime) -> Delta | None:
        current = tuple(counters) if isinstance(counters, (tuple, list)) else (counters,)
        with self._lock:
            previous = self._state.get((kind, key))
            self._state[(kind, key)] = (current, timestamp)

        if previous is None:
            logger.debug("Baseline established for %s/%s", kind, key)
            return None

        prev_values, prev_ts = previous
        if len(prev_values) != len(current):
            logger.debug("Counter layout changed for %s/%s, resetting baseline", kind, key)
            return None

        elapsed = (timestamp - prev_ts).total_seconds()
        if elapsed <= 0:
            logger.debug("Non-positive interval for %s/%s, resetting baseline", kind, key)
            return None

        deltas = tuple(cur - prev for cur, prev in zip(current, prev_values))
        if any(d < 0 for d in deltas):
            logger.info("Counter regression for %s/%s, resetting baseline", kind, key)
            return None

        return Delta(values=deltas, elapsed=elapsed)

    def retain(self, kind: str, keys: Iterable[str]) -> None:
        """Forget every key of *kind* not in *keys*."""
        live = set(keys)
        with self._lock:
            for state_key in [k for k in self._state if k[0] == kind and k[1] not in live]:
                del self._state[state_key]

    def baseline(self, kind: str, key: str) -> tuple[Number, ...] | None:
        """Last raw counters recorded for a key, if any."""
        with self._lock:
            entry = self._state.get((kind, key))
        return entry[0] if entry is not None else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._state)
