"""Batch writer – groups samples by table and persists them with bounded retry."""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable

from ..config import WriterConfig
from ..errors import PersistenceError, TransientStoreError
from ..samples import Sample
from .base import Batch, BaseStore

logger = logging.getLogger(__name__)


def group_samples(samples: Iterable[Sample]) -> list[Batch]:
    """One batch per destination table, in order of first appearance."""
    batches: dict[str, Batch] = {}
    for sample in samples:
        batch = batches.get(sample.table)
        if batch is None:
            batch = batches[sample.table] = Batch(sample.table, sample.columns())
        batch.rows.append(sample.to_row())
    return list(batches.values())


class BatchWriter:
    """Writes one tick's samples to the store.

    Transient failures are retried with exponential backoff up to
    ``max_attempts``; after that, or on any non-transient failure, the
    tick's batches are dropped and the failure is logged. :meth:`write`
    never raises for store errors.
    """

    def __init__(
        self,
        store: BaseStore,
        config: WriterConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._config = config or WriterConfig()
        self._sleep = sleep

    def backoff(self, attempt: int) -> float:
        """Delay before retry number *attempt* (1-based)."""
        delay = self._config.base_delay_seconds * (2 ** (attempt - 1))
        return min(delay, self._config.max_delay_seconds)

    def write(self, samples: Iterable[Sample]) -> bool:
        batches = group_samples(samples)
        if not batches:
            return True

        rows = sum(len(b) for b in batches)
        attempts = self._config.max_attempts
        for attempt in range(1, attempts + 1):
            try:
                self._store.insert_batches(batches)
            except TransientStoreError as exc:
                if attempt == attempts:
                    logger.error(
                        "Dropping %d rows in %d batches after %d attempts: %s",
                        rows, len(batches), attempts, exc,
                    )
                    return False
                delay = self.backoff(attempt)
                logger.warning(
                    "Store write failed (attempt %d/%d), retrying in %.1fs: %s",
                    attempt, attempts, delay, exc,
                )
                self._sleep(delay)
            except PersistenceError as exc:
                logger.error("Dropping %d rows in %d batches: %s", rows, len(batches), exc)
                return False
            else:
                logger.debug("Wrote %d rows to %d tables", rows, len(batches))
                return True
        return False
