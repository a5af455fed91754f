"""Base interface for metric stores."""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any, Sequence


@dataclass
class Batch:
    """Rows of one metric kind bound for one table."""

    table: str
    columns: tuple[str, ...]
    rows: list[tuple[Any, ...]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)


class BaseStore(abc.ABC):
    """Abstract append-only destination for sample batches."""

    @abc.abstractmethod
    def connect(self) -> None:
        """Open the connection, raising PersistenceError on failure."""

    @abc.abstractmethod
    def insert_batches(self, batches: Sequence[Batch]) -> None:
        """Insert every batch with one bulk statement each, atomically.

        Raises :class:`~metrics_agent.errors.TransientStoreError` for
        failures worth retrying and
        :class:`~metrics_agent.errors.PersistenceError` otherwise.
        """

    @abc.abstractmethod
    def close(self) -> None:
        """Release the connection."""
