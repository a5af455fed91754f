"""Exception hierarchy for the metrics agent."""

from __future__ import annotations


class AgentError(Exception):
    """Base class for all agent errors."""


class ConfigError(AgentError, ValueError):
    """Configuration is missing or invalid."""


class CollectionError(AgentError):
    """A collector could not read its source for the current tick."""

    def __init__(self, collector: str, message: str) -> None:
        super().__init__(f"{collector}: {message}")
        self.collector = collector


class PersistenceError(AgentError):
    """Writing a batch set to the store failed."""


class TransientStoreError(PersistenceError):
    """A store failure worth retrying (connection loss, timeout)."""


class FatalError(AgentError):
    """Unrecoverable startup condition; the process should exit."""
